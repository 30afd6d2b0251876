from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional

from .config import AutopaintConfig
from .credentials.resolver import CredentialResolver, CredentialStore
from .errors import CaptureError
from .host.base import HostDocument, ScriptEngine
from .host.capture import capture_image
from .llm.orchestrator import AllProvidersFailed, ProviderOrchestrator
from .llm.providers import MOCK
from .llm_input.request_context import build_request_context
from .prompts.prompt_builder import build_prompt_text
from .response.interpreter import ActionKind, apply_action, interpret_response


def build_orchestrator(
    llm_backend: str,
    config: AutopaintConfig,
    credentials: Optional[CredentialStore] = None,
) -> ProviderOrchestrator:
    resolver = CredentialResolver(credentials, env_file=str(config.env_file))
    if llm_backend == "mock":
        return ProviderOrchestrator(resolver, providers=[MOCK], config=config)
    if llm_backend == "auto":
        return ProviderOrchestrator(resolver, config=config)
    raise ValueError(f"Unsupported llm_backend: {llm_backend}")


def run_autopaint(
    *,
    document: HostDocument,
    prompt: str,
    engine: ScriptEngine,
    llm_backend: str = "auto",
    out_dir: Optional[str] = None,
    config: Optional[AutopaintConfig] = None,
    orchestrator: Optional[ProviderOrchestrator] = None,
) -> Dict:
    """
    End-to-end run on the calling thread:
      document -> capture -> request context -> prompt -> providers -> script

    Saves artifacts under out_dir when given and returns a summary dict.

    Raises:
        CaptureError: the document could not be captured
    """
    config = config or AutopaintConfig()
    out = Path(out_dir) if out_dir else None
    if out is not None:
        out.mkdir(parents=True, exist_ok=True)

    # 1) Capture
    image_base64 = capture_image(document, config.capture_path)
    if not image_base64:
        raise CaptureError("Error capturing image.")

    # 2) Request context + prompt
    request = build_request_context(
        document=document,
        prompt=prompt,
        image_base64=image_base64,
        max_palette_entries=config.max_palette_entries,
    )
    prompt_text = build_prompt_text(request)
    if out is not None:
        (out / "prompt.txt").write_text(prompt_text, encoding="utf-8")

    # 3) Providers
    orchestrator = orchestrator or build_orchestrator(llm_backend, config)
    outcome = orchestrator.send(prompt_text, image_base64)

    summary: Dict = {
        "prompt": prompt,
        "canvas": [request.canvas_width, request.canvas_height],
        "provider": None,
        "status": "",
        "script_path": None,
        "preview": None,
    }
    if isinstance(outcome, AllProvidersFailed):
        summary["status"] = outcome.message
        summary["failures"] = [
            {"provider": f.provider.value, "kind": f.kind.value, "reason": f.reason}
            for f in outcome.failures
        ]
        return summary

    summary["provider"] = outcome.provider_name
    if out is not None:
        (out / "response.json").write_text(outcome.body, encoding="utf-8")

    # 4) Interpret + execute
    action = interpret_response(
        outcome.body,
        request,
        provider_name=outcome.provider_name,
        preview_chars=config.preview_chars,
    )
    summary["status"] = action.message
    if action.kind is ActionKind.EXECUTE:
        if out is not None:
            script_path = out / "script.lua"
            script_path.write_text(action.script, encoding="utf-8")
            summary["script_path"] = str(script_path)
        apply_action(action, engine)
        summary["status"] = f"Done! (via {outcome.provider_name})"
    elif action.kind is ActionKind.PREVIEW:
        summary["preview"] = action.preview

    return summary


def summary_to_json(summary: Dict) -> str:
    return json.dumps(summary, indent=2)
