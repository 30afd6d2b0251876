from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional

from ..config import AutopaintConfig
from ..credentials.resolver import CredentialResolver, CredentialStore
from ..host.base import HostContext, ScriptEngine
from ..host.capture import capture_image, describe_capture
from ..llm.orchestrator import AllProvidersFailed, ProviderOrchestrator, Success
from ..llm_input.request_context import RequestContext, build_request_context
from ..prompts.prompt_builder import build_prompt_text
from ..response.interpreter import ActionKind, apply_action, interpret_response
from .controller import BackgroundSendController, SendResult

logger = logging.getLogger(__name__)

READY_PREVIEW = "Ready to capture..."


@dataclass
class ChatMessage:
    role: str
    text: str

    def render(self) -> str:
        return f"{self.role}: {self.text}"


class AutopaintSession:
    """
    Toolkit-independent model of the autopaint chat dialog.

    The host UI renders `history`, `preview` and `input_enabled`, forwards the
    send button to send(), calls tick() from a timer every
    `config.poll_interval_ms` and calls close() when the window goes away.
    """

    def __init__(
        self,
        context: HostContext,
        engine: ScriptEngine,
        *,
        config: Optional[AutopaintConfig] = None,
        credentials: Optional[CredentialStore] = None,
        orchestrator: Optional[ProviderOrchestrator] = None,
    ):
        self.context = context
        self.engine = engine
        self.config = config or AutopaintConfig()
        self.credentials = credentials if credentials is not None else CredentialStore()
        if orchestrator is None:
            resolver = CredentialResolver(self.credentials, env_file=str(self.config.env_file))
            orchestrator = ProviderOrchestrator(resolver, config=self.config)
        self.controller = BackgroundSendController(
            orchestrator, teardown_wait_seconds=self.config.teardown_wait_ms / 1000.0
        )

        self.history: List[ChatMessage] = []
        self.preview = READY_PREVIEW
        self.input_enabled = True
        self._status: Optional[ChatMessage] = None
        self._pending: Optional[RequestContext] = None
        self._closed = False

    @property
    def poll_interval_ms(self) -> int:
        return self.config.poll_interval_ms

    @property
    def status(self) -> str:
        return self._status.text if self._status is not None else ""

    def add_message(self, role: str, text: str) -> ChatMessage:
        message = ChatMessage(role, text)
        self.history.append(message)
        return message

    def _set_status(self, text: str) -> None:
        if self._status is not None:
            self._status.text = text

    # ---- Config dialog ----

    def set_api_key(self, name: str, value: str) -> None:
        self.credentials.set(name, value)

    def configure_keys(self, keys: Mapping[str, str]) -> None:
        for name, value in keys.items():
            self.set_api_key(name, value)

    # ---- Send / tick / close ----

    def send(self, prompt: str) -> bool:
        """
        Handle the send button. Returns False if the send was rejected or
        ended before reaching the network (empty prompt, busy, capture failed).
        """
        prompt = (prompt or "").strip()
        if not prompt or self._closed:
            return False
        if not self.input_enabled or self.controller.busy:
            logger.info("Send rejected: a request is already pending")
            return False

        self.add_message("User", prompt)
        self.input_enabled = False
        self._status = self.add_message("System", "Thinking...")

        # document state belongs to this thread: read everything before the worker starts
        document = self.context.active_document()
        image_base64 = capture_image(document, self.config.capture_path)
        if not image_base64:
            self._set_status("Error capturing image.")
            self.input_enabled = True
            return False

        self.preview = describe_capture(document) or self.preview
        request = build_request_context(
            document=document,
            prompt=prompt,
            image_base64=image_base64,
            max_palette_entries=self.config.max_palette_entries,
        )
        self._pending = request
        self.controller.start(build_prompt_text(request), request.image_base64)
        return True

    def tick(self) -> bool:
        """
        Timer callback. Returns True when a pending send was completed on this tick.
        """
        result = self.controller.poll()
        if result is None:
            return False

        request, self._pending = self._pending, None
        self.input_enabled = True
        self._handle_result(result, request)
        return True

    def _handle_result(self, result: SendResult, request: Optional[RequestContext]) -> None:
        if result.aborted:
            self._set_status("Request cancelled.")
            return
        if result.error:
            self._set_status(result.error)
            return

        outcome = result.outcome
        if isinstance(outcome, AllProvidersFailed):
            self._set_status(outcome.message)
            return
        if not isinstance(outcome, Success) or request is None:
            self._set_status("No response content found.")
            return

        action = interpret_response(
            outcome.body,
            request,
            provider_name=outcome.provider_name,
            preview_chars=self.config.preview_chars,
        )
        if action.kind is ActionKind.EXECUTE:
            self._set_status(action.message)
            apply_action(action, self.engine)
            self._set_status(f"Done! (via {outcome.provider_name})")
        elif action.kind is ActionKind.PREVIEW:
            self._set_status(action.message)
            self.add_message("AI", action.preview or "")
        else:
            self._set_status(action.message)

    def close(self) -> None:
        """Tear down: cancel any outstanding send without blocking for long."""
        if self._closed:
            return
        self._closed = True
        if not self.controller.abort():
            logger.info("Closed while a request was still in flight")
        self._pending = None
