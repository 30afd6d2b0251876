from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

import requests

from ..config import AutopaintConfig
from .client_base import PreparedRequest, ProviderClient, ProviderResponse
from .providers import MOCK, BodySchema, ProviderSpec
from .registry import register_client
from .transport import CancelToken

_CANVAS_RE = re.compile(r"CANVAS SIZE:\s*([0-9]+)x([0-9]+)")


def _extract_canvas_size(prompt: str) -> Optional[Tuple[int, int]]:
    """
    Extract the canvas size from a line like:
      CANVAS SIZE: 32x32 pixels.
    """
    m = _CANVAS_RE.search(prompt or "")
    if not m:
        return None
    return int(m.group(1)), int(m.group(2))


@register_client(BodySchema.MOCK)
@dataclass
class MockProviderClient(ProviderClient):
    """
    Offline provider: answers every prompt with a Gemini-shaped body holding a
    Lua script that fills a centered square with palette index 1.
    """
    spec: ProviderSpec = MOCK
    api_key: str = ""
    config: AutopaintConfig = field(default_factory=AutopaintConfig)
    session: Optional[requests.Session] = None

    def build_request(self, prompt_text: str, image_base64: str) -> PreparedRequest:
        return PreparedRequest(
            url=self.spec.endpoint,
            body={"prompt": prompt_text, "has_image": bool(image_base64)},
        )

    def send(
        self,
        prepared: PreparedRequest,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> ProviderResponse:
        size = _extract_canvas_size(prepared.body.get("prompt", "")) or (16, 16)
        side = max(1, min(size) // 2)
        start_x = (size[0] - side) // 2
        start_y = (size[1] - side) // 2

        script = "\n".join(
            [
                "local sprite = app.activeSprite",
                "local layer = sprite:newLayer()",
                "layer.name = 'AI Generation'",
                "app.activeLayer = layer",
                "local cel = sprite:newCel(layer, app.activeFrame)",
                f'drawHexGrid({start_x}, {start_y}, {side}, string.rep("1", {side * side}), palette)',
                "app.refresh()",
            ]
        )
        text = f"Here is your drawing:\n```lua\n{script}\n```"
        body = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
        return ProviderResponse(raw_text=json.dumps(body), provider=self.spec, status_code=200)
