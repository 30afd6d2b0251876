from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import requests

from ..config import AutopaintConfig
from .client_base import PreparedRequest, ProviderClient, ProviderResponse
from .providers import BodySchema, ProviderSpec
from .registry import register_client
from .transport import CancelToken, post_json


@register_client(BodySchema.NATIVE_MULTIMODAL)
@dataclass
class GeminiClient(ProviderClient):
    """
    Gemini generateContent client.

    Sends the prompt text plus the captured canvas as an inline PNG part.
    The API key travels as the `key` query parameter.
    """
    spec: ProviderSpec
    api_key: str
    config: AutopaintConfig = field(default_factory=AutopaintConfig)
    session: Optional[requests.Session] = None

    def __post_init__(self):
        if self.session is None:
            self.session = requests.Session()

    def build_request(self, prompt_text: str, image_base64: str) -> PreparedRequest:
        parts = [{"text": prompt_text}]
        if image_base64 and self.spec.accepts_image:
            parts.append(
                {
                    "inline_data": {
                        "mime_type": "image/png",
                        "data": image_base64,
                    }
                }
            )

        return PreparedRequest(
            url=f"{self.spec.endpoint.rstrip('/')}/{self.spec.model}:generateContent",
            body={"contents": [{"parts": parts}]},
            params={"key": self.api_key},
        )

    def send(
        self,
        prepared: PreparedRequest,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> ProviderResponse:
        result = post_json(
            self.session,
            prepared.url,
            body=prepared.body,
            headers=prepared.headers,
            params=prepared.params,
            connect_timeout=self.config.connect_timeout_seconds,
            deadline_seconds=self.config.request_timeout_seconds,
            cancel=cancel,
        )
        return ProviderResponse(
            raw_text=result.text,
            provider=self.spec,
            status_code=result.status_code,
        )
