from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
import requests
from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI, RateLimitError

from ..config import AutopaintConfig
from ..errors import ProviderOverloadError, TransportError
from .client_base import TEXT_ONLY_NOTE, PreparedRequest, ProviderClient, ProviderResponse
from .providers import BodySchema, ProviderSpec
from .registry import register_client
from .transport import CancelToken

logger = logging.getLogger(__name__)

SYSTEM_MESSAGE = (
    "You are an Aseprite Lua script generator. Generate ONLY valid Lua code in "
    "markdown code blocks. Follow all instructions precisely."
)


@register_client(BodySchema.OPENAI_CHAT)
@dataclass
class OpenAICompatClient(ProviderClient):
    """
    Client for OpenAI-compatible chat-completion endpoints (Groq, OpenRouter).

    Uses the openai SDK pointed at the provider's base_url. SDK retries are
    off: falling back to the next provider is the orchestrator's job. One
    client serves one send; its connection pool is closed afterwards.
    """
    spec: ProviderSpec
    api_key: str
    config: AutopaintConfig = field(default_factory=AutopaintConfig)
    session: Optional[requests.Session] = None

    def __post_init__(self):
        self._client = OpenAI(
            api_key=self.api_key,
            base_url=self.spec.endpoint,
            timeout=httpx.Timeout(
                self.config.request_timeout_seconds,
                connect=self.config.connect_timeout_seconds,
            ),
            max_retries=0,
        )

    def build_request(self, prompt_text: str, image_base64: str) -> PreparedRequest:
        user_content = prompt_text
        if not self.spec.accepts_image:
            user_content = f"{prompt_text}\n\n{TEXT_ONLY_NOTE}"

        body: Dict[str, Any] = {
            "model": self.spec.model,
            "messages": [
                {"role": "system", "content": SYSTEM_MESSAGE},
                {"role": "user", "content": user_content},
            ],
        }
        if self.spec.temperature is not None:
            body["temperature"] = self.spec.temperature
        if self.spec.max_tokens is not None:
            body["max_tokens"] = self.spec.max_tokens

        # the SDK adds the bearer header itself
        return PreparedRequest(
            url=f"{self.spec.endpoint.rstrip('/')}/chat/completions",
            body=body,
        )

    def send(
        self,
        prepared: PreparedRequest,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> ProviderResponse:
        """
        Issue the chat completion and keep the raw JSON body.

        Non-2xx answers other than 429 are returned with their status code so
        the orchestrator can classify them. Cancelling the token closes the
        SDK client, which drops the open connection.

        Raises:
            ProviderOverloadError: HTTP 429
            TransportError: timeout or connection failure
            RequestCancelled: the token was cancelled while the call was open
        """
        logger.debug("POST %s model=%s", prepared.url, self.spec.model)
        unregister = cancel.on_cancel(self._client.close) if cancel is not None else None
        try:
            raw = self._client.chat.completions.with_raw_response.create(**prepared.body)
            http_response = raw.http_response
            return ProviderResponse(
                raw_text=http_response.text,
                provider=self.spec,
                status_code=http_response.status_code,
            )
        except RateLimitError as e:
            raise ProviderOverloadError(f"Provider quota/overload error (HTTP {e.status_code})") from e
        except APIStatusError as e:
            return ProviderResponse(
                raw_text=e.response.text,
                provider=self.spec,
                status_code=e.status_code,
            )
        except APITimeoutError:
            raise TransportError(
                f"Request timed out after {self.config.request_timeout_seconds:.0f} seconds"
            ) from None
        except APIConnectionError as e:
            if cancel is not None:
                cancel.raise_if_cancelled()
            raise TransportError(f"Network Error: {type(e).__name__}") from e
        finally:
            if unregister is not None:
                unregister()
            self._client.close()
