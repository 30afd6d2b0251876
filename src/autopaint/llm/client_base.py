from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

from .providers import ProviderSpec
from .transport import CancelToken

TEXT_ONLY_NOTE = "Note: Image context not available, generate based on text description only."


@dataclass(frozen=True)
class PreparedRequest:
    """
    A provider request ready to be sent. Never logged as a whole: headers and
    params may carry the API key.
    """
    url: str
    body: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderResponse:
    """
    Standard response object returned by any provider client implementation.

    raw_text is the untouched HTTP body; the response interpreter parses it.
    """
    raw_text: str
    provider: ProviderSpec
    status_code: int = 200


class ProviderClient(Protocol):
    """
    Protocol / interface for provider clients.

    Building and sending are separate steps so the orchestrator can check for
    cancellation between them.
    """

    spec: ProviderSpec

    def build_request(self, prompt_text: str, image_base64: str) -> PreparedRequest:
        ...

    def send(
        self,
        prepared: PreparedRequest,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> ProviderResponse:
        ...
