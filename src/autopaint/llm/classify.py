from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Substrings some providers put in a body (sometimes with HTTP 200) when the
# request was throttled. Heuristic: a generated script that happens to contain
# one of these words is also classified as overload.
OVERLOAD_MARKERS = (
    "overloaded",
    "quota",
    "rate limit",
    "rate_limit",
    "resource_exhausted",
)

OVERLOAD_STATUS_CODES = frozenset({429, 503})


class ResponseKind(Enum):
    OK = "ok"
    OVERLOAD = "overload"
    PROVIDER_ERROR = "provider_error"


@dataclass(frozen=True)
class Classification:
    kind: ResponseKind
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.kind is ResponseKind.OK


def find_overload_marker(body: str) -> str:
    lowered = (body or "").lower()
    for marker in OVERLOAD_MARKERS:
        if marker in lowered:
            return marker
    return ""


def classify_response(status_code: int, body: str) -> Classification:
    """
    Decide whether a provider answer can be handed to the response interpreter.

    Order: throttling status codes, then known overload markers in the body
    (whatever the status), then any other non-2xx status as an unknown
    provider error.
    """
    if status_code in OVERLOAD_STATUS_CODES:
        return Classification(
            ResponseKind.OVERLOAD, f"Provider quota/overload error (HTTP {status_code})"
        )

    marker = find_overload_marker(body)
    if marker:
        return Classification(
            ResponseKind.OVERLOAD, f"Provider quota/overload error ({marker!r} in response)"
        )

    if not 200 <= status_code < 300:
        return Classification(
            ResponseKind.PROVIDER_ERROR, f"Unknown provider error (HTTP {status_code})"
        )

    return Classification(ResponseKind.OK)
