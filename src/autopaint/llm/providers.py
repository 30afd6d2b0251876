from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from ..config import AutopaintConfig
from ..credentials.resolver import GEMINI_API_KEY, GROQ_API_KEY, OPENROUTER_API_KEY


class ProviderId(str, Enum):
    GEMINI = "gemini"
    GROQ = "groq"
    OPENROUTER = "openrouter"
    MOCK = "mock"


class BodySchema(Enum):
    NATIVE_MULTIMODAL = "native_multimodal"
    OPENAI_CHAT = "openai_chat"
    MOCK = "mock"


@dataclass(frozen=True)
class ProviderSpec:
    """
    Static description of one LLM backend.

    `endpoint` is the base URL: the Gemini client appends
    /{model}:generateContent, the OpenAI SDK appends /chat/completions.
    """
    id: ProviderId
    display_name: str
    credential_name: Optional[str]
    endpoint: str
    model: str
    body_schema: BodySchema
    accepts_image: bool = False
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


GEMINI = ProviderSpec(
    id=ProviderId.GEMINI,
    display_name="Gemini",
    credential_name=GEMINI_API_KEY,
    endpoint="https://generativelanguage.googleapis.com/v1beta/models",
    model="gemini-2.0-flash-exp",
    body_schema=BodySchema.NATIVE_MULTIMODAL,
    accepts_image=True,
)

GROQ = ProviderSpec(
    id=ProviderId.GROQ,
    display_name="Groq (Llama 3.3)",
    credential_name=GROQ_API_KEY,
    endpoint="https://api.groq.com/openai/v1",
    model="llama-3.3-70b-versatile",
    body_schema=BodySchema.OPENAI_CHAT,
    temperature=0.7,
    max_tokens=2048,
)

OPENROUTER = ProviderSpec(
    id=ProviderId.OPENROUTER,
    display_name="OpenRouter (Llama 3.2)",
    credential_name=OPENROUTER_API_KEY,
    endpoint="https://openrouter.ai/api/v1",
    model="meta-llama/llama-3.2-3b-instruct:free",
    body_schema=BodySchema.OPENAI_CHAT,
)

MOCK = ProviderSpec(
    id=ProviderId.MOCK,
    display_name="Mock",
    credential_name=None,
    endpoint="mock://autopaint",
    model="mock-llm",
    body_schema=BodySchema.MOCK,
    accepts_image=True,
)

# Gemini goes first: it is the only provider that sees the canvas image.
PRIORITY_ORDER: Tuple[ProviderSpec, ...] = (GEMINI, GROQ, OPENROUTER)


def default_providers(config: Optional[AutopaintConfig] = None) -> Tuple[ProviderSpec, ...]:
    overrides = config.model_overrides if config is not None else {}
    return tuple(
        replace(spec, model=overrides[spec.id.value]) if spec.id.value in overrides else spec
        for spec in PRIORITY_ORDER
    )
