import logging
from typing import Callable, Dict, List, Optional

import requests

from ..config import AutopaintConfig
from .client_base import ProviderClient
from .providers import BodySchema, ProviderSpec

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., ProviderClient]

_REGISTRY: Dict[BodySchema, ClientFactory] = {}


def register_client(schema: BodySchema):
    """Decorator to register a client class for a request-body schema."""
    def decorator(cls):
        _REGISTRY[schema] = cls
        return cls
    return decorator


def get_client_class(schema: BodySchema) -> Optional[ClientFactory]:
    _load_builtin_clients()
    return _REGISTRY.get(schema)


def list_schemas() -> List[str]:
    _load_builtin_clients()
    return sorted(s.value for s in _REGISTRY)


def create_client(
    spec: ProviderSpec,
    api_key: str,
    config: AutopaintConfig,
    session: Optional[requests.Session] = None,
) -> ProviderClient:
    """
    Instantiate the registered client for spec.body_schema.

    Raises:
        ValueError: if no client handles the schema
    """
    cls = get_client_class(spec.body_schema)
    if cls is None:
        raise ValueError(f"No client registered for schema: {spec.body_schema.value}")
    logger.debug("Creating %s for %s", cls.__name__, spec.display_name)
    return cls(spec=spec, api_key=api_key, config=config, session=session)


def _load_builtin_clients() -> None:
    # importing the modules runs their @register_client decorators
    from . import gemini_client, mock_client, openai_compat_client  # noqa: F401
