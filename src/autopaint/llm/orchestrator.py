from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple, Union

import requests

from ..config import AutopaintConfig
from ..credentials.resolver import CredentialResolver
from ..errors import ProviderOverloadError, TransportError
from .classify import ResponseKind, classify_response
from .client_base import ProviderClient
from .providers import ProviderId, ProviderSpec, default_providers
from .registry import create_client
from .transport import CancelToken

logger = logging.getLogger(__name__)


class FailureKind(Enum):
    MISSING_CREDENTIAL = "missing_credential"
    TRANSPORT = "transport"
    OVERLOAD = "overload"
    PROVIDER_ERROR = "provider_error"


@dataclass(frozen=True)
class Success:
    body: str
    provider: ProviderSpec

    @property
    def provider_name(self) -> str:
        return self.provider.display_name


@dataclass(frozen=True)
class ProviderFailure:
    provider: ProviderId
    kind: FailureKind
    reason: str


@dataclass(frozen=True)
class AllProvidersFailed:
    last_reason: str
    failures: Tuple[ProviderFailure, ...] = field(default_factory=tuple)

    @property
    def no_credentials(self) -> bool:
        """True when no provider was tried because none had an API key."""
        return all(f.kind is FailureKind.MISSING_CREDENTIAL for f in self.failures)

    @property
    def message(self) -> str:
        if self.no_credentials:
            names = ", ".join(f.provider.value for f in self.failures) or "any provider"
            return f"No API key configured for {names}. Use Config to add one."
        return f"All providers failed. Last error: {self.last_reason}"


Outcome = Union[Success, AllProvidersFailed]

ClientFactory = Callable[[ProviderSpec, str, AutopaintConfig, Optional[requests.Session]], ProviderClient]


class ProviderOrchestrator:
    """
    Try providers one after the other until one answers usefully.

    Providers without a credential are skipped without any network call.
    Transport failures and throttled answers move on to the next provider;
    the first acceptable answer wins. Calls are strictly sequential.
    """

    def __init__(
        self,
        resolver: CredentialResolver,
        providers: Optional[Sequence[ProviderSpec]] = None,
        config: Optional[AutopaintConfig] = None,
        client_factory: Optional[ClientFactory] = None,
        session: Optional[requests.Session] = None,
    ):
        self.resolver = resolver
        self.config = config or AutopaintConfig()
        self.providers = tuple(providers) if providers is not None else default_providers(self.config)
        self._client_factory = client_factory or create_client
        self._session = session

    def send(
        self,
        prompt_text: str,
        image_base64: str,
        cancel: Optional[CancelToken] = None,
    ) -> Outcome:
        """
        Run the fallback loop.

        Raises:
            RequestCancelled: the cancel token was raised at a checkpoint
        """
        cancel = cancel or CancelToken()
        failures: List[ProviderFailure] = []
        session = self._session or requests.Session()

        try:
            for spec in self.providers:
                cancel.raise_if_cancelled()

                api_key = ""
                if spec.credential_name is not None:
                    api_key = self.resolver.resolve(spec.credential_name)
                    if not api_key:
                        logger.info("Skipping %s: %s is not set", spec.display_name, spec.credential_name)
                        failures.append(
                            ProviderFailure(
                                spec.id,
                                FailureKind.MISSING_CREDENTIAL,
                                f"{spec.credential_name} not configured",
                            )
                        )
                        continue

                result = self._attempt(spec, api_key, prompt_text, image_base64, cancel, session)
                if isinstance(result, Success):
                    logger.info("Request served by %s", spec.display_name)
                    return result
                failures.append(result)
                logger.warning("%s failed (%s): %s", spec.display_name, result.kind.value, result.reason)
        finally:
            if self._session is None:
                session.close()

        last_reason = failures[-1].reason if failures else "No providers configured"
        return AllProvidersFailed(last_reason=last_reason, failures=tuple(failures))

    def _attempt(
        self,
        spec: ProviderSpec,
        api_key: str,
        prompt_text: str,
        image_base64: str,
        cancel: CancelToken,
        session: requests.Session,
    ) -> Union[Success, ProviderFailure]:
        client = self._client_factory(spec, api_key, self.config, session)
        prepared = client.build_request(prompt_text, image_base64)

        cancel.raise_if_cancelled()
        logger.info("Sending request to %s (model=%s)", spec.display_name, spec.model)
        try:
            response = client.send(prepared, cancel=cancel)
        except ProviderOverloadError as e:
            return ProviderFailure(spec.id, FailureKind.OVERLOAD, str(e))
        except TransportError as e:
            return ProviderFailure(spec.id, FailureKind.TRANSPORT, str(e))

        cancel.raise_if_cancelled()

        verdict = classify_response(response.status_code, response.raw_text)
        if verdict.kind is ResponseKind.OVERLOAD:
            return ProviderFailure(spec.id, FailureKind.OVERLOAD, verdict.reason)
        if verdict.kind is ResponseKind.PROVIDER_ERROR:
            return ProviderFailure(spec.id, FailureKind.PROVIDER_ERROR, verdict.reason)
        return Success(body=response.raw_text, provider=spec)
