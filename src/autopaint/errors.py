from __future__ import annotations


class AutopaintError(Exception):
    """Base class for every failure raised inside the autopaint package."""


class ConfigError(AutopaintError):
    pass


class CaptureError(AutopaintError):
    pass


class TransportError(AutopaintError):
    """
    A provider could not be reached or did not answer in time.

    The orchestrator records it and moves on to the next provider.
    """


class ProviderOverloadError(TransportError):
    pass


class ResponseParseError(AutopaintError):
    pass


class RequestCancelled(AutopaintError):
    pass
