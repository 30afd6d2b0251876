"""
Shared fakes for the host application seams.
"""

import time
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pytest

from autopaint.credentials.resolver import CredentialResolver, CredentialStore
from autopaint.host.base import Rect
from autopaint.llm.client_base import PreparedRequest, ProviderResponse
from autopaint.llm.orchestrator import ProviderOrchestrator
from autopaint.llm.providers import GEMINI


class FakeDocument:
    """In-memory stand-in for an editor document."""

    def __init__(
        self,
        width: int = 32,
        height: int = 32,
        colors: Optional[Sequence[Tuple[int, int, int, int]]] = None,
        selection: Optional[Rect] = None,
        save_ok: bool = True,
        has_sprite: bool = True,
        png_bytes: bytes = b"\x89PNG fake image bytes",
    ):
        self.filename = "art.aseprite"
        self._width = width
        self._height = height
        self._colors = list(colors) if colors is not None else [(0, 0, 0, 0), (255, 0, 0, 255)]
        self._selection = selection
        self._save_ok = save_ok
        self._has_sprite = has_sprite
        self._png_bytes = png_bytes
        self.saved_to: List[str] = []

    @property
    def has_sprite(self) -> bool:
        return self._has_sprite

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def save(self) -> bool:
        self.saved_to.append(self.filename)
        if not self._save_ok:
            return False
        Path(self.filename).write_bytes(self._png_bytes)
        return True

    def selection_bounds(self) -> Optional[Rect]:
        return self._selection

    def palette(self, frame: int):
        return self._colors


class FakeContext:
    def __init__(self, document=None):
        self.document = document

    def active_document(self):
        return self.document


class RecordingEngine:
    def __init__(self):
        self.scripts: List[str] = []

    def eval_code(self, code: str) -> None:
        self.scripts.append(code)


@pytest.fixture
def fake_document():
    return FakeDocument()


@pytest.fixture
def engine():
    return RecordingEngine()


@pytest.fixture
def capture_path(tmp_path):
    return tmp_path / "capture.png"


class StaticClient:
    """Provider client that answers every send with a fixed status and body."""

    def __init__(self, spec, status, body, sends, gate=None, entered=None):
        self.spec = spec
        self._status = status
        self._body = body
        self._sends = sends
        self._gate = gate
        self._entered = entered

    def build_request(self, prompt_text, image_base64):
        if self._entered is not None:
            self._entered.set()
        if self._gate is not None:
            self._gate.wait(timeout=5)
        return PreparedRequest(url=self.spec.endpoint, body={"prompt": prompt_text})

    def send(self, prepared, *, cancel=None):
        self._sends.append((self.spec.id, prepared.body["prompt"]))
        return ProviderResponse(raw_text=self._body, provider=self.spec, status_code=self._status)


def make_orchestrator(body, keys=None, status=200, gate=None, entered=None, sends=None):
    """
    Orchestrator over the Gemini provider only, answering with `body`.
    Returns (orchestrator, sends).
    """
    sends = [] if sends is None else sends
    keys = {"GEMINI_API_KEY": "g"} if keys is None else keys

    def factory(spec, api_key, config, session):
        return StaticClient(spec, status, body, sends, gate=gate, entered=entered)

    resolver = CredentialResolver(CredentialStore(keys), env_file=None, environ={})
    orchestrator = ProviderOrchestrator(
        resolver, providers=[GEMINI], client_factory=factory, session=object()
    )
    return orchestrator, sends


def wait_for(predicate, timeout=5.0, interval=0.01):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        value = predicate()
        if value:
            return value
        time.sleep(interval)
    raise AssertionError("condition not met in time")
