"""
test_session.py

Tests for the chat dialog model: send / tick / close as the host UI drives them.
"""

import os
import subprocess
import sys
import textwrap
import threading
import time
from pathlib import Path

import pytest
from conftest import FakeContext, FakeDocument, make_orchestrator, wait_for

from autopaint.config import AutopaintConfig
from autopaint.credentials.resolver import CredentialStore
from autopaint.host.base import Rect
from autopaint.session.chat import READY_PREVIEW, AutopaintSession

RED_SQUARE_BODY = '{"candidates":[{"content":{"parts":[{"text":"```lua\\nsomecode\\n```"}]}}]}'


@pytest.fixture
def config(tmp_path):
    return AutopaintConfig(env_file=tmp_path / "missing.env", capture_path=tmp_path / "capture.png")


def _session(config, engine, body=RED_SQUARE_BODY, document=None, **orchestrator_kwargs):
    orchestrator, sends = make_orchestrator(body, **orchestrator_kwargs)
    document = document if document is not None else FakeDocument()
    session = AutopaintSession(FakeContext(document), engine, config=config, orchestrator=orchestrator)
    return session, sends


def _finish(session):
    wait_for(session.tick)


class TestAutopaintSession:
    def test_red_square_end_to_end(self, config, engine):
        session, sends = _session(config, engine)

        assert session.preview == READY_PREVIEW
        assert session.send("draw a red square") is True
        assert not session.input_enabled
        assert session.status == "Thinking..."

        _finish(session)

        assert session.input_enabled
        assert len(engine.scripts) == 1
        assert "\nsomecode\n" in engine.scripts[0]
        assert "function drawHexGrid(" in engine.scripts[0]
        assert "local palette = {[0]=Color{r=0,g=0,b=0,a=255}" in engine.scripts[0]
        assert session.status == "Done! (via Gemini)"
        assert session.preview == "Captured: 32x32"
        assert [m.render() for m in session.history] == [
            "User: draw a red square",
            "System: Done! (via Gemini)",
        ]
        assert len(sends) == 1
        assert "User Request: draw a red square" in sends[0][1]

    def test_empty_prompt_ignored(self, config, engine):
        session, sends = _session(config, engine)
        assert session.send("   ") is False
        assert session.history == []

    def test_send_rejected_while_pending(self, config, engine):
        gate = threading.Event()
        session, _ = _session(config, engine, gate=gate)

        assert session.send("first") is True
        assert session.send("second") is False
        assert [m.text for m in session.history] == ["first", "Thinking..."]

        gate.set()
        _finish(session)
        session.close()

    def test_capture_failure_reenables_input(self, config, engine):
        session, sends = _session(config, engine, document=FakeDocument(save_ok=False))

        assert session.send("draw") is False
        assert session.status == "Error capturing image."
        assert session.input_enabled
        assert not session.controller.busy
        assert sends == []

    def test_selection_is_passed_to_prompt_and_script(self, config, engine):
        document = FakeDocument(selection=Rect(2, 3, 8, 8))
        session, sends = _session(config, engine, document=document)

        session.send("draw")
        _finish(session)

        assert "ACTIVE SELECTION: x=2, y=3, width=8, height=8." in sends[0][1]
        assert "local selX, selY, selW, selH = 2, 3, 8, 8" in engine.scripts[0]

    def test_no_code_shows_preview(self, config, engine):
        body = '{"choices":[{"message":{"content":"I would rather describe it in words."}}]}'
        session, _ = _session(config, engine, body=body)

        session.send("draw")
        _finish(session)

        assert engine.scripts == []
        assert session.status == "No code found."
        assert session.history[-1].render() == "AI: I would rather describe it in words."

    def test_api_error_message(self, config, engine):
        session, _ = _session(config, engine, body='{"error": {"message": "API key not valid"}}')

        session.send("draw")
        _finish(session)

        assert session.status == "API Error: API key not valid"
        assert engine.scripts == []

    def test_no_credentials_message(self, config, engine):
        session, sends = _session(config, engine, keys={})

        session.send("draw")
        _finish(session)

        assert sends == []
        assert session.status.startswith("No API key configured")
        assert session.input_enabled

    def test_all_providers_failed_message(self, config, engine):
        session, _ = _session(config, engine, body='{"error": "model overloaded"}')

        session.send("draw")
        _finish(session)

        assert session.status == (
            "All providers failed. Last error: Provider quota/overload error ('overloaded' in response)"
        )

    def test_tick_without_send(self, config, engine):
        session, _ = _session(config, engine)
        assert session.tick() is False

    def test_close_while_sending(self, config, engine):
        gate = threading.Event()
        session, sends = _session(config, engine, gate=gate)

        session.send("draw")
        threading.Timer(0.05, gate.set).start()
        session.close()

        assert sends == []
        assert session.tick() is False
        assert session.send("again") is False
        assert engine.scripts == []

    def test_configure_keys(self, config, engine):
        store = CredentialStore()
        orchestrator, _ = make_orchestrator(RED_SQUARE_BODY)
        session = AutopaintSession(
            FakeContext(FakeDocument()), engine, config=config, credentials=store, orchestrator=orchestrator
        )

        session.configure_keys({"GEMINI_API_KEY": "g-key", "GROQ_API_KEY": ""})

        assert store.get("GEMINI_API_KEY") == "g-key"
        assert store.get("GROQ_API_KEY") == ""

    def test_default_orchestrator_uses_session_credentials(self, config, engine):
        store = CredentialStore()
        session = AutopaintSession(FakeContext(FakeDocument()), engine, config=config, credentials=store)

        session.set_api_key("GROQ_API_KEY", "from-dialog")

        assert session.controller.orchestrator.resolver.resolve("GROQ_API_KEY") == "from-dialog"
        assert session.poll_interval_ms == 100


SLOW_SERVER_SCRIPT = textwrap.dedent(
    """
    import sys
    import threading
    import time
    from dataclasses import replace
    from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
    from pathlib import Path

    from PIL import Image

    from autopaint.config import AutopaintConfig
    from autopaint.credentials.resolver import CredentialResolver, CredentialStore
    from autopaint.host.image_document import ImageFileDocument, RecordingScriptEngine, SingleDocumentContext
    from autopaint.llm.orchestrator import ProviderOrchestrator
    from autopaint.llm.providers import GEMINI
    from autopaint.session.chat import AutopaintSession

    class SlowHandler(BaseHTTPRequestHandler):
        def do_POST(self):
            print("server got request", flush=True)
            time.sleep(10)
            self.send_response(200)
            self.end_headers()

        def log_message(self, *args):
            pass

    workdir = Path(sys.argv[1])
    server = ThreadingHTTPServer(("127.0.0.1", 0), SlowHandler)
    threading.Thread(target=server.serve_forever, daemon=True).start()

    canvas = workdir / "canvas.png"
    Image.new("RGBA", (8, 8), (0, 0, 0, 255)).save(canvas)
    config = AutopaintConfig(env_file=workdir / "missing.env", capture_path=workdir / "capture.png")
    spec = replace(GEMINI, endpoint=f"http://127.0.0.1:{server.server_address[1]}/v1beta/models")
    resolver = CredentialResolver(CredentialStore({"GEMINI_API_KEY": "k"}), env_file=None, environ={})
    orchestrator = ProviderOrchestrator(resolver, providers=[spec], config=config)

    session = AutopaintSession(
        SingleDocumentContext(ImageFileDocument(str(canvas))),
        RecordingScriptEngine(),
        config=config,
        orchestrator=orchestrator,
    )
    assert session.send("draw")
    time.sleep(0.5)
    session.close()
    print("closed", flush=True)
    """
)


def test_close_mid_request_lets_the_process_exit(tmp_path):
    env = dict(os.environ)
    src = str(Path(__file__).resolve().parents[1] / "src")
    env["PYTHONPATH"] = os.pathsep.join(p for p in (src, env.get("PYTHONPATH")) if p)

    started = time.monotonic()
    proc = subprocess.run(
        [sys.executable, "-c", SLOW_SERVER_SCRIPT, str(tmp_path)],
        capture_output=True,
        text=True,
        env=env,
        timeout=30,
    )
    elapsed = time.monotonic() - started

    assert proc.returncode == 0, proc.stderr
    assert "server got request" in proc.stdout
    assert "closed" in proc.stdout
    assert elapsed < 8.0
