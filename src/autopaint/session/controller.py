from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, wait
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..errors import RequestCancelled
from ..llm.orchestrator import Outcome, ProviderOrchestrator
from ..llm.transport import CancelToken

logger = logging.getLogger(__name__)


class SendState(Enum):
    IDLE = "idle"
    SENDING = "sending"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class SendResult:
    """The single terminal message a worker hands back to the UI thread."""
    outcome: Optional[Outcome] = None
    error: str = ""
    aborted: bool = False


class BackgroundSendController:
    """
    Runs one orchestrator call at a time on a worker thread.

    The UI thread calls poll() from its timer; the worker never touches the
    UI or the document and reports back only through its future. Workers are
    daemon threads: a request still in flight after abort() never holds up
    interpreter exit.
    """

    def __init__(self, orchestrator: ProviderOrchestrator, teardown_wait_seconds: float = 0.5):
        self.orchestrator = orchestrator
        self.teardown_wait_seconds = teardown_wait_seconds
        self._future: Optional[Future] = None
        self._cancel: Optional[CancelToken] = None
        self._state = SendState.IDLE
        self.last_finish: Optional[SendState] = None

    @property
    def state(self) -> SendState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state is SendState.SENDING

    def start(self, prompt_text: str, image_base64: str) -> None:
        """
        Start a send. The image must already be captured on the calling thread.

        Raises:
            RuntimeError: a previous send is still outstanding
        """
        if self.busy:
            raise RuntimeError("A request is already in flight")

        self._cancel = CancelToken()
        self._future = Future()
        worker = threading.Thread(
            target=self._run,
            args=(self._future, prompt_text, image_base64, self._cancel),
            name="autopaint-send",
            daemon=True,
        )
        self._state = SendState.SENDING
        worker.start()

    def _run(self, future: Future, prompt_text: str, image_base64: str, cancel: CancelToken) -> None:
        future.set_running_or_notify_cancel()
        future.set_result(self._send(prompt_text, image_base64, cancel))

    def _send(self, prompt_text: str, image_base64: str, cancel: CancelToken) -> SendResult:
        try:
            outcome = self.orchestrator.send(prompt_text, image_base64, cancel=cancel)
        except RequestCancelled:
            logger.info("Send aborted")
            return SendResult(aborted=True)
        except Exception as e:
            # nothing may escape the worker; the UI shows the message instead
            logger.exception("Request worker failed")
            return SendResult(error=f"Unexpected error: {e}")
        if cancel.cancelled:
            return SendResult(aborted=True)
        return SendResult(outcome=outcome)

    def poll(self) -> Optional[SendResult]:
        """
        Non-blocking check for the worker's result.

        Returns the result exactly once, then the controller is IDLE again.
        """
        if self._state is not SendState.SENDING or self._future is None:
            return None
        if not self._future.done():
            return None

        result: SendResult = self._future.result()
        self._future = None
        self._cancel = None
        self.last_finish = SendState.ABORTED if result.aborted else SendState.COMPLETED
        logger.debug("Send finished: %s", self.last_finish.value)
        self._state = SendState.IDLE
        return result

    def request_cancel(self) -> None:
        """Ask the worker to stop at its next checkpoint; poll() then reports it aborted."""
        if self._cancel is not None:
            self._cancel.cancel()

    def abort(self, wait_seconds: Optional[float] = None) -> bool:
        """
        Cancel any outstanding send and release the worker thread.

        Waits at most `wait_seconds` (default: teardown_wait_seconds) for the
        worker to notice. Returns True if the worker finished within the wait.
        """
        wait_seconds = self.teardown_wait_seconds if wait_seconds is None else wait_seconds
        finished = True
        if self._cancel is not None:
            self._cancel.cancel()
        if self._future is not None:
            done, _ = wait([self._future], timeout=wait_seconds)
            finished = bool(done)
            if not finished:
                logger.warning(
                    "Worker still inside a network call after %.1fs; it ends at its request deadline",
                    wait_seconds,
                )
        if self._state is SendState.SENDING:
            self.last_finish = SendState.ABORTED
        self._future = None
        self._cancel = None
        self._state = SendState.IDLE
        return finished
