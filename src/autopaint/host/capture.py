from __future__ import annotations

import base64
import logging
from pathlib import Path
from typing import Optional

from .base import HostDocument

logger = logging.getLogger(__name__)


def capture_image(document: Optional[HostDocument], capture_path: Path) -> str:
    """
    Save the active canvas to capture_path and return it base64 encoded.

    The document's filename is swapped to capture_path for the save and always
    restored afterwards. Returns "" when there is nothing to capture or the
    save fails; the caller reports that to the user.
    """
    if document is None or not document.has_sprite:
        logger.warning("Capture skipped: no active document")
        return ""

    capture_path = Path(capture_path)
    original = document.filename
    document.filename = str(capture_path)
    try:
        ok = document.save()
    except Exception:
        logger.exception("Host save routine raised while capturing to %s", capture_path)
        ok = False
    finally:
        document.filename = original

    if not ok:
        logger.warning("Capture failed: host could not save %s", capture_path)
        return ""

    try:
        data = capture_path.read_bytes()
    except OSError as e:
        logger.warning("Capture failed: cannot read %s: %s", capture_path, e)
        return ""
    finally:
        capture_path.unlink(missing_ok=True)

    if not data:
        logger.warning("Capture failed: %s is empty", capture_path)
        return ""

    return base64.b64encode(data).decode("utf-8")


def describe_capture(document: Optional[HostDocument]) -> str:
    if document is None or not document.has_sprite:
        return ""
    return f"Captured: {document.width}x{document.height}"
