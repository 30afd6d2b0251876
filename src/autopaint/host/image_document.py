from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from PIL import Image, UnidentifiedImageError

from ..errors import CaptureError
from .base import RGBA, Rect

logger = logging.getLogger(__name__)


class ImageFileDocument:
    """
    A HostDocument backed by an image file on disk, for running without the editor.

    Indexed images expose their own palette; other images expose their most
    frequent colors, which is what a pixel-art palette usually looks like.
    """

    def __init__(self, image_path: str, selection: Optional[Rect] = None, max_colors: int = 16):
        path = Path(image_path)
        if not path.exists():
            raise FileNotFoundError(f"Image not found: {image_path}")
        try:
            with Image.open(path) as img:
                img.load()
                self._image = img.copy()
        except (UnidentifiedImageError, OSError) as e:
            raise CaptureError(f"Cannot read image {image_path}: {e}") from e
        self.filename = str(path)
        self._selection = selection
        self._max_colors = max_colors

    @property
    def has_sprite(self) -> bool:
        return True

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    def save(self) -> bool:
        try:
            self._image.save(self.filename, format="PNG")
        except (OSError, ValueError) as e:
            logger.warning("Failed to save %s: %s", self.filename, e)
            return False
        return True

    def selection_bounds(self) -> Optional[Rect]:
        return self._selection

    def palette(self, frame: int) -> Optional[Sequence[RGBA]]:
        if self._image.mode == "P":
            return self._indexed_palette()
        return self._frequent_colors()

    def _indexed_palette(self) -> List[RGBA]:
        flat = self._image.getpalette() or []
        transparency = self._image.info.get("transparency")
        colors: List[RGBA] = []
        for i in range(len(flat) // 3):
            r, g, b = flat[i * 3 : i * 3 + 3]
            a = 255
            if isinstance(transparency, int) and transparency == i:
                a = 0
            elif isinstance(transparency, (bytes, bytearray)) and i < len(transparency):
                a = transparency[i]
            colors.append((r, g, b, a))
        return colors

    def _frequent_colors(self) -> List[RGBA]:
        rgba = self._image.convert("RGBA")
        counted = rgba.getcolors(maxcolors=rgba.width * rgba.height) or []
        # most frequent first; ties broken by color so the order is stable
        counted.sort(key=lambda item: (-item[0], item[1]))
        return [tuple(color) for _, color in counted[: self._max_colors]]


class SingleDocumentContext:
    def __init__(self, document: Optional[ImageFileDocument]):
        self._document = document

    def active_document(self) -> Optional[ImageFileDocument]:
        return self._document


@dataclass
class RecordingScriptEngine:
    """
    A ScriptEngine that keeps evaluated scripts instead of running them.
    """
    scripts: List[str] = field(default_factory=list)

    def eval_code(self, code: str) -> None:
        self.scripts.append(code)
