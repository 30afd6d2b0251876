from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Tuple

RGBA = Tuple[int, int, int, int]


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class PaletteEntry:
    index: int
    r: int
    g: int
    b: int
    a: int


class HostDocument(Protocol):
    """
    The slice of the editor's document model this package reads.

    All methods are called on the host's main thread only.
    """

    filename: str

    @property
    def has_sprite(self) -> bool:
        ...

    @property
    def width(self) -> int:
        ...

    @property
    def height(self) -> int:
        ...

    def save(self) -> bool:
        """Save the document to its current filename. True on success."""
        ...

    def selection_bounds(self) -> Optional[Rect]:
        ...

    def palette(self, frame: int) -> Optional[Sequence[RGBA]]:
        ...


class HostContext(Protocol):
    def active_document(self) -> Optional[HostDocument]:
        ...


class ScriptEngine(Protocol):
    """
    The host's script evaluator. Fire and forget: errors are shown by the host.
    """

    def eval_code(self, code: str) -> None:
        ...
