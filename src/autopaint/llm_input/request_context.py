from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ..host.base import HostDocument, Rect
from ..host.palette import MAX_PALETTE_ENTRIES, serialize_palette

# Selection values handed to generated scripts when nothing is selected.
NO_SELECTION: Tuple[int, int, int, int] = (-1, -1, 999999, 999999)


@dataclass(frozen=True)
class RequestContext:
    """
    Everything one send needs, snapshotted on the main thread before the
    worker starts. Discarded once the response has been interpreted.
    """
    prompt: str
    image_base64: str
    canvas_width: int = 0
    canvas_height: int = 0
    selection: Optional[Rect] = None
    palette_table: str = "{}"

    @property
    def has_selection(self) -> bool:
        return self.selection is not None


def selection_sentinel(selection: Optional[Rect]) -> Tuple[int, int, int, int]:
    if selection is None:
        return NO_SELECTION
    return (selection.x, selection.y, selection.width, selection.height)


def build_request_context(
    *,
    document: Optional[HostDocument],
    prompt: str,
    image_base64: str,
    max_palette_entries: int = MAX_PALETTE_ENTRIES,
) -> RequestContext:
    """
    Read canvas size, selection and palette from the document.

    Must be called on the thread that owns the document.
    """
    if document is None or not document.has_sprite:
        return RequestContext(prompt=prompt, image_base64=image_base64)

    return RequestContext(
        prompt=prompt,
        image_base64=image_base64,
        canvas_width=int(document.width),
        canvas_height=int(document.height),
        selection=document.selection_bounds(),
        palette_table=serialize_palette(document, limit=max_palette_entries),
    )
