from __future__ import annotations

from typing import Iterable, List, Optional

from .base import HostDocument, PaletteEntry

MAX_PALETTE_ENTRIES = 16
EMPTY_TABLE = "{}"


def read_palette(document: Optional[HostDocument], limit: int = MAX_PALETTE_ENTRIES) -> List[PaletteEntry]:
    """
    Read up to `limit` colors from the palette of the first frame.

    Fully transparent entries are reported as opaque.
    """
    if document is None or not document.has_sprite:
        return []

    colors = document.palette(0)
    if not colors:
        return []

    entries: List[PaletteEntry] = []
    for i, (r, g, b, a) in enumerate(colors):
        if i >= limit:
            break
        if a == 0:
            a = 255
        entries.append(PaletteEntry(index=i, r=int(r), g=int(g), b=int(b), a=int(a)))
    return entries


def format_palette_table(entries: Iterable[PaletteEntry]) -> str:
    """
    Render palette entries as a Lua table literal indexed from 0:
      {[0]=Color{r=0,g=0,b=0,a=255},[1]=...}
    """
    parts = [
        f"[{e.index}]=Color{{r={e.r},g={e.g},b={e.b},a={e.a}}},"
        for e in entries
    ]
    if not parts:
        return EMPTY_TABLE
    return "{" + "".join(parts) + "}"


def serialize_palette(document: Optional[HostDocument], limit: int = MAX_PALETTE_ENTRIES) -> str:
    return format_palette_table(read_palette(document, limit=limit))
