from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..errors import ResponseParseError
from ..host.base import Rect, ScriptEngine
from ..llm_input.request_context import RequestContext, selection_sentinel

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_CHARS = 100

# ```<tag>\n<body>```: a tag is a lone token ending its line, or a leading
# "lua" on a single-line fence (```lua draw()```)
_FENCE_RE = re.compile(r"```(?:([\w+-]*)[ \t\r]*\n|(lua)\b)?(.*?)```", re.DOTALL | re.IGNORECASE)

_HELPER_TEMPLATE = """\
-- Current palette
local palette = {palette_table}

-- Selection bounds (-1 / 999999 when nothing is selected)
local selX, selY, selW, selH = {sel_x}, {sel_y}, {sel_w}, {sel_h}

function drawHexGrid(startX, startY, width, hexString, pal, boundX, boundY, boundW, boundH)
    pal = pal or palette
    boundX = boundX or selX
    boundY = boundY or selY
    boundW = boundW or selW
    boundH = boundH or selH
    local x = 0
    local y = 0
    for i = 1, #hexString do
        local colorIndex = tonumber(hexString:sub(i, i), 16)
        if colorIndex and pal[colorIndex] then
            local px = startX + x
            local py = startY + y
            if boundX == -1 or (px >= boundX and px < boundX + boundW and py >= boundY and py < boundY + boundH) then
                app.activeImage:drawPixel(px, py, pal[colorIndex])
            end
        end
        x = x + 1
        if x >= width then
            x = 0
            y = y + 1
        end
    end
end
"""


class ActionKind(Enum):
    EXECUTE = "execute"
    PREVIEW = "preview"
    ERROR = "error"


@dataclass(frozen=True)
class ExecutionAction:
    """
    What the dialog should do with a provider answer.

    EXECUTE carries the final script, PREVIEW a shortened copy of an answer
    without code, ERROR only a status message.
    """
    kind: ActionKind
    message: str
    script: Optional[str] = None
    preview: Optional[str] = None


def _text_of(value: Any) -> str:
    return value if isinstance(value, str) else ""


def extract_response_text(raw_body: str) -> str:
    """
    Pull the generated text out of a provider JSON body.

    Tries the Gemini shape (candidates/content/parts) first, then the
    OpenAI-compatible shape (choices/message/content).

    Raises:
        ResponseParseError: body is not JSON, carries an API error, or has no content
    """
    try:
        payload = json.loads(raw_body)
    except (TypeError, ValueError):
        raise ResponseParseError("JSON Parse Error") from None

    if not isinstance(payload, dict):
        raise ResponseParseError("No response content found.")

    error = payload.get("error")
    if error:
        message = error.get("message", "") if isinstance(error, dict) else str(error)
        raise ResponseParseError(f"API Error: {message}")

    candidates = payload.get("candidates")
    if isinstance(candidates, list) and candidates:
        content = candidates[0].get("content", {}) if isinstance(candidates[0], dict) else {}
        parts = content.get("parts", []) if isinstance(content, dict) else []
        return "".join(_text_of(p.get("text")) for p in parts if isinstance(p, dict))

    choices = payload.get("choices")
    if isinstance(choices, list) and choices:
        message = choices[0].get("message", {}) if isinstance(choices[0], dict) else {}
        return _text_of(message.get("content")) if isinstance(message, dict) else ""

    raise ResponseParseError("No response content found.")


def extract_code_block(text: str) -> Optional[str]:
    """
    Return the body of the first ```lua fence, else of the first untagged fence.

    Fence markers and the language tag are not part of the result. Blocks that
    are empty after stripping count as missing.
    """
    untagged: Optional[str] = None
    for m in _FENCE_RE.finditer(text or ""):
        tag = (m.group(1) or m.group(2) or "").lower()
        body = m.group(3).strip()
        if not body:
            continue
        if tag == "lua":
            return body
        if tag == "" and untagged is None:
            untagged = body
    return untagged


def build_script(code: str, palette_table: str, selection: Optional[Rect]) -> str:
    """
    Wrap generated code with the drawHexGrid helper, the palette and the
    selection bounds, inside one undoable transaction.
    """
    sel_x, sel_y, sel_w, sel_h = selection_sentinel(selection)
    helper = _HELPER_TEMPLATE.format(
        palette_table=palette_table or "{}",
        sel_x=sel_x,
        sel_y=sel_y,
        sel_w=sel_w,
        sel_h=sel_h,
    )
    return "app.transaction(function()\n" + helper + "\n" + code + "\nend)\n"


def make_preview(text: str, limit: int = DEFAULT_PREVIEW_CHARS) -> str:
    text = text or ""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def interpret_response(
    raw_body: str,
    context: RequestContext,
    provider_name: str = "",
    preview_chars: int = DEFAULT_PREVIEW_CHARS,
) -> ExecutionAction:
    """
    Turn a successful provider body into an ExecutionAction.

    Script syntax is never checked here; the host engine reports its own errors.
    """
    try:
        text = extract_response_text(raw_body)
    except ResponseParseError as e:
        logger.warning("Could not interpret provider response: %s", e)
        return ExecutionAction(ActionKind.ERROR, str(e))

    code = extract_code_block(text)
    if code is None:
        return ExecutionAction(
            ActionKind.PREVIEW,
            "No code found.",
            preview=make_preview(text, preview_chars),
        )

    via = f" (via {provider_name})" if provider_name else ""
    return ExecutionAction(
        ActionKind.EXECUTE,
        f"Executing script...{via}",
        script=build_script(code, context.palette_table, context.selection),
    )


def apply_action(action: ExecutionAction, engine: ScriptEngine) -> bool:
    """Evaluate an EXECUTE action's script once. Returns True if a script ran."""
    if action.kind is not ActionKind.EXECUTE or not action.script:
        return False
    engine.eval_code(action.script)
    return True
