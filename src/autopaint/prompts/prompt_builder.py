from __future__ import annotations

from typing import List

from ..llm_input.request_context import RequestContext


def build_prompt_text(context: RequestContext) -> str:
    canvas_w = context.canvas_width
    canvas_h = context.canvas_height
    selection = context.selection

    lines: List[str] = []
    lines.append("Context: You are Aseprite Assistant. Use Lua to script Aseprite.")
    lines.append("")

    hints: List[str] = []
    if canvas_w > 0 and canvas_h > 0:
        hints.append(f"CANVAS SIZE: {canvas_w}x{canvas_h} pixels.")
    if selection is not None:
        hints.append(
            f"ACTIVE SELECTION: x={selection.x}, y={selection.y}, "
            f"width={selection.width}, height={selection.height}. ONLY draw within this area!"
        )
    lines.append(" ".join(hints))
    lines.append("")

    # ---- Layer safety ----
    lines.append("CRITICAL LAYER SAFETY: Always start by creating a new layer AND cel:")
    lines.append("```lua")
    lines.append("local sprite = app.activeSprite")
    lines.append("local layer = sprite:newLayer()")
    lines.append("layer.name = 'AI Generation'")
    lines.append("app.activeLayer = layer")
    lines.append("-- CRITICAL: Create a cel (image) in this layer")
    lines.append("local cel = sprite:newCel(layer, app.activeFrame)")
    lines.append("```")
    lines.append("")

    # ---- Helper available at runtime ----
    lines.append("OPTIMIZED DRAWING METHOD - You have a helper function for efficient drawing:")
    lines.append("```lua")
    lines.append("-- drawHexGrid(startX, startY, width, hexString, palette)")
    lines.append("-- hexString: each character (0-F) is a palette index")
    lines.append('-- Example: "0001112000011120" draws a 4x4 grid')
    lines.append("```")
    lines.append("")

    lines.append("CURRENT PALETTE (use ONLY these indices 0-F):")
    lines.append(context.palette_table)
    lines.append("")

    lines.append("AVAILABLE METHODS:")
    lines.append("1. PREFERRED: Use drawHexGrid() for efficient pixel-perfect drawing")
    lines.append("   - Generate a hex string where each char is a palette index")
    lines.append('   - Example: drawHexGrid(0, 0, 8, "00112233...", palette)')
    lines.append("2. FALLBACK: Use app.activeImage:drawPixel(x, y, palette[index]) ONLY if needed")
    lines.append("   - Always use palette[index], NEVER Color{r=...,g=...,b=...}")
    lines.append("3. ANIMATION: Create frames with sprite:newFrame() or sprite:newEmptyFrame()")
    lines.append("")

    lines.append("STYLE REQUIREMENTS:")
    lines.append("- Create PROFESSIONAL, HIGH-QUALITY pixel art")
    lines.append("- Use shading and lighting for depth (not flat colors)")
    lines.append("- Maintain coherent color palette usage")
    lines.append("- Ensure proper proportions for pixel art")
    lines.append("- NO stray pixels or noise")
    lines.append("")
    lines.append("ALWAYS end with `app.refresh()`")
    lines.append("")

    lines.append(f"User Request: {context.prompt}")
    lines.append("")
    lines.append("Output MUST be a complete Lua code block in markdown format.")

    return "\n".join(lines)
