"""
autopaint - LLM-assisted pixel art: turn a chat prompt plus the current canvas
into a Lua script for the editor's scripting engine.
"""

__version__ = "0.1.0"

from .pipeline import run_autopaint
from .session.chat import AutopaintSession

__all__ = ["run_autopaint", "AutopaintSession", "__version__"]
