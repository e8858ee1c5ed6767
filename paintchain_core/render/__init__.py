from .canvas import FORMAT_ARGB32, Canvas
from .draw_text import draw_text, text_advance
from .encode import ENCODE_MODES, encode_png

__all__ = [
    "Canvas",
    "ENCODE_MODES",
    "FORMAT_ARGB32",
    "draw_text",
    "encode_png",
    "text_advance",
]
