from __future__ import annotations

from functools import lru_cache
from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw, ImageFont


RGBA = tuple[int, int, int, int]
FontLike = ImageFont.FreeTypeFont | ImageFont.ImageFont

DEFAULT_FONT_FAMILY = "sans-serif"
DEFAULT_FONT_SIZE_PX = 10.0
GENERIC_FAMILY_PATTERNS: dict[str, tuple[str, ...]] = {
    "serif": (
        "dejavuserif",
        "liberationserif",
        "notoserif",
        "freeserif",
        "timesnewroman",
        "times",
        "georgia",
    ),
    "sans-serif": (
        "dejavusans",
        "liberationsans",
        "notosans",
        "freesans",
        "helvetica",
        "arial",
    ),
    "monospace": (
        "dejavusansmono",
        "liberationmono",
        "notosansmono",
        "freemono",
        "menlo",
        "couriernew",
        "courier",
    ),
}
STYLE_SUFFIXES: dict[tuple[bool, bool], tuple[str, ...]] = {
    (False, False): ("", "regular", "book", "roman", "r"),
    (True, False): ("bold", "bd", "b"),
    (False, True): ("italic", "oblique", "it", "i"),
    (True, True): ("bolditalic", "boldoblique", "bi", "z"),
}
FONT_DIRS = (
    Path.home() / "Library" / "Fonts",
    Path("/Library/Fonts"),
    Path("/System/Library/Fonts"),
    Path("/System/Library/Fonts/Supplemental"),
    Path("/usr/share/fonts"),
    Path("/usr/local/share/fonts"),
    Path.home() / ".fonts",
)


def draw_text(
    dst: np.ndarray,
    x: float,
    y: float,
    text: str,
    color: RGBA,
    *,
    font_family: str = DEFAULT_FONT_FAMILY,
    font_size_px: float = DEFAULT_FONT_SIZE_PX,
    bold: bool = False,
    italic: bool = False,
) -> float:
    """Rasterize ``text`` with its baseline-left origin at (x, y).

    Returns the horizontal advance of the drawn text in pixels.
    """
    if not text:
        return 0.0
    font, synthetic_bold = _load_font(font_family, bold, italic, font_size_px)
    mask, left, top = _render_mask(text, font)
    if synthetic_bold:
        mask = _embolden(mask, _embolden_px(font_size_px))
    _blend_mask(dst, int(round(x)) + left, int(round(y)) + top, mask, color)
    return float(font.getlength(text))


def text_advance(
    text: str,
    *,
    font_family: str = DEFAULT_FONT_FAMILY,
    font_size_px: float = DEFAULT_FONT_SIZE_PX,
    bold: bool = False,
    italic: bool = False,
) -> float:
    if not text:
        return 0.0
    font, _ = _load_font(font_family, bold, italic, font_size_px)
    return float(font.getlength(text))


def _blend_mask(dst: np.ndarray, x: int, y: int, mask: np.ndarray, color: RGBA) -> None:
    h, w = mask.shape
    if h <= 0 or w <= 0:
        return

    x0 = max(0, x)
    y0 = max(0, y)
    x1 = min(dst.shape[1], x + w)
    y1 = min(dst.shape[0], y + h)
    if x1 <= x0 or y1 <= y0:
        return

    sx0 = x0 - x
    sy0 = y0 - y
    cov = mask[sy0 : sy0 + (y1 - y0), sx0 : sx0 + (x1 - x0)].astype(np.float32) / 255.0
    src_alpha = (color[3] / 255.0) * cov
    if not np.any(src_alpha > 0):
        return

    patch = dst[y0:y1, x0:x1]
    dst_rgb = patch[:, :, :3].astype(np.float32)
    dst_alpha = patch[:, :, 3].astype(np.float32) / 255.0

    src_rgb = np.asarray(color[:3], dtype=np.float32).reshape(1, 1, 3)
    out_alpha = src_alpha + dst_alpha * (1.0 - src_alpha)
    out_rgb_num = src_rgb * src_alpha[:, :, None] + dst_rgb * dst_alpha[:, :, None] * (1.0 - src_alpha[:, :, None])
    safe_alpha = np.where(out_alpha > 1e-6, out_alpha, 1.0)
    out_rgb = out_rgb_num / safe_alpha[:, :, None]

    # Untouched pixels keep their exact bytes.
    touched = src_alpha > 0
    patch[touched, :3] = np.clip(np.rint(out_rgb[touched]), 0, 255).astype(np.uint8)
    patch[touched, 3] = np.clip(np.rint(out_alpha[touched] * 255.0), 0, 255).astype(np.uint8)


def _embolden_px(font_size_px: float) -> int:
    return max(2, int(round(font_size_px / 16.0)) + 1)


def _embolden(mask: np.ndarray, embolden_px: int) -> np.ndarray:
    if embolden_px <= 1:
        return mask
    out = np.pad(mask, ((0, 0), (0, embolden_px - 1)))
    for shift in range(1, embolden_px):
        np.maximum(out[:, shift : shift + mask.shape[1]], mask, out=out[:, shift : shift + mask.shape[1]])
    return out


@lru_cache(maxsize=128)
def _render_mask(text: str, font: FontLike) -> tuple[np.ndarray, int, int]:
    """Coverage mask plus the offset of its top-left corner from the baseline origin."""
    if isinstance(font, ImageFont.FreeTypeFont):
        left, top, right, bottom = font.getbbox(text, anchor="ls")
        anchor: str | None = "ls"
        origin_top = top
    else:
        # Bitmap fonts have no anchors; their bottom edge stands in for the baseline.
        left, top, right, bottom = font.getbbox(text)
        anchor = None
        origin_top = top - bottom
    width = max(1, int(right - left))
    height = max(1, int(bottom - top))
    image = Image.new("L", (width, height), 0)
    draw = ImageDraw.Draw(image)
    draw.text((-left, -top), text, fill=255, font=font, anchor=anchor)
    mask = np.asarray(image, dtype=np.uint8)
    mask.setflags(write=False)
    return mask, int(left), int(origin_top)


@lru_cache(maxsize=64)
def _load_font(font_family: str, bold: bool, italic: bool, font_size_px: float) -> tuple[FontLike, bool]:
    """Returns the font and whether bold has to be synthesized."""
    size = max(1, int(round(font_size_px)))
    font_path, styled = _resolve_font_path(font_family, bold, italic)
    if font_path is not None:
        try:
            return ImageFont.truetype(str(font_path), size=size), bold and not styled
        except OSError:
            pass
    return ImageFont.load_default(size=size), bold


@lru_cache(maxsize=64)
def _resolve_font_path(font_family: str, bold: bool, italic: bool) -> tuple[Path | None, bool]:
    """Find a font file for the family; the flag tells whether it matches the requested style."""
    family = font_family.strip().lower() or DEFAULT_FONT_FAMILY
    wanted = _normalize(family)
    patterns = GENERIC_FAMILY_PATTERNS.get(family, (wanted,))

    stems: dict[str, Path] = {}
    for path in _font_candidates():
        stems.setdefault(_normalize(path.stem), path)

    for pattern in patterns:
        for suffix in STYLE_SUFFIXES[(bold, italic)]:
            path = stems.get(pattern + suffix)
            if path is not None:
                return path, True
    for pattern in patterns:
        for suffix in STYLE_SUFFIXES[(False, False)]:
            path = stems.get(pattern + suffix)
            if path is not None:
                return path, not bold and not italic
    for stem, path in stems.items():
        if wanted in stem:
            return path, False
    return None, False


@lru_cache(maxsize=1)
def _font_candidates() -> tuple[Path, ...]:
    candidates: list[Path] = []
    for base in FONT_DIRS:
        if not base.exists():
            continue
        for ext in ("*.ttf", "*.otf", "*.ttc"):
            candidates.extend(sorted(base.rglob(ext)))
    return tuple(candidates)


def _normalize(name: str) -> str:
    return name.strip().lower().replace(" ", "").replace("-", "").replace("_", "")
