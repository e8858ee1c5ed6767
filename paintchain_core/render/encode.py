from __future__ import annotations

import io
import logging
import os
from pathlib import Path
import tempfile
from typing import Literal

import numpy as np
from PIL import Image

from paintchain_core.errors import EncodingError


LOGGER = logging.getLogger(__name__)

EncodeMode = Literal["memory", "tempfile"]
ENCODE_MODES: tuple[str, ...] = ("memory", "tempfile")


def encode_png(rgba: np.ndarray, mode: EncodeMode = "memory") -> bytes:
    if rgba.ndim != 3 or rgba.shape[2] != 4:
        raise ValueError(f"invalid rgba shape: {tuple(rgba.shape)}")
    if rgba.dtype != np.uint8:
        raise ValueError(f"invalid rgba dtype: {rgba.dtype}")
    if mode == "memory":
        return _encode_in_memory(rgba)
    if mode == "tempfile":
        return _encode_via_tempfile(rgba)
    raise ValueError(f"unsupported encode mode: {mode}")


def _encode_in_memory(rgba: np.ndarray) -> bytes:
    out = io.BytesIO()
    try:
        Image.fromarray(np.ascontiguousarray(rgba)).save(out, format="PNG")
    except Exception as exc:  # noqa: BLE001
        raise EncodingError(f"png encode failed: {exc}") from exc
    return out.getvalue()


def _encode_via_tempfile(rgba: np.ndarray) -> bytes:
    try:
        fd, name = tempfile.mkstemp(prefix="paintchain-", suffix=".png")
    except OSError as exc:
        raise EncodingError(f"could not create temp file: {exc}") from exc
    os.close(fd)
    path = Path(name)
    try:
        Image.fromarray(np.ascontiguousarray(rgba)).save(path, format="PNG")
        return path.read_bytes()
    except Exception as exc:  # noqa: BLE001
        raise EncodingError(f"png encode via {path} failed: {exc}") from exc
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            LOGGER.warning("could not remove temp file %s: %s", path, exc)
