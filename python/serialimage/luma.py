"""
RGB to luma reduction.

Luma is always resolved at 16-bit precision. For integer input the weighted
sum is read from three process-wide lookup tables (one per colour channel,
65536 entries each) that are built once on first use and are read-only
afterwards. 8-bit samples are shifted up to 16 bits before the lookup.
Float input is assumed to be normalised to [0, 1] and is weighted directly.
"""

import logging
import threading
from typing import NamedTuple, Optional

import numpy as np

logger = logging.getLogger(__name__)

#: Rec. 709 luma weights (red, green, blue). They sum to exactly 1.0 so a
#: saturated white pixel maps to 65535.
LUMA_COEFFICIENTS = (0.2126, 0.7152, 0.0722)

U16_MAX = 65535


class LumaLookupTables(NamedTuple):
    """Per-channel luma contribution of every 16-bit sample value"""
    red: np.ndarray
    green: np.ndarray
    blue: np.ndarray


_tables: Optional[LumaLookupTables] = None
_tables_lock = threading.Lock()


def _build_tables() -> LumaLookupTables:
    samples = np.arange(U16_MAX + 1, dtype=np.float64)
    tables = []
    for coefficient in LUMA_COEFFICIENTS:
        table = (samples * coefficient).astype(np.float32)
        table.flags.writeable = False
        tables.append(table)
    logger.debug(f"Built luma lookup tables with coefficients {LUMA_COEFFICIENTS}")
    return LumaLookupTables(*tables)


def get_luma_tables() -> LumaLookupTables:
    """Return the shared lookup tables, building them on the first call."""
    global _tables
    if _tables is None:
        with _tables_lock:
            if _tables is None:
                _tables = _build_tables()
    return _tables


def _to_u16(values: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(values), 0, U16_MAX).astype(np.uint16)


def upscale_to_u16(channel: np.ndarray) -> np.ndarray:
    """
    Rescale a single channel to the 16-bit range without any colour math.

    uint8 is shifted left by 8, uint16 is copied, float32 in [0, 1] is
    scaled by 65535 and rounded.
    """
    if channel.dtype == np.uint8:
        return channel.astype(np.uint16) << 8
    if channel.dtype == np.uint16:
        return channel.copy()
    if channel.dtype == np.float32:
        return _to_u16(channel.astype(np.float64) * U16_MAX)
    raise TypeError(f"Cannot rescale {channel.dtype} samples to 16 bits")


def rgb_to_luma(red: np.ndarray, green: np.ndarray, blue: np.ndarray) -> np.ndarray:
    """
    Reduce three planar colour channels of one dtype to 16-bit luma.

    Args:
        red, green, blue: equally sized 1-D arrays of uint8, uint16 or float32

    Returns:
        uint16 luma array
    """
    if red.dtype == np.float32:
        r, g, b = LUMA_COEFFICIENTS
        weighted = (r * red.astype(np.float64)
                    + g * green.astype(np.float64)
                    + b * blue.astype(np.float64))
        return _to_u16(weighted * U16_MAX)

    if red.dtype == np.uint8:
        red, green, blue = (c.astype(np.uint16) << 8 for c in (red, green, blue))
    elif red.dtype != np.uint16:
        raise TypeError(f"Cannot compute luma of {red.dtype} samples")

    tables = get_luma_tables()
    return _to_u16(tables.red[red] + tables.green[green] + tables.blue[blue])
