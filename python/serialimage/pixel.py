"""
Pixel format descriptors and the packed colour-space lookup.

A packed image is a NumPy array in OpenCV layout, ``(H, W)`` or
``(H, W, C)``. Its colour space is fully described by its dtype and channel
count, which :func:`color_type_of` classifies into a :class:`ColorType`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

import numpy as np

from .exceptions import UnsupportedChannelCountError, UnsupportedPixelFormatError


class ElementKind(Enum):
    """Pixel element types a buffer can hold"""
    U8 = "U8"
    U16 = "U16"
    F32 = "F32"

    @property
    def dtype(self) -> np.dtype:
        return _KIND_TO_DTYPE[self]

    @classmethod
    def from_dtype(cls, dtype) -> "ElementKind":
        """
        Map a NumPy dtype onto an element kind. Either byte order is accepted.

        Raises:
            UnsupportedPixelFormatError: for anything but uint8, uint16 and float32
        """
        try:
            return _DTYPE_TO_KIND[np.dtype(dtype).newbyteorder("=")]
        except (KeyError, TypeError, ValueError):
            raise UnsupportedPixelFormatError(
                f"Unsupported pixel element type {dtype}; expected uint8, uint16 or float32"
            ) from None


_KIND_TO_DTYPE = {
    ElementKind.U8: np.dtype(np.uint8),
    ElementKind.U16: np.dtype(np.uint16),
    ElementKind.F32: np.dtype(np.float32),
}
_DTYPE_TO_KIND = {dtype: kind for kind, dtype in _KIND_TO_DTYPE.items()}


class ColorType(Enum):
    """Packed colour spaces with a planar counterpart"""
    L8 = "L8"
    LA8 = "LA8"
    RGB8 = "RGB8"
    RGBA8 = "RGBA8"
    L16 = "L16"
    LA16 = "LA16"
    RGB16 = "RGB16"
    RGBA16 = "RGBA16"
    RGB32F = "RGB32F"
    RGBA32F = "RGBA32F"


_FORMAT_TO_COLOR: Dict[Tuple[ElementKind, int], ColorType] = {
    (ElementKind.U8, 1): ColorType.L8,
    (ElementKind.U8, 2): ColorType.LA8,
    (ElementKind.U8, 3): ColorType.RGB8,
    (ElementKind.U8, 4): ColorType.RGBA8,
    (ElementKind.U16, 1): ColorType.L16,
    (ElementKind.U16, 2): ColorType.LA16,
    (ElementKind.U16, 3): ColorType.RGB16,
    (ElementKind.U16, 4): ColorType.RGBA16,
    (ElementKind.F32, 3): ColorType.RGB32F,
    (ElementKind.F32, 4): ColorType.RGBA32F,
}
_COLOR_TO_FORMAT = {color: fmt for fmt, color in _FORMAT_TO_COLOR.items()}


@dataclass(frozen=True)
class PixelFormat:
    """Element kind plus number of interleaved channels (1..4)"""
    element_kind: ElementKind
    channels: int

    def __post_init__(self):
        if self.channels not in (1, 2, 3, 4):
            raise UnsupportedChannelCountError(
                f"Channel count must be between 1 and 4, got {self.channels}"
            )

    def to_color_type(self) -> ColorType:
        """
        Packed colour space for this format.

        Raises:
            UnsupportedPixelFormatError: for single or dual channel float32
        """
        color = _FORMAT_TO_COLOR.get((self.element_kind, self.channels))
        if color is None:
            raise UnsupportedPixelFormatError(
                f"No packed colour space for {self.channels} x {self.element_kind.value}"
            )
        return color

    @classmethod
    def from_color_type(cls, color: ColorType) -> "PixelFormat":
        kind, channels = _COLOR_TO_FORMAT[color]
        return cls(kind, channels)


def color_type_of(array: np.ndarray) -> ColorType:
    """
    Classify a packed array by dtype and channel count.

    Args:
        array: ``(H, W)`` or ``(H, W, C)`` array

    Returns:
        The matching ColorType

    Raises:
        UnsupportedPixelFormatError: if the array has no planar counterpart
            (bool/1-bit masks, other dtypes, 1 or 2 channel float, >4 channels)
    """
    if not isinstance(array, np.ndarray):
        raise UnsupportedPixelFormatError("Packed image must be a numpy array")
    if array.ndim == 2:
        channels = 1
    elif array.ndim == 3:
        channels = array.shape[2]
    else:
        raise UnsupportedPixelFormatError("Packed image must be 2D or 3D")

    kind = ElementKind.from_dtype(array.dtype)
    if channels not in (1, 2, 3, 4):
        raise UnsupportedPixelFormatError(f"Unsupported packed channel count {channels}")
    return PixelFormat(kind, channels).to_color_type()
