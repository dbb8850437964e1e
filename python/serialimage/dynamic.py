"""
Element-type erased image.

:class:`DynamicSerialImage` wraps exactly one :class:`SerialImageBuffer` and
records which of the three element types (U8, U16, F32) it holds. Narrowing
to a concrete type is explicit: ``as_*`` returns ``None`` on mismatch and
``into_*`` raises :class:`VariantMismatchError`.
"""

from pathlib import Path
from typing import Optional, Union

import numpy as np

from .buffer import ResizeFilter, SerialImageBuffer
from .exceptions import VariantMismatchError
from .metadata import ImageMetaData
from .pixel import ElementKind
from .records import DynamicSerialImageRecord
from .utils import load_image, save_image


class DynamicSerialImage:
    """Closed union of U8, U16 and F32 planar images"""

    __slots__ = ("_variant", "_buffer")

    def __init__(self, buffer: SerialImageBuffer):
        if not isinstance(buffer, SerialImageBuffer):
            raise TypeError(f"Expected a SerialImageBuffer, got {type(buffer).__name__}")
        self._variant = buffer.element_kind
        self._buffer = buffer

    @property
    def variant(self) -> ElementKind:
        return self._variant

    @property
    def buffer(self) -> SerialImageBuffer:
        return self._buffer

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def from_vec(cls, width: int, height: int, data, dtype=None) -> "DynamicSerialImage":
        """Interleaved vector to image; the variant follows the data's dtype"""
        return cls(SerialImageBuffer.from_vec(width, height, data, dtype=dtype))

    @classmethod
    def from_vec_u8(cls, width: int, height: int, data) -> "DynamicSerialImage":
        return cls.from_vec(width, height, data, dtype=np.uint8)

    @classmethod
    def from_vec_u16(cls, width: int, height: int, data) -> "DynamicSerialImage":
        return cls.from_vec(width, height, data, dtype=np.uint16)

    @classmethod
    def from_vec_f32(cls, width: int, height: int, data) -> "DynamicSerialImage":
        return cls.from_vec(width, height, data, dtype=np.float32)

    @classmethod
    def from_packed(cls, array: np.ndarray) -> "DynamicSerialImage":
        """
        Wrap an OpenCV-layout array, selecting the variant from its colour space.

        Raises:
            UnsupportedPixelFormatError: if the array has no planar counterpart
        """
        return cls(SerialImageBuffer.from_packed(array))

    def to_packed(self) -> np.ndarray:
        return self._buffer.to_packed()

    # ------------------------------------------------------------------
    # Forwarded accessors
    # ------------------------------------------------------------------
    @property
    def width(self) -> int:
        return self._buffer.width

    @property
    def height(self) -> int:
        return self._buffer.height

    def get_metadata(self) -> Optional[ImageMetaData]:
        return self._buffer.get_metadata()

    def set_metadata(self, meta: Optional[ImageMetaData]):
        self._buffer.set_metadata(meta)

    # ------------------------------------------------------------------
    # Narrowing
    # ------------------------------------------------------------------
    def as_u8(self) -> Optional[SerialImageBuffer]:
        return self._buffer if self._variant is ElementKind.U8 else None

    def as_u16(self) -> Optional[SerialImageBuffer]:
        return self._buffer if self._variant is ElementKind.U16 else None

    def as_f32(self) -> Optional[SerialImageBuffer]:
        return self._buffer if self._variant is ElementKind.F32 else None

    def _narrow(self, kind: ElementKind) -> SerialImageBuffer:
        if self._variant is not kind:
            raise VariantMismatchError(
                f"Could not convert {self._variant.value} image to {kind.value} buffer"
            )
        return self._buffer

    def into_u8(self) -> SerialImageBuffer:
        return self._narrow(ElementKind.U8)

    def into_u16(self) -> SerialImageBuffer:
        return self._narrow(ElementKind.U16)

    def into_f32(self) -> SerialImageBuffer:
        return self._narrow(ElementKind.F32)

    # ------------------------------------------------------------------
    # Transforms
    # ------------------------------------------------------------------
    def resize(self, new_width: int, new_height: int,
               filter: ResizeFilter = ResizeFilter.NEAREST) -> "DynamicSerialImage":
        return DynamicSerialImage(self._buffer.resize(new_width, new_height, filter))

    def into_luma(self) -> SerialImageBuffer:
        return self._buffer.into_luma()

    def into_luma_alpha(self) -> SerialImageBuffer:
        return self._buffer.into_luma_alpha()

    def copy(self) -> "DynamicSerialImage":
        return DynamicSerialImage(self._buffer.copy())

    def __eq__(self, other) -> bool:
        if not isinstance(other, DynamicSerialImage):
            return NotImplemented
        return self._variant is other._variant and self._buffer == other._buffer

    __hash__ = None

    def __repr__(self) -> str:
        return f"DynamicSerialImage.{self._variant.value}({self._buffer!r})"

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_record(self) -> DynamicSerialImageRecord:
        return DynamicSerialImageRecord(variant=self._variant.value, buffer=self._buffer.to_record())

    @classmethod
    def from_record(cls, record: DynamicSerialImageRecord) -> "DynamicSerialImage":
        """
        Raises:
            VariantMismatchError: if the variant tag disagrees with the buffer dtype
        """
        if record.variant != record.buffer.dtype:
            raise VariantMismatchError(
                f"Record variant {record.variant} does not match buffer type {record.buffer.dtype}"
            )
        return cls(SerialImageBuffer.from_record(record.buffer))

    def to_json(self) -> str:
        return self.to_record().model_dump_json()

    @classmethod
    def from_json(cls, payload: Union[str, bytes]) -> "DynamicSerialImage":
        return cls.from_record(DynamicSerialImageRecord.model_validate_json(payload))

    # ------------------------------------------------------------------
    # File output
    # ------------------------------------------------------------------
    def save(self, path: Union[str, Path]) -> bool:
        """
        Save as a raster image with OpenCV; the format follows the extension.
        Metadata is not written.

        Returns:
            True if successful, False otherwise

        Raises:
            UnsupportedPixelFormatError: if the image has no packed colour space
        """
        return save_image(self.to_packed(), path)

    @classmethod
    def open(cls, path: Union[str, Path]) -> "DynamicSerialImage":
        """
        Load a raster image with OpenCV, keeping its bit depth and alpha.

        Raises:
            ValueError: if the file cannot be read
            UnsupportedPixelFormatError: if its pixel format has no planar counterpart
        """
        return cls.from_packed(load_image(path))

    def save_fits(self, dir_prefix: Union[str, Path], file_prefix: str,
                  progname: Optional[str] = None, compress: bool = False,
                  overwrite: bool = False) -> Path:
        return self._buffer.save_fits(dir_prefix, file_prefix, progname, compress, overwrite)
