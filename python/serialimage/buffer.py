"""
Channel-planar image buffer.

A :class:`SerialImageBuffer` keeps every channel in its own contiguous 1-D
array (all luma samples, or all red, then all green, ...) instead of the
interleaved layout used by OpenCV and most codecs. Conversions to and from
the interleaved layout preserve the element order bit for bit:

* 1 channel: ``L L L ...``
* 2 channels: ``L A L A ...``
* 3 channels: ``R G B R G B ...``
* 4 channels: ``R G B A R G B A ...``
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

import cv2
import numpy as np

from .exceptions import (
    ChannelConflictError,
    InvalidDimensionsError,
    LengthMismatchError,
    UnsupportedChannelCountError,
    UnsupportedPixelFormatError,
)
from .fits import save_fits
from .luma import rgb_to_luma, upscale_to_u16
from .metadata import ImageMetaData
from .pixel import ElementKind, PixelFormat, color_type_of
from .records import SerialImageBufferRecord

logger = logging.getLogger(__name__)

_CHANNEL_NAMES = ("luma", "red", "green", "blue", "alpha")


class ResizeFilter(Enum):
    """Resampling filters, mapped onto OpenCV interpolation flags"""
    NEAREST = cv2.INTER_NEAREST
    LINEAR = cv2.INTER_LINEAR
    CUBIC = cv2.INTER_CUBIC
    AREA = cv2.INTER_AREA
    LANCZOS4 = cv2.INTER_LANCZOS4


def _check_dimensions(width: int, height: int):
    if width <= 0 or height <= 0:
        raise InvalidDimensionsError(f"Image dimensions must be non-zero, got {width} x {height}")


def _native(array: np.ndarray) -> np.ndarray:
    return array.astype(array.dtype.newbyteorder("="), copy=False)


def _as_samples(data, dtype, name: str) -> np.ndarray:
    """Flatten array-like samples into a native byte order 1-D array."""
    try:
        array = np.asarray(data)
        if dtype is not None:
            target = np.dtype(dtype)
            if target.kind in "ui" and array.dtype.kind in "ui" and array.size:
                info = np.iinfo(target)
                if array.min() < info.min or array.max() > info.max:
                    raise OverflowError(f"values outside [{info.min}, {info.max}]")
            array = array.astype(target, copy=False)
    except (OverflowError, ValueError, TypeError) as e:
        raise UnsupportedPixelFormatError(
            f"Samples of {name} cannot be stored as {dtype if dtype is not None else 'a numeric array'}: {e}"
        ) from e
    return _native(array).reshape(-1)


def _read_only(array: Optional[np.ndarray]) -> Optional[np.ndarray]:
    if array is None:
        return None
    view = array.view()
    view.flags.writeable = False
    return view


class SerialImageBuffer:
    """
    Planar pixel container for uint8, uint16 or float32 samples.

    Legal channel sets are ``{luma}``, ``{luma, alpha}``, ``{red, green, blue}``
    and ``{red, green, blue, alpha}``. Every channel holds exactly
    ``width * height`` samples of the same dtype. float32 buffers must be RGB
    or RGBA.
    """

    def __init__(self, width: int, height: int, *,
                 luma=None, red=None, green=None, blue=None, alpha=None,
                 meta: Optional[ImageMetaData] = None, dtype=None):
        """
        Build a buffer from planar channels.

        Args:
            width: Image width
            height: Image height
            luma, red, green, blue, alpha: Optional channel data (array-like)
            meta: Optional acquisition metadata
            dtype: Optional element type to convert channel data to

        Raises:
            InvalidDimensionsError: if width or height is zero
            ChannelConflictError: if colour is partially given, mixed with luma,
                or no luma/colour channel is given at all
            LengthMismatchError: if a channel does not hold width * height samples
            UnsupportedPixelFormatError: for mixed or unsupported dtypes, or
                float32 luma
        """
        _check_dimensions(width, height)

        colors = [red, green, blue]
        given_colors = sum(c is not None for c in colors)
        if given_colors not in (0, 3):
            raise ChannelConflictError("Red, green and blue must be given together")
        if luma is not None and given_colors:
            raise ChannelConflictError("An image cannot carry both luma and colour channels")
        if luma is None and not given_colors:
            raise ChannelConflictError("Either a luma channel or all colour channels are required")

        given = {
            name: _as_samples(data, dtype, name)
            for name, data in zip(_CHANNEL_NAMES, (luma, red, green, blue, alpha))
            if data is not None
        }

        dtypes = {array.dtype for array in given.values()}
        if len(dtypes) != 1:
            raise UnsupportedPixelFormatError(
                f"All channels must share one element type, got {sorted(str(d) for d in dtypes)}"
            )
        kind = ElementKind.from_dtype(dtypes.pop())
        if kind is ElementKind.F32 and luma is not None:
            raise UnsupportedPixelFormatError("float32 images must be RGB or RGBA")

        npix = width * height
        for name, array in given.items():
            if array.size != npix:
                raise LengthMismatchError(
                    f"Channel {name} has {array.size} samples, expected {width} x {height} = {npix}"
                )

        self._assign(width, height, given, meta)

    def _assign(self, width: int, height: int, channels: Dict[str, np.ndarray],
                meta: Optional[ImageMetaData]):
        self._width = width
        self._height = height
        self._luma = channels.get("luma")
        self._red = channels.get("red")
        self._green = channels.get("green")
        self._blue = channels.get("blue")
        self._alpha = channels.get("alpha")
        self._pixel_elems = len(channels)
        self._meta = meta

    @classmethod
    def _from_channels_unchecked(cls, width: int, height: int,
                                 channels: Dict[str, np.ndarray],
                                 meta: Optional[ImageMetaData] = None) -> "SerialImageBuffer":
        buffer = cls.__new__(cls)
        buffer._assign(width, height, channels, meta)
        return buffer

    @classmethod
    def new(cls, meta: Optional[ImageMetaData], luma, red, green, blue, alpha,
            width: int, height: int) -> "SerialImageBuffer":
        """Positional form of the validated constructor"""
        return cls(width, height, luma=luma, red=red, green=green, blue=blue,
                   alpha=alpha, meta=meta)

    @classmethod
    def from_vec(cls, width: int, height: int, data, dtype=None) -> "SerialImageBuffer":
        """
        Build a buffer from an interleaved sample vector.

        The channel count is inferred as ``len(data) / (width * height)``.

        Raises:
            InvalidDimensionsError: if width or height is zero
            LengthMismatchError: if the length is not a whole multiple of width * height
            UnsupportedChannelCountError: if the inferred channel count is not 1..4
            UnsupportedPixelFormatError: for unsupported dtypes or 1/2 channel float32
        """
        data = _as_samples(data, dtype, "data")
        kind = ElementKind.from_dtype(data.dtype)
        _check_dimensions(width, height)

        npix = width * height
        if data.size % npix:
            raise LengthMismatchError(
                f"Data length {data.size} is not a multiple of {width} x {height} = {npix}"
            )
        channels = data.size // npix
        if channels not in (1, 2, 3, 4):
            raise UnsupportedChannelCountError(
                f"Data length {data.size} implies {channels} channels; expected 1 to 4"
            )
        PixelFormat(kind, channels).to_color_type()
        return cls._from_vec_unchecked(width, height, channels, data)

    @classmethod
    def _from_vec_unchecked(cls, width: int, height: int, channels: int,
                            data: np.ndarray) -> "SerialImageBuffer":
        # Caller guarantees data.size == width * height * channels.
        if channels == 1:
            return cls._from_channels_unchecked(width, height, {"luma": data})

        pixels = data.reshape(-1, channels)
        names = {
            2: ("luma", "alpha"),
            3: ("red", "green", "blue"),
            4: ("red", "green", "blue", "alpha"),
        }[channels]
        planes = {name: np.ascontiguousarray(pixels[:, i]) for i, name in enumerate(names)}
        return cls._from_channels_unchecked(width, height, planes)

    def _ordered_channels(self) -> List[np.ndarray]:
        has_color = [c is not None for c in (self._red, self._green, self._blue)]
        if self._luma is not None and not any(has_color):
            planes = [self._luma]
        elif self._luma is None and all(has_color):
            planes = [self._red, self._green, self._blue]
        else:
            raise RuntimeError("Internal consistency fault: invalid channel combination")
        if self._alpha is not None:
            planes.append(self._alpha)
        if len(planes) != self._pixel_elems:
            raise RuntimeError(
                f"Internal consistency fault: {len(planes)} channels stored, "
                f"{self._pixel_elems} expected"
            )
        return planes

    def into_vec(self) -> np.ndarray:
        """
        Re-interleave the planar channels into one vector.

        A single-channel buffer returns its luma array without copying, so the
        result may share memory with this buffer.
        """
        planes = self._ordered_channels()
        if len(planes) == 1:
            return planes[0]
        interleaved = np.empty((self._width * self._height, len(planes)), dtype=planes[0].dtype)
        for i, plane in enumerate(planes):
            interleaved[:, i] = plane
        return interleaved.reshape(-1)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def pixel_elems(self) -> int:
        """Number of populated channels"""
        return self._pixel_elems

    @property
    def element_kind(self) -> ElementKind:
        return ElementKind.from_dtype(self._ordered_channels()[0].dtype)

    @property
    def dtype(self) -> np.dtype:
        return self.element_kind.dtype

    @property
    def pixel_format(self) -> PixelFormat:
        return PixelFormat(self.element_kind, self._pixel_elems)

    def get_luma(self) -> Optional[np.ndarray]:
        return _read_only(self._luma)

    def get_red(self) -> Optional[np.ndarray]:
        return _read_only(self._red)

    def get_green(self) -> Optional[np.ndarray]:
        return _read_only(self._green)

    def get_blue(self) -> Optional[np.ndarray]:
        return _read_only(self._blue)

    def get_alpha(self) -> Optional[np.ndarray]:
        return _read_only(self._alpha)

    def is_luma(self) -> bool:
        return self._pixel_elems == 1

    def is_rgb(self) -> bool:
        return self._pixel_elems == 3

    def get_metadata(self) -> Optional[ImageMetaData]:
        return self._meta

    def set_metadata(self, meta: Optional[ImageMetaData]):
        self._meta = meta

    def copy(self) -> "SerialImageBuffer":
        """Deep copy of channels and metadata"""
        channels = {
            name: getattr(self, f"_{name}").copy()
            for name in _CHANNEL_NAMES
            if getattr(self, f"_{name}") is not None
        }
        meta = self._meta.copy() if self._meta is not None else None
        return self._from_channels_unchecked(self._width, self._height, channels, meta)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SerialImageBuffer):
            return NotImplemented
        if (self._width, self._height, self._pixel_elems) != (other._width, other._height, other._pixel_elems):
            return False
        if self._meta != other._meta:
            return False
        for name in _CHANNEL_NAMES:
            mine = getattr(self, f"_{name}")
            theirs = getattr(other, f"_{name}")
            if (mine is None) != (theirs is None):
                return False
            if mine is not None and (mine.dtype != theirs.dtype or not np.array_equal(mine, theirs)):
                return False
        return True

    __hash__ = None

    def __repr__(self) -> str:
        return (f"SerialImageBuffer(width={self._width}, height={self._height}, "
                f"format={self.element_kind.value}x{self._pixel_elems}, "
                f"meta={'yes' if self._meta is not None else 'no'})")

    # ------------------------------------------------------------------
    # Packed (OpenCV layout) conversions
    # ------------------------------------------------------------------
    def to_packed(self) -> np.ndarray:
        """
        Interleave into an OpenCV-layout array, ``(H, W)`` for one channel
        and ``(H, W, C)`` otherwise. Metadata is not carried.

        Raises:
            UnsupportedPixelFormatError: if the format has no packed colour space
        """
        fmt = self.pixel_format
        fmt.to_color_type()
        data = self.into_vec()
        if fmt.channels == 1:
            # into_vec returns the luma array itself for one channel
            return data.reshape(self._height, self._width).copy()
        return data.reshape(self._height, self._width, fmt.channels)

    @classmethod
    def from_packed(cls, array: np.ndarray) -> "SerialImageBuffer":
        """
        Build a buffer from an OpenCV-layout array.

        Raises:
            UnsupportedPixelFormatError: if the array has no planar counterpart
            InvalidDimensionsError: if the array has zero area
        """
        fmt = PixelFormat.from_color_type(color_type_of(array))
        height, width = array.shape[:2]
        _check_dimensions(width, height)
        data = _native(np.array(array, copy=True)).reshape(-1)
        return cls._from_vec_unchecked(width, height, fmt.channels, data)

    def resize(self, new_width: int, new_height: int,
               filter: ResizeFilter = ResizeFilter.NEAREST) -> "SerialImageBuffer":
        """
        Resample to a new size with OpenCV. Metadata is carried over.

        Raises:
            InvalidDimensionsError: if the new size has zero area
            UnsupportedPixelFormatError: if the format has no packed colour space
        """
        _check_dimensions(new_width, new_height)
        packed = self.to_packed()
        resized = cv2.resize(packed, (new_width, new_height), interpolation=filter.value)
        out = SerialImageBuffer.from_packed(resized)
        out.set_metadata(self._meta.copy() if self._meta is not None else None)
        logger.debug(f"Resized {self._width}x{self._height} -> {new_width}x{new_height} "
                     f"with {filter.name}")
        return out

    # ------------------------------------------------------------------
    # Luma reduction
    # ------------------------------------------------------------------
    def _luma_u16(self) -> np.ndarray:
        if self._luma is not None:
            return upscale_to_u16(self._luma)
        return rgb_to_luma(self._red, self._green, self._blue)

    def into_luma(self) -> "SerialImageBuffer":
        """16-bit grayscale copy of this image; alpha is dropped"""
        meta = self._meta.copy() if self._meta is not None else None
        return self._from_channels_unchecked(self._width, self._height,
                                             {"luma": self._luma_u16()}, meta)

    def into_luma_alpha(self) -> "SerialImageBuffer":
        """16-bit grayscale copy of this image, with alpha rescaled to 16 bits if present"""
        channels = {"luma": self._luma_u16()}
        if self._alpha is not None:
            channels["alpha"] = upscale_to_u16(self._alpha)
        meta = self._meta.copy() if self._meta is not None else None
        return self._from_channels_unchecked(self._width, self._height, channels, meta)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_record(self) -> SerialImageBufferRecord:
        return SerialImageBufferRecord(
            dtype=self.element_kind.value,
            width=self._width,
            height=self._height,
            pixel_elems=self._pixel_elems,
            meta=self._meta,
            **{
                name: getattr(self, f"_{name}").tolist()
                for name in _CHANNEL_NAMES
                if getattr(self, f"_{name}") is not None
            },
        )

    @classmethod
    def from_record(cls, record: SerialImageBufferRecord) -> "SerialImageBuffer":
        """
        Rebuild a buffer from its record, re-running all constructor checks.

        Raises:
            ChannelConflictError: if ``pixel_elems`` disagrees with the channels present
            UnsupportedPixelFormatError: if a sample does not fit the element type
        """
        kind = ElementKind(record.dtype)
        channels = {
            name: _decode_channel(getattr(record, name), kind)
            for name in _CHANNEL_NAMES
            if getattr(record, name) is not None
        }
        if len(channels) != record.pixel_elems:
            raise ChannelConflictError(
                f"Record declares {record.pixel_elems} channels but carries {len(channels)}"
            )
        meta = record.meta.copy() if record.meta is not None else None
        return cls(record.width, record.height, meta=meta, **channels)

    def save_fits(self, dir_prefix: Union[str, Path], file_prefix: str,
                  progname: Optional[str] = None, compress: bool = False,
                  overwrite: bool = False) -> Path:
        """Write this image to a FITS file; see :func:`serialimage.fits.save_fits`."""
        return save_fits(self, dir_prefix, file_prefix, progname, compress, overwrite)


def _decode_channel(values: list, kind: ElementKind) -> np.ndarray:
    raw = np.asarray(values)
    if kind is ElementKind.F32:
        return raw.astype(np.float32)
    if raw.size:
        info = np.iinfo(kind.dtype)
        if not np.issubdtype(raw.dtype, np.integer) or raw.min() < info.min or raw.max() > info.max:
            raise UnsupportedPixelFormatError(f"Sample values do not fit {kind.value}")
    return raw.astype(kind.dtype)
