"""
serialimage: channel-planar image buffers for camera acquisition pipelines.

This package provides a planar image container with acquisition metadata,
conversions to and from OpenCV-layout arrays, luma reduction, JSON and FITS
serialization, and a percentile-based exposure/binning controller.
"""

__version__ = "1.0.0"

from .buffer import ResizeFilter, SerialImageBuffer
from .dynamic import DynamicSerialImage
from .exceptions import (
    ChannelConflictError,
    ConfigValidationError,
    InvalidDimensionsError,
    IoConflictError,
    LengthMismatchError,
    SerialImageError,
    UnsupportedChannelCountError,
    UnsupportedPixelFormatError,
    VariantMismatchError,
)
from .luma import LUMA_COEFFICIENTS, LumaLookupTables, get_luma_tables
from .metadata import ImageMetaData
from .optimum_exposure import OptimumExposureConfig
from .pixel import ColorType, ElementKind, PixelFormat
from .utils import create_test_frame, load_image, save_image

__all__ = [
    "SerialImageBuffer",
    "DynamicSerialImage",
    "ResizeFilter",
    "ImageMetaData",
    "OptimumExposureConfig",
    "ElementKind",
    "ColorType",
    "PixelFormat",
    "LUMA_COEFFICIENTS",
    "LumaLookupTables",
    "get_luma_tables",
    "create_test_frame",
    "load_image",
    "save_image",
    "SerialImageError",
    "InvalidDimensionsError",
    "LengthMismatchError",
    "UnsupportedChannelCountError",
    "UnsupportedPixelFormatError",
    "ChannelConflictError",
    "VariantMismatchError",
    "ConfigValidationError",
    "IoConflictError",
]
