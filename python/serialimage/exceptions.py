"""
Exception types for the serialimage package.

Every public constructor and conversion raises one of these on malformed
input. Validation errors also derive from the matching built-in exception so
callers that only catch ``ValueError`` keep working.
"""


class SerialImageError(Exception):
    """Base class for all serialimage errors."""

    def __init__(self, message: str = "serialimage error"):
        self.message = message
        super().__init__(self.message)


class InvalidDimensionsError(SerialImageError, ValueError):
    """Width or height is zero."""

    def __init__(self, message: str = "Image width and height must be non-zero"):
        super().__init__(message)


class LengthMismatchError(SerialImageError, ValueError):
    """
    A channel does not hold exactly ``width * height`` samples, or an
    interleaved vector is not a whole multiple of ``width * height``.
    """

    def __init__(self, message: str = "Data length does not match image dimensions"):
        super().__init__(message)


class UnsupportedChannelCountError(SerialImageError, ValueError):
    """The channel count is outside 1..4."""

    def __init__(self, message: str = "Unsupported number of channels"):
        super().__init__(message)


class UnsupportedPixelFormatError(SerialImageError, ValueError):
    """
    The element type / channel count pair has no packed colour space, or
    the element type itself is not one of uint8, uint16 and float32.
    """

    def __init__(self, message: str = "Unsupported pixel format"):
        super().__init__(message)


class ChannelConflictError(SerialImageError, ValueError):
    """Luma and colour channels given together, or colour given partially."""

    def __init__(self, message: str = "Invalid channel combination"):
        super().__init__(message)


class VariantMismatchError(SerialImageError, TypeError):
    """A DynamicSerialImage was narrowed to the wrong element type."""

    def __init__(self, message: str = "Image variant does not match the requested type"):
        super().__init__(message)


class ConfigValidationError(SerialImageError, ValueError):
    """Exposure controller settings or call inputs are out of range."""

    def __init__(self, message: str = "Invalid configuration"):
        super().__init__(message)


class IoConflictError(SerialImageError, OSError):
    """
    Raised by FITS export when the target directory is missing, or when the
    target file exists and overwriting was not requested.
    """

    def __init__(self, message: str = "Cannot write to the requested path"):
        super().__init__(message)
