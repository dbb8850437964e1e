"""
Structured records for JSON serialization of images.

Channel samples are stored as plain number lists. Decoding goes back through
the buffer constructors, so a record that violates a buffer invariant is
rejected rather than producing a half-valid image.
"""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

from .metadata import ImageMetaData

Samples = Optional[List[Union[int, float]]]


class SerialImageBufferRecord(BaseModel):
    """Field-tagged form of a SerialImageBuffer"""
    dtype: Literal["U8", "U16", "F32"]
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    pixel_elems: int = Field(ge=1, le=4)
    meta: Optional[ImageMetaData] = None
    luma: Samples = None
    red: Samples = None
    green: Samples = None
    blue: Samples = None
    alpha: Samples = None


class DynamicSerialImageRecord(BaseModel):
    """Field-tagged form of a DynamicSerialImage; ``variant`` names the active element type"""
    variant: Literal["U8", "U16", "F32"]
    buffer: SerialImageBufferRecord
