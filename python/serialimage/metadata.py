"""
Acquisition metadata carried alongside image pixels.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field

UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_U32_MAX = 2**32 - 1
_I32_MIN, _I32_MAX = -(2**31), 2**31 - 1
_I64_MIN, _I64_MAX = -(2**63), 2**63 - 1


class ImageMetaData(BaseModel):
    """
    Image metadata record.

    Binning and origin are expressed in binned pixel coordinates. Extended
    attributes are free-form ``(key, value)`` string pairs; they are kept in
    insertion order and duplicate keys are allowed.
    """

    model_config = ConfigDict(validate_assignment=True)

    bin_x: int = Field(default=1, ge=1, le=_U32_MAX, description="Binning in X direction")
    bin_y: int = Field(default=1, ge=1, le=_U32_MAX, description="Binning in Y direction")
    img_top: int = Field(default=0, ge=0, le=_U32_MAX, description="Top of image (binned pixels)")
    img_left: int = Field(default=0, ge=0, le=_U32_MAX, description="Left of image (binned pixels)")
    temperature: float = Field(default=0.0, description="Camera temperature (C)")
    exposure: timedelta = Field(default=timedelta(0), description="Exposure time")
    timestamp: datetime = Field(default=UNIX_EPOCH, description="Timestamp of the image")
    camera_name: str = Field(default="", description="Name of the camera")
    gain: int = Field(default=0, ge=_I64_MIN, le=_I64_MAX, description="Gain (raw)")
    offset: int = Field(default=0, ge=_I64_MIN, le=_I64_MAX, description="Offset (raw)")
    min_gain: int = Field(default=0, ge=_I32_MIN, le=_I32_MAX, description="Minimum gain (raw)")
    max_gain: int = Field(default=0, ge=_I32_MIN, le=_I32_MAX, description="Maximum gain (raw)")
    extended_metadata: List[Tuple[str, str]] = Field(default_factory=list)

    @classmethod
    def new(cls, timestamp: datetime, exposure: timedelta, temperature: float,
            bin_x: int, bin_y: int, camera_name: str, gain: int, offset: int) -> "ImageMetaData":
        """Create metadata for a full-frame capture; origin and gain bounds default to zero."""
        return cls(
            timestamp=timestamp,
            exposure=exposure,
            temperature=temperature,
            bin_x=bin_x,
            bin_y=bin_y,
            camera_name=camera_name,
            gain=gain,
            offset=offset,
        )

    @classmethod
    def full_builder(cls, bin_x: int, bin_y: int, img_top: int, img_left: int,
                     temperature: float, exposure: timedelta, timestamp: datetime,
                     camera_name: str, gain: int, offset: int,
                     min_gain: int, max_gain: int) -> "ImageMetaData":
        """Create metadata with every scalar field given explicitly."""
        return cls(
            bin_x=bin_x,
            bin_y=bin_y,
            img_top=img_top,
            img_left=img_left,
            temperature=temperature,
            exposure=exposure,
            timestamp=timestamp,
            camera_name=camera_name,
            gain=gain,
            offset=offset,
            min_gain=min_gain,
            max_gain=max_gain,
        )

    def add_extended_attrib(self, key: str, val: str) -> None:
        """Append an extended attribute. Existing keys are not replaced."""
        self.extended_metadata.append((str(key), str(val)))

    def get_extended_data(self) -> List[Tuple[str, str]]:
        """Extended attributes in insertion order"""
        return self.extended_metadata

    def copy(self) -> "ImageMetaData":
        return self.model_copy(deep=True)

    def __str__(self) -> str:
        lines = [
            f"ImageMetaData [{self.timestamp.isoformat()}]:",
            f"\tCamera name: {self.camera_name}",
            f"\tImage Bin: {self.bin_x} x {self.bin_y}",
            f"\tImage Origin: {self.img_left} x {self.img_top}",
            f"\tExposure: {self.exposure.total_seconds()} s",
            f"\tGain: {self.gain}, Offset: {self.offset}",
            f"\tTemperature: {self.temperature} C",
        ]
        if self.extended_metadata:
            lines.append("\tExtended Metadata:")
            lines.extend(f"\t\t{key}: {val}" for key, val in self.extended_metadata)
        return "\n".join(lines)
