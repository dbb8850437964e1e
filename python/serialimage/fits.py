"""
FITS export of planar images.

One image HDU is written per channel: the primary HDU holds the luma (or
red) plane and ``GREEN``, ``BLUE`` and ``ALPHA`` extensions hold the rest.
Acquisition metadata becomes header cards on the primary HDU.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Union

from astropy.io import fits

from .exceptions import IoConflictError
from .metadata import UNIX_EPOCH, ImageMetaData

logger = logging.getLogger(__name__)

DEFAULT_PROGNAME = "serialimage"

_STANDARD_KEYWORD = re.compile(r"^[A-Z0-9_-]{1,8}$")


def _timestamp_ms(timestamp: datetime) -> int:
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return (timestamp - UNIX_EPOCH) // timedelta(milliseconds=1)


def fits_path(dir_prefix: Union[str, Path], file_prefix: str,
              meta: Optional[ImageMetaData]) -> Path:
    """
    Compose ``{dir}/{prefix}_{timestamp_ms}.fits``.

    A blank prefix falls back to the camera name, then to ``image``. The
    timestamp comes from the metadata, or the current time without metadata.
    """
    prefix = file_prefix.strip()
    if not prefix and meta is not None:
        prefix = meta.camera_name.strip()
    if not prefix:
        prefix = "image"
    timestamp = meta.timestamp if meta is not None else datetime.now(timezone.utc)
    return Path(dir_prefix) / f"{prefix}_{_timestamp_ms(timestamp)}.fits"


def _extended_card(key: str, val: str) -> fits.Card:
    keyword = key.strip().upper()
    if _STANDARD_KEYWORD.match(keyword):
        return fits.Card(keyword, val)
    return fits.Card(f"HIERARCH {key.strip()}", val)


def build_header(meta: Optional[ImageMetaData], progname: Optional[str] = None) -> fits.Header:
    """Primary header cards for an image and its metadata"""
    header = fits.Header()
    header["PROGNAME"] = (progname or DEFAULT_PROGNAME, "Program that wrote this file")
    if meta is None:
        return header

    header["CAMERA"] = (meta.camera_name, "Camera name")
    header["TIMESTAM"] = (_timestamp_ms(meta.timestamp), "Exposure timestamp (ms since epoch)")
    header["CCD-TEMP"] = (meta.temperature, "Camera temperature (C)")
    header["EXPTIME"] = (meta.exposure // timedelta(microseconds=1), "Exposure time (us)")
    header["ORIGIN_X"] = (meta.img_left, "Image origin X (binned pixels)")
    header["ORIGIN_Y"] = (meta.img_top, "Image origin Y (binned pixels)")
    header["XBINNING"] = (meta.bin_x, "Binning in X")
    header["YBINNING"] = (meta.bin_y, "Binning in Y")
    header["GAIN"] = (meta.gain, "Gain (raw)")
    header["OFFSET"] = (meta.offset, "Offset (raw)")
    header["GAINMIN"] = (meta.min_gain, "Minimum gain (raw)")
    header["GAINMAX"] = (meta.max_gain, "Maximum gain (raw)")
    for key, val in meta.get_extended_data():
        header.append(_extended_card(key, val), end=True)
    return header


def save_fits(image, dir_prefix: Union[str, Path], file_prefix: str,
              progname: Optional[str] = None, compress: bool = False,
              overwrite: bool = False) -> Path:
    """
    Save a planar image to a FITS file.

    Args:
        image: SerialImageBuffer to write
        dir_prefix: Existing directory to write into
        file_prefix: File name prefix; blank falls back to the camera name
        progname: Value of the PROGNAME card
        compress: Store every plane as a tile-compressed extension
        overwrite: Replace an existing file of the same name

    Returns:
        Path of the written file

    Raises:
        IoConflictError: if the directory is missing, or the file exists and
            ``overwrite`` is False
    """
    directory = Path(dir_prefix)
    if not directory.is_dir():
        raise IoConflictError(f"Directory {directory} does not exist")

    meta = image.get_metadata()
    path = fits_path(directory, file_prefix, meta)
    if path.exists() and not overwrite:
        raise IoConflictError(f"File {path} already exists")

    shape = (image.height, image.width)
    luma = image.get_luma()
    if luma is not None:
        planes = [("LUMA", luma)]
    else:
        planes = [("RED", image.get_red()), ("GREEN", image.get_green()), ("BLUE", image.get_blue())]
    alpha = image.get_alpha()
    if alpha is not None:
        planes.append(("ALPHA", alpha))

    header = build_header(meta, progname)
    if compress:
        hdus = [fits.PrimaryHDU(header=header)]
        hdus.extend(fits.CompImageHDU(data=plane.reshape(shape).copy(), name=name) for name, plane in planes)
    else:
        (_, primary), rest = planes[0], planes[1:]
        hdus = [fits.PrimaryHDU(data=primary.reshape(shape).copy(), header=header)]
        hdus.extend(fits.ImageHDU(data=plane.reshape(shape).copy(), name=name) for name, plane in rest)

    try:
        fits.HDUList(hdus).writeto(path, overwrite=overwrite)
    except OSError as e:
        logger.error(f"Failed to write FITS file {path}: {e}")
        raise
    logger.info(f"FITS image saved to {path}")
    return path
