"""
Utility functions for the serialimage package: synthetic frames and raster I/O
in OpenCV layout.
"""

import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)

_FULL_SCALE = {
    np.dtype(np.uint8): 255,
    np.dtype(np.uint16): 65535,
    np.dtype(np.float32): 1.0,
}


def create_test_frame(width: int, height: int, brightness: float = 0.5,
                      pattern: str = "uniform", channels: int = 3,
                      dtype=np.uint8) -> np.ndarray:
    """
    Create a packed test image with specified properties.

    Args:
        width: Image width
        height: Image height
        brightness: Brightness level (0.0-1.0)
        pattern: Pattern type ("uniform", "gradient", "checkerboard", "noise")
        channels: Number of channels (1-4); alpha, if any, is opaque
        dtype: uint8, uint16 or float32

    Returns:
        Test image as numpy array, ``(H, W)`` for one channel and ``(H, W, C)`` otherwise
    """
    if not 0.0 <= brightness <= 1.0:
        raise ValueError("Brightness must be between 0.0 and 1.0")
    if channels not in (1, 2, 3, 4):
        raise ValueError(f"Channels must be between 1 and 4, got {channels}")
    dtype = np.dtype(dtype)
    if dtype not in _FULL_SCALE:
        raise ValueError(f"Unsupported dtype {dtype}")
    full = _FULL_SCALE[dtype]
    level = brightness * full

    if pattern == "uniform":
        plane = np.full((height, width), level, dtype=np.float64)

    elif pattern == "gradient":
        rows = np.arange(height, dtype=np.float64) / height * level
        plane = np.repeat(rows[:, np.newaxis], width, axis=1)

    elif pattern == "checkerboard":
        square_size = max(min(width, height) // 8, 1)
        yy, xx = np.indices((height, width))
        even = ((yy // square_size) + (xx // square_size)) % 2 == 0
        plane = np.where(even, level, level / 2)

    elif pattern == "noise":
        plane = np.random.normal(level, 0.12 * full, (height, width))

    else:
        raise ValueError(f"Unknown pattern: {pattern}")

    plane = np.clip(plane, 0, full)
    if dtype != np.float32:
        plane = np.rint(plane)
    plane = plane.astype(dtype)

    if channels == 1:
        return plane
    color = 1 if channels == 2 else 3
    planes = [plane] * color
    if channels in (2, 4):
        planes.append(np.full((height, width), full, dtype=dtype))
    return np.stack(planes, axis=-1)


def load_image(path: Union[str, Path]) -> np.ndarray:
    """
    Load an image from file, keeping bit depth and alpha.

    Args:
        path: Path to image file

    Returns:
        Loaded image as numpy array, colour channels in RGB(A) order

    Raises:
        ValueError: If image cannot be loaded
    """
    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        logger.error(f"Failed to load image {path}")
        raise ValueError(f"Could not load image from {path}")

    if image.ndim == 3 and image.shape[2] == 3:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    elif image.ndim == 3 and image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    return image


def save_image(image: np.ndarray, path: Union[str, Path]) -> bool:
    """
    Save an image to file. The format follows the file extension.

    Args:
        image: Image as numpy array, colour channels in RGB(A) order
        path: Output path

    Returns:
        True if successful, False otherwise
    """
    if image.ndim == 3 and image.shape[2] == 3:
        image_bgr = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
    elif image.ndim == 3 and image.shape[2] == 4:
        image_bgr = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)
    else:
        image_bgr = image

    try:
        success = cv2.imwrite(str(path), image_bgr)
    except cv2.error as e:
        logger.error(f"Exception saving image to {path}: {e}")
        return False

    if success:
        logger.info(f"Image saved to {path}")
    else:
        logger.error(f"Failed to save image to {path}")
    return success
