"""Shared fixtures for the serialimage tests.

Adds the ``python/`` source directory to ``sys.path`` so the tests run from a
fresh checkout without an editable install.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import numpy as np
import pytest

PYTHON_DIR = Path(__file__).resolve().parents[2] / "python"
if str(PYTHON_DIR) not in sys.path:
    sys.path.insert(0, str(PYTHON_DIR))

from serialimage import ImageMetaData  # noqa: E402


@pytest.fixture
def metadata():
    """Metadata for a binned, cooled capture with two extended attributes"""
    meta = ImageMetaData.full_builder(
        bin_x=2,
        bin_y=2,
        img_top=10,
        img_left=20,
        temperature=-10.5,
        exposure=timedelta(milliseconds=250),
        timestamp=datetime(2024, 3, 1, 12, 30, 15, 123000, tzinfo=timezone.utc),
        camera_name="ZWO ASI533MM",
        gain=120,
        offset=30,
        min_gain=0,
        max_gain=600,
    )
    meta.add_extended_attrib("FILTER", "Ha")
    meta.add_extended_attrib("observer", "night shift")
    return meta


@pytest.fixture
def rng():
    return np.random.default_rng(seed=1234)
