#!/usr/bin/env python3
"""Root setup script for the serialimage package.

The package is pure Python; sources live under ``python/`` so that
``pip install -e .`` exposes ``serialimage`` without touching the tests.
"""

from setuptools import find_packages, setup


# ---------------------------------------------------------------------------
# Package metadata
# ---------------------------------------------------------------------------

VERSION = "1.0.0"

install_requires = [
    "numpy>=1.21",
    "opencv-python>=4.5",
    "pydantic>=2.0",
    "astropy>=5.0",
]

extras_require = {
    "test": ["pytest>=7.0"],
}


# ---------------------------------------------------------------------------
# Call setup()
# ---------------------------------------------------------------------------

setup(
    name="serialimage",
    version=VERSION,
    description="Channel-planar image buffers with metadata, luma reduction and exposure control",
    packages=find_packages(where="python"),
    package_dir={"": "python"},
    install_requires=install_requires,
    extras_require=extras_require,
    zip_safe=False,
    python_requires=">=3.9",
)
