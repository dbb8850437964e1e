"""
Percentile-based exposure and binning controller.

The controller is stateless: every call maps a luma sample population plus
the exposure and binning that produced it onto the exposure and binning for
the next frame. Brightness is assumed to scale linearly with exposure time
and with the square of the binning factor.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Sequence, Tuple

import numpy as np

from .exceptions import ConfigValidationError

logger = logging.getLogger(__name__)

#: Smallest target or uncertainty, as a fraction of full scale (1 / 65535 rounded up)
MIN_PIXEL_FRACTION = 1.6e-5

FULL_SCALE = 65535.0

_U16_MAX = 2**16 - 1
_U32_MAX = 2**32 - 1

# Floor applied to the percentile value before dividing by it
_MIN_SAMPLE_VALUE = 1e-5

_MAX_SECONDS = timedelta.max.total_seconds()


@dataclass(frozen=True)
class OptimumExposureConfig:
    """
    Exposure controller settings.

    Attributes:
        percentile_pix: Percentile of the sorted samples used as the brightness
            measurement (0.0-1.0)
        pixel_tgt: Target value of that percentile, as a fraction of full scale
        pixel_uncertainty: Half-width of the dead band around the target, as a
            fraction of full scale
        pixel_exclusion: Number of brightest samples that may never be measured
        min_allowed_exp: Shortest exposure the controller may return
        max_allowed_exp: Longest exposure the controller may return
        max_allowed_bin: Largest binning factor; values below 2 disable binning
    """

    percentile_pix: float = 0.995
    pixel_tgt: float = 40000 / 65535
    pixel_uncertainty: float = 5000 / 65535
    pixel_exclusion: int = 100
    min_allowed_exp: timedelta = timedelta(milliseconds=1)
    max_allowed_exp: timedelta = timedelta(seconds=10)
    max_allowed_bin: int = 1

    def __post_init__(self):
        self._validate()

    def _validate(self):
        _validate_range(self.percentile_pix, 0.0, 1.0, "percentile_pix")
        _validate_range(self.pixel_tgt, MIN_PIXEL_FRACTION, 1.0, "pixel_tgt")
        _validate_range(self.pixel_uncertainty, MIN_PIXEL_FRACTION, 1.0, "pixel_uncertainty")
        _validate_int_range(self.pixel_exclusion, 0, _U32_MAX, "pixel_exclusion")
        _validate_int_range(self.max_allowed_bin, 0, _U16_MAX, "max_allowed_bin")
        for name in ("min_allowed_exp", "max_allowed_exp"):
            value = getattr(self, name)
            if not isinstance(value, timedelta) or value < timedelta(0):
                raise ConfigValidationError(f"{name} must be a non-negative timedelta, got {value!r}")
        if self.min_allowed_exp >= self.max_allowed_exp:
            raise ConfigValidationError(
                "min_allowed_exp must be less than max_allowed_exp, "
                f"got {self.min_allowed_exp} and {self.max_allowed_exp}"
            )

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    def find_optimum_exposure(self, samples: Sequence[int], exposure: timedelta,
                              bin: int) -> Tuple[timedelta, int]:
        """
        Compute the exposure and binning for the next frame.

        Args:
            samples: 16-bit luma samples of the current frame, in any order
            exposure: Exposure used for the current frame
            bin: Binning used for the current frame

        Returns:
            (next_exposure, next_bin). The inputs are returned unchanged when the
            measured percentile is already within the dead band.

        Raises:
            ConfigValidationError: if the settings are invalid, the sample set is
                empty, or ``pixel_exclusion`` exceeds the number of samples
        """
        self._validate()
        values = np.sort(np.asarray(samples).reshape(-1))
        n = values.size
        if n == 0:
            raise ConfigValidationError("Sample population must not be empty")
        if self.pixel_exclusion > n:
            raise ConfigValidationError(
                f"pixel_exclusion ({self.pixel_exclusion}) exceeds the number of samples ({n})"
            )

        change_bin = self.max_allowed_bin >= 2
        max_bin = self.max_allowed_bin if change_bin else 1

        target = self.pixel_tgt * FULL_SCALE
        uncertainty = self.pixel_uncertainty * FULL_SCALE

        if self.percentile_pix > 0.99999:
            coord = n - 1
        else:
            coord = int(np.floor(self.percentile_pix * (n - 1)))
        if coord < self.pixel_exclusion:
            coord = n - 1 - self.pixel_exclusion
        val = float(values[coord]) if 0 <= coord < n else _MIN_SAMPLE_VALUE
        logger.debug(f"Percentile {self.percentile_pix} at index {coord} of {n}: {val}")

        if abs(target - val) < uncertainty:
            logger.debug(f"Within dead band of {target:.1f} +/- {uncertainty:.1f}; keeping exposure")
            return exposure, bin

        val = max(val, _MIN_SAMPLE_VALUE)
        exposure_us = exposure // timedelta(microseconds=1)
        seconds = abs(target * exposure_us * 1e-6 / val)
        if seconds >= _MAX_SECONDS:
            target_exposure = timedelta.max
        else:
            target_exposure = timedelta(seconds=seconds)

        if change_bin:
            if target_exposure < self.max_allowed_exp:
                while target_exposure < self.max_allowed_exp and bin > 2:
                    bin //= 2
                    target_exposure *= 4
            else:
                while target_exposure > self.max_allowed_exp and bin * 2 <= max_bin:
                    bin *= 2
                    target_exposure /= 4

        target_exposure = min(max(target_exposure, self.min_allowed_exp), self.max_allowed_exp)
        bin = min(max(bin, 1), max_bin)

        logger.debug(f"Next exposure {target_exposure}, bin {bin}")
        return target_exposure, bin

    # ---------------------------------------------------------------------
    # Conversion
    # ---------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        """Plain dictionary form; exposures are given in microseconds."""
        return {
            "percentile_pix": self.percentile_pix,
            "pixel_tgt": self.pixel_tgt,
            "pixel_uncertainty": self.pixel_uncertainty,
            "pixel_exclusion": self.pixel_exclusion,
            "min_allowed_exp_us": self.min_allowed_exp // timedelta(microseconds=1),
            "max_allowed_exp_us": self.max_allowed_exp // timedelta(microseconds=1),
            "max_allowed_bin": self.max_allowed_bin,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OptimumExposureConfig":
        """Inverse of :meth:`to_dict`; missing keys take their defaults."""
        kwargs = {
            key: data[key]
            for key in ("percentile_pix", "pixel_tgt", "pixel_uncertainty",
                        "pixel_exclusion", "max_allowed_bin")
            if key in data
        }
        for name in ("min_allowed_exp", "max_allowed_exp"):
            if f"{name}_us" in data:
                kwargs[name] = timedelta(microseconds=data[f"{name}_us"])
        return cls(**kwargs)

    def __repr__(self) -> str:
        return (f"OptimumExposureConfig(percentile_pix={self.percentile_pix}, "
                f"pixel_tgt={self.pixel_tgt:.6f}, pixel_uncertainty={self.pixel_uncertainty:.6f}, "
                f"pixel_exclusion={self.pixel_exclusion}, exposure=[{self.min_allowed_exp}, "
                f"{self.max_allowed_exp}], max_allowed_bin={self.max_allowed_bin})")


def _validate_range(value: float, min_val: float, max_val: float, name: str) -> float:
    """Validate that a value is within a specified range"""
    if not min_val <= value <= max_val:
        raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")
    return value


def _validate_int_range(value: int, min_val: int, max_val: int, name: str) -> int:
    """Validate that an integer is within a specified range"""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ConfigValidationError(f"{name} must be an integer, got {value!r}")
    return _validate_range(value, min_val, max_val, name)
