#!/usr/bin/env python3
"""
Tests for the percentile-based exposure controller
"""

import dataclasses
from datetime import timedelta

import numpy as np
import pytest

from serialimage import ConfigValidationError, OptimumExposureConfig


def make_config(**overrides):
    params = dict(
        percentile_pix=0.9,
        pixel_tgt=0.5,
        pixel_uncertainty=0.05,
        pixel_exclusion=0,
        min_allowed_exp=timedelta(milliseconds=1),
        max_allowed_exp=timedelta(seconds=10),
        max_allowed_bin=1,
    )
    params.update(overrides)
    return OptimumExposureConfig(**params)


@pytest.fixture
def config():
    return make_config()


class TestValidation:
    """Construction-time range checks"""

    def test_defaults_are_valid(self):
        """Test defaults are valid"""
        OptimumExposureConfig()

    @pytest.mark.parametrize("value", [0.0, 1.0000001, 1e-6, -0.5])
    def test_pixel_tgt_out_of_range(self, value):
        """Test pixel_tgt out of range"""
        with pytest.raises(ConfigValidationError):
            make_config(pixel_tgt=value)

    @pytest.mark.parametrize("value", [1.6e-5, 0.5, 1.0])
    def test_pixel_tgt_in_range(self, value):
        """Test pixel_tgt in range"""
        assert make_config(pixel_tgt=value).pixel_tgt == value

    @pytest.mark.parametrize("value", [0.0, 1.5])
    def test_pixel_uncertainty_out_of_range(self, value):
        """Test pixel uncertainty out of range"""
        with pytest.raises(ConfigValidationError):
            make_config(pixel_uncertainty=value)

    @pytest.mark.parametrize("value", [-0.01, 1.01])
    def test_percentile_out_of_range(self, value):
        """Test percentile out of range"""
        with pytest.raises(ConfigValidationError):
            make_config(percentile_pix=value)

    @pytest.mark.parametrize("value", [0.0, 1.0])
    def test_percentile_bounds_accepted(self, value):
        """Test percentile bounds accepted"""
        make_config(percentile_pix=value)

    def test_min_exposure_not_below_max(self):
        """Test min exposure not below max"""
        with pytest.raises(ConfigValidationError):
            make_config(min_allowed_exp=timedelta(seconds=1), max_allowed_exp=timedelta(seconds=1))

    def test_negative_exclusion(self):
        """Test negative exclusion"""
        with pytest.raises(ConfigValidationError):
            make_config(pixel_exclusion=-1)

    def test_bin_above_u16(self):
        """Test bin above the u16 range"""
        with pytest.raises(ConfigValidationError):
            make_config(max_allowed_bin=2**16)

    def test_errors_are_value_errors(self):
        """Test errors are value errors"""
        with pytest.raises(ValueError):
            make_config(pixel_tgt=2.0)

    def test_frozen(self, config):
        """Test config is immutable"""
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.pixel_tgt = 0.3


class TestCallValidation:
    """Checks that depend on the sample population"""

    def test_empty_samples(self, config):
        """Test empty samples"""
        with pytest.raises(ConfigValidationError):
            config.find_optimum_exposure([], timedelta(milliseconds=10), 1)

    def test_exclusion_larger_than_population(self):
        """Test exclusion larger than population"""
        config = make_config(pixel_exclusion=11)
        with pytest.raises(ConfigValidationError):
            config.find_optimum_exposure(np.zeros(10, dtype=np.uint16), timedelta(milliseconds=10), 1)


class TestDeadBand:
    """No correction inside the tolerance band"""

    def test_converged_returns_inputs(self, config):
        """Test converged returns inputs"""
        samples = np.full(100, 32000, dtype=np.uint16)
        exposure = timedelta(milliseconds=123)
        assert config.find_optimum_exposure(samples, exposure, 1) == (exposure, 1)

    def test_converged_keeps_bin_even_above_max(self, config):
        """Test converged keeps bin even above max"""
        samples = np.full(100, 33000, dtype=np.uint16)
        assert config.find_optimum_exposure(samples, timedelta(seconds=1), 4) == (timedelta(seconds=1), 4)

    def test_percentile_one_selects_maximum(self):
        """Test percentile one selects maximum"""
        config = make_config(percentile_pix=1.0)
        samples = [100] * 99 + [32767]
        exposure = timedelta(milliseconds=50)
        assert config.find_optimum_exposure(samples, exposure, 1) == (exposure, 1)

    def test_unsorted_input(self, config):
        """Test unsorted input"""
        samples = np.concatenate([np.full(95, 32767), np.full(5, 0)]).astype(np.uint16)
        exposure = timedelta(milliseconds=50)
        assert config.find_optimum_exposure(samples, exposure, 1) == (exposure, 1)


class TestExposureScaling:
    """Linear exposure estimate and clamping"""

    def test_dark_frame_scales_up(self, config):
        """Test dark frame scales up"""
        samples = np.full(100, 6000, dtype=np.uint16)
        exposure, bin = config.find_optimum_exposure(samples, timedelta(milliseconds=100), 1)
        assert exposure.total_seconds() == pytest.approx(0.1 * 32767.5 / 6000, abs=1e-6)
        assert bin == 1

    def test_bright_frame_scales_down(self, config):
        """Test bright frame scales down"""
        samples = np.full(100, 65535, dtype=np.uint16)
        exposure, _ = config.find_optimum_exposure(samples, timedelta(milliseconds=100), 1)
        assert exposure.total_seconds() == pytest.approx(0.05, abs=1e-6)

    def test_clamped_to_minimum(self):
        """Test clamped to minimum"""
        config = make_config(pixel_tgt=0.1)
        samples = np.full(100, 65535, dtype=np.uint16)
        result = config.find_optimum_exposure(samples, timedelta(milliseconds=2), 1)
        assert result == (timedelta(milliseconds=1), 1)

    def test_clamped_to_maximum(self, config):
        """Test clamped to maximum"""
        samples = np.full(100, 10, dtype=np.uint16)
        result = config.find_optimum_exposure(samples, timedelta(seconds=1), 1)
        assert result == (timedelta(seconds=10), 1)

    def test_black_frame(self, config):
        """Test black frame"""
        samples = np.zeros(100, dtype=np.uint16)
        result = config.find_optimum_exposure(samples, timedelta(seconds=1), 1)
        assert result == (timedelta(seconds=10), 1)

    def test_bin_clamped_when_binning_disabled(self, config):
        """Test bin clamped when binning disabled"""
        samples = np.full(100, 6000, dtype=np.uint16)
        _, bin = config.find_optimum_exposure(samples, timedelta(milliseconds=100), 4)
        assert bin == 1


class TestBinning:
    """Greedy exposure/binning trade"""

    def test_bin_halved_and_exposure_quadrupled(self):
        """Test bin halved and exposure quadrupled"""
        config = make_config(max_allowed_bin=4)
        samples = np.full(100, 16000, dtype=np.uint16)
        exposure, bin = config.find_optimum_exposure(samples, timedelta(milliseconds=100), 4)
        assert bin == 2
        assert exposure.total_seconds() == pytest.approx(4 * 0.1 * 32767.5 / 16000, abs=1e-5)

    def test_bin_doubled_when_too_dark(self):
        """Test bin doubled when too dark"""
        config = make_config(max_allowed_bin=4)
        samples = np.full(100, 100, dtype=np.uint16)
        result = config.find_optimum_exposure(samples, timedelta(seconds=1), 1)
        assert result == (timedelta(seconds=10), 4)

    def test_bin_doubled_once(self):
        """Test bin doubled once"""
        config = make_config(max_allowed_bin=8)
        samples = np.full(100, 2000, dtype=np.uint16)
        exposure, bin = config.find_optimum_exposure(samples, timedelta(seconds=1), 1)
        assert bin == 2
        assert exposure.total_seconds() == pytest.approx(32767.5 / 2000 / 4, abs=1e-5)


class TestExclusion:
    """Brightest-sample exclusion"""

    def test_read_moves_below_excluded_band(self):
        """Test read moves below excluded band"""
        samples = np.arange(10, dtype=np.uint16) * 1000
        config = make_config(percentile_pix=0.0, pixel_tgt=7000 / 65535,
                             pixel_uncertainty=100 / 65535, pixel_exclusion=2)
        exposure = timedelta(milliseconds=20)
        assert config.find_optimum_exposure(samples, exposure, 1) == (exposure, 1)

    def test_without_exclusion_reads_percentile(self):
        """Test without exclusion reads percentile"""
        samples = np.arange(10, dtype=np.uint16) * 1000
        config = make_config(percentile_pix=0.0, pixel_tgt=7000 / 65535,
                             pixel_uncertainty=100 / 65535, pixel_exclusion=0)
        exposure = timedelta(milliseconds=20)
        assert config.find_optimum_exposure(samples, exposure, 1) != (exposure, 1)

    def test_full_exclusion_reads_floor(self):
        """Test full exclusion reads floor"""
        samples = np.full(5, 60000, dtype=np.uint16)
        config = make_config(percentile_pix=0.0, pixel_exclusion=5)
        result = config.find_optimum_exposure(samples, timedelta(milliseconds=20), 1)
        assert result == (timedelta(seconds=10), 1)


class TestConversion:
    def test_dict_round_trip(self):
        """Test dict round trip"""
        config = make_config(pixel_exclusion=12, max_allowed_bin=4)
        data = config.to_dict()
        assert data["min_allowed_exp_us"] == 1000
        assert data["max_allowed_exp_us"] == 10_000_000
        assert OptimumExposureConfig.from_dict(data) == config

    def test_from_dict_validates(self):
        """Test from dict validates"""
        with pytest.raises(ConfigValidationError):
            OptimumExposureConfig.from_dict({"pixel_tgt": 0})

    def test_repr(self, config):
        """Test repr output"""
        assert "max_allowed_bin=1" in repr(config)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
