"""
Tests for trace interpolation.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from laptrace.models.trace import Trace
from laptrace.services.resampler import interpolate


@pytest.fixture
def five_sample_trace():
    """Irregularly spaced trace with metadata."""
    coords = np.array(
        [
            [15.0, 40.0, 100.0],
            [15.001, 40.0005, 101.0],
            [15.002, 40.0012, 103.5],
            [15.0025, 40.002, 102.0],
            [15.004, 40.0021, 99.0],
        ]
    )
    timestamps = np.array([0.0, 1e6, 2e6, 3.5e6, 4e6]) + 1.7e15
    return Trace(
        coordinates=coords,
        timestamps=timestamps,
        device="GPX",
        session_start_ms=1.7e12,
        driver_name="Ada",
    )


class TestInterpolate:
    """Tests for interpolate."""

    @pytest.mark.parametrize("factor", [1, 7, 100])
    def test_output_length(self, five_sample_trace, factor):
        """Output should hold (N - 1) * factor + 1 samples."""
        result = interpolate(five_sample_trace, factor)
        assert len(result) == 4 * factor + 1

    def test_endpoints_preserved_exactly(self, five_sample_trace):
        """First and last samples should be bit-identical to the input."""
        result = interpolate(five_sample_trace, 100)

        assert np.array_equal(result.coordinates[0], five_sample_trace.coordinates[0])
        assert np.array_equal(result.coordinates[-1], five_sample_trace.coordinates[-1])
        assert result.timestamps[0] == five_sample_trace.timestamps[0]
        assert result.timestamps[-1] == five_sample_trace.timestamps[-1]

    def test_original_samples_kept(self, five_sample_trace):
        """Every factor-th output sample should be an input sample."""
        result = interpolate(five_sample_trace, 10)
        assert np.array_equal(result.coordinates[::10], five_sample_trace.coordinates)
        assert np.array_equal(result.timestamps[::10], five_sample_trace.timestamps)

    def test_linear_midpoint(self):
        """Intermediate samples should lie on the straight line."""
        trace = Trace(
            coordinates=np.array([[0.0, 0.0, 0.0], [4.0, 8.0, 12.0]]),
            timestamps=np.array([0.0, 400.0]),
        )
        result = interpolate(trace, 4)

        assert_allclose(result.coordinates[2], [2.0, 4.0, 6.0])
        assert_allclose(result.timestamps, [0.0, 100.0, 200.0, 300.0, 400.0])

    def test_timestamps_monotonic(self, five_sample_trace):
        result = interpolate(five_sample_trace, 100)
        assert np.all(np.diff(result.timestamps) >= 0)

    def test_metadata_carried(self, five_sample_trace):
        result = interpolate(five_sample_trace, 5)
        assert result.device == "GPX"
        assert result.session_start_ms == 1.7e12
        assert result.driver_name == "Ada"

    def test_input_not_mutated(self, five_sample_trace):
        before = five_sample_trace.coordinates.copy()
        interpolate(five_sample_trace, 5)
        assert np.array_equal(five_sample_trace.coordinates, before)

    def test_single_sample(self):
        trace = Trace(coordinates=[[15.0, 40.0, 0.0]], timestamps=[1.0])
        result = interpolate(trace, 100)
        assert len(result) == 1
        assert result.timestamps[0] == 1.0

    def test_empty_trace(self):
        trace = Trace(coordinates=np.zeros((0, 3)), timestamps=np.zeros(0))
        assert len(interpolate(trace, 100)) == 0

    def test_invalid_factor(self, five_sample_trace):
        with pytest.raises(ValueError):
            interpolate(five_sample_trace, 0)
