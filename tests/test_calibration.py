"""Tests for baseline threshold calibration."""

import pytest

from calibration.baseline import BaselineCalibrator, Thresholds


def _feed(cal: BaselineCalibrator, value: float, until: float, fps: float = 30.0) -> None:
    n = int(round(until * fps))
    for i in range(n + 1):
        cal.observe(i / fps, value, value)


def test_defaults_before_calibration():
    cal = BaselineCalibrator()
    assert cal.thresholds == Thresholds(open=0.55, close=0.80)
    assert cal.is_calibrated is False
    assert cal.progress(3.0) == 0.0


def test_collects_until_duration_elapsed():
    cal = BaselineCalibrator()
    _feed(cal, 0.05, until=6.0)
    # t = 6.0 exactly is still inside the calibration window
    assert cal.is_calibrated is False
    assert cal.sample_count == 181


def test_learned_thresholds_are_clamped():
    cal = BaselineCalibrator()
    _feed(cal, 0.05, until=6.0)
    cal.observe(6.05, 0.05, 0.05)

    assert cal.is_calibrated is True
    # median 0.05 -> open 0.30 -> clamped to 0.35; close 0.65 -> clamped to 0.70
    assert cal.thresholds.open == pytest.approx(0.35)
    assert cal.thresholds.close == pytest.approx(0.70)


def test_learned_thresholds_follow_median():
    cal = BaselineCalibrator()
    _feed(cal, 0.20, until=6.0)
    cal.observe(6.5, 0.20, 0.20)

    assert cal.thresholds.open == pytest.approx(0.45)
    assert cal.thresholds.close == pytest.approx(0.80)
    assert cal.thresholds.open < cal.thresholds.close


def test_samples_above_ceiling_are_ignored():
    cal = BaselineCalibrator()
    _feed(cal, 0.50, until=6.0)
    assert cal.sample_count == 0

    cal.observe(7.0, 0.5, 0.5)
    assert cal.is_calibrated is True
    assert cal.thresholds == Thresholds(open=0.55, close=0.80)


@pytest.mark.parametrize("n_samples, learned", [(29, False), (30, True)])
def test_minimum_sample_count(n_samples, learned):
    cal = BaselineCalibrator()
    for i in range(n_samples):
        cal.observe(i * 0.1, 0.10, 0.10)
    cal.observe(7.0, 0.10, 0.10)

    assert cal.is_calibrated is True
    if learned:
        assert cal.thresholds.open == pytest.approx(0.35)
        assert cal.thresholds.close == pytest.approx(0.70)
    else:
        assert cal.thresholds == Thresholds(open=0.55, close=0.80)


def test_finalisation_is_one_shot():
    cal = BaselineCalibrator()
    _feed(cal, 0.20, until=6.0)
    cal.observe(6.1, 0.20, 0.20)
    learned = cal.thresholds

    for i in range(100):
        cal.observe(7.0 + i * 0.1, 0.01, 0.01)
    assert cal.thresholds == learned
    assert cal.is_calibrated is True


def test_progress_is_monotonic_and_saturates():
    cal = BaselineCalibrator()
    last = 0.0
    for i in range(250):
        t = i / 30.0
        cal.observe(t, 0.05, 0.05)
        p = cal.progress(t)
        assert 0.0 <= p <= 1.0
        assert p >= last
        last = p
    assert last == 1.0
    assert cal.is_calibrated is True


def test_progress_is_relative_to_first_observation():
    cal = BaselineCalibrator()
    cal.observe(10.0, 0.05, 0.05)
    assert cal.started_at == 10.0
    assert cal.progress(13.0) == pytest.approx(0.5)


def test_reset_restarts_calibration():
    cal = BaselineCalibrator()
    _feed(cal, 0.20, until=6.0)
    cal.observe(6.1, 0.20, 0.20)

    cal.reset()
    assert cal.is_calibrated is False
    assert cal.started_at is None
    assert cal.sample_count == 0
    assert cal.thresholds == Thresholds(open=0.55, close=0.80)
