"""Tests for configuration defaults, validation and persistence."""

import pytest

from app.config import Config, EvaluatorConfig


def test_defaults_are_valid():
    cfg = EvaluatorConfig()
    cfg.validate()
    assert cfg.fast_recovery is True
    assert cfg.recovery_evictions == 5
    assert cfg.window_s == 60.0


@pytest.mark.parametrize(
    "overrides",
    [
        {"smoothing_alpha": 1.5},
        {"window_s": 0.0},
        {"face_lost_timeout_s": -1.0},
        {"recovery_evictions": -1},
        {"default_open_threshold": 0.9},
        {"open_range": (0.35, 0.90), "open_offset": 0.6},
        {"perclos_warning": 0.5, "perclos_alarm": 0.3},
    ],
)
def test_invalid_values_rejected(overrides):
    cfg = EvaluatorConfig(**overrides)
    with pytest.raises(ValueError):
        cfg.validate()


def test_missing_file_gives_defaults(tmp_path):
    cfg = Config.load(tmp_path / "nope.json")
    assert cfg == Config()


def test_save_and_load(tmp_path):
    path = tmp_path / "config.json"
    cfg = Config(runs_dir=None, log_level="DEBUG")
    cfg.evaluator.fast_recovery = False
    cfg.evaluator.recovery_evictions = 3
    cfg.save(path)

    loaded = Config.load(path)
    assert loaded.runs_dir is None
    assert loaded.log_level == "DEBUG"
    assert loaded.evaluator.fast_recovery is False
    assert loaded.evaluator.recovery_evictions == 3
    assert loaded.evaluator.open_range == (0.35, 0.70)


def test_corrupt_file_gives_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    assert Config.load(path) == Config()


def test_invalid_evaluator_section_gives_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text('{"evaluator": {"smoothing_alpha": 0}}', encoding="utf-8")
    assert Config.load(path).evaluator == EvaluatorConfig()


def test_unknown_keys_are_ignored(tmp_path):
    path = tmp_path / "config.json"
    path.write_text('{"colour": "red", "evaluator": {"speed": 3}}', encoding="utf-8")
    assert Config.load(path) == Config()
