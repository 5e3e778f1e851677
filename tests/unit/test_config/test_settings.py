"""Unit tests for configuration loading and tolerance handling."""
import json
import pytest

from tangram_cv.config.defaults import DEFAULT_CONFIG, DIFFICULTY_TOLERANCES
from tangram_cv.config.settings import Config, ValidationTolerances, load_config, save_config
from tangram_cv.core.exceptions import ConfigError


class TestValidationTolerances:

    def test_defaults(self):
        tol = ValidationTolerances()
        assert (tol.position, tol.rotation_deg, tol.orientation_deg, tol.nudge_upper_deg) == (35.0, 18.0, 5.0, 45.0)

    @pytest.mark.parametrize("kwargs", [
        {"position": -1.0},
        {"rotation_deg": "wide"},
        {"orientation_deg": True},
        {"orientation_deg": 50.0, "nudge_upper_deg": 40.0},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ConfigError):
            ValidationTolerances(**kwargs)

    def test_with_overrides_ignores_none(self):
        tol = ValidationTolerances()
        assert tol.with_overrides(position=None) is tol
        assert tol.with_overrides(position=12.0, rotation_deg=None).position == 12.0

    @pytest.mark.parametrize("difficulty", sorted(DIFFICULTY_TOLERANCES))
    def test_difficulty_presets(self, difficulty):
        tol = ValidationTolerances.for_difficulty(difficulty)
        assert (tol.position, tol.rotation_deg) == DIFFICULTY_TOLERANCES[difficulty]
        assert tol.orientation_deg == DEFAULT_CONFIG["orientation_tolerance_deg"]

    def test_unknown_difficulty(self):
        with pytest.raises(ConfigError):
            ValidationTolerances.for_difficulty("impossible")


class TestConfig:

    def test_tolerances_without_difficulty(self, default_config):
        tol = default_config.tolerances()
        assert tol.position == default_config.position_tolerance
        assert tol.rotation_deg == default_config.rotation_tolerance_deg

    def test_tolerances_with_difficulty(self):
        tol = Config(apply_difficulty=True, difficulty="easy").tolerances()
        assert (tol.position, tol.rotation_deg) == (55.0, 24.0)

    def test_canvas_size(self, default_config):
        assert default_config.canvas_size == (1080, 1920)

    def test_get_reads_fields_and_extra(self):
        cfg = Config(extra={"custom": 1})
        assert cfg.get("position_tolerance") == 35.0
        assert cfg.get("custom") == 1
        assert cfg.get("missing", "fallback") == "fallback"

    def test_to_dict_flattens_extra(self):
        data = Config(extra={"custom": 1}).to_dict()
        assert data["custom"] == 1
        assert "extra" not in data

    def test_logging_kwargs_debug_overrides_level(self):
        assert Config(debug=True, log_level="WARNING").logging_kwargs()["log_level"] == "DEBUG"
        assert Config(log_level="WARNING").logging_kwargs()["log_level"] == "WARNING"


class TestLoadConfig:

    def test_missing_file_gives_defaults(self, temp_dir):
        cfg = load_config(str(temp_dir / "nope.json"), environ={})
        assert cfg == Config()

    def test_file_values_and_extra(self, config_file):
        cfg = load_config(str(config_file), environ={})
        assert cfg.position_tolerance == 20.0
        assert cfg.rotation_tolerance_deg == 10.0
        assert cfg.difficulty == "hard"
        assert cfg.extra == {"custom_flag": True}

    def test_environment_overrides_file(self, config_file):
        environ = {"TANGRAM_POSITION_TOLERANCE": "42.5", "TANGRAM_APPLY_DIFFICULTY": "yes"}
        cfg = load_config(str(config_file), environ=environ)
        assert cfg.position_tolerance == 42.5
        assert cfg.apply_difficulty is True

    def test_invalid_environment_value_ignored(self, temp_dir):
        cfg = load_config(str(temp_dir / "nope.json"), environ={"TANGRAM_TARGET_FPS": "fast"})
        assert cfg.target_fps == DEFAULT_CONFIG["target_fps"]

    def test_corrupt_json_gives_defaults(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text("{not json")
        assert load_config(str(path), environ={}) == Config()

    def test_non_object_json_gives_defaults(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text("[1, 2, 3]")
        assert load_config(str(path), environ={}) == Config()

    def test_invalid_tolerances_fall_back_to_defaults(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text(json.dumps({"orientation_tolerance_deg": 90.0, "position_tolerance": 1.0}))
        assert load_config(str(path), environ={}) == Config()

    def test_unknown_difficulty_falls_back_to_defaults(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text(json.dumps({"apply_difficulty": True, "difficulty": "legendary"}))
        assert load_config(str(path), environ={}) == Config()

    @pytest.mark.parametrize("overrides", [
        {"reference_canvas_width": "wide"},
        {"reference_canvas_height": 0},
        {"needs_camera_inversion": "sometimes"},
        {"observation_scale": [1.0]},
        {"difficulty": 3},
        {"max_tracks_per_class": 0},
    ])
    def test_malformed_field_falls_back_to_defaults(self, temp_dir, overrides):
        path = temp_dir / "config.json"
        path.write_text(json.dumps(overrides))
        cfg = load_config(str(path), environ={})
        assert cfg == Config()
        assert cfg.canvas_size == (1080, 1920)

    def test_string_and_integral_values_coerced(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text(json.dumps({
            "reference_canvas_width": "720", "target_fps": 30.0,
            "position_tolerance": 25, "enable_file_logging": "on",
        }))
        cfg = load_config(str(path), environ={})
        assert cfg.canvas_size == (720, 1920)
        assert cfg.target_fps == 30 and isinstance(cfg.target_fps, int)
        assert cfg.position_tolerance == 25.0 and isinstance(cfg.position_tolerance, float)
        assert cfg.enable_file_logging is True


class TestSaveConfig:

    def test_save_then_load(self, temp_dir):
        path = temp_dir / "saved.json"
        save_config(Config(position_tolerance=11.0, extra={"note": "x"}), str(path))
        cfg = load_config(str(path), environ={})
        assert cfg.position_tolerance == 11.0
        assert cfg.extra == {"note": "x"}

    def test_save_failure_is_logged(self, temp_dir, caplog):
        save_config(Config(), str(temp_dir / "missing_dir" / "config.json"))
        assert "OS error saving configuration" in caplog.text
