"""Tests for settings loading in formbuilder.settings."""

import pytest

from formbuilder.core import Builder, Config, new
from formbuilder.settings import Settings, get_settings, interpolate_env_vars, load_settings_file


class TestInterpolateEnvVars:
    def test_replaces_variables(self, monkeypatch):
        monkeypatch.setenv("FIELD_NAME", "token")
        assert interpolate_env_vars("$FIELD_NAME") == "token"

    def test_nested_structures(self, monkeypatch):
        monkeypatch.setenv("A_VALUE", "x")
        assert interpolate_env_vars({"a": ["$A_VALUE", 1]}) == {"a": ["x", 1]}

    def test_missing_variable_raises(self, monkeypatch):
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
        with pytest.raises(ValueError, match="NOT_SET_ANYWHERE"):
            interpolate_env_vars("$NOT_SET_ANYWHERE")

    def test_non_strings_pass_through(self):
        assert interpolate_env_vars(3) == 3


class TestSettings:
    def test_defaults(self):
        settings = get_settings()
        assert settings.csrf_field == "_csrf"
        assert settings.method_field == "_method"
        assert settings.input_class == "form-control"
        assert settings.error_class == "is-invalid"
        assert settings.unchecked_value == "0"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("FORMBUILDER_INPUT_CLASS", "input")
        assert get_settings().input_class == "input"

    def test_settings_file(self, settings_file):
        settings_file({"error_class": "has-error", "unknown": "ignored"})
        settings = get_settings()
        assert settings.error_class == "has-error"
        assert not hasattr(settings, "unknown")

    def test_settings_file_interpolation(self, settings_file, monkeypatch):
        monkeypatch.setenv("CSRF_NAME", "authenticity_token")
        settings_file({"csrf_field": "$CSRF_NAME"})
        assert get_settings().csrf_field == "authenticity_token"

    def test_load_settings_file_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings_file(tmp_path / "nope.yaml")

    def test_empty_settings_file(self, tmp_path):
        path = tmp_path / "formbuilder.yaml"
        path.write_text("")
        assert load_settings_file(path) == {}

    def test_cached(self):
        assert get_settings() is get_settings()


class TestSettingsDriveRendering:
    def test_classes_from_settings_file(self, settings_file):
        settings_file({"input_class": "input", "error_class": "has-error", "feedback_class": "help"})
        form = new(errors={"name": "Required"})
        assert 'class="input has-error"' in str(form.text("name"))
        assert str(form.field_error("name")) == '<div class="help">Required</div>'

    def test_explicit_settings_instance(self):
        form = Builder(Config(method="PATCH"), Settings(method_field="__method"))
        assert 'name="__method" value="PATCH"' in str(form.open())
