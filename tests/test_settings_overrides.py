from __future__ import annotations

import logging

# Overrides are pure (no I/O beyond the packaged YAML), so they are tested directly.
import pytest

from spotfinder.config.overrides import apply_settings_overrides
from spotfinder.config.settings import Settings, get_settings
from spotfinder.core.logging import configure_logging


def test_packaged_defaults_load():
    settings = get_settings()

    assert settings.discovery.default_scanner_radius_m == 50
    assert settings.map.degenerate_zoom_limits.min == 0.8
    assert settings.map.degenerate_zoom_limits.max == 1.5


def test_apply_settings_overrides_returns_same_object_when_none():
    settings = get_settings()

    # No overrides is the fast path: the cached model comes back untouched.
    assert apply_settings_overrides(settings, None) is settings
    assert apply_settings_overrides(settings, {}) is settings


def test_apply_settings_overrides_can_override_discovery_knobs():
    settings = get_settings()

    out = apply_settings_overrides(settings, {"discovery": {"default_scanner_radius_m": 80}})

    assert out.discovery.default_scanner_radius_m == 80
    # The shared cached settings must not change (it is reused across runs).
    assert settings.discovery.default_scanner_radius_m == 50
    assert out.map == settings.map


def test_apply_settings_overrides_rejects_disallowed_keys_with_clear_path():
    # `app` carries the log level; those are process-wide and not per-run knobs.
    with pytest.raises(ValueError, match=r"disallowed key: 'app'"):
        apply_settings_overrides(Settings(), {"app": {"log_level": "DEBUG"}})


def test_apply_settings_overrides_revalidates_ranges():
    with pytest.raises(ValueError):
        apply_settings_overrides(Settings(), {"map": {"degenerate_zoom_limits": {"min": 2.0, "max": 1.0}}})


def test_config_path_and_log_level_from_env(tmp_path, monkeypatch):
    config = tmp_path / "spotfinder.yaml"
    config.write_text("discovery:\n  default_snap_range_m: 250\n", encoding="utf-8")
    monkeypatch.setenv("SPOTFINDER_CONFIG_PATH", str(config))
    monkeypatch.setenv("SPOTFINDER_LOG_LEVEL", "DEBUG")
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.discovery.default_snap_range_m == 250
        assert settings.discovery.default_scanner_radius_m == 50
        assert settings.app.log_level == "DEBUG"
    finally:
        get_settings.cache_clear()


def test_dotted_override_keys_expand_into_groups():
    out = apply_settings_overrides(Settings(), {"map.max_detail_m": 30, "map": {"canvas_size_px": 2000}})

    assert out.map.max_detail_m == 30
    assert out.map.canvas_size_px == 2000
    assert out.map.adaptive_min_radius_m == 200


def test_group_value_must_be_a_mapping():
    with pytest.raises(ValueError, match=r"settings_overrides key 'discovery' must be a mapping"):
        apply_settings_overrides(Settings(), {"discovery": 1})


def test_configure_logging_level():
    assert configure_logging(Settings(), level="debug") == "DEBUG"
    assert logging.getLogger().level == logging.DEBUG
    assert configure_logging(Settings()) == "INFO"

    with pytest.raises(ValueError, match="Unknown log level"):
        configure_logging(level="chatty")
