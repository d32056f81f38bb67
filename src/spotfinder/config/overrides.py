"""
Per-run settings overrides.

A simulation can retune discovery radii or map clamps without editing YAML:

    {"discovery": {"default_scanner_radius_m": 80}}
    {"map.max_detail_m": 30}

Dotted keys are expanded into nested mappings first. Only the `discovery` and `map`
groups are accepted; `app` (name, log level) is process-wide. The merged payload
is re-validated, so range checks still apply.
"""

from __future__ import annotations

from typing import Any, Mapping

from spotfinder.config.settings import Settings

OVERRIDABLE_GROUPS = frozenset({"discovery", "map"})


def _expand_dotted(overrides: Mapping[str, Any]) -> dict[str, Any]:
    nested: dict[str, Any] = {}
    for key, value in overrides.items():
        *parents, leaf = str(key).split(".")
        node = nested
        for part in parents:
            node = node.setdefault(part, {})
            if not isinstance(node, dict):
                raise ValueError(f"settings_overrides key '{key}' conflicts with a scalar value")
        if isinstance(value, Mapping) and isinstance(node.get(leaf), dict):
            node[leaf] = _merge(node[leaf], value)
        else:
            node[leaf] = dict(value) if isinstance(value, Mapping) else value
    return nested


def _merge(base: Mapping[str, Any], update: Mapping[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for key, value in update.items():
        current = out.get(key)
        out[key] = _merge(current, value) if isinstance(current, Mapping) and isinstance(value, Mapping) else value
    return out


def apply_settings_overrides(settings: Settings, overrides: Mapping[str, Any] | None) -> Settings:
    """Return a new validated Settings with the overrides applied (same object when empty).

    Raises:
        ValueError: On a group outside `OVERRIDABLE_GROUPS`, a non-mapping group value,
            or values that fail validation.
    """
    if not overrides:
        return settings

    expanded = _expand_dotted(overrides)
    for group, value in expanded.items():
        if group not in OVERRIDABLE_GROUPS:
            raise ValueError(f"settings_overrides contains a disallowed key: '{group}'")
        if not isinstance(value, Mapping):
            raise ValueError(f"settings_overrides key '{group}' must be a mapping")

    return Settings.model_validate(_merge(settings.model_dump(mode="python"), expanded))
