"""
YAML configuration loader: presets, type coercion and command-line overrides.
"""

import yaml
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Tuple, Union
from dataclasses import fields, is_dataclass

from ..errors import ConfigurationError
from .schema import (
    SimulationConfig, GridConfig, FlowConfig, ModelConfig, SolverSettings,
    GeometryConfig, OutputConfig,
    quick_preset, default_preset,
)

_SECTIONS = {
    'grid': GridConfig,
    'flow': FlowConfig,
    'model': ModelConfig,
    'solver': SolverSettings,
    'geometry': GeometryConfig,
    'output': OutputConfig,
}

_PRESETS: Dict[str, Callable[[], GridConfig]] = {
    'quick': quick_preset,
    'default': default_preset,
}

# argparse destination -> (section, field)
_CLI_MAPPING: Dict[str, Tuple[str, str]] = {
    'nx': ('grid', 'nx'),
    'ny': ('grid', 'ny'),
    'length': ('grid', 'length'),
    'xoffset': ('grid', 'xoffset'),
    'yoffset': ('grid', 'yoffset'),
    're': ('flow', 'reynolds'),
    'alpha': ('flow', 'alpha'),
    'model': ('model', 'type'),
    'baseflow': ('model', 'baseflow'),
    'pbaseflow': ('model', 'periodic_baseflow'),
    'period': ('model', 'period'),
    'period_start': ('model', 'period_start'),
    'phase': ('model', 'phase'),
    'subtract_baseflow': ('model', 'subtract_baseflow'),
    'scheme': ('solver', 'scheme'),
    'dt': ('solver', 'dt'),
    'nsteps': ('solver', 'nsteps'),
    'projection': ('solver', 'projection'),
    'tol': ('solver', 'tol'),
    'geom': ('geometry', 'file'),
    'outdir': ('output', 'directory'),
    'name': ('output', 'name'),
    'ic': ('output', 'initial_condition'),
    'restart': ('output', 'restart_freq'),
    'force': ('output', 'force_freq'),
    'vtk': ('output', 'vtk_freq'),
    'plot': ('output', 'plot_freq'),
}

_TRUE_STRINGS = ('1', 'true', 'yes', 'on')


def _merge_dict(base: Mapping, override: Mapping) -> dict:
    """Nested merge; values in override win."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _merge_dict(current, value)
        else:
            merged[key] = value
    return merged


def _coerce_type(value, field_type):
    """Best-effort conversion of a YAML/CLI value to a field's declared type."""
    if field_type is str:
        return "" if value is None else value
    if isinstance(value, bool):
        return value
    if field_type is bool and isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    if field_type in (float, int) and isinstance(value, (str, int)):
        # "1e-10" is read as a string by YAML 1.1
        try:
            return field_type(value)
        except ValueError:
            return value
    return value


def _dict_to_dataclass(cls, data):
    """Build one config section from a mapping, ignoring unknown keys."""
    if not is_dataclass(cls):
        return data
    if not isinstance(data, Mapping):
        raise ConfigurationError(
            f"Section for {cls.__name__} must be a mapping, got {type(data).__name__}")

    declared = {f.name: f.type for f in fields(cls)}
    kwargs = {}
    for key, value in data.items():
        if key not in declared:
            continue
        field_type = declared[key]
        if is_dataclass(field_type) and isinstance(value, Mapping):
            kwargs[key] = _dict_to_dataclass(field_type, value)
        else:
            kwargs[key] = _coerce_type(value, field_type)
    return cls(**kwargs)


def load_yaml(path: Union[str, Path]) -> SimulationConfig:
    """
    Read a run configuration from YAML.

    Parameters
    ----------
    path : str or Path
        Configuration file. An empty file gives the defaults.

    Raises
    ------
    ConfigurationError
        If the file is missing, is not valid YAML or is not a mapping.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    data = {} if data is None else data
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")
    return from_dict(data)


def from_dict(data: Dict[str, Any]) -> SimulationConfig:
    """
    Build a SimulationConfig from nested mappings.

    A top-level 'preset' names a grid preset; explicit 'grid' entries are
    merged on top of it. Missing sections take their defaults.
    """
    data = dict(data)

    preset = data.pop('preset', None)
    if preset:
        if preset not in _PRESETS:
            raise ConfigurationError(
                f"Unknown preset '{preset}' (expected one of: {', '.join(_PRESETS)})")
        grid_preset = _PRESETS[preset]()
        preset_dict = {f.name: getattr(grid_preset, f.name) for f in fields(GridConfig)}
        data['grid'] = _merge_dict(preset_dict, data.get('grid') or {})

    sections = {
        name: _dict_to_dataclass(cls, data[name])
        for name, cls in _SECTIONS.items()
        if data.get(name) is not None
    }
    if 'geometry' in sections and sections['geometry'].bodies is None:
        sections['geometry'].bodies = []

    return SimulationConfig(**sections)


def apply_cli_overrides(config: SimulationConfig, args) -> SimulationConfig:
    """
    Return a copy of config with the command-line values that were given.

    Arguments left at None (not passed on the command line) keep the
    configured value. The input config is not modified.
    """
    overrides: Dict[str, Dict[str, Any]] = {}
    for dest, (section, name) in _CLI_MAPPING.items():
        value = getattr(args, dest, None)
        if value is not None:
            overrides.setdefault(section, {})[name] = value

    return from_dict(_merge_dict(config.to_dict(), overrides))


def save_yaml(config: SimulationConfig, path: Union[str, Path]) -> None:
    """Write config to YAML, creating the parent directory."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
