"""
Configuration loaders for YAML and JSON files.

This module provides functions to load and validate sandpile configurations
from YAML/JSON files, accepting either flat keys or the nested sections
written by save_config().
"""

from typing import Dict, Any, Union
from pathlib import Path
import yaml
import json

from pydantic import ValidationError

from sandpile.core.errors import InvalidConfiguration
from sandpile.core.simulation import SimulationConfig


# Field mapping for nested structures
FIELD_MAPPINGS = {
    'grid': {
        'cols': 'cols',
        'rows': 'rows',
        'width': 'cols',
        'height': 'rows',
    },
    'dynamics': {
        'threshold': 'threshold',
        'drop_mode': 'drop_mode',
        'relax_policy': 'relax_policy',
        'policy': 'relax_policy',
        'decay_factor': 'decay_factor',
    },
    'display': {
        'scale': 'scale',
        'delay_ms': 'delay_ms',
        'delay': 'delay_ms',
    },
    'misc': {
        'random_seed': 'random_seed',
        'seed': 'random_seed',
        'verbose': 'verbose',
    },
}


def load_config(filename: Union[str, Path], **overrides) -> SimulationConfig:
    """
    Load sandpile configuration from YAML or JSON file.

    Parameters
    ----------
    filename : str or Path
        Path to configuration file (.yaml, .yml, or .json)
    **overrides : keyword arguments
        Override specific config values (e.g., relax_policy="full")

    Returns
    -------
    config : SimulationConfig
        Validated configuration

    Raises
    ------
    FileNotFoundError
        If configuration file does not exist
    InvalidConfiguration
        If file format is unsupported or config is invalid

    Examples
    --------
    >>> config = load_config("sandpile.yaml")
    >>> config = load_config("sandpile.yaml", drop_mode="random", random_seed=7)
    """
    filepath = Path(filename)

    if not filepath.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    suffix = filepath.suffix.lower()
    if suffix in ['.yaml', '.yml']:
        config_dict = load_yaml(filepath)
    elif suffix == '.json':
        config_dict = load_json(filepath)
    else:
        raise InvalidConfiguration(
            f"Unsupported config file format: {suffix}. "
            "Use .yaml, .yml, or .json"
        )

    flat_config = flatten_config(config_dict)
    flat_config.update(overrides)

    try:
        return SimulationConfig(**flat_config)
    except ValidationError as e:
        raise InvalidConfiguration(
            f"Configuration validation failed for {filepath}: {e}"
        ) from e


def load_yaml(filepath: Path) -> Dict[str, Any]:
    """Load YAML configuration file (an empty file yields an empty dict)."""
    with open(filepath, 'r') as f:
        try:
            config_dict = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidConfiguration(f"Invalid YAML in {filepath}: {e}") from e

    if config_dict is None:
        config_dict = {}

    return _require_mapping(config_dict, filepath)


def load_json(filepath: Path) -> Dict[str, Any]:
    """Load JSON configuration file."""
    with open(filepath, 'r') as f:
        try:
            config_dict = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidConfiguration(f"Invalid JSON in {filepath}: {e}") from e

    return _require_mapping(config_dict, filepath)


def _require_mapping(config_dict: Any, filepath: Path) -> Dict[str, Any]:
    if not isinstance(config_dict, dict):
        raise InvalidConfiguration(
            f"Configuration in {filepath} must be a mapping, "
            f"got {type(config_dict).__name__}"
        )
    return config_dict


def flatten_config(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten nested configuration dictionary.

    Converts nested structures like:
        {'grid': {'width': 80, 'height': 60}}
    to:
        {'cols': 80, 'rows': 60}

    Keys in unknown sections are passed through unchanged.

    Parameters
    ----------
    config_dict : Dict[str, Any]
        Nested configuration dictionary

    Returns
    -------
    flat_dict : Dict[str, Any]
        Flattened configuration dictionary
    """
    flat = {}

    for key, value in config_dict.items():
        if key in FIELD_MAPPINGS and isinstance(value, dict):
            for subkey, subvalue in value.items():
                flat[FIELD_MAPPINGS[key].get(subkey, subkey)] = subvalue
        elif isinstance(value, dict):
            flat.update(flatten_config(value))
        else:
            flat[key] = value

    return flat


def save_config(config: SimulationConfig, filename: Union[str, Path]) -> None:
    """
    Save SimulationConfig to a YAML or JSON file.

    Parameters
    ----------
    config : SimulationConfig
        Configuration to save
    filename : str or Path
        Output file path (.yaml, .yml or .json)
    """
    filepath = Path(filename)
    config_dict = config.model_dump()

    # Organize into nested structure for readability
    organized = {
        'grid': {
            'cols': config_dict['cols'],
            'rows': config_dict['rows'],
        },
        'dynamics': {
            'threshold': config_dict['threshold'],
            'drop_mode': config_dict['drop_mode'],
            'relax_policy': config_dict['relax_policy'],
            'decay_factor': config_dict['decay_factor'],
        },
        'display': {
            'scale': config_dict['scale'],
            'delay_ms': config_dict['delay_ms'],
        },
        'misc': {
            'random_seed': config_dict['random_seed'],
            'verbose': config_dict['verbose'],
        },
    }

    suffix = filepath.suffix.lower()
    if suffix in ['.yaml', '.yml']:
        with open(filepath, 'w') as f:
            yaml.dump(organized, f, default_flow_style=False, sort_keys=False)
    elif suffix == '.json':
        with open(filepath, 'w') as f:
            json.dump(organized, f, indent=2)
    else:
        raise ValueError(f"Unsupported output format: {suffix}. Use .yaml or .json")


def config_from_dict(config_dict: Dict[str, Any]) -> SimulationConfig:
    """
    Create SimulationConfig from dictionary (helper for programmatic use).

    Raises
    ------
    InvalidConfiguration
        If the values do not validate.
    """
    if not isinstance(config_dict, dict):
        raise InvalidConfiguration(
            f"Configuration must be a mapping, got {type(config_dict).__name__}"
        )
    flat = flatten_config(config_dict)
    try:
        return SimulationConfig(**flat)
    except ValidationError as e:
        raise InvalidConfiguration(f"Configuration validation failed: {e}") from e
