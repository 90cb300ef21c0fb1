import math
from dataclasses import fields
from pathlib import Path

import yaml


def load_configuration(config_path: Path) -> dict:
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    with config_path.open("r", encoding="utf-8") as file:
        configuration = yaml.safe_load(file)
    return configuration or {}


def _coerce_parameter_value(location: str, default, value):
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ValueError(f"{location} must be true or false, got {value!r}")
        return value
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{location} must be an integer, got {value!r}")
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"{location} must be an integer, got {value!r}")
        return int(value)
    if isinstance(default, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValueError(f"{location} must be a finite number, got {value!r}")
        return float(value)
    if isinstance(default, tuple):
        if not isinstance(value, (list, tuple)):
            raise ValueError(f"{location} must be a list, got {value!r}")
        return tuple(tuple(item) if isinstance(item, list) else item for item in value)
    if isinstance(default, str):
        if not isinstance(value, str):
            raise ValueError(f"{location} must be a string, got {value!r}")
        return value
    if isinstance(default, dict):
        if not isinstance(value, dict):
            raise ValueError(f"{location} must be a mapping, got {value!r}")
        return value
    return value


def require_parameter_range(
    parameters,
    field_name: str,
    minimum: float | None = None,
    maximum: float | None = None,
    exclusive: bool = False,
) -> None:
    value = getattr(parameters, field_name)
    below = minimum is not None and (value <= minimum if exclusive else value < minimum)
    above = maximum is not None and (value >= maximum if exclusive else value > maximum)
    if below or above:
        lower = "-inf" if minimum is None else minimum
        upper = "inf" if maximum is None else maximum
        interval = f"({lower}, {upper})" if exclusive else f"[{lower}, {upper}]"
        raise ValueError(f"{field_name} must be in {interval}, got {value!r}")


def load_parameters(parameter_type, configuration: dict | None, section_name: str):
    """Overlay one YAML section onto the defaults of a parameter dataclass.

    Keys that the dataclass does not declare are ignored so that a shared
    configuration file can carry settings for other components.
    """
    section = (configuration or {}).get(section_name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"{section_name} must be a mapping, got {section!r}")
    defaults = parameter_type()
    parameter_values = {field.name: getattr(defaults, field.name) for field in fields(defaults)}
    for key, value in section.items():
        if key in parameter_values:
            parameter_values[key] = _coerce_parameter_value(
                f"{section_name}.{key}",
                parameter_values[key],
                value,
            )
    try:
        return parameter_type(**parameter_values)
    except ValueError as error:
        raise ValueError(f"{section_name}.{error}") from error
