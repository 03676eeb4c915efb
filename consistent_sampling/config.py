"""Configuration loading for consistent sampling.

Configuration comes from, in increasing priority: defaults, a TOML file,
``CONSISTENT_SAMPLING_*`` environment variables and explicit overrides.
"""

from __future__ import annotations

import logging
import os
import random
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Literal, Optional, Tuple

from opentelemetry.sdk.trace.sampling import Sampler
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from consistent_sampling import runtime_config
from consistent_sampling.errors import ConfigError
from consistent_sampling.sampling.composed import ComposedSampler
from consistent_sampling.sampling.fixed_rate import ConsistentFixedRateSampler
from consistent_sampling.sampling.modes import RecordingMode
from consistent_sampling.sampling.random_source import RandomBitSource
from consistent_sampling.sampling.reservoir import ReservoirSampler
from consistent_sampling.sampling.skip_period import SkipPeriodSampler
from consistent_sampling.sampling.trace_id_ratio import AdvancedTraceIdRatioBasedSampler

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "consistent-sampling.toml"
ENV_PREFIX = "CONSISTENT_SAMPLING_"

# flat key -> (section, key)
_FLAT_KEYS: Dict[str, Tuple[str, str]] = {
    "sampler": ("sampling", "sampler"),
    "rate": ("sampling", "rate"),
    "period_millis": ("sampling", "period_millis"),
    "recording_mode": ("sampling", "recording_mode"),
    "seed": ("sampling", "seed"),
    "reservoir_capacity": ("reservoir", "capacity"),
    "debug": ("logging", "debug"),
}

_BOOL_KEYS = {"debug"}
_FLOAT_KEYS = {"rate"}
_INT_KEYS = {"period_millis", "seed", "reservoir_capacity"}


class SamplingConfig(BaseModel):
    """Sampler selection and parameters."""

    model_config = ConfigDict(extra="ignore")

    sampler: Literal["fixed_rate", "trace_id_ratio", "skip_period", "composed"] = Field(
        default="fixed_rate",
        description="Sampler implementation to build",
    )
    rate: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Sampling rate for fixed_rate, trace_id_ratio and composed",
    )
    period_millis: int = Field(
        default=1000,
        gt=0,
        description="Skip period for skip_period and composed",
    )
    recording_mode: str = Field(
        default=RecordingMode.ANCESTOR_LINK_AND_DISTANCE.name,
        description="Ancestor bookkeeping of dropped spans",
    )
    seed: Optional[int] = Field(
        default=None,
        description="Seed of the random bit source, random if unset",
    )

    @field_validator("recording_mode")
    @classmethod
    def _check_recording_mode(cls, value: str) -> str:
        return RecordingMode.from_name(value).name


class ReservoirConfig(BaseModel):
    """Bounded reservoir settings."""

    model_config = ConfigDict(extra="ignore")

    capacity: int = Field(default=1000, gt=0, description="Maximum number of samples")


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    debug: bool = Field(default=False, description="Enable internal self-checks")


class ConsistentSamplingConfig(BaseModel):
    """Complete configuration."""

    model_config = ConfigDict(extra="ignore")

    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    reservoir: ReservoirConfig = Field(default_factory=ReservoirConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def get_recording_mode(self) -> RecordingMode:
        return RecordingMode.from_name(self.sampling.recording_mode)


def find_config_file() -> Optional[str]:
    """
    Look for a config file in the current directory, then the home directory.

    Returns:
        Path of the first config file found, or None
    """
    candidates = [
        Path.cwd() / CONFIG_FILE_NAME,
        Path.home() / f".{CONFIG_FILE_NAME}",
    ]
    for candidate in candidates:
        if candidate.is_file():
            return str(candidate)
    return None


def load_toml_config(path: str) -> Dict[str, Any]:
    """
    Read a TOML config file.

    Returns an empty dict for a missing file.

    Raises:
        ConfigError: if the file is not valid TOML
    """
    config_path = Path(path)
    if not config_path.is_file():
        return {}
    try:
        with config_path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in config file: {e}", {"path": str(path)}) from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}", {"path": str(path)}) from e


def _convert_env_value(key: str, raw: str) -> Any:
    if key in _BOOL_KEYS:
        return raw.strip().lower() in ("1", "true", "yes", "on")
    try:
        if key in _FLOAT_KEYS:
            return float(raw)
        if key in _INT_KEYS:
            return int(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid value for {ENV_PREFIX}{key.upper()}: {raw!r}") from e
    return raw.strip()


def load_config_from_env(flat: bool = False) -> Dict[str, Any]:
    """
    Read ``CONSISTENT_SAMPLING_*`` environment variables.

    Args:
        flat: Return flat keys (``rate``) instead of sections (``sampling.rate``)

    Returns:
        Values of the variables that are set, converted to their types
    """
    result: Dict[str, Any] = {}
    for flat_key, (section, key) in _FLAT_KEYS.items():
        raw = os.environ.get(f"{ENV_PREFIX}{flat_key.upper()}")
        if raw is None:
            continue
        value = _convert_env_value(flat_key, raw)
        if flat:
            result[flat_key] = value
        else:
            result.setdefault(section, {})[key] = value
    return result


def _to_sections(values: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Normalize a mix of sections and flat keys into sections."""
    sections: Dict[str, Dict[str, Any]] = {}
    for key, value in values.items():
        if key in ConsistentSamplingConfig.model_fields and isinstance(value, dict):
            sections.setdefault(key, {}).update(value)
        elif key in _FLAT_KEYS:
            section, section_key = _FLAT_KEYS[key]
            sections.setdefault(section, {})[section_key] = value
        else:
            logger.warning(f"Ignoring unknown configuration key: {key}")
    return sections


def _warn_unknown_keys(sections: Dict[str, Dict[str, Any]]) -> None:
    models = {
        "sampling": SamplingConfig,
        "reservoir": ReservoirConfig,
        "logging": LoggingConfig,
    }
    for section, values in sections.items():
        unknown = set(values) - set(models[section].model_fields)
        for key in sorted(unknown):
            logger.warning(f"Ignoring unknown configuration key: {section}.{key}")


def _merge(base: Dict[str, Dict[str, Any]], other: Dict[str, Dict[str, Any]]) -> None:
    for section, values in other.items():
        base.setdefault(section, {}).update(values)


def load_config(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ConsistentSamplingConfig:
    """
    Load the configuration.

    Priority: overrides > environment variables > config file > defaults.

    Args:
        config_file: Path to a TOML file; searched with find_config_file if None
        overrides: Explicit values, either sections or flat keys

    Returns:
        Validated configuration

    Raises:
        ConfigError: if the file or a value is invalid
    """
    merged: Dict[str, Dict[str, Any]] = {}

    path = config_file or find_config_file()
    if path:
        file_values = load_toml_config(path)
        if file_values:
            logger.info(f"Loaded consistent sampling config from {path}")
        _merge(merged, _to_sections(file_values))

    _merge(merged, load_config_from_env(flat=False))

    if overrides:
        _merge(merged, _to_sections(overrides))

    _warn_unknown_keys(merged)
    try:
        return ConsistentSamplingConfig(**merged)
    except (PydanticValidationError, ValueError) as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def validate_config(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Tuple[bool, str, Optional[ConsistentSamplingConfig]]:
    """
    Validate a configuration without raising.

    Returns:
        Tuple of (is_valid, message, config or None)
    """
    try:
        config = load_config(config_file=config_file, overrides=overrides)
    except ConfigError as e:
        return False, str(e), None
    return True, "Configuration is valid", config


def create_sampler(config: Optional[ConsistentSamplingConfig] = None) -> Sampler:
    """
    Build the sampler described by the configuration.

    Also applies ``logging.debug`` and ``sampling.recording_mode`` to the
    runtime configuration, so samplers created later without an explicit
    mode use the configured one.
    """
    if config is None:
        config = load_config()
    sampling = config.sampling
    mode = config.get_recording_mode()
    runtime_config.set_debug(config.logging.debug)
    runtime_config.set_default_recording_mode(mode)

    bits = RandomBitSource(sampling.seed) if sampling.seed is not None else None

    if sampling.sampler == "trace_id_ratio":
        sampler = AdvancedTraceIdRatioBasedSampler.create(mode, sampling.rate)
    elif sampling.sampler == "skip_period":
        sampler = SkipPeriodSampler(
            sampling.period_millis, random_bit_generator=bits, recording_mode=mode
        )
    elif sampling.sampler == "composed":
        component_bits = bits.split() if bits is not None else None
        sampler = ComposedSampler(
            ConsistentFixedRateSampler(sampling.rate, component_bits, mode),
            SkipPeriodSampler(
                sampling.period_millis, random_bit_generator=component_bits, recording_mode=mode
            ),
            random_bit_generator=bits,
            recording_mode=mode,
        )
    else:
        sampler = ConsistentFixedRateSampler(sampling.rate, bits, mode)

    logger.info(f"Created sampler {sampler.get_description()}")
    return sampler


def create_reservoir(
    config: Optional[ConsistentSamplingConfig],
    greatest_sample_rate_index: Callable[[Any], int],
    sample_rate_index_to_sample_rate: Callable[[int], float],
) -> ReservoirSampler:
    """Build a reservoir sampler with the configured capacity."""
    if config is None:
        config = load_config()
    rng = random.Random(config.sampling.seed) if config.sampling.seed is not None else None
    return ReservoirSampler(
        config.reservoir.capacity,
        greatest_sample_rate_index,
        sample_rate_index_to_sample_rate,
        random=rng,
    )
