"""
Configuration management for SetWave.

Loads and validates TOML config against strict bounds.
All tunable scoring weights and size limits are bounded and validated at startup.
"""

import copy
import os
from pathlib import Path
from typing import Dict, Any, Optional
import toml
import logging

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when config validation fails."""
    pass


class Config:
    """Configuration loader and validator."""

    # Numeric parameter bounds (inclusive)
    PARAM_BOUNDS = {
        "setlist": {
            "max_pool_size": (10, 200),
            "max_setlist_length": (5, 100),
            "default_target_bpm": (40, 250),
        },
        "scoring": {
            "energy_weight": (0.0, 100.0),
            "flow_bpm_weight": (0.0, 100.0),
            "harmonic_weight": (0.0, 100.0),
            "vibe_weight": (0.0, 100.0),
            "flow_bpm_limit": (1.0, 50.0),
            "flow_bpm_penalty": (10.0, 100000.0),
            "missing_tempo_penalty": (1.0, 1000.0),
            "jitter_magnitude": (0.0, 100.0),
            "strict_bpm_jump": (1.0, 50.0),
        },
        "sequencing": {
            "policy": None,  # Choice type
            "energy_curve": None,  # Choice type
        },
        "enrichment": {
            "concurrency_limit": (1, 32),
            "vibe_jitter": (0.0, 50.0),
            "cache_path": None,  # String type
        },
    }

    # Allowed values for string parameters
    PARAM_CHOICES = {
        "sequencing": {
            "policy": ("weighted", "strict"),
            "energy_curve": ("wave", "single_peak"),
        },
    }

    DEFAULT_CONFIG = {
        "config_version": "1.0",
        "setlist": {
            "max_pool_size": 50,
            "max_setlist_length": 30,
            "default_target_bpm": 128,
        },
        "scoring": {
            "energy_weight": 15.0,
            "flow_bpm_weight": 20.0,
            "harmonic_weight": 10.0,
            "vibe_weight": 5.0,
            "flow_bpm_limit": 10.0,
            "flow_bpm_penalty": 1000.0,
            "missing_tempo_penalty": 100.0,
            "jitter_magnitude": 10.0,
            "strict_bpm_jump": 5.0,
        },
        "sequencing": {
            "policy": "weighted",
            "energy_curve": "wave",
        },
        "enrichment": {
            "concurrency_limit": 8,
            "vibe_jitter": 10.0,
            "cache_path": "data/cache/features.sqlite",
        },
    }

    def __init__(self, config_dict: Dict[str, Any]):
        """Initialize config from dictionary."""
        self.data = config_dict
        self._validate()

    @classmethod
    def default(cls) -> "Config":
        """Build a config holding only the defaults."""
        return cls(copy.deepcopy(cls.DEFAULT_CONFIG))

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """
        Load config from TOML file.

        Args:
            config_path: Path to setwave.toml. If None, uses SETWAVE_CONFIG_PATH env var
                        or defaults to configs/setwave.toml.

        Returns:
            Config instance.

        Raises:
            ConfigError: If config is invalid or unreadable.
        """
        if config_path is None:
            config_path = os.getenv("SETWAVE_CONFIG_PATH", "configs/setwave.toml")

        config_path = Path(config_path)

        if not config_path.exists():
            logger.warning(f"Config file not found: {config_path}. Using defaults.")
            return cls.default()

        try:
            config_dict = toml.load(config_path)
        except (OSError, toml.TomlDecodeError) as e:
            raise ConfigError(f"Failed to load config from {config_path}: {e}")

        logger.info(f"Loaded config from {config_path}")
        return cls(config_dict)

    def _validate(self) -> None:
        """
        Validate all config parameters against bounds and allowed choices.

        Raises:
            ConfigError: If any parameter is out of bounds or not an allowed choice.
        """
        for section, params in self.PARAM_BOUNDS.items():
            if section not in self.data:
                logger.warning(f"Missing config section: {section}. Using defaults.")
                self.data[section] = dict(self.DEFAULT_CONFIG.get(section, {}))
                continue

            section_data = self.data[section]

            for param, bounds in params.items():
                if param not in section_data:
                    default_val = self.DEFAULT_CONFIG.get(section, {}).get(param)
                    if default_val is not None:
                        logger.warning(f"Missing param {section}.{param}. Using default: {default_val}")
                        section_data[param] = default_val
                    continue

                value = section_data[param]

                choices = self.PARAM_CHOICES.get(section, {}).get(param)
                if choices is not None:
                    if value not in choices:
                        raise ConfigError(
                            f"Parameter {section}.{param}={value!r} must be one of {list(choices)}"
                        )
                    continue

                # Plain string params (no bounds check needed)
                if bounds is None:
                    continue

                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ConfigError(f"Parameter {section}.{param}={value!r} must be a number")

                min_val, max_val = bounds
                if not (min_val <= value <= max_val):
                    raise ConfigError(
                        f"Parameter {section}.{param}={value} out of bounds "
                        f"[{min_val}, {max_val}]"
                    )

        logger.debug("✅ Config validation passed")

    def get(self, section: str, param: str, default: Any = None) -> Any:
        """Get a config parameter safely."""
        return self.data.get(section, {}).get(param, default)

    def __getitem__(self, section: str) -> Dict[str, Any]:
        """Allow dict-like access: config["scoring"]"""
        return self.data.get(section, {})

    def __repr__(self) -> str:
        version = self.data.get('config_version', 'unknown')
        policy = self.get("sequencing", "policy")
        return f"Config(version={version}, policy={policy})"
