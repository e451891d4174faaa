"""
Configuration management for the resource pipeline.
Supports TOML and JSON configuration files with environment overrides.
"""

import os
import json
from dataclasses import dataclass, fields, replace

# Handle tomllib import for different Python versions
try:
    import tomllib  # Python 3.11+
except ImportError:
    try:
        import tomli as tomllib  # Python < 3.11 with tomli package
    except ImportError:
        tomllib = None  # Fallback if no TOML support
from typing import Dict, List, Optional, Any, Union
from pathlib import Path


BUILD_MODES = ("embedded", "indexed")
FRAME_ORIGINS = ("top-left", "bottom-left")
TEXTURE_FILTERS = ("nearest", "linear")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ENV_PREFIX = "RESOURCE_PIPELINE_"


@dataclass(frozen=True)
class BuildConfig:
    """Immutable configuration passed into the pipeline entry point."""

    # Inputs
    spritesheets_dir: str = "./spritesheets"
    animations_meta: str = "./animations-meta.yml"
    spritesheets_meta: str = "./spritesheets-meta.yml"
    project_root: Optional[str] = None
    descriptor_suffix: str = ".anim.yml"

    # Output
    output: str = "./stage.res"

    # Build behaviour
    mode: str = "embedded"
    origin: str = "top-left"
    atomic: bool = False
    texture_filter: str = "nearest"

    log_level: str = "INFO"

    @property
    def scans_project(self) -> bool:
        """True when descriptors are discovered by walking a project root."""
        return self.project_root is not None

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "BuildConfig":
        """Load configuration from TOML or JSON file."""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        if config_path.suffix.lower() == '.toml':
            return cls._from_toml(config_path)
        elif config_path.suffix.lower() == '.json':
            return cls._from_json(config_path)
        else:
            raise ValueError(f"Unsupported configuration format: {config_path.suffix}")

    @classmethod
    def _from_toml(cls, config_path: Path) -> "BuildConfig":
        """Load configuration from TOML file."""
        if tomllib is None:
            raise ImportError("TOML support not available. Install tomli package for Python < 3.11")

        with open(config_path, 'rb') as f:
            data = tomllib.load(f)
        return cls._from_dict(data)

    @classmethod
    def _from_json(cls, config_path: Path) -> "BuildConfig":
        """Load configuration from JSON file."""
        with open(config_path, 'r') as f:
            data = json.load(f)
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "BuildConfig":
        """Create configuration from dictionary."""
        if not isinstance(data, dict):
            raise ValueError("configuration must be a table of sections")
        for section in ('paths', 'build', 'logging'):
            if section in data and not isinstance(data[section], dict):
                raise ValueError(f"configuration section '{section}' must be a table")

        config_data = {}

        if 'paths' in data:
            paths = data['paths']
            config_data['spritesheets_dir'] = paths.get('spritesheets', cls.spritesheets_dir)
            config_data['animations_meta'] = paths.get('animations_meta', cls.animations_meta)
            config_data['spritesheets_meta'] = paths.get('spritesheets_meta', cls.spritesheets_meta)
            config_data['project_root'] = paths.get('project_root')
            config_data['output'] = paths.get('output', cls.output)

        if 'build' in data:
            build = data['build']
            config_data['mode'] = build.get('mode', cls.mode)
            config_data['origin'] = build.get('origin', cls.origin)
            config_data['atomic'] = bool(build.get('atomic', cls.atomic))
            config_data['texture_filter'] = build.get('texture_filter', cls.texture_filter)
            config_data['descriptor_suffix'] = build.get('descriptor_suffix', cls.descriptor_suffix)

        if 'logging' in data:
            config_data['log_level'] = data['logging'].get('level', cls.log_level)

        return cls(**config_data)

    @classmethod
    def default(cls) -> "BuildConfig":
        """Create default configuration with environment variable overrides."""
        return cls.apply_env_overrides(cls())

    @classmethod
    def apply_env_overrides(cls, config: "BuildConfig") -> "BuildConfig":
        """Return a copy of config with RESOURCE_PIPELINE_* variables applied."""
        overrides: Dict[str, Any] = {}

        for name, var in ENV_VARIABLES.items():
            value = os.getenv(var)
            if not value:
                continue
            if name == 'atomic':
                overrides[name] = value.lower() in ('1', 'true', 'yes')
            else:
                overrides[name] = value

        return replace(config, **overrides) if overrides else config

    def with_overrides(self, **values: Any) -> "BuildConfig":
        """Return a copy with the given non-None values replaced."""
        known = {f.name for f in fields(self)}
        changes = {k: v for k, v in values.items() if v is not None and k in known}
        return replace(self, **changes) if changes else self

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if self.mode not in BUILD_MODES:
            errors.append(f"mode must be one of {', '.join(BUILD_MODES)}")

        if self.origin not in FRAME_ORIGINS:
            errors.append(f"origin must be one of {', '.join(FRAME_ORIGINS)}")

        if self.texture_filter not in TEXTURE_FILTERS:
            errors.append(f"texture_filter must be one of {', '.join(TEXTURE_FILTERS)}")

        if not self.descriptor_suffix:
            errors.append("descriptor_suffix cannot be empty")

        if not self.output:
            errors.append("output path cannot be empty")

        if self.log_level.upper() not in LOG_LEVELS:
            errors.append("log_level must be a standard logging level name")

        return errors


# Field name -> environment variable
ENV_VARIABLES = {
    'spritesheets_dir': f"{ENV_PREFIX}SPRITESHEETS_DIR",
    'animations_meta': f"{ENV_PREFIX}ANIMATIONS_META",
    'spritesheets_meta': f"{ENV_PREFIX}SPRITESHEETS_META",
    'project_root': f"{ENV_PREFIX}PROJECT_ROOT",
    'descriptor_suffix': f"{ENV_PREFIX}DESCRIPTOR_SUFFIX",
    'output': f"{ENV_PREFIX}OUTPUT",
    'mode': f"{ENV_PREFIX}MODE",
    'origin': f"{ENV_PREFIX}ORIGIN",
    'atomic': f"{ENV_PREFIX}ATOMIC",
    'texture_filter': f"{ENV_PREFIX}TEXTURE_FILTER",
    'log_level': f"{ENV_PREFIX}LOG_LEVEL",
}
