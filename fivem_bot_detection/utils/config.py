"""
Configuration Manager for FiveM Bot Detection
Loads configuration from YAML files with environment variable support
"""

import os
import re
import yaml
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class SteamConfig:
    """Steam player-summary lookup configuration"""
    api_key: str = ""
    api_url: str = "https://api.steampowered.com/ISteamUser/GetPlayerSummaries/v0002/"
    request_timeout_s: float = 10.0
    rate_limit_delay_ms: int = 100
    max_retries: int = 3
    max_concurrent: int = 5


@dataclass
class FiveMConfig:
    """Server list API configuration"""
    api_url: str = "https://servers-frontend.fivem.net/api/servers/single/"
    request_timeout_s: float = 30.0


@dataclass
class LogConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "console"
    output_file: Optional[str] = None


@dataclass
class OutputConfig:
    """Scan results output"""
    file: Optional[str] = None


@dataclass
class DetectionConfig:
    """Complete tool configuration"""
    steam: SteamConfig = field(default_factory=SteamConfig)
    fivem: FiveMConfig = field(default_factory=FiveMConfig)
    log_config: LogConfig = field(default_factory=LogConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


class ConfigurationManager:
    """Manages tool configuration from YAML files and environment variables"""

    def __init__(self, config_path: str):
        """
        Initialize configuration manager

        Args:
            config_path: Path to YAML configuration file
        """
        self.config_path = Path(config_path)
        self._config_data: Optional[Dict[str, Any]] = None
        self._config: Optional[DetectionConfig] = None

    def load_config(self) -> DetectionConfig:
        """
        Load and validate configuration from file

        Returns:
            DetectionConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}"
            )

        with open(self.config_path, 'r', encoding='utf-8') as f:
            try:
                raw_config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML syntax in {self.config_path}: {e}")

        if raw_config is None:
            raw_config = {}
        if not isinstance(raw_config, dict):
            raise ValueError(f"Configuration root must be a mapping: {self.config_path}")

        # Substitute environment variables
        self._config_data = self._substitute_env_vars(raw_config)

        self._config = parse_config(self._config_data)
        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation key

        Args:
            key: Dot-notation key (e.g., "steam.max_retries")
            default: Default value if key not found
        """
        if self._config_data is None:
            raise RuntimeError("Configuration not loaded. Call load_config() first.")

        value = self._config_data
        for k in key.split('.'):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def _substitute_env_vars(self, config: Any) -> Any:
        """
        Recursively substitute ${VAR_NAME} environment variables in config

        Supports both full-value and embedded substitution:
        - Full: "${STEAM_API_KEY}" -> "abc123"
        - Embedded: "https://api.com/?key=${STEAM_API_KEY}" -> "https://api.com/?key=abc123"
        """
        if isinstance(config, dict):
            return {k: self._substitute_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            def replace_var(match):
                var_name = match.group(1)
                value = os.getenv(var_name)
                if value is None:
                    raise ValueError(
                        f"Environment variable {var_name} not found"
                    )
                return value

            return re.sub(r'\$\{([^}]+)\}', replace_var, config)
        else:
            return config


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    return section


def parse_config(config: Dict[str, Any]) -> DetectionConfig:
    """
    Parse a raw configuration dictionary into typed objects

    Raises:
        ValueError: If configuration values are invalid
    """
    defaults = DetectionConfig()

    steam_data = _section(config, 'steam')
    steam = SteamConfig(
        api_key=steam_data.get('api_key') or os.getenv('STEAM_API_KEY', ''),
        api_url=steam_data.get('api_url', defaults.steam.api_url),
        request_timeout_s=float(steam_data.get('request_timeout_s', defaults.steam.request_timeout_s)),
        rate_limit_delay_ms=int(steam_data.get('rate_limit_delay_ms', defaults.steam.rate_limit_delay_ms)),
        max_retries=int(steam_data.get('max_retries', defaults.steam.max_retries)),
        max_concurrent=int(steam_data.get('max_concurrent', defaults.steam.max_concurrent)),
    )

    fivem_data = _section(config, 'fivem')
    fivem = FiveMConfig(
        api_url=fivem_data.get('api_url', defaults.fivem.api_url),
        request_timeout_s=float(fivem_data.get('request_timeout_s', defaults.fivem.request_timeout_s)),
    )

    log_data = _section(config, 'logging')
    log_config = LogConfig(
        level=log_data.get('level', defaults.log_config.level),
        format=log_data.get('format', defaults.log_config.format),
        output_file=log_data.get('output_file'),
    )

    output_data = _section(config, 'output')
    output = OutputConfig(file=output_data.get('file'))

    if steam.request_timeout_s <= 0 or fivem.request_timeout_s <= 0:
        raise ValueError("Request timeouts must be positive")
    if steam.max_retries < 0:
        raise ValueError("steam.max_retries cannot be negative")
    if steam.max_concurrent < 1:
        raise ValueError("steam.max_concurrent must be at least 1")
    if steam.rate_limit_delay_ms < 0:
        raise ValueError("steam.rate_limit_delay_ms cannot be negative")
    if log_config.format not in ('json', 'console'):
        raise ValueError(f"Unknown logging format: {log_config.format}")

    return DetectionConfig(steam=steam, fivem=fivem, log_config=log_config, output=output)


def default_config() -> DetectionConfig:
    """Configuration used when no file is given"""
    return parse_config({})
