"""Configuration loading and validation."""

import copy
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..api.ratelimit import RateLimiter, RateLimitPolicy, RateLimitSpec

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    'api': {
        'base_url': 'https://api.pro.coinbase.com',
        'sandbox_url': 'https://api-public.sandbox.pro.coinbase.com',
        'sandbox': False,
        'timeout': 10,
    },
    'rate_limits': {
        'policy': 'fail_fast',
        'classes': {
            'accounts': {'rate': 25, 'burst': 50},
            'private': {'rate': 15, 'burst': 30},
            'public': {'rate': 10, 'burst': 15},
        },
    },
    'logging': {
        'level': 'INFO',
        'log_dir': 'logs',
        'structured': True,
        'console': True,
    },
}

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


@dataclass
class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    message: str
    config_path: Optional[str] = None
    field_path: Optional[str] = None
    expected_type: Optional[str] = None
    actual_value: Optional[Any] = None

    def __str__(self) -> str:
        return self.message


def _type_name(expected_type) -> str:
    if isinstance(expected_type, tuple):
        return ' or '.join(t.__name__ for t in expected_type)
    return expected_type.__name__


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Loads the YAML configuration, applies environment overrides and validates it."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize ConfigManager.

        Args:
            config_path: Optional path to config file, defaults to config/default.yaml
        """
        self.config_path = config_path or "config/default.yaml"
        self._config: Dict[str, Any] = {}
        self._loaded = False

    def load_config(self, config_path: Optional[str] = None) -> Dict[str, Any]:
        """Load configuration from YAML file.

        Sections missing from the file take their default values.

        Args:
            config_path: Optional path to config file. Uses instance path if not provided.

        Returns:
            Dictionary containing loaded configuration

        Raises:
            ConfigValidationError: If config file is invalid or missing
        """
        path = config_path or self.config_path

        config_file = Path(path)
        if not config_file.exists():
            raise ConfigValidationError(
                f"Configuration file not found: {path}",
                config_path=path
            )

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigValidationError(
                f"Invalid YAML syntax in {path}: {str(e)}",
                config_path=path
            )
        except OSError as e:
            raise ConfigValidationError(
                f"Failed to read configuration from {path}: {str(e)}",
                config_path=path
            )

        if config_data is None:
            raise ConfigValidationError(
                f"Configuration file is empty: {path}",
                config_path=path
            )

        if not isinstance(config_data, dict):
            raise ConfigValidationError(
                f"Configuration must be a dictionary, got {type(config_data).__name__}",
                config_path=path,
                expected_type="dict",
                actual_value=type(config_data).__name__
            )

        config = self._apply_env_overrides(_merge(DEFAULT_CONFIG, config_data))
        self.validate(config, path)

        self._config = config
        self._loaded = True
        logger.info(f"Successfully loaded configuration from {path}")
        return copy.deepcopy(config)

    def load_defaults(self) -> Dict[str, Any]:
        """Use the built-in defaults (plus environment overrides) without a file."""
        config = self._apply_env_overrides(copy.deepcopy(DEFAULT_CONFIG))
        self.validate(config, "<defaults>")
        self._config = config
        self._loaded = True
        return copy.deepcopy(config)

    @staticmethod
    def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply CBPRO_SANDBOX, CBPRO_TIMEOUT and CBPRO_RATE_LIMIT_POLICY."""
        sandbox = os.getenv('CBPRO_SANDBOX')
        if sandbox is not None:
            config['api']['sandbox'] = sandbox.lower() in ('1', 'true', 'yes')

        timeout = os.getenv('CBPRO_TIMEOUT')
        if timeout is not None:
            try:
                config['api']['timeout'] = float(timeout)
            except ValueError:
                raise ConfigValidationError(
                    f"CBPRO_TIMEOUT must be a number, got {timeout!r}",
                    field_path="api.timeout",
                    expected_type="float",
                    actual_value=timeout
                )

        policy = os.getenv('CBPRO_RATE_LIMIT_POLICY')
        if policy is not None:
            config['rate_limits']['policy'] = policy.lower()

        return config

    def validate(self, config: Dict[str, Any], path: str) -> None:
        """Validate a complete (merged) configuration dictionary."""
        for section in ('api', 'rate_limits', 'logging'):
            if not isinstance(config.get(section), dict):
                raise ConfigValidationError(
                    f"Configuration section '{section}' must be a dictionary in {path}",
                    config_path=path,
                    field_path=section,
                    expected_type="dict",
                    actual_value=type(config.get(section)).__name__
                )

        self._validate_api_config(config['api'], path)
        self._validate_rate_limits_config(config['rate_limits'], path)
        self._validate_logging_config(config['logging'], path)

    def _check_fields(self, section: str, section_config: Dict[str, Any],
                      required_fields: Dict[str, Any], path: str) -> None:
        for field, expected_type in required_fields.items():
            if field not in section_config:
                raise ConfigValidationError(
                    f"Missing required {section} config field '{field}' in {path}",
                    config_path=path,
                    field_path=f"{section}.{field}"
                )

            value = section_config[field]
            # bool is an int subclass; reject it for numeric fields
            if not isinstance(value, expected_type) or (isinstance(value, bool) and expected_type is not bool):
                raise ConfigValidationError(
                    f"{section} config field '{field}' must be of type {_type_name(expected_type)} in {path}",
                    config_path=path,
                    field_path=f"{section}.{field}",
                    expected_type=_type_name(expected_type),
                    actual_value=type(value).__name__
                )

    def _validate_api_config(self, api_config: Dict[str, Any], path: str) -> None:
        """Validate API configuration section."""
        self._check_fields('api', api_config, {
            'base_url': str,
            'sandbox_url': str,
            'sandbox': bool,
            'timeout': (int, float),
        }, path)

        for field in ('base_url', 'sandbox_url'):
            if not api_config[field].startswith(('https://', 'http://')):
                raise ConfigValidationError(
                    f"API config '{field}' must be an http(s) URL in {path}",
                    config_path=path,
                    field_path=f"api.{field}",
                    expected_type="URL",
                    actual_value=api_config[field]
                )

        if api_config['timeout'] <= 0:
            raise ConfigValidationError(
                f"API config 'timeout' must be positive in {path}",
                config_path=path,
                field_path="api.timeout",
                expected_type="positive number",
                actual_value=api_config['timeout']
            )

    def _validate_rate_limits_config(self, rate_config: Dict[str, Any], path: str) -> None:
        """Validate rate limit configuration section."""
        self._check_fields('rate_limits', rate_config, {
            'policy': str,
            'classes': dict,
        }, path)

        valid_policies = [p.value for p in RateLimitPolicy]
        if rate_config['policy'] not in valid_policies:
            raise ConfigValidationError(
                f"Rate limit 'policy' must be one of {valid_policies} in {path}",
                config_path=path,
                field_path="rate_limits.policy",
                expected_type=f"one of {valid_policies}",
                actual_value=rate_config['policy']
            )

        for name, spec in rate_config['classes'].items():
            section = f"rate_limits.classes.{name}"
            if not isinstance(spec, dict):
                raise ConfigValidationError(
                    f"Rate limit class '{name}' must be a dictionary in {path}",
                    config_path=path,
                    field_path=section,
                    expected_type="dict",
                    actual_value=type(spec).__name__
                )
            self._check_fields(section, spec, {'rate': (int, float), 'burst': int}, path)
            if spec['rate'] <= 0 or spec['burst'] < 1:
                raise ConfigValidationError(
                    f"Rate limit class '{name}' needs rate > 0 and burst >= 1 in {path}",
                    config_path=path,
                    field_path=section,
                    expected_type="rate > 0, burst >= 1",
                    actual_value=spec
                )

    def _validate_logging_config(self, logging_config: Dict[str, Any], path: str) -> None:
        """Validate logging configuration section."""
        self._check_fields('logging', logging_config, {
            'level': str,
            'log_dir': str,
            'structured': bool,
            'console': bool,
        }, path)

        if logging_config['level'].upper() not in VALID_LOG_LEVELS:
            raise ConfigValidationError(
                f"Logging config 'level' must be one of {VALID_LOG_LEVELS} in {path}",
                config_path=path,
                field_path="logging.level",
                expected_type=f"one of {VALID_LOG_LEVELS}",
                actual_value=logging_config['level']
            )

    def get_config(self) -> Dict[str, Any]:
        """Get current configuration. Loads if not already loaded."""
        if not self._loaded:
            self.load_config()
        return copy.deepcopy(self._config)

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get specific configuration section."""
        config = self.get_config()
        if section not in config:
            raise ConfigValidationError(f"Configuration section '{section}' not found")
        return config[section]

    def get_api_config(self) -> Dict[str, Any]:
        return self.get_section('api')

    def build_rate_limiter(self) -> RateLimiter:
        """Create a RateLimiter from the rate_limits section."""
        rate_config = self.get_section('rate_limits')
        limits = {
            name: RateLimitSpec(rate=spec['rate'], burst=spec['burst'])
            for name, spec in rate_config['classes'].items()
        }
        return RateLimiter(limits, policy=RateLimitPolicy(rate_config['policy']))

    def validate_config_file(self, config_path: str) -> bool:
        """Validate a configuration file without keeping it.

        Args:
            config_path: Path to configuration file to validate

        Returns:
            True if valid, False otherwise
        """
        try:
            ConfigManager(config_path).load_config()
            return True
        except ConfigValidationError:
            return False
