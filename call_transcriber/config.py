"""
Configuration for the transcription provider.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'https://api.assemblyai.com'

API_KEY_ENV = 'ASSEMBLYAI_API_KEY'


@dataclass(frozen=True)
class ProviderConfig:
    """
    Settings for talking to the speech-analysis provider.

    Construction fails immediately when the API key is missing, so any code
    path holding a ProviderConfig is known to have a credential.
    """
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30
    max_retries: int = 3
    retry_delay_ms: int = 1000
    poll_interval_ms: int = 5000
    max_poll_attempts: int = 60
    pool_size: int = 10

    def __post_init__(self):
        errors = validate_config(self.as_dict(include_secret=True))
        if errors:
            raise ConfigurationError("; ".join(errors))

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, **overrides: Any) -> 'ProviderConfig':
        """
        Build a config from environment variables.

        Args:
            env_file: Optional .env file; existing environment variables win
            **overrides: Explicit values that take precedence over the environment

        Returns:
            ProviderConfig instance

        Raises:
            ConfigurationError: If ASSEMBLYAI_API_KEY is not set
        """
        if env_file is not None:
            if load_dotenv(env_file, override=False):
                logger.info(f"Loaded environment variables from {env_file}")
            else:
                logger.warning(f"Environment file not found or empty: {env_file}")

        values: Dict[str, Any] = {
            'api_key': os.getenv(API_KEY_ENV, ''),
            'base_url': os.getenv('ASSEMBLYAI_API_URL') or DEFAULT_BASE_URL,
        }
        numeric_env = {
            'timeout': ('TRANSCRIBER_TIMEOUT', float),
            'max_retries': ('TRANSCRIBER_MAX_RETRIES', int),
            'retry_delay_ms': ('TRANSCRIBER_RETRY_DELAY_MS', int),
            'poll_interval_ms': ('TRANSCRIBER_POLL_INTERVAL_MS', int),
            'max_poll_attempts': ('TRANSCRIBER_MAX_POLL_ATTEMPTS', int),
        }
        for name, (env_name, cast) in numeric_env.items():
            raw = os.getenv(env_name)
            if raw is None or raw == '':
                continue
            try:
                values[name] = cast(raw)
            except ValueError:
                raise ConfigurationError(f"Invalid value for {env_name}: {raw!r}")

        values.update(overrides)

        if not values['api_key']:
            raise ConfigurationError(f"{API_KEY_ENV} environment variable is required")

        return cls(**values)

    @property
    def poll_timeout_seconds(self) -> float:
        """Hard ceiling of a polling session."""
        return self.max_poll_attempts * self.poll_interval_ms / 1000.0

    def as_dict(self, include_secret: bool = False) -> Dict[str, Any]:
        return {
            'api_key': self.api_key if include_secret else bool(self.api_key),
            'base_url': self.base_url,
            'timeout': self.timeout,
            'max_retries': self.max_retries,
            'retry_delay_ms': self.retry_delay_ms,
            'poll_interval_ms': self.poll_interval_ms,
            'max_poll_attempts': self.max_poll_attempts,
            'pool_size': self.pool_size,
        }


def validate_config(config: Mapping[str, Any]) -> List[str]:
    """
    Validate configuration dictionary.

    Args:
        config: Configuration to validate

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    if not config.get('api_key'):
        errors.append(f"{API_KEY_ENV} is required")

    if 'base_url' in config:
        parsed = urlparse(str(config['base_url']))
        if not parsed.scheme or not parsed.netloc:
            errors.append("Invalid base_url format")

    if 'timeout' in config:
        try:
            if float(config['timeout']) <= 0:
                errors.append("Timeout must be positive")
        except (ValueError, TypeError):
            errors.append("Invalid timeout value")

    # max_retries counts attempts, so at least one call is always made
    positive_ints = ('max_retries', 'max_poll_attempts', 'pool_size')
    for name in positive_ints:
        if name in config:
            try:
                if int(config[name]) < 1:
                    errors.append(f"{name} must be at least 1")
            except (ValueError, TypeError):
                errors.append(f"Invalid {name} value")

    for name in ('retry_delay_ms', 'poll_interval_ms'):
        if name in config:
            try:
                if int(config[name]) < 0:
                    errors.append(f"{name} cannot be negative")
            except (ValueError, TypeError):
                errors.append(f"Invalid {name} value")

    return errors


def health_report(env: Optional[Mapping[str, str]] = None, version: Optional[str] = None) -> Dict[str, Any]:
    """
    Summarize whether the provider integration is configured.

    Args:
        env: Environment mapping to inspect (defaults to os.environ)
        version: Version string to report

    Returns:
        Health status dictionary
    """
    if env is None:
        env = os.environ
    if version is None:
        from . import __version__ as version

    report = {
        'status': 'healthy',
        'services': {
            'assemblyai': 'not_configured',
            'environment': 'healthy',
        },
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'version': version,
    }

    api_key = env.get(API_KEY_ENV)
    if not api_key:
        report['services']['environment'] = 'unhealthy'
        report['status'] = 'unhealthy'
    elif len(api_key) > 10:
        report['services']['assemblyai'] = 'healthy'
    else:
        report['services']['assemblyai'] = 'unhealthy'
        report['status'] = 'unhealthy'

    return report
