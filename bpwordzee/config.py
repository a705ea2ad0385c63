"""Configuration loader for the word finder"""

from __future__ import annotations
import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError

CONFIG_ENV_VAR = 'BPWORDZEE_CONFIG'
DEFAULT_CONFIG_PATH = 'config.yaml'

DEFAULT_CONFIG: Dict[str, Any] = {
    'app': {
        'title': 'BpWordzee Server',
        'version': '0.1.0',
        'origin': 'http://127.0.0.1',
    },
    'word_source': {
        'endpoint': 'http://127.0.0.1/api/bpwordzee',
        # None disables httpx's timeout; hangs are left to the caller
        'timeout': None,
    },
    'ranking': {
        'top_n': 10,
    },
    'cache': {
        'prefix': 'bpwordzee',
        'version': '20260203-1915',
        'skip_waiting_on_install': True,
        'api_path_marker': '/api/',
        'api_host_marker': 'api.',
        'offline_message': 'No se pudo conectar con el servidor. Verifica tu conexión a internet.',
        'precache': [
            './',
            './index.html',
            './front/index.css',
            './front/index.js',
            './front/icons/favicon.ico',
            './front/icons/wordzee-32_32.png',
            './front/icons/wordzee-64_64.jpg',
            './front/icons/wordzee-256_256.webp',
            './front/icons/wordzee-512_512.png',
            './front/icons/telegram.png',
            './front/icons/Facebook_f_logo_2019.svg',
        ],
        'external': [
            'https://cdn.jsdelivr.net/npm/bootstrap@5.3.8/dist/css/bootstrap.min.css',
            'https://cdn.jsdelivr.net/npm/bootstrap@5.3.8/dist/js/bootstrap.bundle.min.js',
        ],
    },
    'logging': {
        'level': 'INFO',
        'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


class Config:
    """Configuration manager for the word finder

    Values come from the YAML file named by ``$BPWORDZEE_CONFIG`` (or
    ``config.yaml`` in the working directory), merged over the defaults above.
    """

    def __init__(self, config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        self.config_path = Path(config_path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
        self._config = self._load_config()
        if overrides:
            _deep_merge(self._config, copy.deepcopy(overrides))

    def _load_config(self) -> dict:
        config = copy.deepcopy(DEFAULT_CONFIG)
        if not self.config_path.exists():
            return config

        try:
            with open(self.config_path, 'r') as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Cannot read configuration {self.config_path}: {exc}") from exc

        if loaded is None:
            return config
        if not isinstance(loaded, dict):
            raise ConfigError(f"Configuration {self.config_path} must be a mapping")
        return _deep_merge(config, loaded)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation"""
        value: Any = self._config
        try:
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def configure_logging(self) -> None:
        logging.basicConfig(
            level=str(self.get('logging.level', 'INFO')).upper(),
            format=self.get('logging.format'),
        )

    @property
    def origin(self) -> str:
        return self.get('app.origin')

    @property
    def endpoint(self) -> str:
        return self.get('word_source.endpoint')

    @property
    def timeout(self) -> Optional[float]:
        return self.get('word_source.timeout')

    @property
    def top_n(self) -> int:
        return int(self.get('ranking.top_n', 10))

    @property
    def cache_version(self) -> str:
        return str(self.get('cache.version'))

    @property
    def primary_cache_name(self) -> str:
        return f"{self.get('cache.prefix')}-{self.cache_version}"

    @property
    def external_cache_name(self) -> str:
        return f"{self.get('cache.prefix')}-external-{self.cache_version}"

    @property
    def precache_urls(self) -> List[str]:
        return list(self.get('cache.precache', []))

    @property
    def external_urls(self) -> List[str]:
        return list(self.get('cache.external', []))


# Process-wide configuration, read once at import
config = Config()
