#!/usr/bin/env python3
"""
Settings loader for Quire static site generator.
Supports configuration from config.json, quire.json, quire.yml or quire.yaml files.
"""

import os
import json
import yaml
from dataclasses import dataclass
from urllib.parse import urlparse
from typing import Dict, Any, Optional

from .errors import ConfigError


@dataclass(frozen=True)
class Config:
    """Site-wide values, fixed for the duration of a build."""
    site_name: str
    slogan: str
    base_url: str
    recent_posts_count: int


@dataclass(frozen=True)
class Paths:
    """Input and output locations for a build."""
    posts_dir: str
    templates_dir: str
    output_dir: str


class QuireSettings:
    """Load and validate Quire configuration settings."""

    # Default locations, relative to the config directory
    DEFAULT_PATHS = {
        'posts': 'post',
        'templates': 'template',
        'output': 'public',
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['config.json', 'quire.json', 'quire.yml', 'quire.yaml']

    # File keys accepted for each Config field
    KEY_ALIASES = {
        'site_name': ('SiteName', 'site_name'),
        'slogan': ('Slogan', 'slogan'),
        'base_url': ('BaseURL', 'base_url'),
        'recent_posts_count': ('RecentPostsCount', 'recent_posts_count'),
    }

    def __init__(self, config_dir: str = None, config_file: str = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Directory to look for config files. Defaults to current directory.
            config_file: Explicit config file path. Skips the lookup when given.
        """
        self.config_dir = config_dir or os.getcwd()
        self.config_file_path = config_file
        self.settings: Dict[str, Any] = {}

    def load_settings(self) -> Dict[str, Any]:
        """
        Load raw settings from the configuration file.

        Returns:
            Dictionary of configuration settings as found in the file

        Raises:
            ConfigError: if no config file exists or it cannot be parsed
        """
        config_file = self.config_file_path or self._find_config_file()
        if not config_file:
            raise ConfigError(
                f"No configuration file found in {self.config_dir} "
                f"(looked for {', '.join(self.CONFIG_FILES)})"
            )

        self.config_file_path = config_file
        loaded = self._load_config_file(config_file)
        if not isinstance(loaded, dict):
            raise ConfigError(f"Configuration file {config_file} must contain a mapping")

        self.settings = loaded
        return self.settings.copy()

    def _find_config_file(self) -> Optional[str]:
        """
        Find the first available configuration file.

        Returns:
            Path to config file or None if not found
        """
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.exists(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        file_ext = os.path.splitext(config_path)[1].lower()
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    return yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    return json.load(f) or {}
                else:
                    raise ConfigError(f"Unsupported config file format: {file_ext}")
        except FileNotFoundError as e:
            raise ConfigError(f"Configuration file not found: {config_path}") from e
        except PermissionError as e:
            raise ConfigError(f"Permission denied reading configuration file: {config_path}") from e
        except UnicodeDecodeError as e:
            raise ConfigError(f"Configuration file {config_path} is not valid UTF-8: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in configuration file {config_path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in configuration file {config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Error reading configuration file {config_path}: {e}") from e

    def _lookup(self, settings: Dict[str, Any], field: str) -> Any:
        for key in self.KEY_ALIASES[field]:
            if key in settings:
                return settings[key]
        return None

    def build_config(self, overrides: Dict[str, Any] = None) -> Config:
        """
        Validate loaded settings and freeze them into a Config.

        Args:
            overrides: Values that take precedence over the file (e.g. from the CLI)

        Returns:
            An immutable Config
        """
        merged = {field: self._lookup(self.settings, field) for field in self.KEY_ALIASES}
        for key, value in (overrides or {}).items():
            if key in merged and value is not None:
                merged[key] = value

        base_url = merged['base_url']
        if not isinstance(base_url, str) or not base_url.strip():
            raise ConfigError("BaseURL is required")
        base_url = base_url.strip()
        parsed = urlparse(base_url)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise ConfigError(f"BaseURL must be an absolute http(s) URL: {base_url!r}")

        count = merged['recent_posts_count']
        if count is None:
            count = 0
        if isinstance(count, bool) or not isinstance(count, int):
            try:
                count = int(str(count).strip())
            except ValueError:
                raise ConfigError(f"RecentPostsCount must be an integer: {count!r}") from None
        if count < 0:
            raise ConfigError(f"RecentPostsCount must not be negative: {count}")

        return Config(
            site_name=str(merged['site_name'] or ''),
            slogan=str(merged['slogan'] or ''),
            base_url=base_url,
            recent_posts_count=count,
        )

    def build_paths(self, overrides: Dict[str, Any] = None) -> Paths:
        """
        Resolve the posts, templates and output directories.
        Command-line values take precedence over the config file, which takes
        precedence over the defaults. Relative command-line values are anchored
        at the working directory, the others at config_dir.
        """
        resolved = {}
        for key, default in self.DEFAULT_PATHS.items():
            value = (overrides or {}).get(key)
            anchor = os.getcwd()
            if not value:
                value = self.settings.get(key) or default
                anchor = self.config_dir
            value = os.path.expanduser(value)
            if not os.path.isabs(value):
                value = os.path.join(anchor, value)
            resolved[key] = value

        return Paths(
            posts_dir=resolved['posts'],
            templates_dir=resolved['templates'],
            output_dir=resolved['output'],
        )

    def create_sample_config(self, file_format: str = 'json') -> str:
        """
        Create a sample configuration file.

        Args:
            file_format: Format for config file ('json', 'yml' or 'yaml')

        Returns:
            Path to created sample config file
        """
        sample_config = {
            'SiteName': 'My Quire Site',
            'Slogan': 'Notes, written down',
            'BaseURL': 'https://example.com/',
            'RecentPostsCount': 5,
        }

        if file_format not in ['json', 'yml', 'yaml']:
            raise ConfigError(f"Unsupported config file format: {file_format}")

        filename = 'config.json' if file_format == 'json' else f'quire.{file_format}'
        config_path = os.path.join(self.config_dir, filename)
        if os.path.exists(config_path):
            raise ConfigError(f"Configuration file already exists: {config_path}")

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                if file_format in ['yml', 'yaml']:
                    f.write("# Quire configuration file\n")
                    yaml.safe_dump(sample_config, f, default_flow_style=False, sort_keys=False)
                else:
                    json.dump(sample_config, f, indent=2)
                    f.write("\n")
        except PermissionError as e:
            raise ConfigError(f"Permission denied creating configuration file: {config_path}") from e
        except OSError as e:
            raise ConfigError(f"Error writing configuration file {config_path}: {e}") from e

        return config_path


def load_config(config_dir: str = None, config_file: str = None, overrides: Dict[str, Any] = None):
    """Load settings once and return the frozen (Config, Paths) pair."""
    loader = QuireSettings(config_dir=config_dir, config_file=config_file)
    loader.load_settings()
    return loader.build_config(overrides), loader.build_paths(overrides)
