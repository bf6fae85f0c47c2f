"""
Configuration management for standup-cli.

Provides YAML-based configuration with environment variable overrides,
automatic config file discovery, and sensible defaults. Configuration is an
explicit value handed to the services; there is no process-wide instance.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import List, Optional

import yaml

from journal.git_utils import get_git_user_name

logger = logging.getLogger(__name__)

DEFAULT_BASE_DIR = Path.home() / ".standup-cli"


@dataclass
class ScanningConfig:
    """
    Configuration for repository discovery and commit retrieval.

    Attributes:
        root_path: Root directory to scan for git repositories
        exclude_repos: Repository short names to skip
        author_filter: Author passed to ``git log --author`` (None = see detect_author)
        detect_author: Fall back to ``git config user.name`` when author_filter is unset
        skip_merge_commits: Exclude merge commits
        max_depth: Maximum depth of the ``.git`` directory below root_path
        fetch_timeout: Seconds before a ``git log`` call is killed
        git_timeout: Seconds before other git calls are killed
        max_workers: Size of the worker pool used for aggregation
    """
    root_path: str = "~/dev"
    exclude_repos: List[str] = field(default_factory=list)
    author_filter: Optional[str] = None
    detect_author: bool = True
    skip_merge_commits: bool = False
    max_depth: int = 3
    fetch_timeout: float = 5.0
    git_timeout: float = 10.0
    max_workers: int = 8


@dataclass
class OllamaConfig:
    """
    Configuration for the local LLM used for AI summaries.

    Attributes:
        enabled: Whether to try AI summaries at all (opt-in)
        model: Model name to use
        endpoint: Ollama server endpoint URL
        timeout: Request timeout in seconds
        temperature: Sampling temperature
        num_predict: Maximum tokens to generate
    """
    enabled: bool = False
    model: str = "qwen2.5:7b"
    endpoint: str = "http://localhost:11434"
    timeout: int = 60
    temperature: float = 0.7
    num_predict: int = 512


@dataclass
class JournalConfig:
    """
    Configuration for where standup entries and weekly retros are written.

    Attributes:
        standup_dir: Directory holding one markdown file per day
        retro_dir: Directory for weekly retros (None = "retros" next to standup_dir)
        retro_day: Weekday on which `standup auto` also writes the retro (Monday=0)
    """
    standup_dir: str = str(DEFAULT_BASE_DIR / "standups")
    retro_dir: Optional[str] = None
    retro_day: int = 4


@dataclass
class StandupConfig:
    """
    Complete standup-cli configuration.

    Aggregates all configuration sections and provides methods for
    loading, saving, and managing configuration files.
    """
    scanning: ScanningConfig = field(default_factory=ScanningConfig)
    ollama: OllamaConfig = field(default_factory=OllamaConfig)
    journal: JournalConfig = field(default_factory=JournalConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> StandupConfig:
        """
        Load configuration from a YAML file or discover default config file.

        Args:
            config_path: Explicit path to config file. If None, searches default locations.

        Returns:
            StandupConfig instance with loaded settings

        Raises:
            FileNotFoundError: If explicit config_path is provided but doesn't exist
            ValueError: If the file is not valid YAML or has unknown fields
        """
        if config_path is not None:
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            logger.info(f"Loading configuration from: {config_path}")
            return cls._load_from_file(config_path)

        found_config = cls._find_config_file()
        if found_config:
            logger.info(f"Found configuration file: {found_config}")
            return cls._load_from_file(found_config)

        logger.info("No configuration file found, using defaults")
        return cls.from_dict({})

    @classmethod
    def _find_config_file(cls) -> Optional[Path]:
        """
        Search for configuration file in default locations.

        Search order:
            1. ./standup.yaml
            2. ~/.standup-cli/config.yaml
            3. ~/.config/standup-cli/config.yaml

        Returns:
            Path to first found config file, or None
        """
        search_paths = [
            Path.cwd() / "standup.yaml",
            DEFAULT_BASE_DIR / "config.yaml",
            Path.home() / ".config" / "standup-cli" / "config.yaml",
        ]

        for path in search_paths:
            if path.exists() and path.is_file():
                logger.debug(f"Found config file at: {path}")
                return path

        logger.debug("No config file found in default locations")
        return None

    @classmethod
    def _load_from_file(cls, config_path: Path) -> StandupConfig:
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise ValueError(f"Invalid YAML configuration: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Configuration must be a mapping, got {type(data).__name__}")

        logger.debug(f"Loaded configuration data: {data}")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> StandupConfig:
        """
        Build a config from nested dicts, applying environment overrides.

        Raises:
            ValueError: If a section contains unknown fields
        """
        data = cls._apply_env_overrides(data)
        try:
            config = cls(
                scanning=ScanningConfig(**(data.get('scanning') or {})),
                ollama=OllamaConfig(**(data.get('ollama') or {})),
                journal=JournalConfig(**(data.get('journal') or {})),
            )
        except TypeError as e:
            logger.error(f"Invalid configuration structure: {e}")
            raise ValueError(f"Configuration has invalid fields: {e}") from e

        return config

    @classmethod
    def _apply_env_overrides(cls, data: dict) -> dict:
        """
        Override configuration values with environment variables.

        Supported environment variables:
            - STANDUP_ROOT: Overrides scanning.root_path
            - STANDUP_AUTHOR: Overrides scanning.author_filter
            - STANDUP_DIR: Overrides journal.standup_dir
            - OLLAMA_MODEL: Overrides ollama.model
            - OLLAMA_API_URL: Overrides ollama.endpoint
        """
        data = {k: dict(v) if isinstance(v, dict) else v for k, v in data.items()}

        overrides = [
            ('STANDUP_ROOT', 'scanning', 'root_path'),
            ('STANDUP_AUTHOR', 'scanning', 'author_filter'),
            ('STANDUP_DIR', 'journal', 'standup_dir'),
            ('OLLAMA_MODEL', 'ollama', 'model'),
            ('OLLAMA_API_URL', 'ollama', 'endpoint'),
        ]
        for env_var, section, key in overrides:
            if env_var in os.environ:
                section_data = data.get(section) or {}
                section_data[key] = os.environ[env_var]
                data[section] = section_data
                logger.debug(f"Applied {env_var} override: {os.environ[env_var]}")

        return data

    def save(self, config_path: Optional[Path] = None) -> Path:
        """
        Save configuration to a YAML file.

        Args:
            config_path: Path to save config file. If None, saves to ~/.standup-cli/config.yaml

        Returns:
            Path the configuration was written to
        """
        if config_path is None:
            config_path = DEFAULT_BASE_DIR / "config.yaml"

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(asdict(self), f, default_flow_style=False, sort_keys=False)

        logger.info(f"Configuration saved to: {config_path}")
        return config_path

    def get_expanded_root_path(self) -> Path:
        return Path(os.path.expanduser(self.scanning.root_path))

    def get_standup_directory(self) -> Path:
        return Path(os.path.expanduser(self.journal.standup_dir))

    def get_retro_directory(self) -> Path:
        if self.journal.retro_dir:
            return Path(os.path.expanduser(self.journal.retro_dir))
        return self.get_standup_directory().parent / "retros"

    def resolve_author_filter(self) -> Optional[str]:
        """Explicit author filter, else the git user name when detect_author is set."""
        if self.scanning.author_filter:
            return self.scanning.author_filter
        if self.scanning.detect_author:
            return get_git_user_name()
        return None
