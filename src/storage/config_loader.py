"""YAML configuration loading and validation.

This module handles loading and saving the sync configuration from a YAML
file. The storage mode is read here once; nothing downstream inspects the
environment to decide where saves go.
"""

import os
from typing import Any, Dict

import yaml

from .errors import ConfigError, FilesystemError
from .models import RepositoryConfig, StorageMode, SyncConfig

DEFAULT_CONFIG_PATH = '.cms-sync/config.yaml'


class ConfigLoader:
    """Handles configuration file loading, validation, and saving.

    Configuration file structure:
        repository:
          owner: "acme"
          name: "website"
        mode: production
        content_dir: src/content
        draft_branch: cms-draft
        api_url: https://api.github.com
        request_timeout: 30
        mirror_to_remote: true
        cache_dir: .cms-sync/cache
    """

    # Required top-level config fields
    REQUIRED_TOP_LEVEL_FIELDS = {'repository'}

    # Required fields of the repository section
    REQUIRED_REPOSITORY_FIELDS = {'owner', 'name'}

    # Default values for optional fields
    DEFAULTS = {
        'mode': StorageMode.PRODUCTION.value,
        'content_dir': 'src/content',
        'draft_branch': 'cms-draft',
        'api_url': 'https://api.github.com',
        'request_timeout': 30,
        'mirror_to_remote': True,
        'cache_dir': '.cms-sync/cache',
    }

    @classmethod
    def load(cls, config_path: str = DEFAULT_CONFIG_PATH) -> SyncConfig:
        """Load and parse configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            SyncConfig object with parsed configuration

        Raises:
            FilesystemError: If file cannot be read
            ConfigError: If configuration is invalid or malformed
        """
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise FilesystemError(config_path, 'read', 'Configuration file not found')
        except PermissionError:
            raise FilesystemError(config_path, 'read', 'Permission denied')
        except OSError as e:
            raise FilesystemError(config_path, 'read', str(e))

        try:
            config_dict = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML syntax: {str(e)}")

        if config_dict is None:
            raise ConfigError("Configuration file is empty")

        if not isinstance(config_dict, dict):
            raise ConfigError(
                f"Configuration must be a YAML dictionary, got {type(config_dict).__name__}"
            )

        return cls._parse_config(config_dict)

    @classmethod
    def save(cls, config_path: str, sync_config: SyncConfig) -> None:
        """Save configuration to a YAML file.

        Raises:
            FilesystemError: If file cannot be written
        """
        config_dict = {
            'repository': {
                'owner': sync_config.repository.owner,
                'name': sync_config.repository.name,
            },
            'mode': sync_config.mode.value,
            'content_dir': sync_config.content_dir,
            'draft_branch': sync_config.draft_branch,
            'api_url': sync_config.api_url,
            'request_timeout': sync_config.request_timeout,
            'mirror_to_remote': sync_config.mirror_to_remote,
            'cache_dir': sync_config.cache_dir,
        }

        yaml_str = yaml.safe_dump(
            config_dict,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False
        )

        config_dir = os.path.dirname(config_path)
        if config_dir:
            try:
                os.makedirs(config_dir, exist_ok=True)
            except OSError as e:
                raise FilesystemError(config_dir, 'create_directory', str(e))

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                f.write(yaml_str)
        except PermissionError:
            raise FilesystemError(config_path, 'write', 'Permission denied')
        except OSError as e:
            raise FilesystemError(config_path, 'write', str(e))

    @classmethod
    def _parse_config(cls, config_dict: Dict[str, Any]) -> SyncConfig:
        """Parse and validate configuration dictionary.

        Raises:
            ConfigError: If configuration is invalid
        """
        missing_fields = cls.REQUIRED_TOP_LEVEL_FIELDS - set(config_dict.keys())
        if missing_fields:
            raise ConfigError(
                f"Missing required fields: {', '.join(sorted(missing_fields))}"
            )

        repository_raw = config_dict['repository']
        if not isinstance(repository_raw, dict):
            raise ConfigError("Field 'repository' must be a dictionary", 'repository')

        missing_repo_fields = cls.REQUIRED_REPOSITORY_FIELDS - set(repository_raw.keys())
        if missing_repo_fields:
            raise ConfigError(
                f"Missing required fields: {', '.join(sorted(missing_repo_fields))}",
                'repository'
            )

        owner = str(repository_raw['owner'] or '').strip()
        name = str(repository_raw['name'] or '').strip()
        if not owner:
            raise ConfigError("Field 'owner' cannot be empty", 'repository.owner')
        if not name:
            raise ConfigError("Field 'name' cannot be empty", 'repository.name')

        mode_raw = str(config_dict.get('mode', cls.DEFAULTS['mode'])).strip().lower()
        try:
            mode = StorageMode(mode_raw)
        except ValueError:
            raise ConfigError(
                f"Field 'mode' must be 'development' or 'production', got {mode_raw!r}",
                'mode'
            )

        try:
            content_dir = str(config_dict.get('content_dir', cls.DEFAULTS['content_dir']))
            draft_branch = str(config_dict.get('draft_branch', cls.DEFAULTS['draft_branch']))
            api_url = str(config_dict.get('api_url', cls.DEFAULTS['api_url']))
            request_timeout = float(
                config_dict.get('request_timeout', cls.DEFAULTS['request_timeout'])
            )
            mirror_to_remote = bool(
                config_dict.get('mirror_to_remote', cls.DEFAULTS['mirror_to_remote'])
            )
            cache_dir = str(config_dict.get('cache_dir', cls.DEFAULTS['cache_dir']))
        except (ValueError, TypeError) as e:
            raise ConfigError(f"Invalid field type for optional field: {str(e)}")

        if request_timeout <= 0:
            raise ConfigError(
                f"Field 'request_timeout' must be positive, got {request_timeout}",
                'request_timeout'
            )
        if not draft_branch.strip():
            raise ConfigError("Field 'draft_branch' cannot be empty", 'draft_branch')
        if not content_dir.strip() or os.path.isabs(content_dir):
            raise ConfigError(
                "Field 'content_dir' must be a non-empty relative path",
                'content_dir'
            )

        return SyncConfig(
            repository=RepositoryConfig(owner=owner, name=name),
            mode=mode,
            content_dir=content_dir.strip().strip('/'),
            draft_branch=draft_branch.strip(),
            api_url=api_url.strip(),
            request_timeout=request_timeout,
            mirror_to_remote=mirror_to_remote,
            cache_dir=cache_dir,
        )
