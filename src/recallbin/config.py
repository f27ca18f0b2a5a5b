"""Configuration management."""

import os
import secrets
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from .models.config import AppConfig, EnvSettings


class ConfigError(Exception):
    """Configuration-related error."""

    pass


class ConfigManager:
    """Manages application configuration from .env and config.yaml."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_dir: Configuration directory path. Defaults to
                $RECALLBIN_CONFIG_DIR, then ~/.recallbin
        """
        if config_dir is None:
            env_config_dir = os.environ.get("RECALLBIN_CONFIG_DIR")
            if env_config_dir:
                config_dir = Path(env_config_dir)
            else:
                config_dir = Path.home() / '.recallbin'

        self.config_dir = Path(config_dir)
        self.config_file = self.config_dir / 'config.yaml'
        self.env_file = self.config_dir / '.env'

    def load_env_settings(self) -> EnvSettings:
        """Load environment settings from .env file.

        Returns:
            EnvSettings instance

        Raises:
            ConfigError: If .env file is missing or invalid
        """
        if not self.env_file.exists():
            raise ConfigError(
                f".env file not found at {self.env_file}. "
                f"Run 'recallbin init' to create configuration."
            )

        load_dotenv(self.env_file, override=True)

        try:
            return EnvSettings(_env_file=self.env_file)
        except Exception as e:
            raise ConfigError(f"Invalid .env file: {e}") from e

    def load_app_config(self) -> AppConfig:
        """Load application configuration from config.yaml.

        Returns:
            AppConfig instance

        Raises:
            ConfigError: If config file is missing or invalid
        """
        if not self.config_file.exists():
            raise ConfigError(
                f"Config file not found at {self.config_file}. "
                f"Run 'recallbin init' to create configuration."
            )

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)

            if data is None:
                data = {}

            return AppConfig(**data)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}") from e
        except Exception as e:
            raise ConfigError(f"Failed to load config: {e}") from e

    def save_app_config(self, config: AppConfig) -> None:
        """Save application configuration to config.yaml.

        Raises:
            ConfigError: If save fails
        """
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            data = config.model_dump(mode='json')

            with open(self.config_file, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

        except Exception as e:
            raise ConfigError(f"Failed to save config: {e}") from e

    def create_env_file(
        self,
        gemini_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        api_token: Optional[str] = None,
        user_id: str = "local",
    ) -> str:
        """Create .env file with provider keys and the client API token.

        Args:
            gemini_api_key: Google Gemini API key
            openai_api_key: OpenAI API key
            api_token: Bearer token for clients; generated when omitted
            user_id: User id the token resolves to

        Returns:
            The API token written to the file

        Raises:
            ConfigError: If file creation fails
        """
        token = api_token or secrets.token_urlsafe(32)
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)

            env_content = "# Enrichment providers (leave blank to disable)\n"
            env_content += f"GEMINI_API_KEY={gemini_api_key or ''}\n"
            env_content += f"OPENAI_API_KEY={openai_api_key or ''}\n"
            env_content += "\n# Bearer token accepted by the API for the user below\n"
            env_content += f"RECALLBIN_API_TOKEN={token}\n"
            env_content += f"RECALLBIN_USER_ID={user_id}\n"

            with open(self.env_file, 'w', encoding='utf-8') as f:
                f.write(env_content)

            # Set restrictive permissions on Unix-like systems
            if os.name != 'nt':
                os.chmod(self.env_file, 0o600)

        except Exception as e:
            raise ConfigError(f"Failed to create .env file: {e}") from e

        return token

    def resolve_data_dir(self, config: AppConfig) -> Path:
        """Document store root: ``data_dir`` if set, else <config_dir>/data."""
        if config.data_dir:
            return Path(config.data_dir).expanduser()
        return self.config_dir / 'data'


def apply_env_keys(config: AppConfig, env_settings: EnvSettings) -> AppConfig:
    """Seed empty provider key lists from the .env keys."""
    update = {}
    if env_settings.gemini_api_key and not config.gemini_api_keys:
        update["gemini_api_keys"] = [env_settings.gemini_api_key]
    if env_settings.openai_api_key and not config.openai_api_keys:
        update["openai_api_keys"] = [env_settings.openai_api_key]
    if env_settings.azure_openai_api_key and not config.azure_openai_api_keys:
        update["azure_openai_api_keys"] = [env_settings.azure_openai_api_key]
    if env_settings.anthropic_api_key and not config.anthropic_api_keys:
        update["anthropic_api_keys"] = [env_settings.anthropic_api_key]
    return config.model_copy(update=update) if update else config
