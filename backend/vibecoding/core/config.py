"""
Configuration Management
Loads settings from YAML files and environment variables
"""
import yaml
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment"""

    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    # API Settings
    api_prefix: str = "/api"
    cors_origins: list[str] = ["*"]

    # Completion gateway
    demo_mode: bool = False
    gateway_provider: str = "snowflake-sql"
    dispatch_timeout_seconds: float = 30.0
    demo_response_delay_seconds: float = 1.0
    relay_server_url: str = "http://localhost:3000"

    # Snowflake connection pool
    pool_max_size: int = 8
    pool_idle_ttl_seconds: float = 300.0

    # Prompt assembly
    history_window: int = 5

    # Storage
    redis_url: Optional[str] = None
    settings_key: str = "vibecoding-settings"
    conversation_key: str = "vibecoding-conversation"
    save_conversation: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def active_gateway(self) -> str:
        """Gateway provider actually used for session dispatch"""
        return "demo" if self.demo_mode else self.gateway_provider


@lru_cache
def get_settings() -> Settings:
    """Cached application settings"""
    return Settings()


class ConfigManager:
    """Manages loading and merging configuration from multiple sources"""

    def __init__(self, env: str = "development", config_dir: Optional[Path] = None):
        self.env = env
        self.config_dir = config_dir or Path(__file__).parent.parent.parent / "config"
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration files in order of precedence"""
        default_path = self.config_dir / "default.yaml"
        if default_path.exists():
            self._config = self._load_yaml(default_path)

        env_path = self.config_dir / f"{self.env}.yaml"
        if env_path.exists():
            env_config = self._load_yaml(env_path)
            self._deep_merge(self._config, env_config)

        self._substitute_env_vars(self._config)

    def _load_yaml(self, path: Path) -> Dict:
        """Load YAML file"""
        with open(path, 'r') as f:
            return yaml.safe_load(f) or {}

    def _substitute_env_vars(self, config: Dict) -> None:
        """Replace ${VAR_NAME} with environment variable values"""
        for key, value in config.items():
            if isinstance(value, dict):
                self._substitute_env_vars(value)
            elif isinstance(value, str) and value.startswith("${") and value.endswith("}"):
                env_var = value[2:-1]
                config[key] = os.getenv(env_var, value)

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Recursively merge override into base"""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation
        Example: config.get("gateways.snowflake-sql.system_prompt")
        """
        keys = key_path.split('.')
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_gateway_config(self, provider_name: str) -> Dict:
        """Get configuration block for a completion gateway provider"""
        return dict(self.get(f"gateways.{provider_name}", {}) or {})
