"""
Configuration management with schema validation.
Single source of truth for Travel Journal configuration.
"""

import os
from pathlib import Path
from typing import Any, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .exceptions import ConfigError

# Load environment variables
load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_SETTINGS_FILE = PROJECT_ROOT / "config" / "settings.yaml"
JSON_SCHEME = "json://"
DEV_SECRET = "dev-secret"


class AppSettings(BaseModel):
    name: str = "Travel Journal"
    environment: str = "development"
    base_url: str = "http://localhost:8000"


class ServerSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8000


class DatabaseSettings(BaseModel):
    connection_string: str = "json://data"


class AuthSettings(BaseModel):
    access_token_secret: str = DEV_SECRET
    access_token_expiry_hours: int = 72
    algorithm: str = "HS256"
    bcrypt_rounds: int = 10
    # Login historically looks emails up exactly as typed while registration
    # lowercases them; enabling this lowercases on login too.
    normalize_login_email: bool = False


class MediaSettings(BaseModel):
    upload_dir: str = "uploads"
    assets_dir: str = "assets"
    placeholder_image: str = "placeholder.png"


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "json"
    file_path: Optional[str] = "logs/travel_journal.log"
    max_bytes: int = 10485760
    backup_count: int = 5


class CorsSettings(BaseModel):
    origins: List[str] = Field(default_factory=lambda: ["*"])


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    media: MediaSettings = Field(default_factory=MediaSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cors: CorsSettings = Field(default_factory=CorsSettings)

    @property
    def placeholder_image_url(self) -> str:
        return f"{self.app.base_url.rstrip('/')}/assets/{self.media.placeholder_image}"


def _substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR} and ${VAR:default} expressions"""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            var_expr = value[2:-1]
            if ":" in var_expr:
                var_name, default = var_expr.split(":", 1)
                return os.getenv(var_name.strip(), default.strip())
            return os.getenv(var_expr, value)
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def validate_settings(settings: Settings) -> Settings:
    """Reject configurations that are unsafe to run in production"""
    if settings.app.environment.lower() == "production":
        if settings.auth.access_token_secret in ("", DEV_SECRET):
            raise ConfigError("ACCESS_TOKEN_SECRET must be set in production")
    return settings


def _resolve_path(value: str, base_dir: Path) -> str:
    path = Path(value).expanduser()
    return str(path if path.is_absolute() else base_dir / path)


def resolve_paths(settings: Settings, base_dir: Path) -> Settings:
    """
    Anchor relative store, media and log paths at base_dir instead of the
    process working directory.
    """
    connection_string = settings.database.connection_string
    if connection_string.startswith(JSON_SCHEME):
        location = connection_string[len(JSON_SCHEME):]
        if location:
            settings.database.connection_string = JSON_SCHEME + _resolve_path(location, base_dir)
    elif "://" not in connection_string:
        settings.database.connection_string = _resolve_path(connection_string, base_dir)

    settings.media.upload_dir = _resolve_path(settings.media.upload_dir, base_dir)
    settings.media.assets_dir = _resolve_path(settings.media.assets_dir, base_dir)
    if settings.logging.file_path:
        settings.logging.file_path = _resolve_path(settings.logging.file_path, base_dir)
    return settings


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Load and validate settings.yaml.

    Relative paths are resolved against the directory holding the settings
    file, or against its parent when that directory is named "config" (the
    project root for config/settings.yaml).
    """
    settings_path = Path(path or os.getenv("TRAVEL_JOURNAL_CONFIG") or DEFAULT_SETTINGS_FILE)
    if not settings_path.exists():
        raise ConfigError(f"Settings file not found: {settings_path}")

    try:
        with open(settings_path, "r", encoding="utf-8") as f:
            raw_data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {settings_path}: {e}")

    processed_data = _substitute_env_vars(raw_data)
    origins = processed_data.get("cors", {}).get("origins")
    if isinstance(origins, str):
        processed_data["cors"]["origins"] = [o.strip() for o in origins.split(",") if o.strip()]

    try:
        settings = Settings(**processed_data)
    except ValueError as e:
        raise ConfigError(f"Invalid settings in {settings_path}: {e}")

    base_dir = settings_path.resolve().parent
    if base_dir.name == "config":
        base_dir = base_dir.parent
    return validate_settings(resolve_paths(settings, base_dir))
