"""Application configuration with validation."""

from enum import Enum
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class RemoteTransport(str, Enum):
    """How remote folder commands are executed."""
    SSH = "ssh"
    LOCAL = "local"


class ConfigurationError(Exception):
    """Raised when application configuration is invalid for the environment."""
    pass


class Settings(BaseSettings):
    """
    Application settings with validation.

    Every value can be overridden through an environment variable of the
    same name (case-insensitive) or a ``.env`` file.
    """

    # Environment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production)"
    )

    # CORS Configuration
    cors_allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./mediafolders.db",
        description="Database connection URL"
    )
    # Connection pool tuning (PostgreSQL only; ignored for SQLite).
    db_pool_size: int = Field(
        default=5,
        description="Number of persistent database connections"
    )
    db_max_overflow: int = Field(
        default=10,
        description="Extra connections allowed during traffic bursts"
    )
    db_pool_timeout: int = Field(
        default=30,
        description="Seconds to wait for a connection from the pool before raising"
    )
    db_pool_recycle: int = Field(
        default=1800,
        description="Seconds before a connection is recycled (prevents stale connections)"
    )

    # Authentication
    # AUTH_ENABLED=false: the owner is taken from the X-Owner-Id header (dev mode).
    jwt_secret_key: str = Field(
        default="dev-insecure-key-change-me",
        description="JWT signing secret (override in production)"
    )
    jwt_algorithm: str = Field(default="HS256")
    auth_enabled: bool = Field(
        default=False,
        description="Require a Bearer token identifying the owner"
    )

    # Remote storage
    remote_transport: RemoteTransport = Field(
        default=RemoteTransport.SSH,
        description="'ssh' runs commands on the owner's remote target, 'local' on this host"
    )
    remote_base_path: str = Field(
        default="/home/streaming",
        description="Base path used for remote targets that do not define their own"
    )
    default_remote_target_id: int = Field(
        default=1,
        description="Remote target used for owners without an explicit assignment"
    )
    remote_file_owner: str = Field(
        default="streaming:streaming",
        description="user:group applied with chown after mutations (empty = skip chown)"
    )
    remote_dir_mode: str = Field(
        default="755",
        description="Mode applied with chmod -R after mutations"
    )
    remote_command_timeout: int = Field(
        default=60,
        description="Seconds before a remote command is abandoned"
    )
    ssh_connect_timeout: int = Field(
        default=30,
        description="Seconds allowed for establishing an SSH connection"
    )
    ssh_strict_host_keys: bool = Field(
        default=False,
        description="Reject hosts missing from known_hosts instead of auto-adding them"
    )

    # Folder policy
    default_quota_mb: int = Field(
        default=1000,
        description="Quota applied to owners without a per-owner quota"
    )
    reserved_folder_names: str = Field(
        default="recordings,logs",
        description="Owner subdirectories that are never exposed as folders (comma-separated)"
    )
    default_folder_name: str = Field(
        default="default",
        description="Folder synthesized when an owner has no folders yet"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    def get_cors_origins(self) -> List[str]:
        """
        Get CORS origins as a list.

        Parses comma-separated string and validates no wildcards.
        """
        origins = [origin.strip() for origin in self.cors_allowed_origins.split(',') if origin.strip()]

        # SECURITY: Prevent wildcard CORS
        if "*" in origins:
            raise ValueError(
                "Wildcard CORS (*) not allowed. "
                "Specify explicit origins in CORS_ALLOWED_ORIGINS"
            )

        return origins

    def get_reserved_folder_names(self) -> frozenset:
        return frozenset(
            name.strip().lower()
            for name in self.reserved_folder_names.split(',')
            if name.strip()
        )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @field_validator('remote_dir_mode')
    @classmethod
    def validate_dir_mode(cls, v: str) -> str:
        """Only plain octal modes are passed to chmod."""
        v = v.strip()
        if not v or len(v) > 4 or any(c not in "01234567" for c in v):
            raise ValueError(f"Invalid directory mode: {v!r}")
        return v

    def validate_production_config(self) -> None:
        """Validate configuration for production environment.

        In production, fails startup if security-critical settings use insecure defaults.
        In development, returns silently; main.py logs the warnings.

        Raises:
            ConfigurationError: If production config is insecure.
        """
        errors: list[str] = []

        if self.jwt_secret_key == "dev-insecure-key-change-me":
            errors.append(
                "JWT_SECRET_KEY is using the default insecure value. "
                "Generate a secure key: openssl rand -hex 32"
            )

        if not self.auth_enabled:
            errors.append(
                "AUTH_ENABLED is false. "
                "Owners would be identified by an unauthenticated header."
            )

        if self.remote_transport == RemoteTransport.LOCAL:
            errors.append(
                "REMOTE_TRANSPORT is 'local'. "
                "Production deployments must execute folder commands on remote targets."
            )

        if errors and self.environment == Environment.PRODUCTION:
            raise ConfigurationError(
                "Production configuration is insecure:\n  - " + "\n  - ".join(errors)
            )

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()
