"""
Configuration management using pydantic-settings
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def odbc_value(value: str, braced: bool = False) -> str:
    """Escape an ODBC connection string attribute value.

    Values containing ';', '{' or '}' are wrapped in braces with any '}' doubled.
    """
    if braced or any(c in value for c in ";{}"):
        return "{" + value.replace("}", "}}") + "}"
    return value


class Settings(BaseSettings):
    """Application settings loaded from CSI_HEALTH_* environment variables"""

    # Connection configuration
    connection_string: Optional[str] = Field(
        default=None,
        description="Full ODBC connection string. Overrides the individual connection fields"
    )

    driver: str = Field(
        default="ODBC Driver 18 for SQL Server",
        description="ODBC driver name"
    )

    server: str = Field(
        default="localhost",
        description="SQL Server host, optionally with ',port'"
    )

    database: str = Field(
        default="master",
        description="Database whose column-store indexes are inspected"
    )

    username: Optional[str] = Field(
        default=None,
        description="SQL login. Leave unset to use a trusted connection"
    )

    password: Optional[SecretStr] = Field(
        default=None,
        description="Password for the SQL login"
    )

    trusted_connection: bool = Field(
        default=False,
        description="Use integrated authentication instead of a SQL login"
    )

    trust_server_certificate: bool = Field(
        default=True,
        description="Skip TLS certificate validation"
    )

    login_timeout: int = Field(
        default=15,
        description="Seconds to wait for a connection"
    )

    query_timeout: int = Field(
        default=0,
        description="Seconds to wait for a single statement (0 = no limit)"
    )

    # Analysis configuration
    min_fragmentation: float = Field(
        default=0.0,
        description="Default threshold (percent) for fragmented-only reports"
    )

    snapshot_dir: str = Field(
        default="snapshots",
        description="Directory for exported catalog snapshots"
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    log_file: Optional[str] = Field(
        default=None,
        description="Optional log file path. If not set, logs to console only"
    )

    # Development settings
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Test configuration
    test_mode: bool = Field(
        default=False,
        description="Running in test mode"
    )

    model_config = SettingsConfigDict(
        env_prefix="CSI_HEALTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    def validate_log_level(cls, v, info):
        """Validate log level"""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {valid_levels}")
        return v_upper

    @field_validator("login_timeout")
    def validate_login_timeout(cls, v, info):
        """Validate login timeout is positive"""
        if v <= 0:
            raise ValueError("Login timeout must be positive")
        return v

    @field_validator("query_timeout")
    def validate_query_timeout(cls, v, info):
        """Validate query timeout is not negative"""
        if v < 0:
            raise ValueError("Query timeout cannot be negative")
        return v

    @field_validator("min_fragmentation")
    def validate_min_fragmentation(cls, v, info):
        """Validate fragmentation threshold is a percentage"""
        if not 0.0 <= v <= 100.0:
            raise ValueError(f"Fragmentation threshold must be between 0 and 100, got: {v}")
        return v

    def build_connection_string(self) -> str:
        """Return the configured ODBC connection string, assembling one if needed"""
        if self.connection_string:
            return self.connection_string

        parts = [
            f"DRIVER={odbc_value(self.driver, braced=True)}",
            f"SERVER={odbc_value(self.server)}",
            f"DATABASE={odbc_value(self.database)}",
        ]
        if self.trusted_connection or not self.username:
            parts.append("Trusted_Connection=yes")
        else:
            parts.append(f"UID={odbc_value(self.username)}")
            if self.password is not None:
                parts.append(f"PWD={odbc_value(self.password.get_secret_value())}")
        if self.trust_server_certificate:
            parts.append("TrustServerCertificate=yes")

        return ";".join(parts) + ";"

    def get_snapshot_dir(self) -> Path:
        """Get snapshot directory as a Path object"""
        return Path(self.snapshot_dir)

    def setup_logging(self, run_id: Optional[str] = None) -> None:
        """Setup structured logging with loguru"""
        # Remove default logger
        logger.remove()

        # Create log format with run_id
        if run_id:
            log_format = (
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                f"<cyan>run:{run_id}</cyan> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
                "<level>{message}</level>"
            )
        else:
            log_format = (
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
                "<level>{message}</level>"
            )

        # Console handler on stderr so report output on stdout stays machine readable
        logger.add(
            sink=sys.stderr,
            format=log_format,
            level="DEBUG" if self.debug else self.log_level,
            colorize=True
        )

        # Add file handler if configured
        if self.log_file:
            log_file_path = Path(self.log_file)
            log_file_path.parent.mkdir(parents=True, exist_ok=True)

            logger.add(
                sink=str(log_file_path),
                format=log_format,
                level=self.log_level,
                rotation="10 MB",
                retention="10 days",
                compression="gz"
            )

    def model_dump_safe(self) -> dict:
        """Dump model data safely (for logging/debugging)"""
        data = self.model_dump()
        if data.get("password") is not None:
            data["password"] = "********"
        if data.get("connection_string"):
            data["connection_string"] = "<set>"
        return data


# Global settings instance
try:
    settings = Settings()
except Exception as e:
    print(f"❌ Configuration Error: {e}")
    print("\nPlease check your environment variables:")
    print("- CSI_HEALTH_CONNECTION_STRING: Full ODBC connection string (optional)")
    print("- CSI_HEALTH_SERVER / CSI_HEALTH_DATABASE: Target server and database (optional)")
    print("- CSI_HEALTH_USERNAME / CSI_HEALTH_PASSWORD: SQL login (optional)")
    print("- CSI_HEALTH_LOG_LEVEL: Logging level - DEBUG, INFO, WARNING, ERROR, CRITICAL (optional)")
    print("- CSI_HEALTH_MIN_FRAGMENTATION: Threshold percent between 0 and 100 (optional)")
    print("\nExample .env file:")
    print("CSI_HEALTH_SERVER=sqlprod01,1433")
    print("CSI_HEALTH_DATABASE=DataWarehouse")
    print("CSI_HEALTH_LOG_LEVEL=INFO")
    raise SystemExit(1)


def get_settings() -> Settings:
    """Get global settings instance"""
    return settings


def setup_logging(run_id: Optional[str] = None) -> None:
    """Setup logging using global settings"""
    settings.setup_logging(run_id)


# Setup logging on import
if not settings.test_mode:
    setup_logging()
