"""
Application configuration using Pydantic Settings.

All environment variables are accessed through this config object.
Never use os.getenv() directly in business logic.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Server Configuration
    HOST: str = Field(
        default="0.0.0.0",
        description="Interface the TCP server binds to",
    )
    PORT: int = Field(
        default=8080,
        description="TCP port for client sessions",
    )
    INPUT_TIMEOUT: float = Field(
        default=120.0,
        description="Seconds to wait for each line of client input",
    )
    HEALTH_PORT: int = Field(
        default=0,
        description="HTTP port for the health endpoint (0 disables it)",
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root logging level",
    )

    # Circuit Configuration
    CIRCUIT_PATH: Optional[str] = Field(
        default=None,
        description="Noir circuit directory; auto-detected when unset",
    )
    CIRCUIT_CANDIDATES: List[str] = Field(
        default=["/app/noir-circuit", "../noir-circuit"],
        description="Circuit directories probed in order when CIRCUIT_PATH is unset",
    )
    CIRCUIT_NAME: str = Field(
        default="insurance_verifier",
        description="Circuit package name (target/<name>.json, target/<name>.gz)",
    )
    MIN_AGE: int = Field(default=10, description="Lower age bound passed to the circuit")
    MAX_AGE: int = Field(default=25, description="Upper age bound passed to the circuit")
    MIN_BMI: int = Field(default=185, description="Lower BMI*10 bound passed to the circuit")
    MAX_BMI: int = Field(default=249, description="Upper BMI*10 bound passed to the circuit")

    # Toolchain Configuration
    NARGO_BINARY: str = Field(
        default="nargo",
        description="Path to the Noir nargo executable",
    )
    BB_BINARY: str = Field(
        default="bb",
        description="Path to the Barretenberg bb executable",
    )
    ORACLE_HASH: str = Field(
        default="keccak",
        description="Hash oracle for bb prove",
    )
    OUTPUT_FORMAT: str = Field(
        default="bytes_and_fields",
        description="Output format for bb prove",
    )
    TOOL_TIMEOUT: float = Field(
        default=300.0,
        description="Maximum seconds for a single nargo/bb invocation",
    )
    MAX_CONCURRENT_PROOFS: int = Field(
        default=4,
        description="Proof runs allowed at the same time",
    )

    # Storage Configuration
    WORKSPACE_ROOT: str = Field(
        default="/tmp/zk-workspaces",
        description="Parent directory for request-scoped circuit workspaces",
    )
    KEEP_WORKSPACES: bool = Field(
        default=False,
        description="Keep workspaces after each run for debugging",
    )
    RESULTS_PATH: str = Field(
        default=".",
        description="Directory where proof/public-input files are saved",
    )
    FILE_TTL_HOURS: int = Field(
        default=24,
        description="Age after which workspaces and saved results are cleaned up",
    )
    CLEANUP_INTERVAL_HOURS: int = Field(
        default=1,
        description="Hours between cleanup runs",
    )


def resolve_circuit_path(config: "Settings") -> Path:
    """
    Pick the circuit directory.

    An explicit CIRCUIT_PATH wins; otherwise the first existing candidate
    (Docker layout first, then a checkout next to the server). When none
    exists the last candidate is returned so errors name a real location.
    """
    if config.CIRCUIT_PATH:
        return Path(config.CIRCUIT_PATH)

    for candidate in config.CIRCUIT_CANDIDATES:
        if Path(candidate).exists():
            return Path(candidate)
    return Path(config.CIRCUIT_CANDIDATES[-1])


# Global settings instance
settings = Settings()
