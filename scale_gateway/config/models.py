"""
Configuration models using Pydantic for validation.

All configuration is loaded from config.json and validated at startup.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    ip: str = Field(default="0.0.0.0", description="IP address to bind to")
    port: int = Field(default=4000, ge=1, le=65535, description="HTTP port")


class SessionConfig(BaseModel):
    """Per-command TCP session configuration."""

    timeout_ms: int = Field(
        default=2000, ge=100, le=30000,
        description="Response deadline in ms, measured from the connection attempt"
    )
    read_chunk_size: int = Field(
        default=1024, ge=16, le=65536, description="Maximum bytes per socket read"
    )

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0


class DeviceConfig(BaseModel):
    """A scale reachable over TCP."""

    id: int = Field(ge=1, description="Numeric device identifier")
    name: str = Field(min_length=1, description="Unique display name")
    host: str = Field(min_length=1, description="Scale IP address or hostname")
    port: int = Field(ge=1, le=65535, description="Scale TCP port")
    description: Optional[str] = Field(default=None, description="Free-form notes")

    @field_validator("host")
    @classmethod
    def strip_host(cls, v):
        """Normalize host (trim whitespace)."""
        return v.strip()


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )
    file: Optional[str] = Field(
        default="scale_gateway.log",
        description="Log file path (None for console only)"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class SimulatorConfig(BaseModel):
    """Scale simulator configuration."""

    enabled: bool = Field(default=False, description="Run a simulated scale next to the API")
    host: str = Field(default="127.0.0.1", description="Address the simulator listens on")
    port: int = Field(default=4001, ge=0, le=65535, description="Simulator TCP port (0 = any)")
    gross_kg: float = Field(default=0.0, ge=-999.0, le=9999.0, description="Initial gross weight")
    tare_kg: float = Field(default=0.0, ge=0.0, le=9999.0, description="Initial tare weight")
    status_code: int = Field(default=0, ge=0, le=0xFF, description="Reported status code")
    sealed: bool = Field(default=False, description="Sealing switch locked (tare/preset rejected)")
    response_latency_ms: int = Field(
        default=0, ge=0, le=5000, description="Artificial response delay (ms)"
    )
    split_replies: bool = Field(
        default=False, description="Send each reply in two separate writes"
    )
    inject_checksum_error: bool = Field(
        default=False, description="Corrupt the LRC of every reply"
    )


class AppConfig(BaseModel):
    """Root configuration model."""

    model_config = ConfigDict(extra="forbid")  # Raise error on unknown fields

    server: ServerConfig = Field(default_factory=ServerConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    devices: List[DeviceConfig] = Field(default_factory=list)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    simulator: SimulatorConfig = Field(default_factory=SimulatorConfig)

    @field_validator("devices")
    @classmethod
    def validate_unique_devices(cls, v):
        """Ensure device ids and names are unique."""
        ids = [d.id for d in v]
        names = [d.name for d in v]
        if len(set(ids)) != len(ids):
            raise ValueError("Device ids must be unique")
        if len(set(names)) != len(names):
            raise ValueError("Device names must be unique")
        return v
