"""Pydantic configuration models for the A2S exporter."""

from pydantic import AliasChoices, BaseModel, Field, field_validator
from typing import List


class ServerConfig(BaseModel):
    """A game server to poll."""
    host: str
    port: int = Field(default=27015, ge=1, le=65535)
    # "community" is the key used by older config files
    label: str = Field(
        default="unknown",
        validation_alias=AliasChoices("label", "community")
    )

    @field_validator('host')
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Reject blank hosts."""
        v = v.strip()
        if not v:
            raise ValueError('host must not be empty')
        return v


class InfluxDBConfig(BaseModel):
    """InfluxDB v2 write API connection settings."""
    host: str
    bucket: str
    organization: str
    token: str
    timeout_secs: float = Field(default=10.0, gt=0)

    @field_validator('host')
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Validate base URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('host must start with http:// or https://')
        return v.rstrip('/')


class ExporterConfig(BaseModel):
    """Root configuration model."""
    frequency_secs: int = Field(ge=1)
    influxdb: InfluxDBConfig
    servers: List[ServerConfig] = Field(min_length=1)
