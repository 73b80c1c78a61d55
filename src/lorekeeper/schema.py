# SPDX-License-Identifier: MIT

"""Pydantic schema definitions for keeper configuration files."""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .compression import Compressor, get_compressor
from .config import KeeperConfig
from .sizes import parse_size


class CompressionSchema(BaseModel):
    """Long form of the ``compression`` key."""

    model_config = ConfigDict(extra="forbid")

    codec: str = Field(..., description="Codec name: gzip or bz2")
    level: Optional[int] = Field(None, description="Codec compression level")

    def build(self) -> Compressor:
        return get_compressor(self.codec, self.level)


class KeeperConfigSchema(BaseModel):
    """Canonical schema of a keeper configuration file. Omitted keys keep their defaults."""

    model_config = ConfigDict(extra="forbid")

    folder: Optional[str] = Field(None, description="Existing folder holding the current file and archives")
    name: Optional[str] = Field(None, description="Logical name of the keeper")
    extension: Optional[str] = Field(None, description="Current file extension, e.g. '.log'")
    time_format: Optional[str] = Field(None, description="strftime format (plus %N) for {time}")
    archive_template: Optional[str] = Field(None, description="Archive name template")
    max_size: Optional[int] = Field(None, description="Rotate before a write would exceed this many bytes")
    max_archive_count: Optional[int] = Field(None, description="Archives kept; <= 0 keeps all")
    max_total_archive_bytes: Optional[int] = Field(None, description="Total archive bytes kept; <= 0 keeps all")
    schedule: Optional[str] = Field(None, description="Periodic rotation schedule, e.g. 'daily at 00:00'")
    compression: Optional[Union[str, CompressionSchema]] = Field(
        None, description="Codec name or {codec, level}"
    )

    @field_validator("max_size", "max_total_archive_bytes", mode="before")
    @classmethod
    def _parse_size(cls, value: Any) -> Any:
        if value is None:
            return value
        return parse_size(value)

    def to_config(self) -> KeeperConfig:
        """Build a :class:`KeeperConfig` from the keys present in the file."""
        values: Dict[str, Any] = self.model_dump(exclude_none=True, exclude={"compression"})
        if isinstance(self.compression, CompressionSchema):
            values["compression"] = self.compression.build()
        elif self.compression is not None:
            values["compression"] = get_compressor(self.compression)
        return KeeperConfig(**values)


def get_json_schema() -> Dict[str, Any]:
    """Export the JSON Schema for keeper configuration files."""
    return KeeperConfigSchema.model_json_schema()


__all__ = ["KeeperConfigSchema", "CompressionSchema", "get_json_schema"]
