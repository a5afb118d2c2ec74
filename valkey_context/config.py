"""Configuration for the Valkey context store.

Connection settings are usually shared with other Valkey-backed plugins
of the host, so a YAML file may keep them under a ``valkey:`` mapping::

    log_level: INFO
    valkey:
      host: cache.internal
      port: 6379
      keyPrefix: "nodered:"
      enableCompression: true
"""
from __future__ import annotations
from pathlib import Path
from typing import Any, List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

CONFIG_SECTION = "valkey"


class ContextStoreConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    host: str = "localhost"
    port: int = 6379
    username: Optional[str] = None
    password: Optional[str] = None
    db: int = 0
    tls: bool = False
    # Sentinel mode is used when at least one sentinel is configured.
    sentinels: List[Tuple[str, int]] = Field(default_factory=list)
    name: str = "mymaster"
    sentinel_password: Optional[str] = Field(default=None, alias="sentinelPassword")

    key_prefix: str = Field(default="nodered:", alias="keyPrefix")
    enable_compression: bool = Field(default=False, alias="enableCompression")
    timeout: int = Field(default=5000, gt=0, description="Operation timeout in milliseconds")

    @field_validator("sentinels", mode="before")
    @classmethod
    def _sentinel_pairs(cls, v: Any) -> Any:
        # Accept [{host, port}] as written in host settings files.
        if not isinstance(v, list):
            return v
        return [(s.get("host"), s.get("port", 26379)) if isinstance(s, dict) else s for s in v]

    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000.0


def load_config(path: str | Path) -> ContextStoreConfig:
    """Load a ContextStoreConfig from a YAML file.

    Raises FileNotFoundError if the file is missing and ValueError if it is
    not a YAML mapping.
    """
    cfg_path = Path(path)
    with cfg_path.open("r", encoding="utf-8") as f:
        try:
            data: Any = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"invalid config format: parse error in {cfg_path}") from e
    if not isinstance(data, dict):
        raise ValueError("invalid config format: expected mapping")
    section = data.get(CONFIG_SECTION, data)
    if not isinstance(section, dict):
        raise ValueError(f"invalid config format: '{CONFIG_SECTION}' must be a mapping")
    return ContextStoreConfig.model_validate(section)
