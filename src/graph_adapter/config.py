"""Configuration for the Graph Tool Adapter."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


_DATA_DIR = Path(__file__).resolve().parent / "data"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    service_name: str = Field(default="graph-tool-adapter")

    graph_base_url: str = Field(default="https://graph.microsoft.com")
    graph_api_version: str = Field(default="v1.0")
    graph_access_token: Optional[str] = Field(default=None)
    graph_timeout_seconds: float = Field(default=30)

    adapter_transport: str = Field(default="stdio")
    adapter_host: str = Field(default="0.0.0.0")
    adapter_port: int = Field(default=3000)
    adapter_auth_token: Optional[str] = Field(default=None)

    adapter_read_only: bool = Field(default=False)
    adapter_org_mode: bool = Field(default=False)
    adapter_discovery: bool = Field(default=False)
    adapter_enabled_tools: Optional[str] = Field(default=None)
    adapter_presets: Optional[str] = Field(default=None)

    adapter_catalog_path: str = Field(default=str(_DATA_DIR / "api.json"))
    adapter_endpoints_path: str = Field(default=str(_DATA_DIR / "endpoints.json"))

    adapter_log_level: str = Field(default="INFO")

    def presets(self) -> List[str]:
        if not self.adapter_presets:
            return []
        return [item.strip() for item in self.adapter_presets.split(",") if item.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
