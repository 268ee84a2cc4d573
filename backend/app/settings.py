from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_out_dir() -> str:
    # Keep logs and run output in backend/out by default.
    return str(Path(__file__).resolve().parents[1] / "out")


class Settings(BaseSettings):
    """Env-driven settings for the map backend."""

    model_config = SettingsConfigDict(
        # Support both "repo root/.env" and "backend/.env" (local dev)
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    out_dir: str = Field(default_factory=_default_out_dir, alias="OUT_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # OSM XML extract loaded at startup. Empty means "no graph" (API answers 503).
    map_db_path: str = Field(default="", alias="MAP_DB_PATH")

    # Root tile covers this box; depth d splits each axis into 2**d steps.
    root_ullon: float = Field(default=-122.2998046875, alias="ROOT_ULLON")
    root_ullat: float = Field(default=37.892195547244356, alias="ROOT_ULLAT")
    root_lrlon: float = Field(default=-122.2119140625, alias="ROOT_LRLON")
    root_lrlat: float = Field(default=37.82280243352756, alias="ROOT_LRLAT")
    tile_size: int = Field(default=256, ge=1, alias="TILE_SIZE")
    max_tile_depth: int = Field(default=7, ge=0, le=7, alias="MAX_TILE_DEPTH")

    route_cache_ttl_s: int = Field(default=600, ge=1, alias="ROUTE_CACHE_TTL_S")
    route_cache_max_entries: int = Field(default=1024, ge=1, alias="ROUTE_CACHE_MAX_ENTRIES")
    # 0 disables the A* deadline.
    route_search_timeout_s: float = Field(default=0.0, ge=0.0, le=600.0, alias="ROUTE_SEARCH_TIMEOUT_S")

    @model_validator(mode="after")
    def _check_root_box(self) -> "Settings":
        if not (self.root_ullon < self.root_lrlon and self.root_lrlat < self.root_ullat):
            raise ValueError(
                "root bounding box is degenerate "
                f"(ullon={self.root_ullon}, ullat={self.root_ullat}, "
                f"lrlon={self.root_lrlon}, lrlat={self.root_lrlat})"
            )
        self.log_level = str(self.log_level or "INFO").strip().upper() or "INFO"
        return self


settings = Settings()
