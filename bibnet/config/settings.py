from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
        env_prefix="BIBNET_",
    )

    # ------------------------------------------------------------------
    # Core paths / logging
    # ------------------------------------------------------------------
    DATA_DIR: Path = Field(
        default=Path("data"),
        description="Base data directory for record bundles and store snapshots.",
    )

    GRAPH_DEFAULT_NAME: str = Field(
        default="bibnet",
        description="Default snapshot name for data/graph/{name}.gpickle",
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Log level used by the CLI logging handler.",
    )

    # ------------------------------------------------------------------
    # Store / inference
    # ------------------------------------------------------------------
    STORE_EXCLUSIVE_KEYS: bool = Field(
        default=False,
        description=(
            "If True, a natural key may belong to a single label only; "
            "re-using it under another label raises DuplicateKeyConflict."
        ),
    )

    CITATION_MAX_DEPTH: int = Field(
        default=2,
        ge=1,
        description="Path expansion depth used by citation-candidate inference.",
    )

    PUBLISHED_ATTRIBUTE: str = Field(
        default="published",
        description="Paper attribute holding the publication year.",
    )

    KEYWORD_MIN_LENGTH: int = Field(
        default=4,
        ge=1,
        description="Minimum length of title words kept as keywords during ingestion.",
    )

    # ------------------------------------------------------------------
    # Analytics defaults
    # ------------------------------------------------------------------
    PAGERANK_DAMPING: float = Field(default=0.85, gt=0.0, lt=1.0)
    PAGERANK_MAX_ITERATIONS: int = Field(default=20, ge=1)
    PAGERANK_TOLERANCE: float = Field(default=1e-6, ge=0.0)

    LOUVAIN_MAX_LEVELS: int = Field(default=10, ge=1)
    LOUVAIN_MAX_ITERATIONS: int = Field(default=10, ge=1)
    LOUVAIN_RESOLUTION: float = Field(default=1.0, gt=0.0)

    SIMILARITY_TOP_K: Optional[int] = Field(
        default=None,
        ge=1,
        description="Keep only the top-k most similar pairs. None keeps all.",
    )
    SIMILARITY_CUTOFF: float = Field(
        default=0.0,
        ge=0.0,
        lt=1.0,
        description="Pairs must score strictly above this value.",
    )

    # ------------------------------------------------------------------
    # Convenience derived paths
    # ------------------------------------------------------------------
    @property
    def graph_dir(self) -> Path:
        return self.DATA_DIR / "graph"

    @property
    def default_graph_file(self) -> Path:
        return self.graph_dir / f"{self.GRAPH_DEFAULT_NAME}.gpickle"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Singleton-style accessor so we only construct Settings once and
    ensure the snapshot directory exists on first access.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.graph_dir.mkdir(parents=True, exist_ok=True)

    return _settings


settings = get_settings()
