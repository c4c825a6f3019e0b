"""
Configuration management.

Loads settings from environment variables and .env file.
Prefix: MEMORIA_
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MEMORIA_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Storage
    data_dir: Path = Field(default=Path("data"), description="Data storage directory")
    db_name: str = Field(default="memoria.db", description="SQLite database name")
    busy_timeout: float = Field(
        default=5.0, gt=0, description="Seconds a writer waits for the database lock"
    )

    # Embeddings
    embedding_provider: Literal["sentence_transformers", "openai_compatible", "hash"] = Field(
        default="sentence_transformers", description="Embedding provider backend"
    )
    embedding_model: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2",
        description="Embedding model name (384 dimensions)",
    )
    embedding_url: str = Field(
        default="http://localhost:1234/v1",
        description="OpenAI-compatible embeddings endpoint",
    )
    embedding_timeout: float = Field(
        default=30.0, gt=0, description="Seconds to wait for one embedding"
    )

    # Similarity search
    search_backend: Literal["exact", "hnsw"] = Field(
        default="exact", description="Similarity backend: exact scan or HNSW index"
    )
    hnsw_m: int = Field(default=16, ge=2, description="HNSW neighbour fan-out")
    hnsw_ef_construction: int = Field(default=64, ge=1, description="HNSW build effort")
    hnsw_ef_search: int = Field(default=40, ge=1, description="HNSW query effort")
    hnsw_candidate_pool: int = Field(
        default=200, ge=1, description="Nearest candidates considered before ranking"
    )

    # JSON value boundary
    json_max_depth: int = Field(default=16, ge=1, description="Max nesting of JSON values")
    json_max_bytes: int = Field(
        default=65536, ge=16, description="Max serialized size of a JSON value"
    )

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings()
