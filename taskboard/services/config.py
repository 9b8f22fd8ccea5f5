"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_DOCUMENT_ROOT = PROJECT_ROOT / "data" / "vault"


class AppConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    document_root: Path = Field(..., description="Directory holding Markdown documents and boards")
    board_folder: str = Field(default="", description="Folder for new board files")
    default_task_file: str = Field(
        default="Tasks.md", description="Document that receives tasks created on the board"
    )
    notes_folder: str = Field(default="", description="Folder for detailed task notes")
    tag_filters: List[str] = Field(
        default_factory=list, description="Only extract tasks carrying one of these tags"
    )
    folder_paths: List[str] = Field(
        default_factory=list, description="Only extract tasks below these folders"
    )
    use_block_id: bool = Field(
        default=True,
        description="Write identifiers as '^id' anchors instead of '[id:: id]' fields",
    )
    delete_permanently: bool = Field(
        default=False,
        description="Remove deleted task lines instead of marking them '[-]'",
    )
    rearrange_spacing_x: int = Field(default=40, ge=0)
    rearrange_spacing_y: int = Field(default=60, ge=0)

    @field_validator("document_root", mode="before")
    @classmethod
    def _normalize_root(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            raise ValueError("DOCUMENT_ROOT is required")
        if isinstance(value, Path):
            path = value
        else:
            path = Path(value)
        return path.expanduser().resolve()

    @field_validator("tag_filters", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Optional[List[str]]) -> List[str]:
        tags = []
        for tag in value or []:
            cleaned = str(tag).strip()
            if not cleaned:
                continue
            tags.append(cleaned if cleaned.startswith("#") else f"#{cleaned}")
        return tags

    @field_validator("folder_paths", mode="before")
    @classmethod
    def _normalize_folders(cls, value: Optional[List[str]]) -> List[str]:
        return [str(folder).strip().strip("/") for folder in value or [] if str(folder).strip()]


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


def _read_flag(key: str, default: str) -> bool:
    return (_read_env(key, default) or default).lower() not in {"0", "false", "no"}


def _read_list(key: str) -> List[str]:
    raw = _read_env(key, "") or ""
    return [item for item in raw.split(",") if item.strip()]


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration."""
    config = AppConfig(
        document_root=_read_env("DOCUMENT_ROOT", str(DEFAULT_DOCUMENT_ROOT)),
        board_folder=_read_env("BOARD_FOLDER", ""),
        default_task_file=_read_env("DEFAULT_TASK_FILE", "Tasks.md"),
        notes_folder=_read_env("NOTES_FOLDER", ""),
        tag_filters=_read_list("TAG_FILTERS"),
        folder_paths=_read_list("FOLDER_PATHS"),
        use_block_id=_read_flag("USE_BLOCK_ID", "true"),
        delete_permanently=_read_flag("DELETE_PERMANENTLY", "false"),
        rearrange_spacing_x=int(_read_env("REARRANGE_SPACING_X", "40")),
        rearrange_spacing_y=int(_read_env("REARRANGE_SPACING_Y", "60")),
    )
    # Ensure the document root exists for downstream services.
    config.document_root.mkdir(parents=True, exist_ok=True)
    return config


def reload_config() -> AppConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


__all__ = ["AppConfig", "get_config", "reload_config", "PROJECT_ROOT", "DEFAULT_DOCUMENT_ROOT"]
