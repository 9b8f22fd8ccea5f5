"""Request payloads accepted by the board HTTP API."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .board import EdgeKind, Orientation


class TaskCreate(BaseModel):
    """Request payload to create a task line and its node."""

    text: str = Field(..., min_length=1, max_length=4096)
    x: float = 0
    y: float = 0
    doc_path: Optional[str] = Field(None, description="Target document; defaults to the task file")

    @field_validator("text")
    @classmethod
    def single_line(cls, value: str) -> str:
        if "\n" in value:
            raise ValueError("Task text must be a single line")
        return value


class NoteNodeCreate(BaseModel):
    note_path: str = Field(..., min_length=1, max_length=256)
    x: float = 0
    y: float = 0


class PostItCreate(BaseModel):
    x: float = 0
    y: float = 0
    color: Optional[str] = None
    content: str = ""


class BoardCardCreate(BaseModel):
    board_path: str = Field(..., min_length=1, max_length=256)
    x: float = 0
    y: float = 0

    @field_validator("board_path")
    @classmethod
    def validate_suffix(cls, value: str) -> str:
        if not value.endswith(".mtask"):
            raise ValueError("Board path must end with .mtask")
        return value


class NodeUpdate(BaseModel):
    """Partial update of a node; only provided fields are applied."""

    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = Field(None, gt=0)
    height: Optional[float] = Field(None, gt=0)
    color: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    lane: Optional[str] = None
    attached_to: Optional[str] = None
    checked: Optional[bool] = None


class EdgeCreate(BaseModel):
    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    type: EdgeKind = EdgeKind.LINK


class EdgeUpdate(BaseModel):
    """Set the kind, cycle it, or change the label of an edge."""

    type: Optional[EdgeKind] = None
    cycle: bool = False
    label: Optional[str] = None


class GroupCreate(BaseModel):
    ids: List[str] = Field(..., min_length=1)
    name: str = ""


class LaneCreate(BaseModel):
    label: str = ""
    x: float = 0
    y: float = 0
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    orient: Orientation = "vertical"


class LaneUpdate(BaseModel):
    label: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = Field(None, gt=0)
    height: Optional[float] = Field(None, gt=0)
    orient: Optional[Orientation] = None


class BoardSettingsUpdate(BaseModel):
    orientation: Optional[Orientation] = None
    snap_to_grid: Optional[bool] = None
    title: Optional[str] = None


class LayoutRequest(BaseModel):
    ids: List[str] = Field(default_factory=list)


class AlignRequest(BaseModel):
    ids: List[str] = Field(..., min_length=1)
    mode: Literal["left", "right", "top", "bottom", "hcenter", "vcenter"]


__all__ = [
    "AlignRequest",
    "BoardCardCreate",
    "BoardSettingsUpdate",
    "EdgeCreate",
    "EdgeUpdate",
    "GroupCreate",
    "LaneCreate",
    "LaneUpdate",
    "LayoutRequest",
    "NodeUpdate",
    "NoteNodeCreate",
    "PostItCreate",
    "TaskCreate",
]
