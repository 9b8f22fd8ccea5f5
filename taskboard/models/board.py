"""Persisted board models (nodes, edges, lanes)."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, field_validator

CURRENT_VERSION = 1

Orientation = Literal["vertical", "horizontal"]


class EdgeKind(str, Enum):
    """Relation kind carried by an edge."""

    DEPENDS = "depends"
    SUBTASK = "subtask"
    SEQUENCE = "sequence"
    LINK = "link"


# Kinds that are encoded as tokens in checklist text. "link" lives on the board only.
TEXT_KINDS: Tuple[EdgeKind, ...] = (EdgeKind.DEPENDS, EdgeKind.SUBTASK, EdgeKind.SEQUENCE)


class Lane(BaseModel):
    """Rectangular swim lane; member nodes are clamped to it."""

    id: str
    label: str = ""
    x: float = 0
    y: float = 0
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    orient: Orientation = "vertical"


class Edge(BaseModel):
    """Directed, typed relation between two node or task ids."""

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(..., alias="from")
    to: str
    type: EdgeKind = EdgeKind.LINK
    label: Optional[str] = None

    @property
    def signature(self) -> Tuple[str, str, EdgeKind]:
        return (self.from_, self.to, self.type)


class NodeBase(BaseModel):
    """Positional header shared by every node variant.

    Unknown keys found in a board file are kept as extra attributes so a
    load/save cycle never loses data written by other clients.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    DEFAULT_WIDTH: ClassVar[float] = 120
    DEFAULT_HEIGHT: ClassVar[float] = 40

    x: float = 0
    y: float = 0
    width: Optional[float] = None
    height: Optional[float] = None
    lane: Optional[str] = None
    color: Optional[str] = None
    title: Optional[str] = None

    def size(self) -> Tuple[float, float]:
        """Effective (width, height) with variant defaults applied."""
        width = self.width if self.width is not None else self.DEFAULT_WIDTH
        height = self.height if self.height is not None else self.DEFAULT_HEIGHT
        return width, height


class TaskNode(NodeBase):
    """Node backed by a checklist task; shares the task identifier."""

    type: Optional[Literal["task"]] = None
    description: Optional[str] = None


class GroupNode(NodeBase):
    DEFAULT_HEIGHT: ClassVar[float] = 80

    type: Literal["group"] = "group"
    name: str = ""
    members: List[str] = Field(default_factory=list)
    collapsed: bool = False


class LaneMemberNode(NodeBase):
    type: Literal["lane-member"] = "lane-member"
    lane: str


class NoteNode(NodeBase):
    type: Literal["note"] = "note"
    note_path: str = Field(..., alias="notePath")


class PostItNode(NodeBase):
    type: Literal["post-it"] = "post-it"
    content: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _legacy_type(cls, value: Any) -> Any:
        return "post-it" if value == "postit" else value


class BoardRefNode(NodeBase):
    """Card pointing at another board file, with cached counts."""

    type: Literal["board"] = "board"
    board_path: str = Field(..., alias="boardPath")
    name: str = ""
    task_count: int = Field(default=0, alias="taskCount")
    completed_count: int = Field(default=0, alias="completedCount")
    last_modified: Optional[float] = Field(default=None, alias="lastModified")


NODE_TYPES: Dict[str, type] = {
    "task": TaskNode,
    "group": GroupNode,
    "lane-member": LaneMemberNode,
    "note": NoteNode,
    "post-it": PostItNode,
    "board": BoardRefNode,
}

STRUCTURAL_NODE_TYPES: Tuple[type, ...] = (
    GroupNode,
    LaneMemberNode,
    NoteNode,
    PostItNode,
    BoardRefNode,
)


def _node_tag(value: Any) -> str:
    if isinstance(value, dict):
        tag = value.get("type")
    else:
        tag = getattr(value, "type", None)
    if not tag:
        return "task"
    return "post-it" if tag == "postit" else tag


Node = Annotated[
    Union[
        Annotated[TaskNode, Tag("task")],
        Annotated[GroupNode, Tag("group")],
        Annotated[LaneMemberNode, Tag("lane-member")],
        Annotated[NoteNode, Tag("note")],
        Annotated[PostItNode, Tag("post-it")],
        Annotated[BoardRefNode, Tag("board")],
    ],
    Discriminator(_node_tag),
]


def is_structural(node: NodeBase) -> bool:
    """Structural nodes are not backed by a task and survive pruning."""
    return isinstance(node, STRUCTURAL_NODE_TYPES)


class Board(BaseModel):
    """Complete persisted board."""

    model_config = ConfigDict(populate_by_name=True)

    version: int = CURRENT_VERSION
    nodes: Dict[str, Node] = Field(default_factory=dict)
    edges: List[Edge] = Field(default_factory=list)
    lanes: Dict[str, Lane] = Field(default_factory=dict)
    orientation: Orientation = "vertical"
    snap_to_grid: bool = Field(default=True, alias="snapToGrid")
    title: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        """JSON-ready dict in the on-disk key layout."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def edge_signatures(self) -> set:
        return {edge.signature for edge in self.edges}


__all__ = [
    "CURRENT_VERSION",
    "Orientation",
    "EdgeKind",
    "TEXT_KINDS",
    "Lane",
    "Edge",
    "NodeBase",
    "TaskNode",
    "GroupNode",
    "LaneMemberNode",
    "NoteNode",
    "PostItNode",
    "BoardRefNode",
    "Node",
    "NODE_TYPES",
    "STRUCTURAL_NODE_TYPES",
    "is_structural",
    "Board",
]
