"""Board-level operations over an explicit board context."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import secrets
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..models.board import (
    Board,
    BoardRefNode,
    Edge,
    EdgeKind,
    GroupNode,
    Lane,
    LaneMemberNode,
    NodeBase,
    NoteNode,
    Orientation,
    PostItNode,
    TaskNode,
    TEXT_KINDS,
)
from ..models.task import Task
from . import relation_codec as codec
from .board_store import board_title, get_board_file, load_board, save_board, update_board_cards
from .config import AppConfig
from .documents import DocumentExistsError, DocumentStore
from .extractor import normalize_note_path
from .layout import rearrange
from .reconcile import ReconciliationEngine
from .relations import RelationMutator
from .task_tree import TaskTreeNode, build_task_tree

logger = logging.getLogger(__name__)

CYCLE_ORDER: Tuple[EdgeKind, ...] = (EdgeKind.DEPENDS, EdgeKind.SUBTASK, EdgeKind.SEQUENCE)
ALIGN_MODES = ("left", "right", "top", "bottom", "hcenter", "vcenter")
DEFAULT_POST_IT_COLOR = "#fff9a8"


def new_node_id(prefix: str) -> str:
    return f"{prefix}-{secrets.token_hex(4)}"


@dataclass
class BoardContext:
    """Everything one open board needs: the board, its task map and settings."""

    board_path: str
    board: Board
    config: AppConfig
    tasks: Dict[str, Task] = field(default_factory=dict)


class BoardController:
    """Apply user commands to a board and persist after each one."""

    def __init__(self, context: BoardContext, store: DocumentStore) -> None:
        self.context = context
        self.store = store
        self.engine = ReconciliationEngine(context, store)
        self.relations = RelationMutator(
            store, context.tasks, use_block_id=context.config.use_block_id
        )

    @property
    def board(self) -> Board:
        return self.context.board

    @property
    def tasks(self) -> Dict[str, Task]:
        return self.context.tasks

    @property
    def config(self) -> AppConfig:
        return self.context.config

    def save(self) -> None:
        save_board(self.store, self.context.board_path, self.board)

    def refresh(self) -> bool:
        return self.engine.refresh()

    def handle_document_change(self, doc_path: str) -> bool:
        return self.engine.handle_document_change(doc_path)

    def task_tree(self) -> List[TaskTreeNode]:
        return build_task_tree(self.board)

    # -------------------- nodes --------------------
    def add_task(self, text: str, x: float, y: float, doc_path: str | None = None) -> str:
        """Append a checklist line to a document and place it on the board."""
        parsed = codec.decode(text)
        description = parsed.meta("description")
        line_text = codec.remove_field(text, "description") if description is not None else text.strip()
        task = self.relations.create_task(doc_path or self.config.default_task_file, line_text)
        task.description = description
        task.note_path = normalize_note_path(parsed.meta("notePath"))
        self.board.nodes[task.id] = TaskNode(
            x=x, y=y, title=codec.decode(line_text).title, description=description
        )
        self.save()
        return task.id

    def add_existing_task(self, task_id: str, x: float, y: float) -> bool:
        task = self.tasks.get(task_id)
        if task is None:
            return False
        self.board.nodes[task_id] = TaskNode(x=x, y=y, title=codec.decode(task.text).title)
        self.save()
        return True

    def add_note_node(self, note_path: str, x: float, y: float) -> str:
        path = normalize_note_path(note_path) or note_path
        node_id = new_node_id("n")
        self.board.nodes[node_id] = NoteNode(
            x=x,
            y=y,
            width=200,
            height=200,
            note_path=path,
            title=PurePosixPath(path).stem,
        )
        self.save()
        return node_id

    def add_post_it(self, x: float, y: float, color: str = DEFAULT_POST_IT_COLOR) -> str:
        node_id = new_node_id("p")
        self.board.nodes[node_id] = PostItNode(x=x, y=y, width=120, height=120, color=color)
        self.save()
        return node_id

    def update_post_it(self, node_id: str, content: str) -> bool:
        node = self.board.nodes.get(node_id)
        if not isinstance(node, PostItNode):
            return False
        node.content = content
        self.save()
        return True

    def add_board_card(self, board_path: str, x: float, y: float) -> str:
        node_id = new_node_id("b")
        name = board_title(board_path)
        self.board.nodes[node_id] = BoardRefNode(
            x=x, y=y, width=160, height=80, board_path=board_path, name=name, title=name
        )
        update_board_cards(self.board, self.store, board_path, self.tasks)
        self.save()
        return node_id

    def refresh_board_card(self, board_path: str) -> bool:
        if not update_board_cards(self.board, self.store, board_path, self.tasks):
            return False
        self.save()
        return True

    def _clamp_to_lane(self, node: NodeBase, x: float, y: float) -> Tuple[float, float]:
        lane = self.board.lanes.get(node.lane) if node.lane else None
        if lane is None:
            return x, y
        width, height = node.size()
        x = max(lane.x, min(x, lane.x + lane.width - width))
        y = max(lane.y, min(y, lane.y + lane.height - height))
        return x, y

    def move_node(self, node_id: str, x: float, y: float, bypass_lane_clamp: bool = False) -> bool:
        """Move a node, clamped to its lane; nodes attached to it follow."""
        node = self.board.nodes.get(node_id)
        if node is None:
            return False
        if not bypass_lane_clamp:
            x, y = self._clamp_to_lane(node, x, y)
        dx, dy = x - node.x, y - node.y
        node.x, node.y = x, y
        if dx or dy:
            for other in self.board.nodes.values():
                if (other.model_extra or {}).get("attachedTo") == node_id:
                    other.x += dx
                    other.y += dy
        self.save()
        return True

    def resize_node(self, node_id: str, width: float, height: float) -> bool:
        node = self.board.nodes.get(node_id)
        if node is None:
            return False
        lane = self.board.lanes.get(node.lane) if node.lane else None
        if lane is not None:
            width = min(width, lane.width - (node.x - lane.x))
            height = min(height, lane.height - (node.y - lane.y))
        node.width, node.height = width, height
        self.save()
        return True

    def set_node_color(self, node_id: str, color: str | None) -> bool:
        node = self.board.nodes.get(node_id)
        if node is None:
            return False
        node.color = color or None
        self.save()
        return True

    def attach_node(self, node_id: str, target: str | None) -> bool:
        node = self.board.nodes.get(node_id)
        if node is None:
            return False
        if target:
            setattr(node, "attachedTo", target)
        elif node.model_extra:
            node.model_extra.pop("attachedTo", None)
        self.save()
        return True

    def _drop_node(self, node_id: str) -> None:
        self.board.nodes.pop(node_id, None)
        self.board.edges = [
            edge for edge in self.board.edges if edge.from_ != node_id and edge.to != node_id
        ]
        for node in self.board.nodes.values():
            if isinstance(node, GroupNode) and node_id in node.members:
                node.members = [member for member in node.members if member != node_id]

    def delete_node(self, node_id: str) -> bool:
        """Remove a node; a task node also deletes or tombstones its line."""
        if node_id not in self.board.nodes and node_id not in self.tasks:
            return False
        if node_id in self.tasks:
            if self.config.delete_permanently:
                self.relations.remove_line(node_id)
            else:
                self.relations.soft_delete(node_id)
        self._drop_node(node_id)
        self.save()
        return True

    def set_checked(self, task_id: str, checked: bool) -> bool:
        return self.relations.set_checked(task_id, checked)

    def toggle_check(self, task_id: str) -> bool:
        task = self.tasks.get(task_id)
        if task is None:
            return False
        return self.relations.set_checked(task_id, not task.checked)

    def rename_task(self, task_id: str, title: str) -> bool:
        if task_id not in self.tasks:
            return False
        self.relations.rename(task_id, title)
        node = self.board.nodes.get(task_id)
        if node is not None:
            node.title = title.strip()
            self.save()
        return True

    def set_description(self, task_id: str, description: str) -> bool:
        """Store a description in the linked note, or on the board node."""
        task = self.tasks.get(task_id)
        if task is None:
            return False
        self.relations.clear_description_field(task_id)
        task.description = description
        node = self.board.nodes.get(task_id)
        if task.note_path:
            try:
                self.store.create(task.note_path, description)
            except DocumentExistsError:
                self.store.modify(task.note_path, description)
            if isinstance(node, TaskNode):
                node.description = None
        elif isinstance(node, TaskNode):
            node.description = description or None
        self.save()
        return True

    def create_detailed_note(self, task_id: str) -> Optional[str]:
        """Create ``<id>.md`` for a task and link it through ``notePath``."""
        task = self.tasks.get(task_id)
        if task is None:
            return None
        folder = self.config.notes_folder.strip().strip("/")
        if not folder:
            parent = PurePosixPath(task.path).parent.as_posix()
            folder = "" if parent == "." else parent
        note_path = f"{folder}/{task_id}.md" if folder else f"{task_id}.md"
        try:
            self.store.create(note_path, task.description or "")
        except DocumentExistsError:
            logger.debug("Detailed note %s already exists", note_path)
        self.relations.set_note_path(task_id, note_path)
        return note_path

    def merge_nodes(self, source_id: str, target_id: str) -> bool:
        """Fold ``source`` into ``target``: description, edges and attachments move over."""
        if not source_id or not target_id or source_id == target_id:
            return False
        source = self.board.nodes.get(source_id)
        target = self.board.nodes.get(target_id)
        if source is None or target is None:
            return False

        source_task = self.tasks.get(source_id)
        source_extra = source.model_extra or {}
        parsed_title = codec.decode(source_task.text).title if source_task else None
        title = (source.title or parsed_title or source_extra.get("name") or source_id).strip()

        fragments = [f"**{title}**"] if title else []
        descriptions: Dict[str, None] = {}
        for candidate in (
            getattr(source, "description", None),
            source_task.description if source_task else None,
        ):
            if candidate and candidate.strip():
                descriptions[candidate.strip()] = None
        fragments.extend(descriptions)
        note_path = getattr(source, "note_path", None) or (source_task.note_path if source_task else None)
        if note_path:
            fragments.append(f"[[{note_path.removeprefix('[[').removesuffix(']]')}]]")
        merged_text = "\n\n".join(fragment for fragment in fragments if fragment)

        if merged_text:
            target_task = self.tasks.get(target_id)
            existing = getattr(target, "description", None) or (
                target_task.description if target_task else None
            )
            combined = f"{existing}\n\n---\n{merged_text}" if existing else merged_text
            setattr(target, "description", combined)

        merged_from = list((target.model_extra or {}).get("mergedFrom") or [])
        if source_id not in merged_from:
            merged_from.append(source_id)
            setattr(target, "mergedFrom", merged_from)

        for node in self.board.nodes.values():
            if (node.model_extra or {}).get("attachedTo") == source_id:
                setattr(node, "attachedTo", target_id)

        seen = set()
        edges: List[Edge] = []
        for edge in self.board.edges:
            start = target_id if edge.from_ == source_id else edge.from_
            end = target_id if edge.to == source_id else edge.to
            if start == end:
                continue
            key = (start, end, edge.type, edge.label or "")
            if key in seen:
                continue
            seen.add(key)
            edges.append(edge.model_copy(update={"from_": start, "to": end}))
        self.board.edges = edges
        del self.board.nodes[source_id]
        self.save()
        return True

    # -------------------- groups --------------------
    def _bounds(self, ids: Iterable[str], padding: float) -> Optional[Tuple[float, float, float, float]]:
        nodes = [self.board.nodes[node_id] for node_id in ids if node_id in self.board.nodes]
        if not nodes:
            return None
        left = min(node.x for node in nodes) - padding
        top = min(node.y for node in nodes) - padding
        right = max(node.x + node.size()[0] for node in nodes) + padding
        bottom = max(node.y + node.size()[1] for node in nodes) + padding
        return left, top, right - left, bottom - top

    def group_nodes(self, ids: Sequence[str], name: str = "", padding: float = 20) -> Optional[str]:
        members = [node_id for node_id in dict.fromkeys(ids) if node_id in self.board.nodes]
        bounds = self._bounds(members, padding)
        if bounds is None:
            return None
        x, y, width, height = bounds
        group_id = new_node_id("g")
        self.board.nodes[group_id] = GroupNode(
            x=x, y=y, width=width, height=height, name=name, members=members
        )
        for member in members:
            setattr(self.board.nodes[member], "group", group_id)
        self.save()
        return group_id

    def ungroup(self, group_id: str) -> bool:
        group = self.board.nodes.get(group_id)
        if not isinstance(group, GroupNode):
            return False
        for member in group.members:
            node = self.board.nodes.get(member)
            if node is not None and node.model_extra:
                node.model_extra.pop("group", None)
        self._drop_node(group_id)
        self.save()
        return True

    def toggle_group_collapse(self, group_id: str) -> bool:
        group = self.board.nodes.get(group_id)
        if not isinstance(group, GroupNode):
            return False
        group.collapsed = not group.collapsed
        self.save()
        return True

    def fit_group_to_members(self, group_id: str, padding: float = 20) -> bool:
        group = self.board.nodes.get(group_id)
        if not isinstance(group, GroupNode):
            return False
        bounds = self._bounds(group.members, padding)
        if bounds is None:
            return False
        group.x, group.y, group.width, group.height = bounds
        self.save()
        return True

    # -------------------- lanes --------------------
    def create_lane(
        self,
        label: str,
        x: float,
        y: float,
        width: float,
        height: float,
        orient: Orientation = "vertical",
    ) -> str:
        lane_id = new_node_id("l")
        self.board.lanes[lane_id] = Lane(
            id=lane_id, label=label, x=x, y=y, width=width, height=height, orient=orient
        )
        self.save()
        return lane_id

    def move_lane(
        self,
        lane_id: str,
        x: float,
        y: float,
        width: float | None = None,
        height: float | None = None,
    ) -> bool:
        """Move or resize a lane; member nodes move with it."""
        lane = self.board.lanes.get(lane_id)
        if lane is None:
            return False
        dx, dy = x - lane.x, y - lane.y
        lane.x, lane.y = x, y
        if width is not None:
            lane.width = width
        if height is not None:
            lane.height = height
        if dx or dy:
            for node in self.board.nodes.values():
                if node.lane == lane_id:
                    node.x += dx
                    node.y += dy
        self.save()
        return True

    def rename_lane(self, lane_id: str, label: str) -> bool:
        lane = self.board.lanes.get(lane_id)
        if lane is None:
            return False
        lane.label = label
        self.save()
        return True

    def set_lane_orientation(self, lane_id: str, orient: Orientation) -> bool:
        lane = self.board.lanes.get(lane_id)
        if lane is None:
            return False
        lane.orient = orient
        self.save()
        return True

    def delete_lane(self, lane_id: str) -> bool:
        """Remove a lane; lane-member nodes go with it, other nodes are released."""
        if self.board.lanes.pop(lane_id, None) is None:
            return False
        for node_id, node in list(self.board.nodes.items()):
            if node.lane != lane_id:
                continue
            if isinstance(node, LaneMemberNode):
                self._drop_node(node_id)
            else:
                node.lane = None
        self.save()
        return True

    def assign_node_to_lane(self, node_id: str, lane_id: str | None) -> bool:
        node = self.board.nodes.get(node_id)
        if node is None or (lane_id and lane_id not in self.board.lanes):
            return False
        if isinstance(node, LaneMemberNode) and not lane_id:
            return False
        node.lane = lane_id or None
        self.save()
        return True

    # -------------------- board settings --------------------
    def set_orientation(self, orientation: Orientation) -> None:
        self.board.orientation = orientation
        self.save()

    def set_snap_to_grid(self, enable: bool) -> None:
        self.board.snap_to_grid = enable
        self.save()

    def set_title(self, title: str) -> None:
        self.board.title = title.strip() or board_title(self.context.board_path)
        self.save()

    # -------------------- edges --------------------
    def _edge(self, index: int) -> Optional[Edge]:
        if 0 <= index < len(self.board.edges):
            return self.board.edges[index]
        return None

    def _both_tasks(self, edge: Edge) -> bool:
        return edge.from_ in self.tasks and edge.to in self.tasks

    def create_edge(self, source_id: str, target_id: str, kind: EdgeKind | str) -> int:
        """Add an edge; between two tasks the relation token is written too."""
        missing = [node_id for node_id in (source_id, target_id) if node_id not in self.board.nodes]
        if missing:
            raise ValueError(f"Edge endpoint '{missing[0]}' is not a board node")
        edge = Edge(from_=source_id, to=target_id, type=EdgeKind(kind))
        if self._both_tasks(edge) and edge.type in TEXT_KINDS:
            self.relations.apply_relation(edge.type, source_id, target_id)
        for index, existing in enumerate(self.board.edges):
            if existing.signature == edge.signature:
                return index
        self.board.edges.append(edge)
        self.save()
        return len(self.board.edges) - 1

    def cycle_edge_type(self, index: int) -> Optional[Edge]:
        """Advance depends → subtask → sequence.

        The depends token sits on the dependent while subtask/sequence tokens
        sit on the child, so entering or leaving depends swaps the endpoints.
        """
        edge = self._edge(index)
        if edge is None:
            return None
        position = CYCLE_ORDER.index(edge.type) if edge.type in CYCLE_ORDER else -1
        next_kind = CYCLE_ORDER[(position + 1) % len(CYCLE_ORDER)]
        if self._both_tasks(edge):
            swap = EdgeKind.DEPENDS in (edge.type, next_kind)
            edge.from_, edge.to = self.relations.retype(
                edge.type, next_kind, edge.from_, edge.to, swap=swap
            )
        edge.type = next_kind
        self.save()
        return edge

    def set_edge_type(self, index: int, kind: EdgeKind | str) -> Optional[Edge]:
        edge = self._edge(index)
        kind = EdgeKind(kind)
        if edge is None:
            return None
        if edge.type == kind:
            return edge
        if self._both_tasks(edge):
            self.relations.retype(edge.type, kind, edge.from_, edge.to)
        edge.type = kind
        self.save()
        return edge

    def delete_edge(self, index: int) -> bool:
        edge = self._edge(index)
        if edge is None:
            return False
        if self._both_tasks(edge):
            self.relations.remove_relation(edge.type, edge.from_, edge.to)
        del self.board.edges[index]
        self.save()
        return True

    def set_edge_label(self, index: int, label: str | None) -> Optional[Edge]:
        edge = self._edge(index)
        if edge is None:
            return None
        edge.label = label or None
        self.save()
        return edge

    # -------------------- layout --------------------
    def rearrange(self, ids: Sequence[str]) -> Dict[str, Tuple[float, float]]:
        orientation = self.board.orientation
        if orientation == "vertical":
            spacing_a, spacing_b = self.config.rearrange_spacing_x, self.config.rearrange_spacing_y
        else:
            spacing_a, spacing_b = self.config.rearrange_spacing_y, self.config.rearrange_spacing_x
        placed = rearrange(self.board, ids, orientation, spacing_a, spacing_b)
        if placed:
            self.save()
        return placed

    def align_nodes(self, ids: Sequence[str], mode: str) -> bool:
        if mode not in ALIGN_MODES:
            raise ValueError(f"Unknown alignment '{mode}'")
        nodes = [self.board.nodes[node_id] for node_id in ids if node_id in self.board.nodes]
        if not nodes:
            return False
        sizes = [node.size() for node in nodes]
        if mode == "left":
            left = min(node.x for node in nodes)
            for node in nodes:
                node.x = left
        elif mode == "right":
            right = max(node.x + width for node, (width, _h) in zip(nodes, sizes))
            for node, (width, _h) in zip(nodes, sizes):
                node.x = right - width
        elif mode == "top":
            top = min(node.y for node in nodes)
            for node in nodes:
                node.y = top
        elif mode == "bottom":
            bottom = max(node.y + height for node, (_w, height) in zip(nodes, sizes))
            for node, (_w, height) in zip(nodes, sizes):
                node.y = bottom - height
        elif mode == "hcenter":
            center = sum(node.x + width / 2 for node, (width, _h) in zip(nodes, sizes)) / len(nodes)
            for node, (width, _h) in zip(nodes, sizes):
                node.x = center - width / 2
        else:
            center = sum(node.y + height / 2 for node, (_w, height) in zip(nodes, sizes)) / len(nodes)
            for node, (_w, height) in zip(nodes, sizes):
                node.y = center - height / 2
        self.save()
        return True


def open_board(
    board_path: str,
    config: AppConfig | None = None,
    store: DocumentStore | None = None,
    *,
    refresh: bool = True,
) -> BoardController:
    """Load (or create) a board file and reconcile it with the documents."""
    store = store or DocumentStore(config)
    config = config or store.config
    path = get_board_file(store, board_path)
    context = BoardContext(board_path=path, board=load_board(store, path), config=config)
    controller = BoardController(context, store)
    if refresh:
        controller.refresh()
    return controller


__all__ = ["BoardContext", "BoardController", "open_board", "new_node_id", "CYCLE_ORDER"]
