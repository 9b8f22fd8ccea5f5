"""HTTP API routes for board operations."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query, Request

from ...models.board import GroupNode, PostItNode, TaskNode
from ...models.requests import (
    AlignRequest,
    BoardCardCreate,
    BoardSettingsUpdate,
    EdgeCreate,
    EdgeUpdate,
    GroupCreate,
    LaneCreate,
    LaneUpdate,
    LayoutRequest,
    NodeUpdate,
    NoteNodeCreate,
    PostItCreate,
    TaskCreate,
)
from ...services.board_store import BOARD_SUFFIX
from ...services.config import get_config
from ...services.controller import BoardController, open_board

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_BOARD_NAME = "Board.mtask"


def default_board_path() -> str:
    folder = get_config().board_folder.strip("/")
    return f"{folder}/{DEFAULT_BOARD_NAME}" if folder else DEFAULT_BOARD_NAME


def get_controller(request: Request, board: Optional[str]) -> BoardController:
    """Return the open controller for ``board``, opening it on first use."""
    board_path = board or default_board_path()
    if not board_path.endswith(BOARD_SUFFIX):
        raise HTTPException(
            status_code=400,
            detail={"error": "invalid_path", "message": f"Board path must end with {BOARD_SUFFIX}"},
        )
    sessions: Dict[str, BoardController] = request.app.state.sessions
    controller = sessions.get(board_path)
    if controller is None:
        controller = open_board(board_path, get_config())
        sessions[board_path] = controller
        logger.info("Opened board", extra={"board_path": board_path})
    return controller


def _board_payload(controller: BoardController) -> Dict[str, Any]:
    return {
        "path": controller.context.board_path,
        "board": controller.board.to_record(),
        "tasks": {
            task_id: {
                "path": task.path,
                "line": task.line,
                "text": task.text,
                "checked": task.checked,
                "description": task.description,
                "notePath": task.note_path,
            }
            for task_id, task in controller.tasks.items()
        },
    }


def _not_found(kind: str, identifier: Any) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{kind} '{identifier}' not found")


@router.get("/api/board")
async def get_board(request: Request, board: Optional[str] = Query(None)):
    """Load a board, reconciled against the current documents."""
    return _board_payload(get_controller(request, board))


@router.post("/api/board/refresh")
async def refresh_board(request: Request, board: Optional[str] = Query(None)):
    controller = get_controller(request, board)
    saved = controller.refresh()
    payload = _board_payload(controller)
    payload["saved"] = saved
    return payload


@router.post("/api/board/documents/changed")
async def document_changed(
    request: Request, path: str = Query(..., min_length=1), board: Optional[str] = Query(None)
):
    """Notify the board that ``path`` changed outside the API."""
    controller = get_controller(request, board)
    return {"changed": controller.handle_document_change(path)}


@router.get("/api/board/tree")
async def get_task_tree(request: Request, board: Optional[str] = Query(None)):
    controller = get_controller(request, board)
    return [node.to_dict() for node in controller.task_tree()]


@router.patch("/api/board")
async def update_board_settings(
    payload: BoardSettingsUpdate, request: Request, board: Optional[str] = Query(None)
):
    controller = get_controller(request, board)
    if payload.orientation is not None:
        controller.set_orientation(payload.orientation)
    if payload.snap_to_grid is not None:
        controller.set_snap_to_grid(payload.snap_to_grid)
    if payload.title is not None:
        controller.set_title(payload.title)
    return _board_payload(controller)


# -------------------- nodes --------------------
@router.post("/api/board/tasks", status_code=201)
async def create_task(payload: TaskCreate, request: Request, board: Optional[str] = Query(None)):
    controller = get_controller(request, board)
    task_id = controller.add_task(payload.text, payload.x, payload.y, payload.doc_path)
    return {"id": task_id}


@router.post("/api/board/notes", status_code=201)
async def create_note_node(
    payload: NoteNodeCreate, request: Request, board: Optional[str] = Query(None)
):
    controller = get_controller(request, board)
    return {"id": controller.add_note_node(payload.note_path, payload.x, payload.y)}


@router.post("/api/board/post-its", status_code=201)
async def create_post_it(payload: PostItCreate, request: Request, board: Optional[str] = Query(None)):
    controller = get_controller(request, board)
    if payload.color:
        node_id = controller.add_post_it(payload.x, payload.y, payload.color)
    else:
        node_id = controller.add_post_it(payload.x, payload.y)
    if payload.content:
        controller.update_post_it(node_id, payload.content)
    return {"id": node_id}


@router.post("/api/board/cards", status_code=201)
async def create_board_card(
    payload: BoardCardCreate, request: Request, board: Optional[str] = Query(None)
):
    controller = get_controller(request, board)
    return {"id": controller.add_board_card(payload.board_path, payload.x, payload.y)}


@router.patch("/api/board/nodes/{node_id}")
async def update_node(
    node_id: str, payload: NodeUpdate, request: Request, board: Optional[str] = Query(None)
):
    """Apply a partial node update; each provided field maps to one operation."""
    controller = get_controller(request, board)
    node = controller.board.nodes.get(node_id)
    if node is None:
        raise _not_found("Node", node_id)
    fields = payload.model_fields_set

    if "lane" in fields:
        if not controller.assign_node_to_lane(node_id, payload.lane):
            raise HTTPException(status_code=400, detail=f"Cannot assign node to lane '{payload.lane}'")
    if fields & {"x", "y"}:
        controller.move_node(
            node_id,
            payload.x if payload.x is not None else node.x,
            payload.y if payload.y is not None else node.y,
        )
    if fields & {"width", "height"}:
        width, height = node.size()
        controller.resize_node(
            node_id,
            payload.width if payload.width is not None else width,
            payload.height if payload.height is not None else height,
        )
    if "color" in fields:
        controller.set_node_color(node_id, payload.color)
    if "attached_to" in fields:
        controller.attach_node(node_id, payload.attached_to)
    if "content" in fields:
        if not isinstance(node, PostItNode):
            raise HTTPException(status_code=400, detail="Only post-it nodes have content")
        controller.update_post_it(node_id, payload.content or "")
    if "title" in fields and payload.title:
        if node_id in controller.tasks:
            controller.rename_task(node_id, payload.title)
        else:
            node.title = payload.title
            controller.save()
    if "description" in fields:
        if not isinstance(node, TaskNode) or not controller.set_description(node_id, payload.description or ""):
            raise HTTPException(status_code=400, detail="Only task nodes have descriptions")
    if "checked" in fields and payload.checked is not None:
        if not controller.set_checked(node_id, payload.checked) and node_id not in controller.tasks:
            raise HTTPException(status_code=400, detail="Only task nodes can be checked")
    return controller.board.nodes[node_id].model_dump(mode="json", by_alias=True, exclude_none=True)


@router.post("/api/board/nodes/{node_id}/toggle")
async def toggle_task(node_id: str, request: Request, board: Optional[str] = Query(None)):
    controller = get_controller(request, board)
    if node_id not in controller.tasks:
        raise _not_found("Task", node_id)
    controller.toggle_check(node_id)
    return {"id": node_id, "checked": controller.tasks[node_id].checked}


@router.post("/api/board/nodes/{node_id}/note", status_code=201)
async def create_detailed_note(node_id: str, request: Request, board: Optional[str] = Query(None)):
    controller = get_controller(request, board)
    note_path = controller.create_detailed_note(node_id)
    if note_path is None:
        raise _not_found("Task", node_id)
    return {"id": node_id, "notePath": note_path}


@router.post("/api/board/nodes/{node_id}/merge/{target_id}")
async def merge_nodes(
    node_id: str, target_id: str, request: Request, board: Optional[str] = Query(None)
):
    controller = get_controller(request, board)
    if not controller.merge_nodes(node_id, target_id):
        raise HTTPException(status_code=400, detail=f"Cannot merge '{node_id}' into '{target_id}'")
    return {"id": target_id}


@router.delete("/api/board/nodes/{node_id}", status_code=204)
async def delete_node(node_id: str, request: Request, board: Optional[str] = Query(None)):
    controller = get_controller(request, board)
    if not controller.delete_node(node_id):
        raise _not_found("Node", node_id)


# -------------------- groups --------------------
@router.post("/api/board/groups", status_code=201)
async def create_group(payload: GroupCreate, request: Request, board: Optional[str] = Query(None)):
    controller = get_controller(request, board)
    group_id = controller.group_nodes(payload.ids, payload.name)
    if group_id is None:
        raise HTTPException(status_code=400, detail="None of the ids are board nodes")
    return {"id": group_id}


@router.post("/api/board/groups/{group_id}/collapse")
async def toggle_group(group_id: str, request: Request, board: Optional[str] = Query(None)):
    controller = get_controller(request, board)
    if not controller.toggle_group_collapse(group_id):
        raise _not_found("Group", group_id)
    group = controller.board.nodes[group_id]
    return {"id": group_id, "collapsed": isinstance(group, GroupNode) and group.collapsed}


@router.post("/api/board/groups/{group_id}/fit")
async def fit_group(group_id: str, request: Request, board: Optional[str] = Query(None)):
    controller = get_controller(request, board)
    if not controller.fit_group_to_members(group_id):
        raise _not_found("Group", group_id)
    return controller.board.nodes[group_id].model_dump(mode="json", by_alias=True, exclude_none=True)


@router.delete("/api/board/groups/{group_id}", status_code=204)
async def ungroup(group_id: str, request: Request, board: Optional[str] = Query(None)):
    controller = get_controller(request, board)
    if not controller.ungroup(group_id):
        raise _not_found("Group", group_id)


# -------------------- edges --------------------
@router.post("/api/board/edges", status_code=201)
async def create_edge(payload: EdgeCreate, request: Request, board: Optional[str] = Query(None)):
    controller = get_controller(request, board)
    try:
        index = controller.create_edge(payload.source, payload.target, payload.type)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    edge = controller.board.edges[index]
    return {"index": index, "edge": edge.model_dump(mode="json", by_alias=True, exclude_none=True)}


@router.patch("/api/board/edges/{index}")
async def update_edge(
    index: int, payload: EdgeUpdate, request: Request, board: Optional[str] = Query(None)
):
    controller = get_controller(request, board)
    if not 0 <= index < len(controller.board.edges):
        raise _not_found("Edge", index)
    if payload.cycle:
        controller.cycle_edge_type(index)
    elif payload.type is not None:
        controller.set_edge_type(index, payload.type)
    if "label" in payload.model_fields_set:
        controller.set_edge_label(index, payload.label)
    edge = controller.board.edges[index]
    return {"index": index, "edge": edge.model_dump(mode="json", by_alias=True, exclude_none=True)}


@router.delete("/api/board/edges/{index}", status_code=204)
async def delete_edge(index: int, request: Request, board: Optional[str] = Query(None)):
    controller = get_controller(request, board)
    if not controller.delete_edge(index):
        raise _not_found("Edge", index)


# -------------------- lanes --------------------
@router.post("/api/board/lanes", status_code=201)
async def create_lane(payload: LaneCreate, request: Request, board: Optional[str] = Query(None)):
    controller = get_controller(request, board)
    lane_id = controller.create_lane(
        payload.label, payload.x, payload.y, payload.width, payload.height, payload.orient
    )
    return {"id": lane_id}


@router.patch("/api/board/lanes/{lane_id}")
async def update_lane(
    lane_id: str, payload: LaneUpdate, request: Request, board: Optional[str] = Query(None)
):
    controller = get_controller(request, board)
    lane = controller.board.lanes.get(lane_id)
    if lane is None:
        raise _not_found("Lane", lane_id)
    if payload.label is not None:
        controller.rename_lane(lane_id, payload.label)
    if payload.orient is not None:
        controller.set_lane_orientation(lane_id, payload.orient)
    if any(value is not None for value in (payload.x, payload.y, payload.width, payload.height)):
        controller.move_lane(
            lane_id,
            payload.x if payload.x is not None else lane.x,
            payload.y if payload.y is not None else lane.y,
            payload.width,
            payload.height,
        )
    return controller.board.lanes[lane_id].model_dump(mode="json")


@router.delete("/api/board/lanes/{lane_id}", status_code=204)
async def delete_lane(lane_id: str, request: Request, board: Optional[str] = Query(None)):
    controller = get_controller(request, board)
    if not controller.delete_lane(lane_id):
        raise _not_found("Lane", lane_id)


# -------------------- layout --------------------
@router.post("/api/board/layout")
async def rearrange_nodes(
    payload: LayoutRequest, request: Request, board: Optional[str] = Query(None)
):
    """Lay out the given nodes; an empty ``ids`` list moves nothing."""
    controller = get_controller(request, board)
    placed = controller.rearrange(payload.ids)
    return {node_id: {"x": x, "y": y} for node_id, (x, y) in placed.items()}


@router.post("/api/board/align")
async def align_nodes(payload: AlignRequest, request: Request, board: Optional[str] = Query(None)):
    controller = get_controller(request, board)
    if not controller.align_nodes(payload.ids, payload.mode):
        raise HTTPException(status_code=400, detail="None of the ids are board nodes")
    return {"ids": payload.ids, "mode": payload.mode}
