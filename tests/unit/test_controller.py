import json
from unittest.mock import patch

import pytest

from taskboard.models.board import (
    BoardRefNode,
    EdgeKind,
    GroupNode,
    LaneMemberNode,
    NoteNode,
    PostItNode,
    TaskNode,
)
from taskboard.services.board_store import save_board
from taskboard.services.config import AppConfig
from taskboard.services.controller import BoardController, open_board
from taskboard.services.documents import DocumentStore

DOCUMENT = "- [ ] A  ^t-a\n- [ ] B  ^t-b\n- [ ] C  ^t-c\n"


def _lines(store: DocumentStore) -> list:
    return store.read("Tasks.md").splitlines()


@pytest.fixture
def controller(store: DocumentStore, app_config: AppConfig) -> BoardController:
    store.create("Tasks.md", DOCUMENT)
    controller = open_board("Plan.mtask", app_config, store)
    for index, task_id in enumerate(("t-a", "t-b", "t-c")):
        controller.add_existing_task(task_id, index * 200, 0)
    return controller


def _saved(store: DocumentStore) -> dict:
    return json.loads(store.read("Plan.mtask"))


def test_open_board_creates_file_and_loads_tasks(store: DocumentStore, app_config: AppConfig) -> None:
    store.create("Tasks.md", DOCUMENT)

    controller = open_board("boards/Plan.mtask", app_config, store)

    assert store.exists("boards/Plan.mtask")
    assert set(controller.tasks) == {"t-a", "t-b", "t-c"}
    assert controller.board.title == "Plan"


def test_add_existing_task_uses_decoded_title(controller: BoardController, store: DocumentStore) -> None:
    node = controller.board.nodes["t-a"]

    assert isinstance(node, TaskNode)
    assert node.title == "A"
    assert set(_saved(store)["nodes"]) == {"t-a", "t-b", "t-c"}
    assert controller.add_existing_task("t-missing", 0, 0) is False


def test_add_task_appends_line_and_node(controller: BoardController, store: DocumentStore) -> None:
    with patch("taskboard.services.relations.new_task_id", return_value="t-new"):
        task_id = controller.add_task("Write docs [description:: short text] #dev", 10, 20)

    assert task_id == "t-new"
    assert _lines(store)[-1] == "- [ ] Write docs #dev  ^t-new"
    node = controller.board.nodes["t-new"]
    assert (node.x, node.y, node.title, node.description) == (10, 20, "Write docs", "short text")

    controller.refresh()

    assert "t-new" in controller.board.nodes
    assert controller.tasks["t-new"].description == "short text"


def test_structural_nodes(controller: BoardController, store: DocumentStore) -> None:
    note_id = controller.add_note_node("[[notes/Plan]]", 0, 300)
    post_id = controller.add_post_it(200, 300)
    controller.update_post_it(post_id, "remember")

    note = controller.board.nodes[note_id]
    post = controller.board.nodes[post_id]
    assert isinstance(note, NoteNode)
    assert (note.note_path, note.title, note.size()) == ("notes/Plan.md", "Plan", (200, 200))
    assert isinstance(post, PostItNode)
    assert (post.content, post.color, post.size()) == ("remember", "#fff9a8", (120, 120))

    controller.refresh()

    assert {note_id, post_id} <= set(controller.board.nodes)
    assert _saved(store)["nodes"][post_id]["type"] == "post-it"


def test_board_card_counts(controller: BoardController, store: DocumentStore) -> None:
    controller.set_checked("t-a", True)
    save_board(store, "Other.mtask", controller.board.model_copy(deep=True))

    card_id = controller.add_board_card("Other.mtask", 0, 500)

    card = controller.board.nodes[card_id]
    assert isinstance(card, BoardRefNode)
    assert (card.name, card.task_count, card.completed_count) == ("Other", 3, 1)
    assert card.size() == (160, 80)


def test_create_edge_writes_token_once(controller: BoardController, store: DocumentStore) -> None:
    index = controller.create_edge("t-a", "t-b", EdgeKind.DEPENDS)

    assert index == 0
    assert _lines(store)[1] == "- [ ] B  [dependsOn:: t-a]  ^t-b"
    assert controller.create_edge("t-a", "t-b", "depends") == 0
    assert len(controller.board.edges) == 1

    controller.refresh()

    assert len(controller.board.edges) == 1


def test_link_edges_stay_on_the_board(controller: BoardController, store: DocumentStore) -> None:
    note_id = controller.add_note_node("notes/a.md", 0, 0)

    controller.create_edge(note_id, "t-a", EdgeKind.LINK)
    controller.create_edge("t-a", "t-b", EdgeKind.LINK)

    assert store.read("Tasks.md") == DOCUMENT
    controller.refresh()
    assert len(controller.board.edges) == 2


def test_cycle_edge_type_round_trip(controller: BoardController, store: DocumentStore) -> None:
    controller.create_edge("t-a", "t-b", EdgeKind.DEPENDS)

    edge = controller.cycle_edge_type(0)
    assert (edge.from_, edge.to, edge.type) == ("t-b", "t-a", EdgeKind.SUBTASK)
    assert _lines(store)[:2] == ["- [ ] A  [subtaskOf:: t-b]  ^t-a", "- [ ] B  ^t-b"]

    edge = controller.cycle_edge_type(0)
    assert (edge.from_, edge.to, edge.type) == ("t-b", "t-a", EdgeKind.SEQUENCE)
    assert _lines(store)[0] == "- [ ] A  [after:: t-b]  ^t-a"

    edge = controller.cycle_edge_type(0)
    assert (edge.from_, edge.to, edge.type) == ("t-a", "t-b", EdgeKind.DEPENDS)
    assert store.read("Tasks.md") == DOCUMENT.replace("B  ^t-b", "B  [dependsOn:: t-a]  ^t-b")


def test_set_type_label_and_delete_edge(controller: BoardController, store: DocumentStore) -> None:
    controller.create_edge("t-a", "t-b", EdgeKind.SUBTASK)

    controller.set_edge_type(0, EdgeKind.SEQUENCE)
    controller.set_edge_label(0, "next")

    assert _lines(store)[1] == "- [ ] B  [after:: t-a]  ^t-b"
    assert _saved(store)["edges"] == [{"from": "t-a", "to": "t-b", "type": "sequence", "label": "next"}]

    assert controller.delete_edge(0) is True
    assert store.read("Tasks.md") == DOCUMENT
    assert controller.board.edges == []
    assert controller.delete_edge(0) is False


def test_delete_task_node_soft(controller: BoardController, store: DocumentStore) -> None:
    controller.create_edge("t-a", "t-b", EdgeKind.DEPENDS)
    group_id = controller.group_nodes(["t-a", "t-c"])

    assert controller.delete_node("t-a") is True

    assert _lines(store)[0] == "- [-] A  ^t-a"
    assert "t-a" not in controller.board.nodes
    assert controller.board.edges == []
    assert controller.board.nodes[group_id].members == ["t-c"]
    controller.refresh()
    assert "t-a" not in controller.tasks


def test_delete_task_node_permanently(store: DocumentStore) -> None:
    config = AppConfig(document_root=store.root, delete_permanently=True)
    store.create("Tasks.md", DOCUMENT)
    controller = open_board("Plan.mtask", config, store)

    controller.delete_node("t-a")

    assert store.read("Tasks.md") == "- [ ] B  ^t-b\n- [ ] C  ^t-c\n"
    assert controller.tasks["t-c"].line == 1
    controller.toggle_check("t-c")
    assert _lines(store)[1] == "- [x] C  ^t-c"


def test_toggle_rename_and_description(controller: BoardController, store: DocumentStore) -> None:
    controller.toggle_check("t-b")
    controller.rename_task("t-b", "Better name")
    controller.set_description("t-b", "Board-side notes")

    assert _lines(store)[1] == "- [x] Better name  ^t-b"
    assert controller.board.nodes["t-b"].title == "Better name"
    assert controller.board.nodes["t-b"].description == "Board-side notes"
    assert controller.tasks["t-b"].description == "Board-side notes"


def test_detailed_note_receives_description(store: DocumentStore) -> None:
    config = AppConfig(document_root=store.root, notes_folder="notes")
    store.create("Tasks.md", DOCUMENT)
    controller = open_board("Plan.mtask", config, store)
    controller.add_existing_task("t-a", 0, 0)

    note_path = controller.create_detailed_note("t-a")
    controller.set_description("t-a", "Long form")

    assert note_path == "notes/t-a.md"
    assert _lines(store)[0] == "- [ ] A  [notePath:: notes/t-a.md]  ^t-a"
    assert store.read("notes/t-a.md") == "Long form"
    controller.refresh()
    assert controller.tasks["t-a"].description == "Long form"


def test_move_node_clamps_to_lane_and_moves_attachments(controller: BoardController) -> None:
    lane_id = controller.create_lane("Doing", 0, 0, 300, 200)
    controller.assign_node_to_lane("t-a", lane_id)
    post_id = controller.add_post_it(50, 50)
    controller.attach_node(post_id, "t-a")

    controller.move_node("t-a", 1000, 1000)

    assert (controller.board.nodes["t-a"].x, controller.board.nodes["t-a"].y) == (180, 160)
    assert (controller.board.nodes[post_id].x, controller.board.nodes[post_id].y) == (230, 210)

    controller.move_node("t-a", 1000, 1000, bypass_lane_clamp=True)
    assert controller.board.nodes["t-a"].x == 1000

    controller.attach_node(post_id, None)
    assert "attachedTo" not in controller.board.to_record()["nodes"][post_id]


def test_resize_node_within_lane(controller: BoardController) -> None:
    lane_id = controller.create_lane("Doing", 0, 0, 300, 200)
    controller.assign_node_to_lane("t-a", lane_id)

    controller.resize_node("t-a", 500, 50)

    assert controller.board.nodes["t-a"].size() == (300, 50)


def test_lanes(controller: BoardController) -> None:
    lane_id = controller.create_lane("Todo", 0, 0, 400, 300)
    controller.board.nodes["m-1"] = LaneMemberNode(lane=lane_id, x=10, y=10)
    controller.assign_node_to_lane("t-a", lane_id)

    controller.move_lane(lane_id, 100, 50)
    controller.rename_lane(lane_id, "Later")
    controller.set_lane_orientation(lane_id, "horizontal")

    lane = controller.board.lanes[lane_id]
    assert (lane.x, lane.y, lane.label, lane.orient) == (100, 50, "Later", "horizontal")
    assert (controller.board.nodes["m-1"].x, controller.board.nodes["m-1"].y) == (110, 60)
    assert (controller.board.nodes["t-a"].x, controller.board.nodes["t-a"].y) == (100, 50)

    assert controller.delete_lane(lane_id) is True
    assert "m-1" not in controller.board.nodes
    assert controller.board.nodes["t-a"].lane is None
    assert controller.delete_lane(lane_id) is False


def test_groups(controller: BoardController) -> None:
    group_id = controller.group_nodes(["t-a", "t-b", "missing"], name="Pair")

    group = controller.board.nodes[group_id]
    assert isinstance(group, GroupNode)
    assert group.members == ["t-a", "t-b"]
    assert (group.x, group.y, group.width, group.height) == (-20, -20, 360, 80)

    controller.toggle_group_collapse(group_id)
    assert group.collapsed is True

    controller.move_node("t-b", 400, 100)
    controller.fit_group_to_members(group_id)
    assert (group.width, group.height) == (560, 180)

    assert controller.ungroup(group_id) is True
    assert group_id not in controller.board.nodes
    assert "group" not in controller.board.to_record()["nodes"]["t-a"]


def test_merge_nodes(controller: BoardController) -> None:
    controller.set_description("t-a", "Alpha details")
    post_id = controller.add_post_it(0, 0)
    controller.attach_node(post_id, "t-a")
    controller.create_edge("t-a", "t-c", EdgeKind.LINK)
    controller.create_edge("t-b", "t-c", EdgeKind.LINK)

    assert controller.merge_nodes("t-a", "t-b") is True

    target = controller.board.nodes["t-b"]
    assert "t-a" not in controller.board.nodes
    assert target.description == "**A**\n\nAlpha details"
    assert controller.board.to_record()["nodes"]["t-b"]["mergedFrom"] == ["t-a"]
    assert controller.board.to_record()["nodes"][post_id]["attachedTo"] == "t-b"
    assert [edge.signature for edge in controller.board.edges] == [("t-b", "t-c", EdgeKind.LINK)]
    assert controller.merge_nodes("t-b", "t-b") is False


def test_rearrange_and_align(controller: BoardController, store: DocumentStore) -> None:
    controller.create_edge("t-a", "t-b", EdgeKind.SUBTASK)
    controller.create_edge("t-a", "t-c", EdgeKind.SUBTASK)

    placed = controller.rearrange(["t-a", "t-b", "t-c"])

    assert placed["t-a"] == (0, 0)
    assert placed["t-b"] == (-80, 100)
    assert placed["t-c"] == (80, 100)
    assert _saved(store)["nodes"]["t-b"]["x"] == -80

    controller.align_nodes(["t-a", "t-b"], "left")
    assert controller.board.nodes["t-a"].x == controller.board.nodes["t-b"].x == -80
    controller.align_nodes(["t-b", "t-c"], "vcenter")
    assert controller.board.nodes["t-b"].y == controller.board.nodes["t-c"].y == 100
    with pytest.raises(ValueError):
        controller.align_nodes(["t-a"], "diagonal")


def test_board_settings(controller: BoardController, store: DocumentStore) -> None:
    controller.set_orientation("horizontal")
    controller.set_snap_to_grid(False)
    controller.set_title("  ")

    saved = _saved(store)
    assert saved["orientation"] == "horizontal"
    assert saved["snapToGrid"] is False
    assert saved["title"] == "Plan"


def test_invalid_edge_record_does_not_wipe_board(store: DocumentStore, app_config: AppConfig) -> None:
    record = {
        "nodes": {"p-1": {"type": "post-it", "content": "keep"}},
        "edges": [{"from": "p-1", "to": "p-1", "type": "blocks"}],
    }
    store.create("Plan.mtask", json.dumps(record))

    controller = open_board("Plan.mtask", app_config, store)
    post_id = controller.add_post_it(0, 0)

    assert set(_saved(store)["nodes"]) == {"p-1", post_id}
    assert _saved(store)["nodes"]["p-1"]["content"] == "keep"


def test_create_edge_requires_board_nodes(controller: BoardController) -> None:
    with pytest.raises(ValueError):
        controller.create_edge("t-a", "ghost", EdgeKind.LINK)

    assert controller.board.edges == []
