from typing import Dict
from unittest.mock import patch

import pytest

from taskboard.models.board import EdgeKind
from taskboard.models.task import Task
from taskboard.services.documents import DocumentStore
from taskboard.services.extractor import TaskExtractor
from taskboard.services.relations import RelationMutator

DOCUMENT = "# Plan\n- [ ] A  ^t-a\n- [ ] B  ^t-b\n- [x] C  #done  ^t-c\n"


@pytest.fixture
def tasks(store: DocumentStore) -> Dict[str, Task]:
    store.create("Tasks.md", DOCUMENT)
    return TaskExtractor(store).scan()


@pytest.fixture
def mutator(store: DocumentStore, tasks: Dict[str, Task]) -> RelationMutator:
    return RelationMutator(store, tasks)


def test_apply_relation_writes_token_into_target(mutator: RelationMutator, store: DocumentStore) -> None:
    assert mutator.apply_relation(EdgeKind.DEPENDS, "t-a", "t-b") is True

    assert store.read("Tasks.md").splitlines()[2] == "- [ ] B  [dependsOn:: t-a]  ^t-b"
    assert mutator.tasks["t-b"].text == "B  [dependsOn:: t-a]  ^t-b"


def test_apply_is_idempotent(mutator: RelationMutator, store: DocumentStore) -> None:
    mutator.apply_relation(EdgeKind.SUBTASK, "t-a", "t-b")

    with patch.object(store, "modify", wraps=store.modify) as modify:
        assert mutator.apply_relation(EdgeKind.SUBTASK, "t-a", "t-b") is False

    modify.assert_not_called()


def test_apply_then_remove_restores_document(mutator: RelationMutator, store: DocumentStore) -> None:
    mutator.apply_relation(EdgeKind.SEQUENCE, "t-a", "t-c")
    mutator.remove_relation(EdgeKind.SEQUENCE, "t-a", "t-c")

    assert store.read("Tasks.md") == DOCUMENT
    assert mutator.tasks["t-c"].checked is True


def test_link_kind_never_touches_text(mutator: RelationMutator, store: DocumentStore) -> None:
    assert mutator.apply_relation(EdgeKind.LINK, "t-a", "t-b") is False
    assert store.read("Tasks.md") == DOCUMENT


def test_mismatched_line_is_a_noop(mutator: RelationMutator, store: DocumentStore) -> None:
    store.modify("Tasks.md", "# Plan\n- [ ] Someone else  ^t-z\n- [ ] B  ^t-b\n")

    assert mutator.apply_relation(EdgeKind.DEPENDS, "t-b", "t-a") is False
    assert store.read("Tasks.md") == "# Plan\n- [ ] Someone else  ^t-z\n- [ ] B  ^t-b\n"


def test_line_out_of_range_is_a_noop(mutator: RelationMutator, store: DocumentStore) -> None:
    store.modify("Tasks.md", "# Plan\n")

    assert mutator.set_checked("t-c", False) is False


def test_retype_with_swap(mutator: RelationMutator, store: DocumentStore) -> None:
    mutator.apply_relation(EdgeKind.DEPENDS, "t-a", "t-b")

    source, target = mutator.retype(EdgeKind.DEPENDS, EdgeKind.SUBTASK, "t-a", "t-b", swap=True)

    assert (source, target) == ("t-b", "t-a")
    lines = store.read("Tasks.md").splitlines()
    assert lines[1] == "- [ ] A  [subtaskOf:: t-b]  ^t-a"
    assert lines[2] == "- [ ] B  ^t-b"


def test_set_checked_and_rename(mutator: RelationMutator, store: DocumentStore) -> None:
    mutator.set_checked("t-a", True)
    mutator.rename("t-c", "Renamed")

    lines = store.read("Tasks.md").splitlines()
    assert lines[1] == "- [x] A  ^t-a"
    assert lines[3] == "- [x] Renamed  #done  ^t-c"
    assert mutator.tasks["t-a"].checked is True


def test_note_path_and_description_fields(mutator: RelationMutator, store: DocumentStore) -> None:
    store.modify("Tasks.md", DOCUMENT.replace("B  ^t-b", "B  [description:: old]  ^t-b"))

    mutator.clear_description_field("t-b")
    mutator.set_note_path("t-b", "notes/t-b.md")

    assert store.read("Tasks.md").splitlines()[2] == "- [ ] B  [notePath:: notes/t-b.md]  ^t-b"
    assert mutator.tasks["t-b"].note_path == "notes/t-b.md"


def test_create_task_appends_line(mutator: RelationMutator, store: DocumentStore) -> None:
    with patch("taskboard.services.relations.new_task_id", return_value="t-new"):
        task = mutator.create_task("Tasks.md", "  New work #dev ")

    assert task.line == 4
    assert store.read("Tasks.md") == DOCUMENT + "- [ ] New work #dev  ^t-new\n"
    assert mutator.tasks["t-new"] is task


def test_create_task_in_new_document(mutator: RelationMutator, store: DocumentStore) -> None:
    with patch("taskboard.services.relations.new_task_id", return_value="t-new"):
        task = mutator.create_task("inbox/Later.md", "Later")

    assert task.line == 0
    assert store.read("inbox/Later.md") == "- [ ] Later  ^t-new\n"


def test_soft_delete_writes_tombstone(mutator: RelationMutator, store: DocumentStore) -> None:
    assert mutator.soft_delete("t-b") is True

    assert store.read("Tasks.md").splitlines()[2] == "- [-] B  ^t-b"
    assert "t-b" not in mutator.tasks
    assert "t-b" not in TaskExtractor(store).scan()


def test_remove_line_reindexes_following_tasks(mutator: RelationMutator, store: DocumentStore) -> None:
    assert mutator.remove_line("t-a") is True

    assert store.read("Tasks.md") == "# Plan\n- [ ] B  ^t-b\n- [x] C  #done  ^t-c\n"
    assert mutator.tasks["t-b"].line == 1
    assert mutator.tasks["t-c"].line == 2
    # Edits after the removal still land on the right lines.
    mutator.set_checked("t-c", False)
    assert store.read("Tasks.md").splitlines()[2] == "- [ ] C  #done  ^t-c"


def test_reindex_only_touches_same_document(mutator: RelationMutator) -> None:
    mutator.tasks["t-other"] = Task(id="t-other", path="Other.md", line=5, text="X")

    assert mutator.reindex_after_removal("Tasks.md", 1) == 2
    assert mutator.tasks["t-other"].line == 5


def test_rewrites_keep_crlf_line_endings(store: DocumentStore) -> None:
    store.create("Windows.md", "- [ ] A  ^t-a\r\n- [ ] B  ^t-b\r\n")
    mutator = RelationMutator(store, TaskExtractor(store).scan(["Windows.md"]))

    mutator.apply_relation(EdgeKind.DEPENDS, "t-a", "t-b")
    with patch("taskboard.services.relations.new_task_id", return_value="t-new"):
        mutator.create_task("Windows.md", "New")
    mutator.remove_line("t-a")

    assert store.read("Windows.md") == (
        "- [ ] B  [dependsOn:: t-a]  ^t-b\r\n- [ ] New  ^t-new\r\n"
    )
