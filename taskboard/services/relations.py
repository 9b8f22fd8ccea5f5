"""Single-line rewrites of task text: relations, checkbox state, deletion."""

from __future__ import annotations

import logging
from typing import Callable, List, MutableMapping, Optional, Tuple

from ..models.board import EdgeKind, TEXT_KINDS
from ..models.task import Task
from . import relation_codec as codec
from .documents import DocumentExistsError, DocumentNotFoundError, DocumentStore
from .extractor import CHECKLIST_PATTERN, line_separator, new_task_id, split_lines

logger = logging.getLogger(__name__)

TOMBSTONE_MARK = "-"

LineRewrite = Callable[[str, str], Tuple[str, str]]


class RelationMutator:
    """Rewrite the source lines of tasks held in a shared task map.

    Every rewrite re-reads the document, checks that the cached line still
    is the task's checklist line, and writes the document back once. When the
    line no longer matches (the document was edited elsewhere) the rewrite is
    skipped with a warning and the next reconciliation picks up the change.
    """

    def __init__(
        self,
        store: DocumentStore,
        tasks: MutableMapping[str, Task],
        *,
        use_block_id: bool = True,
    ) -> None:
        self.store = store
        self.tasks = tasks
        self.use_block_id = use_block_id

    # -------------------- line access --------------------
    def _locate(self, task: Task) -> Optional[Tuple[List[str], str, Tuple[str, ...]]]:
        try:
            content = self.store.read(task.path)
        except DocumentNotFoundError:
            logger.warning("Task %s: document %s no longer exists", task.id, task.path)
            return None
        lines = split_lines(content)
        if task.line < 0 or task.line >= len(lines):
            logger.warning("Task %s: line %s out of range in %s", task.id, task.line, task.path)
            return None
        match = CHECKLIST_PATTERN.match(lines[task.line])
        if not match:
            logger.warning("Task %s: line %s of %s is not a checklist line", task.id, task.line, task.path)
            return None
        found_id = codec.find_identifier(match.group(3))
        if found_id is not None and found_id != task.id:
            logger.warning("Task %s: line %s of %s now holds %s", task.id, task.line, task.path, found_id)
            return None
        return lines, line_separator(content), match.groups()

    def _rewrite_line(self, task: Task, rewrite: LineRewrite) -> bool:
        located = self._locate(task)
        if located is None:
            return False
        lines, separator, (indent, mark, text) = located
        new_mark, new_text = rewrite(mark, text)
        if (new_mark, new_text) == (mark, text):
            return False
        lines[task.line] = f"{indent}- [{new_mark}] {new_text}"
        self.store.modify(task.path, separator.join(lines))
        task.text = new_text
        task.checked = new_mark not in (" ", TOMBSTONE_MARK)
        return True

    def modify_task_text(self, task: Task, transform: Callable[[str], str]) -> bool:
        """Replace the text after the checkbox, keeping indent and mark."""
        return self._rewrite_line(task, lambda mark, text: (mark, transform(text)))

    # -------------------- relations --------------------
    def apply_relation(self, kind: EdgeKind | str, source_id: str, target_id: str) -> bool:
        """Write the ``kind`` token referencing ``source_id`` into the target task."""
        kind = EdgeKind(kind)
        target = self.tasks.get(target_id)
        if target is None or kind not in TEXT_KINDS:
            return False
        token = codec.relation_token(kind, source_id)
        return self.modify_task_text(target, lambda text: codec.insert_token(text, token))

    def remove_relation(self, kind: EdgeKind | str, source_id: str, target_id: str) -> bool:
        kind = EdgeKind(kind)
        target = self.tasks.get(target_id)
        if target is None or kind not in TEXT_KINDS:
            return False
        token = codec.relation_token(kind, source_id)
        return self.modify_task_text(target, lambda text: codec.remove_token(text, token))

    def retype(
        self,
        old_kind: EdgeKind | str,
        new_kind: EdgeKind | str,
        source_id: str,
        target_id: str,
        *,
        swap: bool = False,
    ) -> Tuple[str, str]:
        """Move a relation to another kind; returns the new (source, target).

        With ``swap`` the new token is held by the former source.
        """
        self.remove_relation(old_kind, source_id, target_id)
        if swap:
            source_id, target_id = target_id, source_id
        self.apply_relation(new_kind, source_id, target_id)
        return source_id, target_id

    # -------------------- other single-line edits --------------------
    def set_checked(self, task_id: str, checked: bool) -> bool:
        task = self.tasks.get(task_id)
        if task is None:
            return False
        return self._rewrite_line(task, lambda _mark, text: ("x" if checked else " ", text))

    def rename(self, task_id: str, title: str) -> bool:
        task = self.tasks.get(task_id)
        if task is None:
            return False
        return self.modify_task_text(task, lambda text: codec.replace_title(text, title))

    def set_note_path(self, task_id: str, note_path: str) -> bool:
        task = self.tasks.get(task_id)
        if task is None:
            return False
        changed = self.modify_task_text(task, lambda text: codec.set_field(text, "notePath", note_path))
        task.note_path = note_path
        return changed

    def clear_description_field(self, task_id: str) -> bool:
        task = self.tasks.get(task_id)
        if task is None:
            return False
        return self.modify_task_text(task, lambda text: codec.remove_field(text, "description"))

    # -------------------- creation and deletion --------------------
    def create_task(self, doc_path: str, text: str) -> Task:
        """Append a new checklist line to ``doc_path`` and register the task."""
        try:
            self.store.create(doc_path, "")
        except DocumentExistsError:
            pass
        task_id = new_task_id()
        line_text = codec.append_identifier(text.strip(), task_id, self.use_block_id)
        content = self.store.read(doc_path)
        lines = split_lines(content)
        if lines and lines[-1] == "":
            lines.pop()
        index = len(lines)
        separator = line_separator(content)
        prefix = separator if content and not content.endswith("\n") else ""
        self.store.append(doc_path, f"{prefix}- [ ] {line_text}{separator}")
        task = Task(id=task_id, path=doc_path, line=index, text=line_text)
        self.tasks[task_id] = task
        return task

    def soft_delete(self, task_id: str) -> bool:
        """Mark the line with the tombstone checkbox and drop the task."""
        task = self.tasks.get(task_id)
        if task is None:
            return False
        changed = self._rewrite_line(task, lambda _mark, text: (TOMBSTONE_MARK, text))
        self.tasks.pop(task_id, None)
        return changed

    def remove_line(self, task_id: str) -> bool:
        """Delete the task's line and shift later tasks of the same document."""
        task = self.tasks.get(task_id)
        if task is None:
            return False
        located = self._locate(task)
        self.tasks.pop(task_id, None)
        if located is None:
            return False
        lines, separator, _groups = located
        del lines[task.line]
        self.store.modify(task.path, separator.join(lines))
        self.reindex_after_removal(task.path, task.line)
        return True

    def reindex_after_removal(self, doc_path: str, removed_line: int) -> int:
        """Decrement cached line indices that followed ``removed_line``."""
        shifted = 0
        for other in self.tasks.values():
            if other.path == doc_path and other.line > removed_line:
                other.line -= 1
                shifted += 1
        return shifted


__all__ = ["RelationMutator", "TOMBSTONE_MARK"]
