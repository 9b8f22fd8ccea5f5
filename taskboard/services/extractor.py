"""Checklist task extraction from Markdown documents."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import re
import secrets
import time
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Optional, Sequence

from ..models.task import Task
from . import relation_codec as codec
from .config import AppConfig
from .documents import DocumentStore, DocumentStoreError

logger = logging.getLogger(__name__)

CHECKLIST_PATTERN = re.compile(r"^(\s*)- \[( |x|X)\] (.*)$")
LINE_SPLIT_PATTERN = re.compile(r"\r?\n")


def split_lines(content: str) -> List[str]:
    return LINE_SPLIT_PATTERN.split(content)


def line_separator(content: str) -> str:
    """The separator a document already uses; CRLF when its first break is CRLF."""
    match = LINE_SPLIT_PATTERN.search(content)
    return match.group(0) if match else "\n"


def new_task_id() -> str:
    """Generate a compact task identifier: t-<8 hex chars>."""
    return "t-" + secrets.token_hex(4)


def normalize_note_path(value: str | None) -> Optional[str]:
    """Turn a ``notePath`` value (plain or ``[[wiki]]``) into a document path."""
    if not value:
        return None
    cleaned = value.strip()
    if cleaned.startswith("[[") and cleaned.endswith("]]"):
        cleaned = cleaned[2:-2]
    cleaned = cleaned.split("|", 1)[0].split("#", 1)[0].strip().strip("/")
    if not cleaned:
        return None
    if not PurePosixPath(cleaned).suffix:
        cleaned = f"{cleaned}.md"
    return cleaned


@dataclass
class ExtractionFilters:
    """Which documents and lines the extractor considers."""

    tags: List[str] = field(default_factory=list)
    folders: List[str] = field(default_factory=list)
    use_block_id: bool = True

    @classmethod
    def from_config(cls, config: AppConfig) -> "ExtractionFilters":
        return cls(
            tags=list(config.tag_filters),
            folders=list(config.folder_paths),
            use_block_id=config.use_block_id,
        )

    def accepts_path(self, doc_path: str) -> bool:
        if not self.folders:
            return True
        for folder in self.folders:
            prefix = folder.strip().strip("/")
            if not prefix or doc_path == prefix or doc_path.startswith(prefix + "/"):
                return True
        return False

    def accepts_tags(self, tags: Sequence[str]) -> bool:
        if not self.tags:
            return True
        wanted = {tag.lower() if tag.startswith("#") else f"#{tag.lower()}" for tag in self.tags}
        return any(tag.lower() in wanted for tag in tags)


class TaskExtractor:
    """Scan documents for checklist lines and return them keyed by identifier.

    Lines without an identifier get a freshly minted one written back into
    the document, once per scan. Lines that already carry one are never
    rewritten, so a second scan of unchanged text performs no writes.
    """

    def __init__(self, store: DocumentStore, filters: ExtractionFilters | None = None) -> None:
        self.store = store
        self.filters = filters or ExtractionFilters()

    def scan(self, paths: Iterable[str] | None = None) -> Dict[str, Task]:
        start_time = time.time()
        doc_paths = list(paths) if paths is not None else self.store.list()
        tasks: Dict[str, Task] = {}
        minted = 0

        for doc_path in doc_paths:
            if not self.filters.accepts_path(doc_path):
                continue
            try:
                content = self.store.read(doc_path)
            except DocumentStoreError as exc:
                logger.warning("Skipping unreadable document %s: %s", doc_path, exc)
                continue
            found, written = self._scan_document(doc_path, content)
            minted += written
            for task in found:
                if task.id in tasks:
                    logger.debug("Duplicate task id %s in %s", task.id, doc_path)
                tasks[task.id] = task

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Task scan complete",
            extra={
                "documents": len(doc_paths),
                "tasks": len(tasks),
                "minted": minted,
                "duration_ms": f"{duration_ms:.2f}",
            },
        )
        return tasks

    def _scan_document(self, doc_path: str, content: str) -> tuple[List[Task], int]:
        lines = split_lines(content)
        found: List[Task] = []
        minted = 0
        for index, line in enumerate(lines):
            match = CHECKLIST_PATTERN.match(line)
            if not match:
                continue
            indent, mark, text = match.groups()
            parsed = codec.decode(text)
            if not self.filters.accepts_tags(parsed.tags):
                continue

            task_id = parsed.identifier
            if not task_id:
                task_id = new_task_id()
                text = codec.append_identifier(text, task_id, self.filters.use_block_id)
                lines[index] = f"{indent}- [{mark}] {text}"
                minted += 1

            note_path = normalize_note_path(parsed.meta("notePath"))
            description = self._resolve_description(note_path)
            if description is None:
                description = parsed.meta("description")

            found.append(
                Task(
                    id=task_id,
                    path=doc_path,
                    line=index,
                    text=text,
                    checked=mark != " ",
                    indent=len(indent),
                    description=description,
                    note_path=note_path,
                )
            )

        if minted:
            self.store.modify(doc_path, line_separator(content).join(lines))
        return found, minted

    def _resolve_description(self, note_path: Optional[str]) -> Optional[str]:
        if not note_path:
            return None
        if self.store.resolve(note_path) is None:
            logger.debug("Linked note %s not found; description left unset", note_path)
            return None
        try:
            return self.store.read_body(note_path)
        except DocumentStoreError as exc:
            logger.debug("Linked note %s unreadable: %s", note_path, exc)
            return None


__all__ = [
    "CHECKLIST_PATTERN",
    "ExtractionFilters",
    "TaskExtractor",
    "new_task_id",
    "normalize_note_path",
    "line_separator",
    "split_lines",
]
