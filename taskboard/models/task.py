"""In-memory checklist task records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class Task:
    """A checklist line extracted from a document.

    ``line`` is a cached 0-based index into ``path``; it must be decremented
    whenever an earlier line of the same document is removed.
    """

    id: str
    path: str
    line: int
    text: str
    checked: bool = False
    indent: int = 0
    description: Optional[str] = None
    note_path: Optional[str] = None

    def __repr__(self) -> str:
        return f"Task(id={self.id}, path={self.path}, line={self.line})"


__all__ = ["Task"]
