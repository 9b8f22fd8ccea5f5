"""Filesystem document store addressed by relative paths."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

import frontmatter

from .config import AppConfig, get_config

INVALID_PATH_CHARS = {'<', '>', ':', '"', '|', '?', '*'}


class DocumentStoreError(Exception):
    """Base error for document store operations."""


class DocumentExistsError(DocumentStoreError):
    """Raised by ``create`` when the target document already exists."""


class DocumentNotFoundError(DocumentStoreError, FileNotFoundError):
    """Raised when a document is read or modified before it exists."""


class InvalidDocumentPathError(DocumentStoreError, ValueError):
    """Raised for paths that are malformed or escape the document root."""


def validate_document_path(doc_path: str) -> Tuple[bool, str]:
    """
    Validate a relative document path.

    Returns (is_valid, message). Message is empty when valid.
    """
    if not doc_path or len(doc_path) > 256:
        return False, "Path must be 1-256 characters"
    if ".." in doc_path.split("/"):
        return False, "Path must not contain '..'"
    if "\\" in doc_path:
        return False, "Path must use Unix separators (/)"
    if doc_path.startswith("/"):
        return False, "Path must be relative (no leading /)"
    if any(char in INVALID_PATH_CHARS for char in doc_path):
        return False, "Path contains invalid characters"
    return True, ""


def normalize_document_path(doc_path: str) -> str:
    """Collapse duplicate separators and surrounding whitespace."""
    parts = [part for part in doc_path.strip().split("/") if part and part != "."]
    return "/".join(parts)


def sanitize_path(root: Path, doc_path: str) -> Path:
    """
    Resolve a document path within the root.

    Raises InvalidDocumentPathError if the resolved path escapes the root.
    """
    base = root.resolve()
    full_path = (base / doc_path).resolve()
    if full_path != base and base not in full_path.parents:
        raise InvalidDocumentPathError(f"Path escapes document root: {doc_path}")
    return full_path


class DocumentStore:
    """Read/modify/create plain-text documents below a single root directory."""

    def __init__(self, config: AppConfig | None = None, root: Path | None = None) -> None:
        self.config = config or get_config()
        self.root = (root or self.config.document_root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def resolve_path(self, doc_path: str) -> Path:
        """
        Validate and resolve a document path inside the root.

        Raises InvalidDocumentPathError for invalid paths.
        """
        normalized = normalize_document_path(doc_path)
        is_valid, message = validate_document_path(normalized)
        if not is_valid:
            raise InvalidDocumentPathError(message)
        return sanitize_path(self.root, normalized)

    def resolve(self, doc_path: str) -> Optional[Path]:
        """Return the absolute path of an existing document, or None."""
        try:
            absolute_path = self.resolve_path(doc_path)
        except InvalidDocumentPathError:
            return None
        return absolute_path if absolute_path.is_file() else None

    def exists(self, doc_path: str) -> bool:
        return self.resolve(doc_path) is not None

    def read(self, doc_path: str) -> str:
        absolute_path = self.resolve_path(doc_path)
        if not absolute_path.is_file():
            raise DocumentNotFoundError(f"Document not found: {doc_path}")
        with absolute_path.open(encoding="utf-8", newline="") as handle:
            return handle.read()

    def read_body(self, doc_path: str) -> str:
        """Read a Markdown document with its YAML frontmatter stripped."""
        post = frontmatter.loads(self.read(doc_path))
        return post.content or ""

    def modify(self, doc_path: str, text: str) -> None:
        """Replace the full text of an existing document."""
        absolute_path = self.resolve_path(doc_path)
        if not absolute_path.is_file():
            raise DocumentNotFoundError(f"Document not found: {doc_path}")
        absolute_path.write_text(text, encoding="utf-8", newline="")

    def create(self, doc_path: str, text: str = "") -> str:
        """Create a new document, creating missing parent folders."""
        absolute_path = self.resolve_path(doc_path)
        if absolute_path.exists():
            raise DocumentExistsError(f"Document already exists: {doc_path}")
        absolute_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with absolute_path.open("x", encoding="utf-8", newline="") as handle:
                handle.write(text)
        except FileExistsError as exc:
            raise DocumentExistsError(f"Document already exists: {doc_path}") from exc
        return absolute_path.relative_to(self.root).as_posix()

    def append(self, doc_path: str, text: str) -> None:
        """Append text to an existing document."""
        absolute_path = self.resolve_path(doc_path)
        if not absolute_path.is_file():
            raise DocumentNotFoundError(f"Document not found: {doc_path}")
        with absolute_path.open("a", encoding="utf-8", newline="") as handle:
            handle.write(text)

    def delete(self, doc_path: str) -> None:
        absolute_path = self.resolve_path(doc_path)
        try:
            absolute_path.unlink()
        except FileNotFoundError as exc:
            raise DocumentNotFoundError(f"Document not found: {doc_path}") from exc

    def list(self, suffix: str = ".md", folder: str | None = None) -> List[str]:
        """List document paths (relative, POSIX) sorted case-insensitively."""
        base = self.root
        if folder:
            base = self.resolve_path(folder)
            if not base.is_dir():
                return []
        paths = [
            file_path.relative_to(self.root).as_posix()
            for file_path in base.rglob(f"*{suffix}")
            if file_path.is_file()
        ]
        return sorted(paths, key=str.lower)

    def stat_mtime(self, doc_path: str) -> Optional[float]:
        absolute_path = self.resolve(doc_path)
        if absolute_path is None:
            return None
        return absolute_path.stat().st_mtime * 1000


__all__ = [
    "DocumentStore",
    "DocumentStoreError",
    "DocumentExistsError",
    "DocumentNotFoundError",
    "InvalidDocumentPathError",
    "validate_document_path",
    "normalize_document_path",
    "sanitize_path",
]
