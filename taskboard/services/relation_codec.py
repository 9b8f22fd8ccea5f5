"""Inline annotation grammar for checklist lines.

A checklist line carries, besides its title:

* relation tokens ``[dependsOn:: id]``, ``[subtaskOf:: id]``, ``[after:: id]``
* bracket metadata ``[key:: value]`` and bare metadata ``key:: value``
* tags ``#tag``
* a reserved identifier, either a trailing ``^id`` or an ``[id:: id]`` field

Everything that reads or writes these tokens goes through this module.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Callable, Dict, List, Optional

from ..models.board import EdgeKind, TEXT_KINDS

TOKEN_SEPARATOR = "  "

RELATION_KEYS: Dict[EdgeKind, str] = {
    EdgeKind.DEPENDS: "dependsOn",
    EdgeKind.SUBTASK: "subtaskOf",
    EdgeKind.SEQUENCE: "after",
}

# Bracket values may hold wiki links or balanced brackets: [see:: [[Notes/a]] [v2]]
_BRACKET_VALUE = r"((?:\[\[[^\]]*\]\]|\[[^\[\]]*\]|[^\]])+)"
RELATION_PATTERNS: Dict[EdgeKind, re.Pattern] = {
    kind: re.compile(r"\[" + key + r"::\s*" + _BRACKET_VALUE + r"\]")
    for kind, key in RELATION_KEYS.items()
}
_RELATION_NAMES = frozenset(RELATION_KEYS.values())
# Bare values end where the next token starts.
_BARE_VALUE = r"((?:\[\[[^\]]+\]\]|[^\n])*?)(?=\s+\w+::|\s+#|\s+\^[\w-]+\s*$|$)"
BRACKET_FIELD_PATTERN = re.compile(r"\[(\w+)::\s*" + _BRACKET_VALUE + r"\]")
BARE_FIELD_PATTERN = re.compile(r"\b(\w+)::[ \t]*" + _BARE_VALUE)
TAG_PATTERN = re.compile(r"#(\S+)")
BLOCK_ID_PATTERN = re.compile(r"\^([\w-]+)\s*$")
ID_FIELD_PATTERN = re.compile(r"\[id::\s*([\w-]+)\]", re.IGNORECASE)
BARE_ID_PATTERN = re.compile(r"(?<![\w\[])id::[ \t]*[\w-]+", re.IGNORECASE)
WIKI_REFERENCE_PATTERN = re.compile(r"^\[\[(?:[^\]#|]*#)?\^?([\w-]+)(?:\|[^\]]*)?\]\]$")
TRAILING_TOKENS_PATTERN = re.compile(
    r"(?:\s+(?:\[[^\]]+\]|#[^\s]+|\^[\w-]+|\w+::\s*(?:\[[^\]]+\]|[^\s]+)))*$"
)
TOKEN_PATTERN = re.compile(r"(\[[^\]]+\]|#[^\s]+|\^[\w-]+|\w+::\s*(?:\[[^\]]+\]|[^\s]+))")
_SPACES = re.compile(r"\s{2,}")


@dataclass
class ParsedContent:
    """Decoded view of a checklist line's text."""

    title: str = ""
    metas: Dict[str, str] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    relations: Dict[EdgeKind, List[str]] = field(
        default_factory=lambda: {kind: [] for kind in TEXT_KINDS}
    )
    identifier: Optional[str] = None

    def meta(self, key: str) -> Optional[str]:
        """Case-insensitive metadata lookup."""
        wanted = key.lower()
        for name, value in self.metas.items():
            if name.lower() == wanted:
                return value
        return None


def reference_id(value: str) -> str:
    """Reduce a relation value (plain id or ``[[doc#^id]]``) to the id."""
    cleaned = value.strip()
    match = WIKI_REFERENCE_PATTERN.match(cleaned)
    if match:
        return match.group(1)
    return cleaned.lstrip("^")


def _strip(pattern: re.Pattern, text: str, on_match: Callable[[re.Match], None]) -> str:
    def _replace(match: re.Match) -> str:
        on_match(match)
        return " "

    return pattern.sub(_replace, text)


def decode(text: str) -> ParsedContent:
    """Split checklist text into title, metadata, tags, relations and identifier.

    Stripping order matters: relation tokens first, then bracket fields, then
    bare fields, then tags, and finally the trailing ``^id`` anchor.
    """
    parsed = ParsedContent()
    remaining = text or ""

    for kind, pattern in RELATION_PATTERNS.items():
        remaining = _strip(
            pattern,
            remaining,
            lambda m, kind=kind: parsed.relations[kind].append(reference_id(m.group(1))),
        )

    def _bracket_field(match: re.Match) -> None:
        key, value = match.group(1), match.group(2).strip()
        if key.lower() == "id":
            parsed.identifier = parsed.identifier or value or None
            return
        parsed.metas[key] = value

    remaining = _strip(BRACKET_FIELD_PATTERN, remaining, _bracket_field)

    def _bare_field(match: re.Match) -> None:
        key, value = match.group(1), match.group(2).strip()
        if key.lower() == "id":
            parsed.identifier = parsed.identifier or value or None
            return
        parsed.metas[key] = value

    remaining = _strip(BARE_FIELD_PATTERN, remaining, _bare_field)

    def _tag(match: re.Match) -> None:
        tag = "#" + match.group(1)
        if tag not in parsed.tags:
            parsed.tags.append(tag)

    remaining = _strip(TAG_PATTERN, remaining, _tag)

    remaining = remaining.strip()
    block = BLOCK_ID_PATTERN.search(remaining)
    if block:
        parsed.identifier = parsed.identifier or block.group(1)
        remaining = remaining[: block.start()]

    parsed.title = _SPACES.sub(" ", remaining).strip()
    return parsed


def relation_token(kind: EdgeKind | str, ref: str) -> str:
    """Canonical token written into the holder's text for ``kind``."""
    key = RELATION_KEYS.get(EdgeKind(kind))
    if key is None:
        raise ValueError(f"Relation kind '{EdgeKind(kind).value}' has no text token")
    return f"[{key}:: {ref}]"


def identifier_token(identifier: str, use_block_id: bool = True) -> str:
    return f"^{identifier}" if use_block_id else f"[id:: {identifier}]"


def meta_token(key: str, value: str) -> str:
    """Bracket form of a metadata field, or the bare form when brackets would not read back."""
    token = f"[{key}:: {value}]"
    match = BRACKET_FIELD_PATTERN.fullmatch(token)
    if key in _RELATION_NAMES or match is None or match.group(2).strip() != value:
        return f"{key}:: {value}"
    return token


def encode(content: ParsedContent, use_block_id: bool = True) -> str:
    """Reassemble text from decoded parts, joined by two spaces."""
    parts: List[str] = []
    title = content.title.strip()
    if title:
        parts.append(title)
    for tag in content.tags:
        cleaned = tag.strip()
        if cleaned:
            parts.append(cleaned if cleaned.startswith("#") else f"#{cleaned}")
    for key, value in content.metas.items():
        if key.lower() == "id":
            continue
        parts.append(meta_token(key, value))
    for kind in TEXT_KINDS:
        for ref in content.relations.get(kind, []):
            parts.append(relation_token(kind, ref))
    if content.identifier:
        parts.append(identifier_token(content.identifier, use_block_id))
    return TOKEN_SEPARATOR.join(parts)


def find_identifier(text: str) -> Optional[str]:
    """Return the reserved identifier exactly as ``decode`` resolves it."""
    return decode(text or "").identifier


def _identifier_anchor(text: str) -> Optional[re.Match]:
    return (
        ID_FIELD_PATTERN.search(text)
        or BARE_ID_PATTERN.search(text)
        or BLOCK_ID_PATTERN.search(text)
    )


def append_identifier(text: str, identifier: str, use_block_id: bool = True) -> str:
    token = identifier_token(identifier, use_block_id)
    stripped = text.rstrip()
    return f"{stripped}{TOKEN_SEPARATOR}{token}" if stripped else token


def insert_token(text: str, token: str) -> str:
    """Insert ``token`` before the identifier anchor, else at the end.

    Text already containing the exact token is returned unchanged.
    """
    if token in text:
        return text
    anchor = _identifier_anchor(text)
    if anchor:
        return f"{text[: anchor.start()]}{token}{TOKEN_SEPARATOR}{text[anchor.start():]}"
    stripped = text.rstrip()
    return f"{stripped}{TOKEN_SEPARATOR}{token}" if stripped else token


def remove_token(text: str, token: str) -> str:
    """Remove the first exact ``token`` together with its leading whitespace."""
    return re.sub(r"\s*" + re.escape(token), "", text, count=1)


def set_field(text: str, key: str, value: str) -> str:
    """Replace a ``[key:: value]`` field or insert one before the identifier."""
    field_token = f"[{key}:: {value}]"
    pattern = re.compile(r"\[" + re.escape(key) + r"::\s*" + _BRACKET_VALUE + r"\]")
    if pattern.search(text):
        return pattern.sub(lambda _m: field_token, text, count=1)
    return insert_token(text, field_token)


def remove_field(text: str, key: str) -> str:
    """Drop every bracket field and the first bare field named ``key``."""
    escaped = re.escape(key)
    text = re.sub(r"\[" + escaped + r"::\s*" + _BRACKET_VALUE + r"\]\s*", "", text)
    text = re.sub(
        r"\b" + escaped + r"::[ \t]*" + _BARE_VALUE,
        "",
        text,
        count=1,
    )
    return text.strip()


def replace_title(text: str, title: str) -> str:
    """Swap the leading title while keeping trailing tokens verbatim."""
    tail = TRAILING_TOKENS_PATTERN.search(text)
    tokens = TOKEN_PATTERN.findall(tail.group(0).strip()) if tail else []
    formatted = TOKEN_SEPARATOR.join(tokens)
    return title.strip() + (f"{TOKEN_SEPARATOR}{formatted}" if formatted else "")


__all__ = [
    "ParsedContent",
    "RELATION_KEYS",
    "TOKEN_SEPARATOR",
    "decode",
    "encode",
    "relation_token",
    "identifier_token",
    "meta_token",
    "reference_id",
    "find_identifier",
    "append_identifier",
    "insert_token",
    "remove_token",
    "set_field",
    "remove_field",
    "replace_title",
]
