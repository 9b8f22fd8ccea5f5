import pytest

from taskboard.models.board import EdgeKind
from taskboard.services import relation_codec as codec


def test_decode_extracts_every_token_kind() -> None:
    parsed = codec.decode(
        "Ship release #work #work [dependsOn:: t-1] [subtaskOf:: [[Plan#^t-2]]] "
        "[after:: t-3] [priority:: high] owner:: sam ^t-9"
    )

    assert parsed.title == "Ship release"
    assert parsed.tags == ["#work"]
    assert parsed.relations[EdgeKind.DEPENDS] == ["t-1"]
    assert parsed.relations[EdgeKind.SUBTASK] == ["t-2"]
    assert parsed.relations[EdgeKind.SEQUENCE] == ["t-3"]
    assert parsed.metas == {"priority": "high", "owner": "sam"}
    assert parsed.identifier == "t-9"


def test_decode_bracket_id_field() -> None:
    parsed = codec.decode("Write docs  [id:: t-abc]")

    assert parsed.identifier == "t-abc"
    assert parsed.title == "Write docs"
    assert "id" not in parsed.metas


def test_decode_wiki_link_inside_field() -> None:
    parsed = codec.decode("Review  [notePath:: [[Notes/review]]]")

    assert parsed.meta("notepath") == "[[Notes/review]]"
    assert parsed.title == "Review"


def test_decode_plain_text() -> None:
    parsed = codec.decode("Just   a   title")

    assert parsed.title == "Just a title"
    assert parsed.identifier is None
    assert parsed.tags == []


def test_encode_decode_round_trip() -> None:
    parsed = codec.ParsedContent(
        title="Plan sprint",
        metas={"owner": "kim"},
        tags=["#team"],
        identifier="t-42",
    )
    parsed.relations[EdgeKind.DEPENDS].append("t-1")
    parsed.relations[EdgeKind.SEQUENCE].append("t-7")

    encoded = codec.encode(parsed)
    decoded = codec.decode(encoded)

    assert encoded == "Plan sprint  #team  [owner:: kim]  [dependsOn:: t-1]  [after:: t-7]  ^t-42"
    assert decoded == parsed


def test_encode_with_id_field() -> None:
    parsed = codec.ParsedContent(title="Task", identifier="t-1")

    assert codec.encode(parsed, use_block_id=False) == "Task  [id:: t-1]"
    assert codec.decode("Task  [id:: t-1]") == parsed


def test_relation_token_rejects_link() -> None:
    assert codec.relation_token(EdgeKind.SUBTASK, "t-1") == "[subtaskOf:: t-1]"
    with pytest.raises(ValueError):
        codec.relation_token(EdgeKind.LINK, "t-1")


def test_find_identifier_prefers_field() -> None:
    assert codec.find_identifier("Task  [id:: t-field]") == "t-field"
    assert codec.find_identifier("Task  ^t-block") == "t-block"
    assert codec.find_identifier("Task ^ not-an-anchor") is None


def test_insert_token_goes_before_identifier() -> None:
    token = "[dependsOn:: t-1]"

    inserted = codec.insert_token("Build  #dev  ^t-2", token)

    assert inserted == "Build  #dev  [dependsOn:: t-1]  ^t-2"
    assert codec.insert_token(inserted, token) == inserted


def test_insert_then_remove_restores_text() -> None:
    text = "Build  #dev  ^t-2"
    token = codec.relation_token(EdgeKind.SEQUENCE, "t-1")

    assert codec.remove_token(codec.insert_token(text, token), token) == text


def test_remove_token_only_first_occurrence() -> None:
    text = "A  [after:: t-1]  [after:: t-1]"

    assert codec.remove_token(text, "[after:: t-1]") == "A  [after:: t-1]"


def test_set_and_remove_field() -> None:
    text = "Task  ^t-1"

    with_note = codec.set_field(text, "notePath", "notes/t-1.md")
    replaced = codec.set_field(with_note, "notePath", "notes/other.md")

    assert with_note == "Task  [notePath:: notes/t-1.md]  ^t-1"
    assert replaced == "Task  [notePath:: notes/other.md]  ^t-1"
    assert codec.remove_field(replaced, "notePath") == "Task  ^t-1"


def test_remove_bare_field_keeps_identifier() -> None:
    assert codec.remove_field("Task description:: long words here ^t-1", "description") == "Task  ^t-1"


def test_replace_title_keeps_tokens() -> None:
    text = "Old title #tag [dependsOn:: t-1] ^t-2"

    assert codec.replace_title(text, " New title ") == "New title  #tag  [dependsOn:: t-1]  ^t-2"


@pytest.mark.parametrize(
    "text",
    [
        "Ship  see:: docs [v2] ^t-1",
        "Fix bug #dev #dev owner:: sam [priority:: high]",
        "Read design  notePath:: [[Notes/Design]]  ^t-2",
        "Write docs  [id:: t-abc]  #docs",
        "Plan [dependsOn:: t-1] [subtaskOf:: [[Plan#^t-2]]] [after:: t-3] ^t-4",
        "Bare dependsOn:: t-9 ^t-5",
        "Odd see:: a]b ^t-6",
        "Ship  id:: t-7",
    ],
)
def test_decode_encode_decode_is_stable(text: str) -> None:
    parsed = codec.decode(text)

    assert codec.decode(codec.encode(parsed)) == parsed


def test_encode_keeps_bracketed_values_readable() -> None:
    parsed = codec.decode("Ship  see:: docs [v2] ^t-1")

    assert parsed.title == "Ship"
    assert parsed.metas == {"see": "docs [v2]"}
    assert codec.encode(parsed) == "Ship  [see:: docs [v2]]  ^t-1"


def test_meta_token_falls_back_to_bare_form() -> None:
    assert codec.meta_token("owner", "sam") == "[owner:: sam]"
    assert codec.meta_token("see", "a]b") == "see:: a]b"
    assert codec.meta_token("dependsOn", "t-9") == "dependsOn:: t-9"


def test_find_identifier_matches_decode_for_bare_id() -> None:
    text = "Ship  id:: foo"

    assert codec.find_identifier(text) == "foo"
    assert codec.decode(text).identifier == "foo"
    assert codec.find_identifier("Ship  id::") is None


def test_insert_token_goes_before_bare_id() -> None:
    token = codec.relation_token(EdgeKind.DEPENDS, "t-1")

    assert codec.insert_token("Ship  id:: foo", token) == "Ship  [dependsOn:: t-1]  id:: foo"
