"""Tests for proposed changes and mutation-result normalization."""

import pytest

from worldline.world.changes import ProposedChange, change_from_mapping, normalize_changes
from worldline.world.snapshot import Row


def test_new_builds_creation():
    change = ProposedChange.new("tasks", content="buy bread")
    assert change.is_creation()
    assert change.collection == "tasks"
    assert dict(change.payload) == {"content": "buy bread"}
    assert not change.deleted


def test_payload_is_frozen_copy():
    source = {"content": "x"}
    change = ProposedChange("tasks", source)
    source["content"] = "y"
    assert change.payload["content"] == "x"
    with pytest.raises(TypeError):
        change.payload["content"] = "z"  # type: ignore[index]


@pytest.mark.parametrize("collection", ["", None, 3])
def test_collection_must_be_named(collection):
    with pytest.raises(ValueError, match="Collection"):
        ProposedChange(collection, {})  # type: ignore[arg-type]


@pytest.mark.parametrize("field", ["entity_id", "collection", "deleted"])
def test_reserved_fields_rejected_in_payload(field):
    with pytest.raises(ValueError, match="Reserved"):
        ProposedChange("tasks", {field: "x"})


def test_change_from_mapping_splits_annotations():
    change = change_from_mapping(
        {"collection": "tasks", "entity_id": "e1", "deleted": True, "content": "bread"}
    )
    assert change == ProposedChange("tasks", {"content": "bread"}, entity_id="e1", deleted=True)


def test_change_from_mapping_requires_collection():
    with pytest.raises(ValueError, match="collection"):
        change_from_mapping({"content": "bread"})


def test_row_dict_round_trips_into_deletion():
    """Merge-style deletion: {**row, deleted: True}."""
    row = Row("e1", "tasks", {"content": "bread"})
    change = change_from_mapping({**row.to_dict(), "deleted": True})
    assert change == row.delete()


@pytest.mark.parametrize("raw", [None, [], ()])
def test_empty_results_normalize_to_no_changes(raw):
    assert normalize_changes(raw) == []


def test_single_values_are_wrapped():
    change = ProposedChange.new("tasks", content="x")
    assert normalize_changes(change) == [change]
    assert normalize_changes({"collection": "tasks", "content": "x"}) == [change]


def test_row_normalizes_to_unchanged_revision():
    row = Row("e1", "tasks", {"content": "x"})
    [change] = normalize_changes(row)
    assert change.entity_id == "e1"
    assert dict(change.payload) == {"content": "x"}


def test_mixed_iterable_keeps_order():
    row = Row("e1", "tasks", {"content": "x"})
    changes = normalize_changes(
        (c for c in [ProposedChange.new("tasks"), row.delete(), {"collection": "notes"}])
    )
    assert [c.collection for c in changes] == ["tasks", "tasks", "notes"]
    assert [c.deleted for c in changes] == [False, True, False]


@pytest.mark.parametrize("raw", ["tasks", b"tasks", 42, [42]])
def test_invalid_results_rejected(raw):
    with pytest.raises(TypeError):
        normalize_changes(raw)
