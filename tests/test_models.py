# tests/test_models.py
"""Tests for the note data models."""
import json
import time

import pytest
from pydantic import ValidationError

from davnotes.models.schema import (
    ChecklistItem,
    ChecklistSortOption,
    Note,
    NoteType,
    SyncStatus,
)


class TestNoteConstruction:
    """Tests for creating notes locally."""

    def test_new_text_note(self):
        note = Note.new("Test Title", "tauri-abc123")
        assert note.id
        assert note.title == "Test Title"
        assert note.device_id == "tauri-abc123"
        assert note.content == ""
        assert note.note_type == NoteType.TEXT
        assert note.sync_status == SyncStatus.SYNCED
        assert note.checklist_items is None
        assert note.created_at > 0
        assert note.created_at == note.updated_at

    def test_new_checklist_note(self):
        note = Note.new_checklist("Shopping", "tauri-abc123")
        assert note.note_type == NoteType.CHECKLIST
        assert note.checklist_items == []
        assert note.checklist_sort_option == ChecklistSortOption.UNCHECKED_FIRST.value

    def test_new_notes_get_distinct_ids(self):
        assert Note.new("a", "d").id != Note.new("a", "d").id

    def test_new_checklist_item(self):
        item = ChecklistItem.new("Buy milk", 0)
        assert item.id
        assert item.text == "Buy milk"
        assert not item.is_checked
        assert item.order == 0

    def test_touch_updates_timestamp(self):
        note = Note.new("Test", "tauri-abc")
        original = note.updated_at
        time.sleep(0.01)
        note.touch()
        assert note.updated_at > original
        assert note.created_at == original


class TestJsonFormat:
    """Tests for the canonical JSON representation."""

    def test_camel_case_keys(self, checklist_note):
        data = json.loads(checklist_note.to_json())
        assert set(data) == {
            "id", "title", "content", "createdAt", "updatedAt", "deviceId",
            "syncStatus", "noteType", "checklistItems",
        }
        assert data["noteType"] == "CHECKLIST"
        assert data["syncStatus"] == "SYNCED"
        assert data["checklistItems"][1] == {
            "id": "item-2", "text": "Eggs", "isChecked": True, "order": 1,
        }

    def test_absent_optionals_are_omitted(self, text_note):
        data = json.loads(text_note.to_json())
        assert "checklistItems" not in data
        assert "checklistSortOption" not in data

    def test_pretty_printed(self, text_note):
        assert text_note.to_json().startswith('{\n  "id"')

    def test_roundtrip(self, checklist_note):
        checklist_note.checklist_sort_option = "MANUAL"
        assert Note.from_json(checklist_note.to_json()) == checklist_note

    def test_defaults_for_old_records(self):
        """Records from old clients lack syncStatus and noteType."""
        note = Note.from_json(json.dumps({
            "id": "x", "title": "Old", "content": "c",
            "createdAt": 1, "updatedAt": 2, "deviceId": "android",
            "somethingNew": True,
        }))
        assert note.sync_status == SyncStatus.SYNCED
        assert note.note_type == NoteType.TEXT

    def test_local_only_status_token(self):
        note = Note.from_json(json.dumps({
            "id": "x", "title": "t", "content": "", "createdAt": 1,
            "updatedAt": 1, "deviceId": "d", "syncStatus": "LOCAL_ONLY",
        }))
        assert note.sync_status == SyncStatus.LOCAL_ONLY

    def test_missing_required_field(self):
        with pytest.raises(ValidationError):
            Note.from_json('{"id": "x", "title": "t"}')

    def test_invalid_json(self):
        with pytest.raises(ValidationError):
            Note.from_json("{not json")


class TestNormalization:
    """Tests for Note.fix_note_type."""

    def test_items_force_checklist(self, checklist_note):
        checklist_note.note_type = NoteType.TEXT
        checklist_note.fix_note_type()
        assert checklist_note.note_type == NoteType.CHECKLIST

    def test_checklist_without_items_gets_empty_list(self, text_note):
        text_note.note_type = NoteType.CHECKLIST
        text_note.fix_note_type()
        assert text_note.checklist_items == []

    def test_empty_items_do_not_change_text_note(self, text_note):
        text_note.checklist_items = []
        text_note.fix_note_type()
        assert text_note.note_type == NoteType.TEXT

    def test_idempotent(self, checklist_note):
        checklist_note.fix_note_type()
        before = checklist_note.model_copy(deep=True)
        checklist_note.fix_note_type()
        assert checklist_note == before


class TestChecklistFallback:
    """Tests for generated fallback content."""

    def test_sorted_by_order(self, checklist_note):
        checklist_note.checklist_items = list(reversed(checklist_note.checklist_items))
        assert checklist_note.checklist_fallback() == "[ ] Buy milk\n[x] Eggs"

    def test_no_items(self, text_note):
        assert text_note.checklist_fallback() == ""

    def test_ties_keep_original_order(self):
        note = Note.new_checklist("L", "d")
        note.checklist_items = [
            ChecklistItem(text="b", order=1),
            ChecklistItem(text="a", order=0),
            ChecklistItem(text="c", order=1),
        ]
        assert note.checklist_fallback() == "[ ] a\n[ ] b\n[ ] c"


class TestSummary:
    """Tests for the listing projection."""

    def test_summary_fields(self, checklist_note):
        summary = checklist_note.to_summary()
        assert summary.id == checklist_note.id
        assert summary.title == checklist_note.title
        assert summary.updated_at == checklist_note.updated_at
        assert summary.note_type == NoteType.CHECKLIST
        assert len(summary.checklist_items) == 2

    def test_summary_json_omits_note_only_fields(self, text_note):
        data = text_note.to_summary().to_json_dict()
        assert set(data) == {"id", "title", "content", "updatedAt", "noteType"}
