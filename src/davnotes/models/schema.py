"""Data models for DavNotes."""

import datetime
import uuid
from datetime import timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Shared wire configuration: camelCase keys on the server, snake_case in Python.
# Unknown keys written by other clients are ignored rather than rejected.
_WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    validate_assignment=True,
    extra="ignore",
)


def utc_now_millis() -> int:
    """Get the current UTC time as milliseconds since the Unix epoch."""
    now = datetime.datetime.now(timezone.utc)
    return int(now.timestamp() * 1000)


def generate_id() -> str:
    """Generate a random UUID v4 string, used for notes and checklist items."""
    return str(uuid.uuid4())


class SyncStatus(str, Enum):
    """Synchronization state of a note (informational only)."""

    SYNCED = "SYNCED"  # Matches the server copy
    PENDING = "PENDING"  # Local edits waiting to be uploaded
    LOCAL_ONLY = "LOCAL_ONLY"  # Never uploaded
    CONFLICT = "CONFLICT"  # Diverged from the server copy


class NoteType(str, Enum):
    """Kind of note body."""

    TEXT = "TEXT"
    CHECKLIST = "CHECKLIST"


class ChecklistSortOption(str, Enum):
    """Display ordering preferences for checklist notes.

    Stored on the note as a plain string and never interpreted by the
    sync layer; the enum only names the known values.
    """

    MANUAL = "MANUAL"
    ALPHABETICAL_ASC = "ALPHABETICAL_ASC"
    ALPHABETICAL_DESC = "ALPHABETICAL_DESC"
    UNCHECKED_FIRST = "UNCHECKED_FIRST"
    CHECKED_FIRST = "CHECKED_FIRST"


class ChecklistItem(BaseModel):
    """One entry of a checklist note."""

    id: str = Field(default_factory=generate_id, description="Unique item ID")
    text: str = Field(..., description="Item text")
    is_checked: bool = Field(default=False, description="Whether the item is done")
    order: int = Field(default=0, description="0-based display position")

    model_config = _WIRE_CONFIG

    @classmethod
    def new(cls, text: str, order: int) -> "ChecklistItem":
        """Create an unchecked item with a fresh ID."""
        return cls(text=text, order=order)


def sorted_items(items: List[ChecklistItem]) -> List[ChecklistItem]:
    """Return items ordered by ``order``; ties keep their original order."""
    return sorted(items, key=lambda item: item.order)


def checklist_fallback_text(items: List[ChecklistItem]) -> str:
    """Render items as ``[ ] text`` / ``[x] text`` lines without bullets."""
    return "\n".join(
        f"[{'x' if item.is_checked else ' '}] {item.text}"
        for item in sorted_items(items)
    )


class NoteSummary(BaseModel):
    """Lightweight projection of a note used for listings."""

    id: str
    title: str
    content: str
    updated_at: int
    note_type: NoteType
    checklist_items: Optional[List[ChecklistItem]] = None
    checklist_sort_option: Optional[str] = None

    model_config = _WIRE_CONFIG

    def to_json_dict(self) -> dict:
        """Serialize with camelCase keys, omitting absent optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Note(BaseModel):
    """A note as stored in the canonical JSON record."""

    id: str = Field(..., description="Stable ID, also the JSON filename stem")
    title: str = Field(..., description="Title of the note")
    content: str = Field(
        ..., description="Text body, or generated fallback text for checklists"
    )
    created_at: int = Field(..., description="Creation time (epoch millis)")
    updated_at: int = Field(..., description="Last modification (epoch millis)")
    device_id: str = Field(..., description="Identifier of the writing device")
    sync_status: SyncStatus = Field(default=SyncStatus.SYNCED)
    note_type: NoteType = Field(default=NoteType.TEXT)
    checklist_items: Optional[List[ChecklistItem]] = Field(
        default=None, description="Items, present only for checklist notes"
    )
    checklist_sort_option: Optional[str] = Field(
        default=None, description="Display ordering preference (see ChecklistSortOption)"
    )

    model_config = _WIRE_CONFIG

    @classmethod
    def new(cls, title: str, device_id: str) -> "Note":
        """Create an empty text note stamped with the current time."""
        now = utc_now_millis()
        return cls(
            id=generate_id(),
            title=title,
            content="",
            created_at=now,
            updated_at=now,
            device_id=device_id,
        )

    @classmethod
    def new_checklist(cls, title: str, device_id: str) -> "Note":
        """Create an empty checklist note."""
        note = cls.new(title, device_id)
        note.note_type = NoteType.CHECKLIST
        note.checklist_items = []
        note.checklist_sort_option = ChecklistSortOption.UNCHECKED_FIRST.value
        return note

    @classmethod
    def from_json(cls, data: str) -> "Note":
        """Parse a canonical JSON record.

        Raises:
            pydantic.ValidationError: If the JSON is malformed or a required
                field is missing.
        """
        return cls.model_validate_json(data)

    def to_json(self) -> str:
        """Serialize to pretty-printed JSON with camelCase keys.

        ``checklistItems`` and ``checklistSortOption`` are omitted when unset.
        """
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)

    def touch(self) -> None:
        """Stamp ``updated_at`` with the current time."""
        self.updated_at = utc_now_millis()

    def checklist_fallback(self) -> str:
        """Generate plain-text content from the checklist items."""
        if self.checklist_items is None:
            return ""
        return checklist_fallback_text(self.checklist_items)

    def fix_note_type(self) -> None:
        """Reconcile ``note_type`` with the checklist items.

        Records written by older clients may lack ``noteType`` or carry a
        stale value. Non-empty items always mean a checklist; a checklist
        without items gets an empty list.
        """
        if self.checklist_items:
            self.note_type = NoteType.CHECKLIST
            return
        if self.note_type == NoteType.CHECKLIST and self.checklist_items is None:
            self.checklist_items = []

    def to_summary(self) -> NoteSummary:
        """Project this note onto a NoteSummary."""
        return NoteSummary(
            id=self.id,
            title=self.title,
            content=self.content,
            updated_at=self.updated_at,
            note_type=self.note_type,
            checklist_items=(
                [item.model_copy() for item in self.checklist_items]
                if self.checklist_items is not None
                else None
            ),
            checklist_sort_option=self.checklist_sort_option,
        )
