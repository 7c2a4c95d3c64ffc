"""Markdown parsing and serialization for the note mirror.

Handles conversion between Note objects and the human-readable mirror
documents kept next to the canonical JSON records. A mirror document is a
flat ``key: value`` frontmatter block followed by a ``# Title`` heading and
the body. The frontmatter is not YAML: values are taken verbatim after the
first colon, so hand-edited files never fail on quoting.
"""
import logging
import re
from typing import Dict, List, Optional

from davnotes.exceptions import InvalidTimestampError, ParseError
from davnotes.models.schema import (
    ChecklistItem,
    Note,
    NoteType,
    SyncStatus,
    checklist_fallback_text,
    generate_id,
    sorted_items,
    utc_now_millis,
)
from davnotes.storage.timestamps import from_iso, resolve_updated_at, to_iso

logger = logging.getLogger(__name__)

FRONTMATTER_PATTERN = re.compile(r"^---\n([\s\S]*?)\n---\n([\s\S]*)$")
# "- [ ] text" / "- [x] text" as written by render_to_markdown
CHECKLIST_ITEM_PATTERN = re.compile(r"^-\s*\[([ xX])\]\s*(.+)$")
# "[ ] text" without the bullet, as found in fallback content
CHECKLIST_RECOVERY_PATTERN = re.compile(r"^\s*\[([ xX])\]\s*(.+)$")

DEFAULT_TITLE = "Untitled"
DEFAULT_DEVICE = "unknown"


class MarkdownParser:
    """Parses and serializes notes as markdown mirror documents."""

    def render_to_markdown(self, note: Note) -> str:
        """Convert a Note to a mirror document.

        Args:
            note: The note to serialize.

        Returns:
            Markdown string with a flat frontmatter block.
        """
        note_type = "checklist" if note.note_type == NoteType.CHECKLIST else "text"
        lines = [
            "---",
            f"id: {note.id}",
            f"created: {to_iso(note.created_at)}",
            f"updated: {to_iso(note.updated_at)}",
            f"device: {note.device_id}",
            f"type: {note_type}",
        ]
        if note.checklist_sort_option:
            lines.append(f"sort: {note.checklist_sort_option.lower()}")
        lines.append("---")

        md = "\n".join(lines) + f"\n\n# {note.title}\n\n"

        if note.note_type == NoteType.CHECKLIST:
            for item in sorted_items(note.checklist_items or []):
                checkbox = "[x]" if item.is_checked else "[ ]"
                md += f"- {checkbox} {item.text}\n"
        else:
            md += note.content
        return md

    def parse_note(self, content: str, server_mtime: Optional[int] = None) -> Note:
        """Parse a mirror document into a Note.

        Missing or unreadable fields degrade gracefully: a missing ``id`` gets
        a fresh one, a missing ``type`` means text, unparsable timestamps fall
        back to now (created) or the created time (updated).

        Args:
            content: Raw mirror document.
            server_mtime: Last modification time reported by the server, in
                epoch millis. Overrides ``updated`` only when strictly newer.

        Returns:
            The parsed Note.

        Raises:
            ParseError: If the document has no frontmatter block.
        """
        match = FRONTMATTER_PATTERN.match(content.replace("\r\n", "\n"))
        if match is None:
            raise ParseError("No frontmatter found")
        metadata = self.parse_frontmatter(match.group(1))
        body = match.group(2)

        title, body_after_title = self._split_title(body)

        note_type = (
            NoteType.CHECKLIST
            if metadata.get("type") == "checklist"
            else NoteType.TEXT
        )

        created_at = self._parse_timestamp(metadata.get("created"))
        if created_at is None:
            created_at = utc_now_millis()
        declared_updated = self._parse_timestamp(metadata.get("updated"))
        if declared_updated is None:
            declared_updated = created_at
        updated_at = resolve_updated_at(declared_updated, server_mtime)

        checklist_items: Optional[List[ChecklistItem]] = None
        if note_type == NoteType.CHECKLIST:
            checklist_items = self.parse_checklist_items(body_after_title)
            note_content = checklist_fallback_text(checklist_items)
        else:
            note_content = body_after_title

        sort_option = metadata.get("sort")
        if sort_option is not None:
            sort_option = sort_option.upper().replace("-", "_")

        note_id = metadata.get("id")
        if not note_id:
            note_id = generate_id()
            logger.warning(f"Mirror document '{title}' has no id, generated {note_id}")

        return Note(
            id=note_id,
            title=title,
            content=note_content,
            created_at=created_at,
            updated_at=updated_at,
            device_id=metadata.get("device") or DEFAULT_DEVICE,
            sync_status=SyncStatus.SYNCED,
            note_type=note_type,
            checklist_items=checklist_items,
            checklist_sort_option=sort_option,
        )

    @staticmethod
    def parse_frontmatter(block: str) -> Dict[str, str]:
        """Split frontmatter lines into a flat mapping on the first colon.

        Lines without a colon are ignored; later duplicates win.
        """
        metadata: Dict[str, str] = {}
        for line in block.split("\n"):
            key, sep, value = line.partition(":")
            if sep:
                metadata[key.strip()] = value.strip()
        return metadata

    @staticmethod
    def parse_checklist_items(body: str) -> List[ChecklistItem]:
        """Extract ``- [ ]`` / ``- [x]`` lines as checklist items in line order."""
        return _items_from_lines(body, CHECKLIST_ITEM_PATTERN)

    @staticmethod
    def recover_checklist_items(content: str) -> List[ChecklistItem]:
        """Rebuild checklist items from degraded or hand-edited text.

        More permissive than :meth:`parse_checklist_items`: the bullet is
        optional and leading whitespace is allowed, so the fallback content
        stored for checklist notes can be turned back into items.
        """
        return _items_from_lines(content, CHECKLIST_RECOVERY_PATTERN)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _split_title(body: str):
        """Return the first ``# `` heading and the trimmed text after it."""
        lines = body.split("\n")
        for index, line in enumerate(lines):
            if line.startswith("# "):
                title = line[2:].strip()
                rest = "\n".join(lines[index + 1:]).strip()
                return title, rest
        return DEFAULT_TITLE, body.strip()

    @staticmethod
    def _parse_timestamp(value: Optional[str]) -> Optional[int]:
        if not value:
            return None
        try:
            return from_iso(value)
        except InvalidTimestampError as e:
            logger.warning(f"Ignoring unreadable timestamp in mirror document: {e}")
            return None


def _items_from_lines(text: str, pattern: "re.Pattern") -> List[ChecklistItem]:
    items: List[ChecklistItem] = []
    for line in text.replace("\r\n", "\n").split("\n"):
        match = pattern.match(line)
        if match is None:
            continue
        items.append(
            ChecklistItem(
                text=match.group(2).strip(),
                is_checked=match.group(1).lower() == "x",
                order=len(items),
            )
        )
    return items
