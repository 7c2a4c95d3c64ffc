"""Service layer for DavNotes."""

from davnotes.services.sync_service import ClientSlot, NoteSyncService

__all__ = ["ClientSlot", "NoteSyncService"]
