"""Service layer for note synchronization.

Exposes the operations the user interface needs (connect, list, fetch,
save, delete, create) on top of a single shared WebDAV connection.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, List, Optional, Set

from davnotes.config import DavNotesConfig, config
from davnotes.exceptions import NotConnectedError
from davnotes.models.schema import Note, NoteSummary, NoteType
from davnotes.observability import timed_operation
from davnotes.storage.webdav_client import WebDavClient

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, str, str], WebDavClient]


class ClientSlot:
    """Holder for the current connection: disconnected, or one client.

    Mutation goes through :meth:`replace` and is serialized with a lock.
    Operations borrow the client with :meth:`lease` and keep using it even
    if the slot is replaced meanwhile; a replaced client is closed once its
    last lease ends. A bare :meth:`require` snapshot is not tracked, so it
    fails with NotConnectedError after its client has been closed.
    """

    def __init__(self) -> None:
        self._client: Optional[WebDavClient] = None
        self._lock = asyncio.Lock()
        # In-flight lease count per client
        self._leases: Dict[WebDavClient, int] = {}
        # Replaced clients waiting for their leases to end
        self._retired: Set[WebDavClient] = set()

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def require(self) -> WebDavClient:
        """Return the connected client.

        Raises:
            NotConnectedError: If no client is connected.
        """
        client = self._client
        if client is None:
            raise NotConnectedError()
        return client

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[WebDavClient]:
        """Borrow the connected client for the duration of one operation.

        Raises:
            NotConnectedError: If no client is connected.
        """
        client = self.require()
        self._leases[client] = self._leases.get(client, 0) + 1
        try:
            yield client
        finally:
            self._leases[client] -= 1
            if self._leases[client] == 0:
                del self._leases[client]
                if client in self._retired:
                    self._retired.discard(client)
                    await client.aclose()

    async def replace(self, client: Optional[WebDavClient]) -> None:
        """Install a new client (or None to disconnect).

        The previous client is closed now if nothing is using it, otherwise
        when its last lease ends.
        """
        async with self._lock:
            previous, self._client = self._client, client
            if client is not None:
                self._retired.discard(client)
        if previous is None or previous is client:
            return
        if self._leases.get(previous):
            logger.debug("Previous client still in use, closing it after the last lease")
            self._retired.add(previous)
            return
        await previous.aclose()


class NoteSyncService:
    """Note operations against the server behind a ClientSlot."""

    def __init__(
        self,
        slot: Optional[ClientSlot] = None,
        settings: Optional[DavNotesConfig] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.slot = slot or ClientSlot()
        self.settings = settings or config
        self._client_factory = client_factory or self._default_client

    def _default_client(self, url: str, username: str, password: str) -> WebDavClient:
        return WebDavClient(
            url,
            username,
            password,
            timeout=self.settings.timeout,
            verify_tls=self.settings.verify_tls,
            notes_dir=self.settings.notes_dir,
            mirror_dir=self.settings.mirror_dir,
        )

    async def connect(self, url: str, username: str, password: str) -> bool:
        """Connect to a server and make it the current connection.

        Raises:
            InvalidCredentialsError: If the server rejects the credentials.
            NetworkError: If the server cannot be reached.
            ProtocolError: If the server answers unexpectedly.
        """
        client = self._client_factory(url, username, password)
        try:
            connected = await client.test_connection()
        except Exception:
            await client.aclose()
            raise
        if not connected:
            await client.aclose()
            return False
        await self.slot.replace(client)
        logger.info(f"Connected to {client.base_url}")
        return True

    async def disconnect(self) -> None:
        """Drop the current connection, if any."""
        await self.slot.replace(None)

    async def list_notes(self) -> List[NoteSummary]:
        """List all notes on the server, most recently updated first."""
        async with self.slot.lease() as client:
            return await client.list_note_summaries()

    async def get_note(self, note_id: str) -> Note:
        """Fetch one note by ID."""
        async with self.slot.lease() as client:
            return await client.fetch_note(note_id)

    async def save_note(self, note: Note) -> Note:
        """Stamp ``updated_at`` and upload the note.

        Returns:
            A copy of the note carrying the timestamp that was written.
        """
        async with self.slot.lease() as client:
            stamped = note.model_copy(deep=True)
            stamped.touch()
            with timed_operation("save_note", note_id=stamped.id):
                await client.save_note(stamped)
        logger.info(
            f"Saved note '{stamped.title}' ({stamped.id}) at {stamped.updated_at}"
        )
        return stamped

    async def delete_note(self, note_id: str) -> None:
        """Delete a note from the server.

        The note is fetched first because the mirror document is addressed
        by title.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        async with self.slot.lease() as client:
            note = await client.fetch_note(note_id)
            await client.delete_note(note)
        logger.info(f"Deleted note '{note.title}' ({note.id})")

    def create_note(
        self,
        title: str,
        note_type: NoteType = NoteType.TEXT,
        device_id: Optional[str] = None,
    ) -> Note:
        """Create a new, unsaved note. No request is sent."""
        device = device_id or self.settings.device_id
        if note_type == NoteType.CHECKLIST:
            return Note.new_checklist(title, device)
        return Note.new(title, device)
