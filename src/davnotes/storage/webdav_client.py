"""WebDAV client for the note store.

The server holds two collections: ``/notes/`` with one canonical
``{id}.json`` record per note, and ``/notes-md/`` with a human-readable
``{title}.md`` mirror of each note. The JSON record is authoritative; the
mirror is written after it and its failures are only logged.
"""
import base64
import logging
import re
from typing import Dict, List, Optional
from urllib.parse import quote, unquote

import httpx
from pydantic import ValidationError

from davnotes.exceptions import (
    InvalidCredentialsError,
    NetworkError,
    NotConnectedError,
    NoteNotFoundError,
    ParseError,
    ProtocolError,
)
from davnotes.models.schema import Note, NoteSummary
from davnotes.observability import timed_operation
from davnotes.storage.markdown_parser import MarkdownParser
from davnotes.utils import sanitize_filename

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

# {uuid}.json inside a PROPFIND response, percent-encoded or not
DOCUMENT_ID_PATTERN = re.compile(
    r"([0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})\.json",
    re.IGNORECASE,
)

PROPFIND_BODY = """<?xml version="1.0" encoding="utf-8"?>
<d:propfind xmlns:d="DAV:">
  <d:prop>
    <d:displayname/>
    <d:getcontenttype/>
  </d:prop>
</d:propfind>"""

_OK_STATUSES = (httpx.codes.OK, httpx.codes.MULTI_STATUS)


def scan_document_ids(listing: str) -> List[str]:
    """Extract note IDs from a PROPFIND response body.

    The body is scanned twice, percent-decoded first and raw second, because
    servers differ in whether they encode ``href`` values. IDs are returned
    lower-cased, deduplicated, in first-seen order.
    """
    ids: List[str] = []
    seen = set()
    for text in (unquote(listing), listing):
        for match in DOCUMENT_ID_PATTERN.finditer(text):
            note_id = match.group(1).lower()
            if note_id not in seen:
                seen.add(note_id)
                ids.append(note_id)
    return ids


def basic_auth_header(username: str, password: str) -> str:
    """Build the value of a Basic ``Authorization`` header."""
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class WebDavClient:
    """Asynchronous client for the note collections on a WebDAV server.

    The client holds no mutable state after construction and can be shared
    between concurrent tasks.

    Args:
        url: Base URL of the WebDAV share; a trailing slash is ignored.
        username: Account name for Basic authentication.
        password: Account password.
        timeout: Per-request timeout in seconds.
        verify_tls: Verify server certificates. Off by default because
            self-hosted servers commonly use self-signed certificates.
        notes_dir: Collection holding the JSON records.
        mirror_dir: Collection holding the markdown mirrors.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        url: str,
        username: str,
        password: str,
        timeout: float = DEFAULT_TIMEOUT,
        verify_tls: bool = False,
        notes_dir: str = "notes",
        mirror_dir: str = "notes-md",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = url.rstrip("/")
        self.notes_dir = notes_dir.strip("/")
        self.mirror_dir = mirror_dir.strip("/")
        self._auth_header = basic_auth_header(username, password)
        self._parser = MarkdownParser()
        try:
            self._client = httpx.AsyncClient(
                headers={"Authorization": self._auth_header},
                timeout=timeout,
                verify=verify_tls,
                transport=transport,
            )
        except (httpx.HTTPError, OSError, ValueError) as e:
            raise NetworkError(str(e)) from e

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> "WebDavClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    @property
    def notes_url(self) -> str:
        return f"{self.base_url}/{self.notes_dir}/"

    @property
    def mirror_url(self) -> str:
        return f"{self.base_url}/{self.mirror_dir}/"

    def json_url(self, note_id: str) -> str:
        """URL of the canonical JSON record of a note."""
        return f"{self.notes_url}{note_id}.json"

    def markdown_url(self, title: str) -> str:
        """URL of the markdown mirror of a note with the given title."""
        return f"{self.mirror_url}{quote(sanitize_filename(title), safe='')}.md"

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        content: Optional[str] = None,
    ) -> httpx.Response:
        """Send one request, mapping transport failures to NetworkError.

        Raises:
            NetworkError: If the request fails in transport.
            NotConnectedError: If this client has already been closed.
        """
        try:
            return await self._client.request(
                method,
                url,
                headers=headers,
                content=content.encode("utf-8") if content is not None else None,
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"{method} {url}: {e}") from e
        except RuntimeError as e:
            # httpx refuses to send on a closed client
            if self._client.is_closed:
                raise NotConnectedError() from e
            raise

    async def _request_best_effort(self, method: str, url: str) -> None:
        """Send one request whose outcome does not matter to the caller."""
        try:
            response = await self._request(method, url)
        except NetworkError as e:
            logger.debug(f"{method} {url} failed (ignored): {e}")
            return
        logger.debug(f"{method} {url} -> {response.status_code}")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def test_connection(self) -> bool:
        """Probe the notes collection.

        A missing collection is treated as a first run: both collections are
        created and the connection counts as successful.

        Raises:
            InvalidCredentialsError: On 401 or 403.
            ProtocolError: On any other unexpected status.
            NetworkError: If the server cannot be reached.
        """
        response = await self._request(
            "PROPFIND", self.notes_url, headers={"Depth": "0"}
        )
        status = response.status_code
        if status in _OK_STATUSES:
            return True
        if status in (httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN):
            raise InvalidCredentialsError()
        if status == httpx.codes.NOT_FOUND:
            logger.info(f"Notes collection missing on {self.base_url}, creating it")
            await self.ensure_directories()
            return True
        raise ProtocolError(f"Connection test failed: {status}", status_code=status)

    async def ensure_directories(self) -> None:
        """Create both note collections; existing collections are fine."""
        await self._request_best_effort("MKCOL", self.notes_url)
        await self._request_best_effort("MKCOL", self.mirror_url)

    async def list_document_ids(self) -> List[str]:
        """List the IDs of all JSON records in the notes collection."""
        response = await self._request(
            "PROPFIND",
            self.notes_url,
            headers={"Depth": "1", "Content-Type": "application/xml"},
            content=PROPFIND_BODY,
        )
        if not (response.is_success or response.status_code == httpx.codes.MULTI_STATUS):
            raise ProtocolError(
                f"PROPFIND failed: {response.status_code}",
                status_code=response.status_code,
            )
        ids = scan_document_ids(response.text)
        logger.debug(f"PROPFIND returned {len(response.text)} bytes, {len(ids)} note IDs")
        return ids

    async def fetch_note(self, note_id: str) -> Note:
        """Download and parse one canonical JSON record.

        Raises:
            NoteNotFoundError: If the record does not exist.
            ParseError: If the body is not a valid note.
            ProtocolError: On any other unexpected status.
        """
        response = await self._request("GET", self.json_url(note_id))
        status = response.status_code
        if status == httpx.codes.OK:
            try:
                note = Note.from_json(response.text)
            except ValidationError as e:
                raise ParseError(f"Invalid note record {note_id}: {e}") from e
            note.fix_note_type()
            return note
        if status == httpx.codes.NOT_FOUND:
            raise NoteNotFoundError(note_id)
        raise ProtocolError(f"GET failed: {status}", status_code=status)

    async def save_note(self, note: Note) -> None:
        """Write the JSON record, then the markdown mirror.

        The two writes are not atomic. A failed JSON write aborts the save;
        a failed mirror write is logged and otherwise ignored.

        Raises:
            ProtocolError: If the JSON write is rejected.
            NetworkError: If the server cannot be reached for the JSON write.
        """
        await self._save_json(note)
        await self._save_markdown(note)

    async def _save_json(self, note: Note) -> None:
        url = self.json_url(note.id)
        response = await self._request(
            "PUT",
            url,
            headers={"Content-Type": "application/json"},
            content=note.to_json(),
        )
        if not response.is_success:
            raise ProtocolError(
                f"PUT JSON failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        logger.debug(f"PUT {url} -> {response.status_code}")

    async def _save_markdown(self, note: Note) -> None:
        url = self.markdown_url(note.title)
        try:
            response = await self._request(
                "PUT",
                url,
                headers={"Content-Type": "text/markdown; charset=utf-8"},
                content=self._parser.render_to_markdown(note),
            )
        except NetworkError as e:
            logger.warning(f"PUT Markdown failed for note {note.id}: {e}")
            return
        if not response.is_success:
            logger.warning(
                f"PUT Markdown failed: {response.status_code} for note {note.id}"
            )

    async def delete_note(self, note: Note) -> None:
        """Delete the JSON record and the markdown mirror, ignoring failures."""
        await self._request_best_effort("DELETE", self.json_url(note.id))
        await self._request_best_effort("DELETE", self.markdown_url(note.title))

    async def list_note_summaries(self) -> List[NoteSummary]:
        """Fetch every note and return summaries, most recently updated first.

        Notes that cannot be fetched or parsed are skipped so one bad record
        never hides the rest.
        """
        with timed_operation("list_note_summaries") as op:
            summaries: List[NoteSummary] = []
            for note_id in await self.list_document_ids():
                try:
                    note = await self.fetch_note(note_id)
                except (NoteNotFoundError, ParseError, ProtocolError, NetworkError) as e:
                    logger.debug(f"Skipping note {note_id}: {e}")
                    continue
                summaries.append(note.to_summary())
            # sorted() is stable, so equal timestamps keep fetch order
            summaries = sorted(summaries, key=lambda s: s.updated_at, reverse=True)
            op["result_count"] = len(summaries)
            return summaries
