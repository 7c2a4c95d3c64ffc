"""Common test fixtures for DavNotes."""

import pytest

from davnotes.config import DavNotesConfig
from davnotes.models.schema import ChecklistItem, Note, NoteType
from davnotes.services.sync_service import ClientSlot, NoteSyncService
from davnotes.storage.webdav_client import WebDavClient
from tests.fakes import BASE_URL, FakeWebDavServer


@pytest.fixture(params=["asyncio"])
def anyio_backend(request):
    """Restrict anyio tests to asyncio only (trio is not installed)."""
    return request.param


@pytest.fixture
def server():
    """An empty fake WebDAV server with both collections present."""
    return FakeWebDavServer()


@pytest.fixture
def client(server):
    """A WebDavClient wired to the fake server (MockTransport holds no sockets)."""
    return WebDavClient(BASE_URL + "/", "alice", "s3cret", transport=server.transport())


@pytest.fixture
def test_config(tmp_path):
    """Configuration isolated from the environment."""
    return DavNotesConfig(
        server_url=BASE_URL,
        username="alice",
        password="s3cret",
        device_id="test-device",
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def sync_service(server, test_config):
    """A NoteSyncService whose clients talk to the fake server."""

    def factory(url, username, password):
        return WebDavClient(url, username, password, transport=server.transport())

    return NoteSyncService(
        slot=ClientSlot(), settings=test_config, client_factory=factory
    )


@pytest.fixture
def text_note():
    """A plain text note with fixed timestamps."""
    return Note(
        id="3f2b8c1e-5d4a-4e6f-9a7b-1c2d3e4f5a6b",
        title="Meeting notes",
        content="Discussed the roadmap.\nNext sync on Friday.",
        created_at=1770202329000,
        updated_at=1770202329000,
        device_id="android-1234",
    )


@pytest.fixture
def checklist_note():
    """The 'Shopping' checklist with one open and one done item."""
    return Note(
        id="a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d",
        title="Shopping",
        content="",
        created_at=1770202329000,
        updated_at=1770202329000,
        device_id="android-1234",
        note_type=NoteType.CHECKLIST,
        checklist_items=[
            ChecklistItem(id="item-1", text="Buy milk", is_checked=False, order=0),
            ChecklistItem(id="item-2", text="Eggs", is_checked=True, order=1),
        ],
    )
