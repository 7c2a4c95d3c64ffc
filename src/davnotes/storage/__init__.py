"""Storage layer for DavNotes."""

from davnotes.storage.markdown_parser import MarkdownParser
from davnotes.storage.webdav_client import WebDavClient

__all__ = [
    "MarkdownParser",
    "WebDavClient",
]
