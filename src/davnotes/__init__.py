"""
DavNotes - WebDAV synchronization for Simple Notes documents.
This package implements the client side of the note store: a WebDAV protocol
client, a markdown mirror codec and the timestamp rules that keep the canonical
JSON record and its human-readable mirror consistent.

All network operations are asynchronous (httpx).
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("davnotes")
except PackageNotFoundError:
    __version__ = "0.3.0"
