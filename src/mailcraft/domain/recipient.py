"""Immutable value types for email participants and binary resources.

Contents:
    * :class:`Recipient` - named address tagged with a delivery role.
    * :class:`DataSource` - protocol for lazily readable binary content.
    * :class:`BytesDataSource` / :class:`FileDataSource` - concrete sources.
    * :class:`AttachmentResource` - named data source used for attachments
      and embedded images.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from .enums import RecipientType
from .errors import InvalidRecipientError

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class Recipient:
    """A named email address, optionally tagged TO/CC/BCC.

    Single-role participants (from, reply-to, bounce-to, notification
    targets) carry ``type=None``.

    Example:
        >>> Recipient("Ada", "ada@example.com", RecipientType.TO).address
        'ada@example.com'
        >>> Recipient(None, "  ")  # doctest: +IGNORE_EXCEPTION_DETAIL
        Traceback (most recent call last):
        ...
        InvalidRecipientError: recipient address must not be empty
    """

    name: str | None
    address: str
    type: RecipientType | None = None

    def __post_init__(self) -> None:
        if self.address is None or not str(self.address).strip():
            raise InvalidRecipientError("recipient address must not be empty")

    def with_type(self, recipient_type: RecipientType | None) -> Recipient:
        """Return a copy of this recipient tagged with ``recipient_type``."""
        if recipient_type is self.type:
            return self
        return Recipient(self.name, self.address, recipient_type)


@runtime_checkable
class DataSource(Protocol):
    """Binary content handle with a declared MIME type."""

    @property
    def mime_type(self) -> str: ...

    def read_bytes(self) -> bytes: ...


@dataclass(frozen=True, slots=True)
class BytesDataSource:
    """In-memory binary content.

    Example:
        >>> BytesDataSource(b"hello", "text/plain").read_bytes()
        b'hello'
    """

    content: bytes
    mime_type: str = DEFAULT_MIME_TYPE

    def read_bytes(self) -> bytes:
        return bytes(self.content)


@dataclass(frozen=True, slots=True)
class FileDataSource:
    """File-backed content, read only when the codec asks for it.

    When no MIME type is given it is guessed from the file name.
    """

    path: Path
    declared_mime_type: str | None = None

    @property
    def mime_type(self) -> str:
        if self.declared_mime_type:
            return self.declared_mime_type
        guessed, _encoding = mimetypes.guess_type(self.path.name)
        return guessed or DEFAULT_MIME_TYPE

    def read_bytes(self) -> bytes:
        return Path(self.path).read_bytes()


@dataclass(frozen=True, slots=True, eq=False)
class AttachmentResource:
    """Named binary resource, used for both attachments and embedded images.

    Two resources are equal when name, MIME type and content match, so an
    email read back from its wire format compares equal to the original even
    though the data source implementation differs.

    Example:
        >>> a = AttachmentResource("a.txt", BytesDataSource(b"x", "text/plain"))
        >>> b = AttachmentResource("a.txt", BytesDataSource(b"x", "text/plain"))
        >>> a == b
        True
    """

    name: str
    data_source: DataSource

    @property
    def mime_type(self) -> str:
        return self.data_source.mime_type

    def read_bytes(self) -> bytes:
        return self.data_source.read_bytes()

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, AttachmentResource):
            return NotImplemented
        return (
            self.name == other.name
            and self.mime_type.lower() == other.mime_type.lower()
            and self.read_bytes() == other.read_bytes()
        )

    def __hash__(self) -> int:
        return hash((self.name, self.mime_type.lower()))

    def __repr__(self) -> str:
        return f"AttachmentResource(name={self.name!r}, mime_type={self.mime_type!r})"


__all__ = [
    "DEFAULT_MIME_TYPE",
    "AttachmentResource",
    "BytesDataSource",
    "DataSource",
    "FileDataSource",
    "Recipient",
]
