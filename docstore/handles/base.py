"""
Base handle contract.

A handle binds an in-memory content value to the byte streams a document
service reads and writes. Managers only ever deal in byte streams and
capability tags; the handle owns the conversion:

- **receive**: bytes fetched from the store are parsed into the held value
- **send**: the handle hands back an object that can write the held value
  to an output stream before it is stored

Handles are not thread safe. Use one handle per in-flight operation.
"""

import io
import logging
from typing import (
    Any,
    BinaryIO,
    Callable,
    FrozenSet,
    Generic,
    Optional,
    Protocol,
    Tuple,
    Type,
    TypeVar,
    Union,
    runtime_checkable,
)

from docstore.domain import Capability, Format
from docstore.errors import (
    ContentParseError,
    ContentStateError,
    HandleCapabilityError,
    UnsupportedFormatError,
)

logger = logging.getLogger(__name__)

C = TypeVar("C")
P = TypeVar("P")
S = TypeVar("S")
H = TypeVar("H", bound="BaseHandle")

Receivable = Optional[Union[io.IOBase, BinaryIO, bytes]]


@runtime_checkable
class ContentSender(Protocol):
    """Anything that can write content to a binary output stream."""

    def write(self, out: BinaryIO) -> None:
        ...


class BaseHandle(Generic[C]):
    """Common behaviour of all handles.

    Subclasses declare:

    - ``capabilities``: the capability tags operations check against
    - ``supported_formats``: formats the handle may be set to
    - ``default_format``: the format a new handle starts with
    - ``parse_errors``: exception types ``_parse`` raises for bad bytes
    """

    capabilities: FrozenSet[Capability] = frozenset()
    supported_formats: FrozenSet[Format] = frozenset({Format.UNKNOWN})
    default_format: Format = Format.UNKNOWN
    parse_errors: Tuple[Type[BaseException], ...] = (ValueError,)

    def __init__(
        self,
        content: Optional[C] = None,
        format: Optional[Format] = None,
        mime_type: Optional[str] = None,
    ) -> None:
        self._content: Optional[C] = None
        self._format = self.default_format
        self._mime_type = mime_type
        if format is not None:
            self.set_format(format)
        if content is not None:
            self.set(content)

    def get(self) -> Optional[C]:
        return self._content

    def set(self, content: Optional[C]) -> None:
        self._content = content

    def with_(self: H, content: Optional[C]) -> H:
        self.set(content)
        return self

    @property
    def format(self) -> Format:
        return self._format

    @format.setter
    def format(self, format: Format) -> None:
        self.set_format(format)

    def set_format(self, format: Format) -> None:
        """Change the format, within the formats this handle can carry.

        Raises:
            UnsupportedFormatError: If the format is not supported. The
                current format is left unchanged.
        """
        try:
            format = Format(format)
        except ValueError as e:
            raise UnsupportedFormatError(
                f"{type(self).__name__} does not recognise the format {format!r}"
            ) from e
        if format not in self.supported_formats:
            supported = ", ".join(sorted(f.value for f in self.supported_formats))
            raise UnsupportedFormatError(
                f"{type(self).__name__} supports the {supported} format(s) "
                f"only, not {format.value}"
            )
        self._format = format

    def with_format(self: H, format: Format) -> H:
        self.set_format(format)
        return self

    @property
    def mime_type(self) -> str:
        return self._mime_type or self._format.default_mime_type

    @mime_type.setter
    def mime_type(self, mime_type: Optional[str]) -> None:
        self._mime_type = mime_type

    @property
    def declared_mime_type(self) -> Optional[str]:
        """Mime type set on the handle, None when derived from the format."""
        return self._mime_type

    def with_mime_type(self: H, mime_type: str) -> H:
        self.mime_type = mime_type
        return self

    def has_capabilities(self, *required: Capability) -> bool:
        return set(required).issubset(self.capabilities)

    def require_capabilities(self, *required: Capability) -> None:
        missing = set(required) - set(self.capabilities)
        if missing:
            raise HandleCapabilityError(
                f"{type(self).__name__} lacks required capabilities: "
                f"{sorted(c.value for c in missing)}"
            )

    def receive(self, stream: Receivable) -> None:
        """Parse bytes from a stream into the held value.

        A None stream, one with no bytes, or bytes that parse to no value
        mean "no content" and leave the held value as it was.

        Raises:
            ContentParseError: If the bytes are not valid for the format.
                The held value is left unchanged.
        """
        self.require_capabilities(Capability.READ)
        data = _read_bytes(stream)
        if not data:
            logger.debug(
                "No content received",
                extra={"handle": type(self).__name__},
            )
            return
        try:
            parsed = self._parse(data)
        except self.parse_errors as e:
            logger.debug(
                "Received content failed to parse",
                extra={
                    "handle": type(self).__name__,
                    "format": self._format.value,
                    "error": str(e),
                },
            )
            raise ContentParseError(
                f"{type(self).__name__} could not parse "
                f"{self._format.value} content: {e}"
            ) from e
        if parsed is None:
            logger.debug(
                "Received content parsed to no value",
                extra={"handle": type(self).__name__},
            )
            return
        self._content = parsed

    def send(self) -> ContentSender:
        """Return a sender for the held value.

        Raises:
            ContentStateError: If no content has been set.
        """
        self.require_capabilities(Capability.WRITE)
        if self._content is None:
            raise ContentStateError(
                f"No content to write in {type(self).__name__}"
            )
        return self

    def write(self, out: BinaryIO) -> None:
        """Serialize the held value to ``out``.

        Errors raised by ``out`` propagate unchanged.
        """
        if self._content is None:
            raise ContentStateError(
                f"No content to write in {type(self).__name__}"
            )
        self._serialize(self._content, out)

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self.send().write(buffer)
        return buffer.getvalue()

    def _parse(self, data: bytes) -> C:
        raise NotImplementedError

    def _serialize(self, content: C, out: BinaryIO) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        state = "empty" if self._content is None else "loaded"
        return f"<{type(self).__name__} {self._format.value} {state}>"


class StructuredHandle(BaseHandle[C], Generic[C, P, S]):
    """Handle that parses and serializes through helper objects.

    The parser and serializer are built on first use by ``make_parser``
    and ``make_serializer``. Callers may supply their own with
    ``set_parser`` / ``set_serializer``; a replacement only affects later
    conversions and never touches content already held.
    """

    def __init__(
        self,
        content: Optional[C] = None,
        format: Optional[Format] = None,
        mime_type: Optional[str] = None,
    ) -> None:
        self._parser: Optional[P] = None
        self._serializer: Optional[S] = None
        super().__init__(content=content, format=format, mime_type=mime_type)

    def get_parser(self) -> P:
        if self._parser is None:
            self._parser = self.make_parser()
        return self._parser

    def set_parser(self, parser: Optional[P]) -> None:
        self._parser = parser

    def make_parser(self) -> P:
        raise NotImplementedError

    def get_serializer(self) -> S:
        if self._serializer is None:
            self._serializer = self.make_serializer()
        return self._serializer

    def set_serializer(self, serializer: Optional[S]) -> None:
        self._serializer = serializer

    def make_serializer(self) -> S:
        raise NotImplementedError


def _read_bytes(stream: Receivable) -> Optional[bytes]:
    if stream is None:
        return None
    if isinstance(stream, (bytes, bytearray)):
        return bytes(stream)
    read: Optional[Callable[[], Any]] = getattr(stream, "read", None)
    if read is None:
        raise TypeError(
            f"receive expects a readable byte stream, got {type(stream)}"
        )
    data = read()
    if isinstance(data, str):
        return data.encode("utf-8")
    return data
