"""
Exception hierarchy for the docstore client.

Handle errors (parse, state, format, capability) are raised by the client
itself. Service errors originate in the document service that moves bytes
to and from the store; they pass through the managers untouched so callers
can tell a missing document from a bad range or a broken connection.
"""


class DocstoreError(Exception):
    """Base class for all docstore failures"""

    pass


class ContentParseError(DocstoreError):
    """Raised when received bytes do not conform to the handle's format.

    The underlying parser error is always chained as ``__cause__``.
    """

    pass


class ContentStateError(DocstoreError):
    """Raised when content is required but none has been set"""

    pass


class UnsupportedFormatError(DocstoreError, ValueError):
    """Raised when a handle is forced into a format it cannot carry"""

    pass


class HandleCapabilityError(DocstoreError, TypeError):
    """Raised when a handle lacks a capability an operation requires"""

    pass


class TransactionStateError(DocstoreError):
    """Raised when a transaction is unknown or already finished"""

    pass


class ConfigurationError(DocstoreError):
    """Raised for invalid client configuration"""

    pass


class ServiceValidationError(DocstoreError):
    """Raised when a document service does not satisfy its protocol"""

    pass


class ServiceError(DocstoreError):
    """Base class for conditions reported by the document service"""

    pass


class DocumentNotFoundError(ServiceError):
    """Raised when the requested document does not exist"""

    def __init__(self, uri: str, message: str = "") -> None:
        self.uri = uri
        super().__init__(message or f"Document not found: {uri}")


class RangeNotSatisfiableError(ServiceError):
    """Raised when a byte range falls outside the stored document"""

    def __init__(
        self, uri: str, start: int, length: int, size: int
    ) -> None:
        self.uri = uri
        self.start = start
        self.length = length
        self.size = size
        super().__init__(
            f"Range start={start} length={length} not satisfiable for "
            f"{uri} ({size} bytes)"
        )


class TransportError(ServiceError):
    """Raised when the store cannot be reached or fails unexpectedly"""

    pass
