"""
Runtime validation of injected collaborators.

Managers and the database client accept any object as their document
service. Conformance is checked once, at construction, using
``isinstance()`` against the ``@runtime_checkable`` DocumentService
protocol, so a misconfigured service fails early instead of on the first
read or write.
"""

import logging
from typing import Type, TypeVar

from docstore.errors import ServiceValidationError

logger = logging.getLogger(__name__)

P = TypeVar("P")


def validate_service_protocol(service: object, protocol: Type[P]) -> None:
    """
    Validate that a service implementation satisfies a protocol contract.

    Args:
        service: The service implementation to validate
        protocol: The protocol class to validate against

    Raises:
        ServiceValidationError: If validation fails
    """
    logger.debug(
        "Validating service protocol",
        extra={
            "service_type": type(service).__name__,
            "protocol_name": protocol.__name__,
        },
    )

    if not isinstance(service, protocol):
        logger.error(
            "Service protocol validation failed",
            extra={
                "service_type": type(service).__name__,
                "protocol_name": protocol.__name__,
            },
        )
        raise ServiceValidationError(
            f"Service {type(service).__name__} does not implement "
            f"{protocol.__name__} protocol. Missing or incorrect methods."
        )


def ensure_service_protocol(service: object, protocol: Type[P]) -> P:
    """
    Validate and return a service with proper type annotation.

    Example:
        >>> from docstore.services import DocumentService
        >>> from docstore.services import MemoryDocumentService
        >>> service = ensure_service_protocol(
        ...     MemoryDocumentService(), DocumentService
        ... )
    """
    validate_service_protocol(service, protocol)
    return service  # type: ignore[return-value]
