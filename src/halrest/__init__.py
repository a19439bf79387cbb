"""halrest package exports."""

from .core import (
    ApiProblem,
    DomainError,
    HalCollection,
    HalError,
    HalJsonRenderer,
    HalLinks,
    HalResource,
    HalRuntimeError,
    HookBus,
    HydratorManager,
    InvalidArgumentError,
    Link,
    LinkCollection,
    Metadata,
    MetadataMap,
    Paginator,
    RenderConfig,
)

__all__ = [
    "HalLinks",
    "HalResource",
    "HalCollection",
    "Link",
    "LinkCollection",
    "Paginator",
    "Metadata",
    "MetadataMap",
    "HydratorManager",
    "HookBus",
    "ApiProblem",
    "HalJsonRenderer",
    "RenderConfig",
    # Exceptions
    "HalError",
    "InvalidArgumentError",
    "DomainError",
    "HalRuntimeError",
]
