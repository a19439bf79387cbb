"""Core HAL engine for halrest (transport-agnostic)."""

from .config import RenderConfig
from .errors import DomainError, HalError, HalRuntimeError, InvalidArgumentError
from .hal_links import HalLinks, RouteResolver, ServerUrlComposer, is_absolute_url
from .hooks import (
    CREATE_LINK,
    GET_ID_FROM_RESOURCE,
    RENDER_COLLECTION,
    RENDER_COLLECTION_RESOURCE,
    RENDER_RESOURCE,
    HookBus,
    HookEvent,
    HookResults,
)
from .hydrators import (
    ArraySerializableHydrator,
    ClassMethodsHydrator,
    DataclassHydrator,
    Hydrator,
    HydratorManager,
    ObjectPropertyHydrator,
    PydanticHydrator,
)
from .link import Link, LinkCollection, LinkSpec, RouteSpec
from .metadata import Metadata, MetadataMap
from .paginator import CallbackAdapter, Paginator, SequenceAdapter
from .problem import ApiProblem
from .renderer import (
    HAL_JSON,
    PLAIN_JSON,
    PROBLEM_JSON,
    HalJsonRenderer,
    PayloadKind,
    RenderedPayload,
    classify,
    media_type_for,
    render_problem,
    to_json,
)
from .resources import HalCollection, HalResource

__all__ = [
    # Errors
    "HalError",
    "InvalidArgumentError",
    "DomainError",
    "HalRuntimeError",
    # Links
    "Link",
    "LinkCollection",
    "LinkSpec",
    "RouteSpec",
    # Resources
    "HalResource",
    "HalCollection",
    "Paginator",
    "SequenceAdapter",
    "CallbackAdapter",
    # Hydrators and metadata
    "Hydrator",
    "HydratorManager",
    "ObjectPropertyHydrator",
    "ClassMethodsHydrator",
    "ArraySerializableHydrator",
    "PydanticHydrator",
    "DataclassHydrator",
    "Metadata",
    "MetadataMap",
    # Hooks
    "HookBus",
    "HookEvent",
    "HookResults",
    "GET_ID_FROM_RESOURCE",
    "CREATE_LINK",
    "RENDER_RESOURCE",
    "RENDER_COLLECTION",
    "RENDER_COLLECTION_RESOURCE",
    # Engine
    "HalLinks",
    "RouteResolver",
    "ServerUrlComposer",
    "is_absolute_url",
    "ApiProblem",
    # Rendering
    "HalJsonRenderer",
    "PayloadKind",
    "RenderedPayload",
    "classify",
    "render_problem",
    "media_type_for",
    "to_json",
    "HAL_JSON",
    "PROBLEM_JSON",
    "PLAIN_JSON",
    # Config
    "RenderConfig",
]
