class HalError(Exception):
    """Base error for HAL rendering failures."""


class InvalidArgumentError(HalError, ValueError):
    """Malformed input to a constructor or setter (bad URL, wrong spec shape)."""


class DomainError(HalError):
    """State conflict, e.g. setting a URL on a link that already has a route."""


class HalRuntimeError(HalError, RuntimeError):
    """Configuration failure surfaced while rendering (missing hydrator, route...)."""


__all__ = [
    "HalError",
    "InvalidArgumentError",
    "DomainError",
    "HalRuntimeError",
]
