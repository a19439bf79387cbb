"""
Extension points for the rendering engine.

Each HalLinks instance owns a HookBus; listeners are attached per named
extension point with a priority (higher runs first). Listeners receive a
HookEvent whose ``params`` dict is shared and mutable, so a listener can
rewrite routing parameters before rendering continues, or return a value to
give a definitive answer (see ``trigger_until``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Callable, Dict, List, Optional, Tuple

log = logging.getLogger("halrest.core.hooks")

GET_ID_FROM_RESOURCE = "getIdFromResource"
CREATE_LINK = "createLink"
RENDER_RESOURCE = "renderResource"
RENDER_COLLECTION = "renderCollection"
RENDER_COLLECTION_RESOURCE = "renderCollection.resource"

EXTENSION_POINTS = (
    GET_ID_FROM_RESOURCE,
    CREATE_LINK,
    RENDER_RESOURCE,
    RENDER_COLLECTION,
    RENDER_COLLECTION_RESOURCE,
)


@dataclass
class HookEvent:
    name: str
    target: Any = None
    params: Dict[str, Any] = field(default_factory=dict)

    def get_param(self, name: str, default: Any = None) -> Any:
        return self.params.get(name, default)

    def set_param(self, name: str, value: Any) -> None:
        self.params[name] = value


HookCallback = Callable[[HookEvent], Any]


class HookResults(list):
    """Listener return values in call order; ``stopped`` when short-circuited."""

    stopped: bool = False

    def last(self) -> Any:
        return self[-1] if self else None


class HookBus:
    def __init__(self) -> None:
        self._listeners: Dict[str, List[Tuple[int, int, HookCallback]]] = {}
        self._sequence = count()

    def attach(self, name: str, callback: HookCallback, priority: int = 1) -> HookCallback:
        if not callable(callback):
            raise TypeError("Hook callback must be callable")
        # Negated sequence keeps insertion order among equal priorities
        entry = (priority, -next(self._sequence), callback)
        listeners = self._listeners.setdefault(name, [])
        listeners.append(entry)
        listeners.sort(key=lambda item: (item[0], item[1]), reverse=True)
        return callback

    def detach(self, name: str, callback: HookCallback) -> bool:
        listeners = self._listeners.get(name, [])
        for entry in listeners:
            if entry[2] is callback:
                listeners.remove(entry)
                return True
        return False

    def listeners(self, name: str) -> List[HookCallback]:
        return [entry[2] for entry in self._listeners.get(name, [])]

    def trigger(
        self, name: str, target: Any = None, params: Optional[Dict[str, Any]] = None
    ) -> HookResults:
        return self.trigger_until(name, target, params, until=None)

    def trigger_until(
        self,
        name: str,
        target: Any = None,
        params: Optional[Dict[str, Any]] = None,
        until: Optional[Callable[[Any], bool]] = None,
    ) -> HookResults:
        """
        Run listeners for ``name`` in priority order.
        Stops at the first result for which ``until(result)`` is true.
        """
        event = HookEvent(
            name=name, target=target, params=params if params is not None else {}
        )
        results = HookResults()
        for callback in self.listeners(name):
            result = callback(event)
            results.append(result)
            if until is not None and until(result):
                results.stopped = True
                log.debug("Hook %s short-circuited by %r", name, callback)
                break
        return results


__all__ = [
    "HookBus",
    "HookEvent",
    "HookResults",
    "HookCallback",
    "EXTENSION_POINTS",
    "GET_ID_FROM_RESOURCE",
    "CREATE_LINK",
    "RENDER_RESOURCE",
    "RENDER_COLLECTION",
    "RENDER_COLLECTION_RESOURCE",
]
