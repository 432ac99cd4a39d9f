"""Injection point loaders.

The injector never inspects classes itself; it asks an
:class:`InjectionPointLoader` for the injection points of a runtime type and
hands it the function that discovers them. The default loader caches one
entry per type.
"""

import logging
import threading
from typing import Any, Callable, Dict, Protocol, Sequence, runtime_checkable

_logger = logging.getLogger(__name__)

Creator = Callable[[type], Sequence[Any]]


@runtime_checkable
class InjectionPointLoader(Protocol):
    """Collaborator contract used by the injector.

    ``get`` must call *creator* at most once per type across all concurrent
    callers; ``invalidate_all`` forgets every cached entry.
    """

    def get(self, cls: type, creator: Creator) -> Sequence[Any]: ...

    def invalidate_all(self) -> None: ...


class DefaultInjectionPointLoader:
    """Compute-if-absent cache of injection points keyed by class."""

    def __init__(self) -> None:
        self._cache: Dict[type, Sequence[Any]] = {}
        self._lock = threading.RLock()

    def get(self, cls: type, creator: Creator) -> Sequence[Any]:
        points = self._cache.get(cls)
        if points is not None:
            return points
        with self._lock:
            points = self._cache.get(cls)
            if points is None:
                points = tuple(creator(cls))
                self._cache[cls] = points
            return points

    def invalidate_all(self) -> None:
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
        _logger.debug("Injection point cache cleared (%d types)", count)

    def __len__(self) -> int:
        return len(self._cache)
