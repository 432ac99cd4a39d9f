"""Scopes: lifetime policies wrapping a binding's creator.

A scope turns the creator of a binding into the producer handed out by the
injector. Provides :class:`PerCallScope`, :class:`SingletonScope` (lazy and
eager), :class:`ThreadScope` and :class:`ContextVarScope`, plus the shared
:data:`PER_CALL`, :data:`SINGLETON` and :data:`EAGER_SINGLETON` instances.
"""

import contextvars
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator

from . import _state
from .constants import SCOPE_EAGER_SINGLETON, SCOPE_PER_CALL, SCOPE_SINGLETON
from .exceptions import CircularDependencyError, ScopeError
from .key import BindingKey
from .provider import InternalProvider, Provider

_logger = logging.getLogger(__name__)

_UNSET = object()
_NULL = object()


class Scope:
    """Strategy producing the scoped producer of a binding.

    Implementations override :meth:`wrap`; the returned producer is what
    ``Injector.get_provider`` hands out.
    """

    eager: bool = False

    def wrap(self, key: BindingKey, creator: Provider) -> Provider:
        raise NotImplementedError


class PerCallScope(Scope):
    """Every ``get`` runs the creator."""

    def wrap(self, key: BindingKey, creator: Provider) -> Provider:
        return creator

    def __repr__(self) -> str:
        return SCOPE_PER_CALL


class _SingletonProvider(InternalProvider):
    def __init__(self, key: BindingKey, creator: Provider) -> None:
        self._key = key
        self._creator = creator
        self._lock = threading.RLock()
        self._constructing = False
        self._instance: Any = _UNSET

    def get(self) -> Any:
        instance = self._instance
        if instance is _UNSET:
            with self._lock:
                if self._instance is _UNSET:
                    if self._constructing:
                        raise CircularDependencyError(self._key, _state.resolution_path() + (self._key,))
                    self._constructing = True
                    try:
                        value = self._creator.get()
                    finally:
                        self._constructing = False
                    self._instance = _NULL if value is None else value
                instance = self._instance
        return None if instance is _NULL else instance

    @property
    def initialized(self) -> bool:
        return self._instance is not _UNSET

    def __repr__(self) -> str:
        state = "initialized" if self.initialized else "pending"
        return f"<singleton {self._key} ({state})>"


class SingletonScope(Scope):
    """One instance per binding.

    The first ``get`` constructs the instance under the producer's lock; other
    threads block until it is stored, later reads do not lock at all. A
    creator re-entering its own producer raises
    :class:`~pico_inject.exceptions.CircularDependencyError`. ``None`` results
    are cached, failures are not.

    Args:
        eager: When ``True`` the injector constructs the instance as soon as
            configuration finishes.
    """

    def __init__(self, eager: bool = False) -> None:
        self.eager = eager

    def wrap(self, key: BindingKey, creator: Provider) -> Provider:
        return _SingletonProvider(key, creator)

    def __repr__(self) -> str:
        return SCOPE_EAGER_SINGLETON if self.eager else SCOPE_SINGLETON


class _ThreadScopedProvider(InternalProvider):
    def __init__(self, scope: "ThreadScope", key: BindingKey, creator: Provider) -> None:
        self._scope = scope
        self._key = key
        self._creator = creator

    def get(self) -> Any:
        cache = self._scope._context()
        value = cache.get(self._key, _UNSET)
        if value is _UNSET:
            value = self._creator.get()
            cache[self._key] = value
        return value


class ThreadScope(Scope):
    """One instance per binding and thread.

    Call :meth:`clear_context` when a thread is reused (worker pools) to drop
    the instances cached for the current thread.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    def _context(self) -> Dict[BindingKey, Any]:
        cache = getattr(self._local, "cache", None)
        if cache is None:
            cache = {}
            self._local.cache = cache
        return cache

    def clear_context(self) -> None:
        self._local.cache = None

    def wrap(self, key: BindingKey, creator: Provider) -> Provider:
        return _ThreadScopedProvider(self, key, creator)

    def __repr__(self) -> str:
        return "thread"


class _ContextScopedProvider(InternalProvider):
    def __init__(self, scope: "ContextVarScope", key: BindingKey, creator: Provider) -> None:
        self._scope = scope
        self._key = key
        self._creator = creator

    def get(self) -> Any:
        scope = self._scope
        sid = scope.get_id()
        if sid is None:
            raise ScopeError(
                f"Cannot resolve {self._key} in scope '{scope.name}': No active scope ID found. "
                f"Are you trying to use a {scope.name}-scoped binding outside of its context?"
            )
        with scope._lock:
            value = scope._buckets.setdefault(sid, {}).get(self._key, _UNSET)
        if value is _UNSET:
            # the creator runs unlocked; the first value stored for the id wins
            created = self._creator.get()
            with scope._lock:
                bucket = scope._buckets.setdefault(sid, {})
                value = bucket.setdefault(self._key, _NULL if created is None else created)
        return None if value is _NULL else value


class ContextVarScope(Scope):
    """Scope backed by a :class:`contextvars.ContextVar` holding the active scope id.

    Each scope id (a request id, a session id) gets its own instances. The
    scope is activated by setting the var to a scope id and deactivated by
    resetting it; instances of an id live until :meth:`cleanup` is called.

    Args:
        name: The scope name, e.g. ``"request"``.
    """

    def __init__(self, name: str) -> None:
        if not isinstance(name, str) or not name:
            raise ScopeError("Scope name must be a non-empty string")
        self.name = name
        self._var: contextvars.ContextVar = contextvars.ContextVar(f"pico_{name}_id", default=None)
        self._buckets: Dict[Any, Dict[BindingKey, Any]] = {}
        self._lock = threading.Lock()

    def get_id(self) -> Any | None:
        return self._var.get()

    def activate(self, scope_id: Any) -> contextvars.Token:
        return self._var.set(scope_id)

    def deactivate(self, token: contextvars.Token) -> None:
        self._var.reset(token)

    @contextmanager
    def scope_context(self, scope_id: Any) -> Iterator[Any]:
        token = self.activate(scope_id)
        try:
            yield scope_id
        finally:
            self.deactivate(token)

    def cleanup(self, scope_id: Any) -> None:
        """Drop every instance cached for *scope_id*."""
        with self._lock:
            bucket = self._buckets.pop(scope_id, None)
        if bucket is not None:
            _logger.debug("Scope '%s' id %r cleaned up (%d instances)", self.name, scope_id, len(bucket))

    def wrap(self, key: BindingKey, creator: Provider) -> Provider:
        return _ContextScopedProvider(self, key, creator)

    def __repr__(self) -> str:
        return self.name


PER_CALL = PerCallScope()
SINGLETON = SingletonScope()
EAGER_SINGLETON = SingletonScope(eager=True)
