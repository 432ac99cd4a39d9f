"""Providers that build new instances through injection points."""

import threading
from typing import Any, Callable, Optional

from . import _state
from .exceptions import BindingBuilderMisuseError, CircularDependencyError, InjectorNotConfiguredError
from .injection_points import (
    ExecutableInjectionPoint,
    create_constructor_point,
    create_explicit_constructor_point,
    create_factory_point,
)
from .key import BindingKey
from .provider import InternalProvider


class InstanceProvider(InternalProvider):
    """Creates values from a class, an explicit constructor, a factory method or a provider class.

    Use the ``from_*`` constructors. The injector is wired in through
    :meth:`set_injector` when the owning binding is finalized.
    """

    def __init__(
        self,
        target_type: Optional[type] = None,
        point: Optional[ExecutableInjectionPoint] = None,
        provider_type: Optional[type] = None,
    ) -> None:
        self._target_type = target_type
        self._point = point
        self._provider_type = provider_type
        self._provider_instance: Any = None
        self._creating = False
        self._lock = threading.RLock()
        self._injector: Any = None

    @classmethod
    def from_type(cls, target_type: type) -> "InstanceProvider":
        return cls(target_type=target_type)

    @classmethod
    def from_constructor(cls, target_type: type) -> "InstanceProvider":
        return cls(target_type=target_type, point=create_explicit_constructor_point(target_type))

    @classmethod
    def from_method(cls, fn: Callable[..., Any], instance: Any = None) -> "InstanceProvider":
        return cls(point=create_factory_point(fn, instance))

    @classmethod
    def from_provider_class(cls, provider_type: type) -> "InstanceProvider":
        if not isinstance(provider_type, type):
            raise BindingBuilderMisuseError(f"{provider_type!r} is not a provider class")
        return cls(provider_type=provider_type)

    @property
    def target_type(self) -> Optional[type]:
        return self._target_type

    def set_injector(self, injector: Any) -> None:
        self._injector = injector

    def _require_injector(self) -> Any:
        if self._injector is None:
            raise InjectorNotConfiguredError("The provider is not attached to an injector")
        return self._injector

    def _get_provider_instance(self) -> Any:
        instance = self._provider_instance
        if instance is not None:
            return instance
        injector = self._require_injector()
        with self._lock:
            if self._provider_instance is None:
                if self._creating:
                    key = BindingKey(self._provider_type)
                    raise CircularDependencyError(key, _state.resolution_path() + (key,))
                self._creating = True
                try:
                    created = create_constructor_point(self._provider_type).inject_to(None, injector)
                    injector.inject_members(created)
                finally:
                    self._creating = False
                self._provider_instance = created
            return self._provider_instance

    def get(self) -> Any:
        if self._provider_type is not None:
            return self._get_provider_instance().get()
        injector = self._require_injector()
        point = self._point
        if point is None:
            point = create_constructor_point(self._target_type)
            self._point = point
        return point.inject_to(None, injector)

    def __repr__(self) -> str:
        if self._provider_type is not None:
            return f"InstanceProvider(provider={self._provider_type.__qualname__})"
        if self._point is not None and self._target_type is None:
            return f"InstanceProvider(method={self._point.name})"
        return f"InstanceProvider({getattr(self._target_type, '__qualname__', self._target_type)})"
