"""Bindings: a key associated with a provider under a scope."""

import logging
import threading
from typing import Any, List, Optional

from . import _state
from .exceptions import ConstructionError, PicoInjectError
from .key import BindingKey
from .provider import InternalProvider, Provider
from .scope import Scope

_logger = logging.getLogger(__name__)


class _BindingCreator(InternalProvider):
    __slots__ = ("_binding",)

    def __init__(self, binding: "Binding") -> None:
        self._binding = binding

    def get(self) -> Any:
        return self._binding._create_instance()


class MultiBindingProvider(InternalProvider):
    """Aggregates the component bindings of a multi-binding, in registration order."""

    def __init__(self, key: BindingKey, components: Optional[List["Binding"]] = None) -> None:
        self._key = key
        self._components: List[Binding] = list(components or [])

    @property
    def components(self) -> List["Binding"]:
        return list(self._components)

    def add_binding(self, binding: "Binding") -> None:
        self._components.append(binding)

    def post_configuration(self, injector: Any) -> None:
        for b in self._components:
            b.post_configuration(injector)

    def initialize_eager(self) -> None:
        for b in self._components:
            b.initialize_eager()

    def get_instance(self, target_key: BindingKey) -> List[Any]:
        """Component values, or their scoped producers when *target_key* asks for providers."""
        return [b.get_instance(target_key) for b in self._components]

    def get(self) -> List[Any]:
        return self.get_instance(self._key)


class Binding:
    """Association between a key and a provider, constrained to a scope.

    Nothing can be resolved before :meth:`post_configuration` wired the
    injector and composed the scoped producer.

    Args:
        key: The key the binding is registered under.
        provider: Produces the raw values.
        scope: Wraps the creator into the scoped producer.
        target_type: The concrete type produced, reported to binding listeners.
    """

    def __init__(self, key: BindingKey, provider: Provider, scope: Scope, target_type: Any = None) -> None:
        if key is None or provider is None or scope is None:
            raise ValueError("A binding needs a key, a provider and a scope")
        self.key = key
        self.provider = provider
        self.scope = scope
        self.target_type = target_type if target_type is not None else key.type
        self._injector: Any = None
        self._scoped: Optional[Provider] = None
        self._provider_injected = isinstance(provider, InternalProvider)
        self._lock = threading.Lock()

    @classmethod
    def multi(cls, key: BindingKey, components: List["Binding"], scope: Scope) -> "Binding":
        return cls(key, MultiBindingProvider(key, components), scope)

    @property
    def is_multi(self) -> bool:
        return isinstance(self.provider, MultiBindingProvider)

    def add_binding(self, binding: "Binding") -> bool:
        """Merge the components of another multi-binding; ``False`` if either side is not multi."""
        if not (self.is_multi and binding.is_multi):
            return False
        for component in binding.provider.components:
            self.provider.add_binding(component)
        return True

    def post_configuration(self, injector: Any) -> None:
        if self.is_multi:
            self.provider.post_configuration(injector)
            return
        self._injector = injector
        if isinstance(self.provider, InternalProvider):
            self.provider.set_injector(injector)
        self._scoped = self.scope.wrap(self.key, _BindingCreator(self))

    def initialize_eager(self) -> None:
        if self.is_multi:
            self.provider.initialize_eager()
        elif self.scope.eager:
            _logger.debug("Initializing eager singleton %s", self.key)
            self._scoped.get()

    def get_instance(self, target_key: BindingKey) -> Any:
        if self.is_multi:
            return self.provider.get_instance(target_key)
        if target_key.is_provider:
            return self._scoped
        return self._scoped.get()

    def _inject_provider_once(self) -> None:
        if self._provider_injected:
            return
        with self._lock:
            if not self._provider_injected:
                self._injector.inject_members(self.provider)
                self._provider_injected = True

    def _create_instance(self) -> Any:
        with _state.resolving(self) as path:
            self._inject_provider_once()
            try:
                value = self.provider.get()
            except PicoInjectError:
                raise
            except Exception as e:
                raise ConstructionError(self.key, e, path) from e
            if value is not None:
                self._injector.inject_members(value, key=self.key)
            return value

    def __repr__(self) -> str:
        return f"Binding({self.key}, {self.provider!r}, scope={self.scope!r})"
