"""The configuration surface: modules, the binder and binding builders.

Modules describe bindings through a :class:`Binder`::

    class ServiceModule:
        def configure(self, binder):
            binder.bind(Service).to(ServiceImpl).as_lazy_singleton()
            binder.bind(str).named("db.host").to_instance("localhost")

            snacks = binder.multi_binder(Snack)
            snacks.add_binding().to_instance(Twix())
            snacks.add_binding().to_provider_class(SnickersProvider)

A plain function taking the binder is a module as well. Configuration runs
once: the builders become :class:`~pico_inject.binding.Binding` objects when
the injector finalizes, after which every binder call raises
:class:`~pico_inject.exceptions.ConfigurationClosedError`.
"""

import inspect
import logging
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Protocol, Tuple, Union

from .binding import Binding
from .constants import SCOPE_EAGER_SINGLETON, SCOPE_PER_CALL, SCOPE_SINGLETON
from .decorators import declared_scope
from .exceptions import BindingBuilderMisuseError, ConfigurationClosedError, ScopeError
from .instance_provider import InstanceProvider
from .key import BindingKey
from .provider import CallableProvider, ConstantProvider, Provider
from .qualifiers import is_qualifier, named
from .scope import EAGER_SINGLETON, PER_CALL, SINGLETON, Scope

_logger = logging.getLogger(__name__)

TARGET_METHODS = "to(), to_instance(), to_constructor(), to_method(), to_provider(), to_provider_class()"
SCOPE_METHODS = "in_scope(), as_eager_singleton(), as_lazy_singleton()"

TypeMatcher = Callable[[Any], bool]


class Module(Protocol):
    def configure(self, binder: "Binder") -> None: ...


class InjectionListener(Protocol):
    """Notified after members of an instance matching its type predicate were injected."""

    def after_injection(self, key: BindingKey, instance: Any) -> None: ...


class BindingListener(Protocol):
    """Notified once per finalized binding whose target type matches its predicate."""

    def after_binding(self, key: BindingKey, target_type: Any) -> None: ...


def is_abstract(cls: Any) -> bool:
    if not isinstance(cls, type):
        return False
    return inspect.isabstract(cls) or bool(getattr(cls, "_is_protocol", False))


def _notify(listener: Any, method: str, *args: Any) -> None:
    fn = getattr(listener, method, None)
    if fn is None:
        fn = listener
    fn(*args)


class BindingBuilder:
    """Fluent builder for one binding.

    Qualify it with :meth:`named` or :meth:`annotated_with`, pick at most one
    target and at most one scope. Without a target the bound type itself is
    constructed.
    """

    def __init__(
        self,
        binder: "Binder",
        type_: Any,
        qualifier: Any = None,
        default_scope: Scope = PER_CALL,
        owner: Optional["MultiBinder"] = None,
    ) -> None:
        self._binder = binder
        self._type = type_
        self._qualifier = qualifier
        self._default_scope = default_scope
        self._owner = owner
        self._target_type: Any = None
        self._provider: Optional[Provider] = None
        self._scope: Optional[Scope] = None

    @property
    def key(self) -> BindingKey:
        if self._owner is not None:
            return self._owner.key
        return BindingKey(self._type, self._qualifier)

    def named(self, name: str) -> "BindingBuilder":
        return self.annotated_with(named(name))

    def annotated_with(self, qualifier: Any) -> "BindingBuilder":
        self._binder._check_open()
        if self._owner is not None:
            raise BindingBuilderMisuseError("Qualify the multi binder, not its components")
        if self._qualifier is not None:
            raise BindingBuilderMisuseError("The binding is already qualified; named()/annotated_with() may be invoked once")
        if qualifier is None or not is_qualifier(qualifier):
            raise BindingBuilderMisuseError(f"{qualifier!r} is not a qualifier")
        self._qualifier = qualifier
        return self

    def _check_no_target(self) -> None:
        self._binder._check_open()
        if self._target_type is not None or self._provider is not None:
            raise BindingBuilderMisuseError(f"The methods {TARGET_METHODS} are mutually exclusive, and may be invoked only once")

    def to(self, implementation: type) -> "BindingBuilder":
        self._check_no_target()
        if not isinstance(implementation, type):
            raise BindingBuilderMisuseError(f"The target {implementation!r} must be a class")
        if is_abstract(implementation):
            raise BindingBuilderMisuseError(f"Can not bind to {implementation.__qualname__}: it is abstract")
        self._target_type = implementation
        return self

    def to_instance(self, instance: Any) -> None:
        """Bind to an existing object; the binding becomes an eager singleton."""
        if instance is None:
            raise BindingBuilderMisuseError("The target instance must not be None")
        self._check_no_target()
        self._target_type = type(instance)
        self._provider = ConstantProvider(instance)
        self.as_eager_singleton()

    def to_constructor(self, implementation: type) -> "BindingBuilder":
        """Bind to the ``__init__`` of *implementation*, marked with ``@inject`` or not."""
        self._check_no_target()
        if not isinstance(implementation, type) or is_abstract(implementation):
            raise BindingBuilderMisuseError(f"The target constructor of {implementation!r} can not be used")
        self._provider = InstanceProvider.from_constructor(implementation)
        self._target_type = implementation
        return self

    def to_method(self, method: Callable[..., Any], instance: Any = None) -> "BindingBuilder":
        """Bind to a factory function called with injected arguments on every creation.

        Static methods, class methods and plain functions qualify; pass
        *instance* to use a plain function taking ``self`` as a method of it.
        """
        self._check_no_target()
        self._provider = InstanceProvider.from_method(method, instance)
        self._target_type = self._type
        return self

    def to_provider(self, provider: Any) -> "BindingBuilder":
        """Bind to a provider object (anything with ``get()``) or a zero-argument callable."""
        self._check_no_target()
        if provider is None:
            raise BindingBuilderMisuseError("The target provider must not be None")
        if isinstance(provider, Provider) or callable(getattr(provider, "get", None)):
            self._provider = provider
        elif callable(provider):
            self._provider = CallableProvider(provider)
        else:
            raise BindingBuilderMisuseError(f"{provider!r} is neither a provider nor callable")
        self._target_type = self._type
        return self

    def to_provider_class(self, provider_type: type) -> "BindingBuilder":
        self._check_no_target()
        if not isinstance(provider_type, type) or is_abstract(provider_type):
            raise BindingBuilderMisuseError(f"{provider_type!r} is not a concrete provider class")
        self._provider = InstanceProvider.from_provider_class(provider_type)
        self._target_type = self._type
        return self

    def in_scope(self, scope: Union[Scope, Hashable]) -> None:
        self._binder._check_open()
        if self._scope is not None:
            raise BindingBuilderMisuseError(f"The methods {SCOPE_METHODS} are mutually exclusive, and may be invoked only once")
        if scope is None:
            raise BindingBuilderMisuseError("The scope must not be None")
        self._scope = scope if isinstance(scope, Scope) else self._binder.get_scope(scope)

    def as_eager_singleton(self) -> None:
        self.in_scope(SCOPE_EAGER_SINGLETON)

    def as_lazy_singleton(self) -> None:
        self.in_scope(SCOPE_SINGLETON)

    def _effective_type(self) -> Any:
        return self._target_type if self._target_type is not None else self._type

    def _resolve_provider(self) -> Provider:
        if self._provider is not None:
            return self._provider
        if self._target_type is not None:
            return InstanceProvider.from_type(self._target_type)
        if is_abstract(self._type):
            raise BindingBuilderMisuseError(
                f"Neither of the methods {TARGET_METHODS} have been invoked on the binding of "
                f"{self.key}, but it can not be constructed: it is abstract or a protocol"
            )
        if not isinstance(self._type, type):
            raise BindingBuilderMisuseError(f"No target configured for {self.key}")
        return InstanceProvider.from_type(self._type)

    def _resolve_scope(self) -> Scope:
        if self._scope is not None:
            return self._scope
        token = declared_scope(self._effective_type())
        if token is not None:
            return self._binder.get_scope(token)
        return self._default_scope

    def build(self) -> Binding:
        return Binding(self.key, self._resolve_provider(), self._resolve_scope(), self._effective_type())


class MultiBinder:
    """Collects several component bindings served together as ``list[T]``.

    Components keep their own scopes and are returned in registration order.
    Multi binders of the same key from different modules are merged.
    """

    def __init__(self, binder: "Binder", type_: Any, qualifier: Any = None) -> None:
        self._binder = binder
        self._type = type_
        self._qualifier = qualifier
        self._components: List[BindingBuilder] = []

    @property
    def key(self) -> BindingKey:
        return BindingKey(self._type, self._qualifier)

    def named(self, name: str) -> "MultiBinder":
        return self.annotated_with(named(name))

    def annotated_with(self, qualifier: Any) -> "MultiBinder":
        self._binder._check_open()
        if self._qualifier is not None:
            raise BindingBuilderMisuseError("The multi binder is already qualified")
        if self._components:
            raise BindingBuilderMisuseError("Qualify the multi binder before adding bindings")
        if qualifier is None or not is_qualifier(qualifier):
            raise BindingBuilderMisuseError(f"{qualifier!r} is not a qualifier")
        self._qualifier = qualifier
        return self

    def add_binding(self) -> BindingBuilder:
        self._binder._check_open()
        builder = BindingBuilder(self._binder, self._type, None, self._binder.default_scope, owner=self)
        self._components.append(builder)
        return builder

    def components(self) -> Tuple[BindingBuilder, ...]:
        return tuple(self._components)

    def build(self) -> Binding:
        components = [c.build() for c in self._components]
        return Binding.multi(self.key.as_list(), components, PER_CALL)


class Binder:
    """Collects the bindings, scopes and listeners declared by modules.

    Args:
        injector: The injector receiving the finalized bindings.
        scopes: Extra scope tokens mapped to scope objects.
    """

    def __init__(self, injector: Any, scopes: Optional[Mapping[Hashable, Scope]] = None) -> None:
        self._injector = injector
        self._builders: List[Union[BindingBuilder, MultiBinder]] = []
        self._scopes: Dict[Hashable, Scope] = {
            SCOPE_PER_CALL: PER_CALL,
            SCOPE_SINGLETON: SINGLETON,
            SCOPE_EAGER_SINGLETON: EAGER_SINGLETON,
        }
        self._binding_listeners: List[Tuple[TypeMatcher, Any]] = []
        self._default_scope: Scope = PER_CALL
        self._closed = False
        for token, scope in (scopes or {}).items():
            self.bind_scope(token, scope)

    @property
    def default_scope(self) -> Scope:
        return self._default_scope

    def _check_open(self) -> None:
        if self._closed:
            raise ConfigurationClosedError("The binder can not be used after the injector is configured")

    def bind(self, target: Union[type, BindingKey, Any]) -> BindingBuilder:
        self._check_open()
        if isinstance(target, BindingKey):
            if target.is_provider or target.is_list:
                raise BindingBuilderMisuseError(f"Can not bind the derived key {target}; bind {target.type} instead")
            builder = BindingBuilder(self, target.type, target.qualifier, self._default_scope)
        else:
            if target is None:
                raise BindingBuilderMisuseError("The bound type must not be None")
            builder = BindingBuilder(self, target, None, self._default_scope)
        self._builders.append(builder)
        return builder

    def multi_binder(self, target: Union[type, BindingKey, Any]) -> MultiBinder:
        self._check_open()
        if isinstance(target, BindingKey):
            mb = MultiBinder(self, target.type, target.qualifier)
        else:
            if target is None:
                raise BindingBuilderMisuseError("The bound type must not be None")
            mb = MultiBinder(self, target)
        self._builders.append(mb)
        return mb

    def install(self, module: Any) -> None:
        """Run *module* against this binder; its default scope does not leak into the caller."""
        self._check_open()
        saved = self._default_scope
        try:
            configure = getattr(module, "configure", None)
            if callable(configure):
                configure(self)
            elif callable(module):
                module(self)
            else:
                raise BindingBuilderMisuseError(f"{module!r} is not a module")
        finally:
            self._default_scope = saved

    def bind_scope(self, token: Hashable, scope: Scope) -> None:
        self._check_open()
        if not isinstance(scope, Scope):
            raise BindingBuilderMisuseError(f"{scope!r} is not a Scope")
        if token in self._scopes:
            raise BindingBuilderMisuseError(f"Scope token {token!r} can be bound only to a single scope")
        self._scopes[token] = scope
        _logger.debug("Bound scope token %r to %r", token, scope)

    def get_scope(self, token: Hashable) -> Scope:
        scope = self._scopes.get(token)
        if scope is None:
            raise ScopeError(f"Scope token {token!r} is not bound to any scope")
        return scope

    def set_default_scope(self, token: Optional[Hashable]) -> None:
        """Default scope of the following bindings of the current module; ``None`` restores per-call."""
        self._check_open()
        self._default_scope = self.get_scope(SCOPE_PER_CALL if token is None else token)

    def add_injection_listener(self, predicate: TypeMatcher, listener: Any) -> None:
        self._check_open()
        if predicate is None or listener is None:
            raise BindingBuilderMisuseError("The type predicate and the listener must not be None")
        self._injector._add_injection_listener(predicate, listener)

    def add_binding_listener(self, predicate: TypeMatcher, listener: Any) -> None:
        self._check_open()
        if predicate is None or listener is None:
            raise BindingBuilderMisuseError("The type predicate and the listener must not be None")
        self._binding_listeners.append((predicate, listener))

    def _visit_binding_listeners(self, binding: Binding) -> None:
        for predicate, listener in self._binding_listeners:
            if predicate(binding.target_type):
                _notify(listener, "after_binding", binding.key, binding.target_type)

    def configure(self, modules: Iterable[Any]) -> List[Binding]:
        """Run every module, then turn the builders into bindings registered on the injector."""
        for module in modules:
            self._default_scope = PER_CALL
            self.install(module)
        bindings: List[Binding] = []
        for builder in self._builders:
            binding = builder.build()
            # merged multi-bindings are visited through the binding they joined
            if self._injector._register(binding):
                bindings.append(binding)
        for binding in bindings:
            if binding.is_multi:
                for component in binding.provider.components:
                    self._visit_binding_listeners(component)
            else:
                self._visit_binding_listeners(binding)
        return bindings

    def scopes(self) -> Dict[Hashable, Scope]:
        return dict(self._scopes)

    def clear(self) -> None:
        self._builders.clear()
        self._binding_listeners.clear()
        self._closed = True
