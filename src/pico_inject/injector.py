# src/pico_inject/injector.py
import logging
from typing import Any, Dict, Hashable, List, Mapping, Optional, Tuple

from .binder import Binder, _notify
from .binding import Binding
from .constants import LOGGER
from .exceptions import (
    ConfigurationClosedError,
    DuplicateBindingError,
    InjectorNotConfiguredError,
    NoSuchBindingError,
)
from .injection_points import create_injection_points
from .key import BindingKey
from .loader import DefaultInjectionPointLoader, InjectionPointLoader
from .provider import ConstantProvider
from .scope import EAGER_SINGLETON, Scope

_logger = logging.getLogger(__name__)


def _as_key(target: Any) -> BindingKey:
    if isinstance(target, BindingKey):
        return target
    return BindingKey(target)


class Injector:
    """Resolves keys to instances using the bindings collected from modules.

    Build one with :meth:`create` (or :func:`pico_inject.create_injector`).
    Lookups that miss cascade to the parent injector, so a child sees every
    binding of its ancestors and shadows the ones it declares itself.
    """

    def __init__(
        self,
        injection_point_loader: Optional[InjectionPointLoader] = None,
        parent: Optional["Injector"] = None,
        scopes: Optional[Mapping[Hashable, Scope]] = None,
    ) -> None:
        self._loader = injection_point_loader if injection_point_loader is not None else DefaultInjectionPointLoader()
        self._owns_loader = parent is None
        self._parent = parent
        self._scopes: Dict[Hashable, Scope] = dict(scopes or {})
        self._registry: Dict[BindingKey, Binding] = {}
        self._listeners: List[Tuple[Any, Any]] = []
        self._configured = False

    @classmethod
    def create(
        cls,
        *modules: Any,
        injection_point_loader: Optional[InjectionPointLoader] = None,
        scopes: Optional[Mapping[Hashable, Scope]] = None,
        parent: Optional["Injector"] = None,
    ) -> "Injector":
        """Configure a new injector from *modules*.

        Args:
            *modules: Objects with ``configure(binder)`` or callables taking the binder.
            injection_point_loader: Cache of injection points; a
                :class:`~pico_inject.loader.DefaultInjectionPointLoader` when omitted.
            scopes: Extra scope tokens mapped to scope objects.
            parent: Injector receiving the lookups this one can not serve.

        Raises:
            ValueError: If no module is given.
        """
        if not modules:
            raise ValueError("The module list must not be empty")
        injector = cls(injection_point_loader, parent, scopes)
        binder = Binder(injector, scopes)
        binder.configure(modules)
        key = BindingKey(Injector)
        injector._register(Binding(key, ConstantProvider(injector), EAGER_SINGLETON, type(injector)))
        try:
            injector._post_configuration()
        finally:
            binder.clear()
        LOGGER.info("Injector configured with %d bindings", len(injector._registry))
        return injector

    def _register(self, binding: Binding) -> bool:
        """Store *binding*; ``False`` when it was merged into an existing multi-binding."""
        if self._configured:
            raise ConfigurationClosedError()
        key = binding.key
        existing = self._registry.get(key)
        if existing is not None:
            if existing.add_binding(binding):
                _logger.debug("Merged multi-binding %s", key)
                return False
            raise DuplicateBindingError(key)
        self._registry[key] = binding
        _logger.debug("Registered %r", binding)
        return True

    def _add_injection_listener(self, predicate: Any, listener: Any) -> None:
        if self._configured:
            raise ConfigurationClosedError()
        self._listeners.append((predicate, listener))

    def _post_configuration(self) -> None:
        self._configured = True
        bindings = list(self._registry.values())
        for b in bindings:
            b.post_configuration(self)
        for b in bindings:
            b.initialize_eager()

    def _require_configured(self) -> None:
        if not self._configured:
            raise InjectorNotConfiguredError()

    def _get_binding(self, key: BindingKey) -> Optional[Binding]:
        self._require_configured()
        binding = self._registry.get(key.without_provider())
        if binding is None and self._parent is not None:
            return self._parent._get_binding(key)
        return binding

    def get_instance(self, target: Any) -> Any:
        """Resolve *target* (a type or a :class:`BindingKey`).

        Raises:
            NoSuchBindingError: If neither this injector nor its ancestors bind the key.
        """
        key = _as_key(target)
        binding = self._get_binding(key)
        if binding is None:
            raise NoSuchBindingError(key)
        return binding.get_instance(key)

    def get_if_present(self, target: Any, default: Any = None) -> Any:
        """Like :meth:`get_instance`, but returns *default* when no binding exists."""
        key = _as_key(target)
        binding = self._get_binding(key)
        if binding is None:
            return default
        return binding.get_instance(key)

    def get_provider(self, target: Any) -> Any:
        """The scoped producer of *target*; nothing is constructed until it is called."""
        return self.get_instance(_as_key(target).as_provider())

    def has_binding(self, target: Any) -> bool:
        return self._get_binding(_as_key(target)) is not None

    def inject_members(self, instance: Any, key: Optional[BindingKey] = None) -> None:
        """Inject the fields and methods of *instance*, then notify matching injection listeners."""
        if instance is None:
            raise ValueError("The instance must not be None")
        self._require_configured()
        cls = type(instance)
        for point in self._loader.get(cls, create_injection_points):
            point.inject_to(instance, self)
        if not self._listeners:
            return
        key = key if key is not None else BindingKey(cls)
        for predicate, listener in self._listeners:
            if predicate(cls):
                _notify(listener, "after_injection", key, instance)

    def get_parent(self) -> Optional["Injector"]:
        return self._parent

    def create_child(self, *modules: Any) -> "Injector":
        """Build an injector whose lookups fall back to this one."""
        self._require_configured()
        child = Injector.create(
            *modules,
            injection_point_loader=self._loader,
            scopes=self._scopes,
            parent=self,
        )
        _logger.debug("Created child injector with %d bindings", len(child._registry))
        return child

    def dispose(self) -> None:
        """Drop every binding and listener; the injector can not resolve anything afterwards."""
        self._configured = False
        count = len(self._registry)
        self._registry.clear()
        self._listeners.clear()
        if self._owns_loader:
            self._loader.invalidate_all()
        _logger.debug("Injector disposed (%d bindings)", count)

    def __enter__(self) -> "Injector":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    def __repr__(self) -> str:
        state = "configured" if self._configured else "disposed"
        return f"<Injector {state}, {len(self._registry)} bindings>"
