from typing import Any, Hashable, Mapping, Optional

from .injector import Injector
from .loader import InjectionPointLoader
from .scope import Scope


def create_injector(
    *modules: Any,
    injection_point_loader: Optional[InjectionPointLoader] = None,
    scopes: Optional[Mapping[Hashable, Scope]] = None,
) -> Injector:
    """Create a root injector configured by *modules*.

    Args:
        *modules: Objects with a ``configure(binder)`` method, or callables
            taking the binder.
        injection_point_loader: Cache used to look up injection points;
            defaults to a new :class:`~pico_inject.loader.DefaultInjectionPointLoader`.
        scopes: Extra scope tokens (e.g. ``"thread"``) mapped to scope objects,
            available to every module and to child injectors.

    Returns:
        The configured injector. Eager singletons are already constructed.

    Raises:
        ValueError: If no module is given.
        PicoInjectError: For any configuration or eager construction failure.

    Example:
        >>> from pico_inject import BindingKey
        >>> injector = create_injector(lambda b: b.bind(str).named("greeting").to_instance("hi"))
        >>> injector.get_instance(BindingKey.of(str, "greeting"))
        'hi'
    """
    return Injector.create(*modules, injection_point_loader=injection_point_loader, scopes=scopes)


def dispose(injector: Injector) -> None:
    """Dispose *injector*: bindings and listeners are dropped."""
    if injector is None:
        raise ValueError("The injector must not be None")
    injector.dispose()
