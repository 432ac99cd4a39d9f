"""Exception hierarchy for pico-inject.

All framework-specific exceptions inherit from :class:`PicoInjectError`, making
it easy to catch any pico-inject error with a single ``except PicoInjectError``
clause.
"""

from typing import Any, Iterable, Tuple


def _describe(key: Any) -> str:
    return getattr(key, "__name__", str(key))


def _format_path(path: Iterable[Any]) -> str:
    return " -> ".join(_describe(k) for k in path)


class PicoInjectError(Exception):
    """Base exception for all pico-inject errors."""

    pass


class NoSuchBindingError(PicoInjectError):
    """Raised when no binding is registered for a requested key.

    The lookup already cascaded through every parent injector.

    Attributes:
        key: The binding key that was not found.
    """

    def __init__(self, key: Any):
        super().__init__(f"No binding registered for key: {_describe(key)}")
        self.key = key


class CircularDependencyError(PicoInjectError):
    """Raised when a binding re-enters its own construction.

    Attributes:
        key: The binding key whose construction was re-entered.
        path: The keys being constructed when the cycle was detected.
    """

    def __init__(self, key: Any, path: Tuple[Any, ...] = ()):
        msg = f"Can not create instance with circular dependency: {_describe(key)}"
        if path:
            msg += f" (resolution path: {_format_path(path)})"
        super().__init__(msg)
        self.key = key
        self.path = tuple(path)


class DuplicateBindingError(PicoInjectError):
    """Raised when a key is registered twice and the bindings can not be merged.

    Only multi-bindings merge; every other duplicate is an error.
    """

    def __init__(self, key: Any):
        super().__init__(f"A binding is already registered for key: {_describe(key)}")
        self.key = key


class BindingBuilderMisuseError(PicoInjectError):
    """Raised for contradictory or incomplete binding configuration."""

    def __init__(self, msg: str):
        super().__init__(msg)


class InvalidFactoryMethodError(BindingBuilderMisuseError):
    """Raised when a function can not be used as a factory-method target."""

    def __init__(self, method: Any, reason: str):
        name = getattr(method, "__qualname__", str(method))
        super().__init__(f"Invalid factory method {name}: {reason}")
        self.method = method


class ConfigurationClosedError(PicoInjectError):
    """Raised when bindings are registered or modified after configuration ended."""

    def __init__(self, msg: str = "Bindings can not be registered after the injector is configured"):
        super().__init__(msg)


class InjectorNotConfiguredError(PicoInjectError):
    """Raised when resolving through an injector that is not configured or was disposed."""

    def __init__(self, msg: str = "The injector is not configured or has been disposed"):
        super().__init__(msg)


class NullNotAllowedError(PicoInjectError):
    """Raised when a resolution yields ``None`` for a slot that is not nullable.

    Attributes:
        key: The binding key that resolved to ``None``.
        site: Description of the injection site (field or parameter).
    """

    def __init__(self, key: Any, site: str):
        super().__init__(f"{site} doesn't allow None, but key {_describe(key)} resolved to None")
        self.key = key
        self.site = site


class ConstructionError(PicoInjectError):
    """Raised when a constructor, factory method or user provider fails.

    Attributes:
        key: The binding key whose construction failed.
        cause: The original exception.
        path: The keys being constructed when the failure happened, outermost first.
    """

    def __init__(self, key: Any, cause: BaseException, path: Tuple[Any, ...] = ()):
        msg = f"Failed to create instance for key: {_describe(key)}; cause: {cause.__class__.__name__}: {cause}"
        if path:
            msg += f" (resolution path: {_format_path(path)})"
        super().__init__(msg)
        self.key = key
        self.cause = cause
        self.path = tuple(path)


class InjectionPointError(PicoInjectError):
    """Raised when an injection site can not be described (e.g. a missing type hint)."""

    def __init__(self, msg: str):
        super().__init__(msg)


class NoUsableConstructorError(InjectionPointError):
    """Raised when a class has neither an ``@inject`` constructor nor a no-argument one."""

    def __init__(self, cls: type):
        super().__init__(f"No usable constructor available for type: {_describe(cls)}")
        self.cls = cls


class ScopeError(PicoInjectError):
    """Raised for scope-related errors (unknown scope token, missing scope id)."""

    def __init__(self, msg: str):
        super().__init__(msg)


class ConfigurationError(PicoInjectError):
    """Raised for configuration source problems (unreadable files, bad formats)."""

    def __init__(self, msg: str):
        super().__init__(msg)
