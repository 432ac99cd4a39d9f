"""Provider base types.

A provider is an object with a single ``get()`` operation producing values of
a type. Scoped producers, user providers and the internal providers built by
the binder all share this shape; every provider is also callable.
"""

from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")


class Provider(Generic[T]):
    """Produces values of type ``T``.

    Subclass it to write a provider class, and use ``Provider[X]`` as a
    dependency type to receive the producer of ``X`` instead of an ``X``.
    """

    def get(self) -> T:
        raise NotImplementedError

    def __call__(self) -> T:
        return self.get()


class InternalProvider(Provider[T]):
    """Marker base for providers built by the framework.

    Their members are never injected; user providers get one member injection
    before their first use.
    """

    def set_injector(self, injector: Any) -> None:
        pass


class ConstantProvider(InternalProvider[T]):
    """Provider owning a single value."""

    __slots__ = ("_value",)

    def __init__(self, value: T) -> None:
        self._value = value

    def get(self) -> T:
        return self._value

    def __repr__(self) -> str:
        return f"ConstantProvider({self._value!r})"


class CallableProvider(InternalProvider[T]):
    """Provider delegating to a zero-argument callable supplied by the user."""

    __slots__ = ("_fn",)

    def __init__(self, fn: Callable[[], T]) -> None:
        self._fn = fn

    def get(self) -> T:
        return self._fn()

    def __repr__(self) -> str:
        return f"CallableProvider({getattr(self._fn, '__qualname__', self._fn)!r})"
