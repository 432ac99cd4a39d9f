# pico_inject/decorators.py
from __future__ import annotations

from typing import Annotated, Any, Hashable, TypeVar

from .constants import INJECT_FLAG, SCOPE_META, SCOPE_SINGLETON

T = TypeVar("T")


class _InjectMarker:
    __slots__ = ()

    def __repr__(self) -> str:
        return "INJECT"


INJECT = _InjectMarker()
"""Metadata marker found in ``Annotated`` hints of injectable fields."""

Inject = Annotated[T, INJECT]
"""Field marker: ``engine: Inject[Engine]`` or ``ClassVar[Inject[Engine]]`` for a static field."""


class Nullable:
    """Metadata marker allowing ``None`` for a slot: ``Annotated[Engine, Nullable]``.

    Any metadata object or class whose name is ``Nullable`` is honoured, so
    markers from other libraries work as well.
    """

    def __repr__(self) -> str:
        return "Nullable"


def is_nullable_marker(meta: Any) -> bool:
    name = meta.__name__ if isinstance(meta, type) else type(meta).__name__
    return name == "Nullable"


def inject(obj):
    """Mark a constructor, method, static method or class method for injection.

    Applied to a class, it marks the class' own ``__init__`` (handy for
    dataclasses)::

        @inject
        @dataclass
        class Car:
            engine: Engine
    """
    if isinstance(obj, (staticmethod, classmethod)):
        setattr(obj.__func__, INJECT_FLAG, True)
        return obj
    if isinstance(obj, type):
        setattr(obj, INJECT_FLAG, True)
        return obj
    setattr(obj, INJECT_FLAG, True)
    return obj


def is_inject_marked(obj: Any) -> bool:
    if isinstance(obj, (staticmethod, classmethod)):
        obj = obj.__func__
    return bool(getattr(obj, INJECT_FLAG, False))


def scoped(token: Hashable):
    """Declare the scope token of a class; the binder maps it to a scope."""
    def dec(cls):
        setattr(cls, SCOPE_META, token)
        return cls
    return dec


def singleton(cls):
    """Declare a class as a lazy singleton."""
    return scoped(SCOPE_SINGLETON)(cls)


def declared_scope(cls: Any) -> Hashable | None:
    """The scope token declared on *cls* itself; class-level declarations are not inherited."""
    if not isinstance(cls, type):
        return None
    return cls.__dict__.get(SCOPE_META)


__all__ = [
    "INJECT", "Inject", "Nullable", "inject", "scoped", "singleton",
    "is_nullable_marker", "is_inject_marked", "declared_scope",
]
