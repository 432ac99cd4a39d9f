"""Binding keys.

A :class:`BindingKey` is the identity used everywhere in the injector: the
requested type, an optional qualifier, and two independent flags telling
whether the key asks for a producer of the type and/or for the aggregated list
of all multi-bound values.
"""

from typing import Any, Generic, Optional, Type, TypeVar

from .qualifiers import describe_qualifier, named, qualifier_id

T = TypeVar("T")


class BindingKey(Generic[T]):
    __slots__ = ("_type", "_qualifier", "_qualifier_id", "_provider", "_list", "_hash")

    def __init__(
        self,
        type_: Type[T],
        qualifier: Any = None,
        *,
        is_provider: bool = False,
        is_list: bool = False,
    ) -> None:
        if type_ is None:
            raise TypeError("The binding type must not be None")
        self._type = type_
        self._qualifier = qualifier
        self._qualifier_id = qualifier_id(qualifier)
        self._provider = bool(is_provider)
        self._list = bool(is_list)
        self._hash: Optional[int] = None

    @classmethod
    def of(cls, type_: Type[T], qualifier: Any = None) -> "BindingKey[T]":
        """Create a key for *type_*.

        *qualifier* may be ``None``, a name (``str``), a qualifier instance, or a
        qualifier class.
        """
        if isinstance(qualifier, str):
            qualifier = named(qualifier)
        return cls(type_, qualifier)

    @property
    def type(self) -> Type[T]:
        return self._type

    @property
    def qualifier(self) -> Any:
        return self._qualifier

    @property
    def is_provider(self) -> bool:
        return self._provider

    @property
    def is_list(self) -> bool:
        return self._list

    def _derive(self, *, is_provider: bool, is_list: bool) -> "BindingKey[T]":
        key = BindingKey.__new__(BindingKey)
        key._type = self._type
        key._qualifier = self._qualifier
        key._qualifier_id = self._qualifier_id
        key._provider = is_provider
        key._list = is_list
        key._hash = None
        return key

    def as_provider(self) -> "BindingKey[T]":
        return self if self._provider else self._derive(is_provider=True, is_list=self._list)

    def as_list(self) -> "BindingKey[T]":
        return self if self._list else self._derive(is_provider=self._provider, is_list=True)

    def without_provider(self) -> "BindingKey[T]":
        """The key a binding is registered under; provider requests are served by the same binding."""
        return self._derive(is_provider=False, is_list=self._list) if self._provider else self

    def without_list(self) -> "BindingKey[T]":
        return self._derive(is_provider=self._provider, is_list=False) if self._list else self

    def __eq__(self, other: object) -> bool:
        if other is self:
            return True
        if not isinstance(other, BindingKey):
            return NotImplemented
        return (
            self._type == other._type
            and self._qualifier_id == other._qualifier_id
            and self._provider == other._provider
            and self._list == other._list
        )

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash((self._type, self._qualifier_id, self._provider, self._list))
        return self._hash

    def __str__(self) -> str:
        name = getattr(self._type, "__qualname__", None) or str(self._type)
        module = getattr(self._type, "__module__", None)
        if module and module != "builtins":
            name = f"{module}.{name}"
        if self._qualifier is not None:
            name += describe_qualifier(self._qualifier)
        if self._provider:
            name = f"Provider[{name}]"
        if self._list:
            name = f"list[{name}]"
        return name

    def __repr__(self) -> str:
        return f"BindingKey({self})"
