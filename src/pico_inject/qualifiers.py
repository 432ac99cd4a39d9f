"""Binding qualifiers.

A qualifier distinguishes otherwise identical keys, for example two ``str``
bindings named ``"user"`` and ``"db"``. Any class decorated with
:func:`qualifier` can be used, either as an instance (``Drivers()``) or as the
bare class (``Drivers``). Both forms compare attribute by attribute; the bare
class uses the defaults declared for its attributes, so ``Drivers`` and
``Drivers()`` are the same qualifier.
"""

import dataclasses
import inspect
from typing import Any, Dict, Hashable, Optional, Tuple

from .constants import QUALIFIER_FLAG
from .exceptions import BindingBuilderMisuseError

QualifierId = Tuple[type, Tuple[Tuple[str, Hashable], ...]]


def qualifier(cls: type) -> type:
    """Class decorator marking *cls* as a binding qualifier.

    Qualifier attributes must be hashable. Plain classes are compared through
    their instance ``__dict__``; dataclasses through their fields.
    """
    setattr(cls, QUALIFIER_FLAG, True)
    return cls


def is_qualifier(obj: Any) -> bool:
    cls = obj if isinstance(obj, type) else type(obj)
    return bool(cls.__dict__.get(QUALIFIER_FLAG, False))


@qualifier
@dataclasses.dataclass(frozen=True)
class Named:
    """Built-in string qualifier."""

    value: str = ""

    def __str__(self) -> str:
        return f"@Named(value={self.value})"


def named(value: str) -> Named:
    if value is None:
        raise BindingBuilderMisuseError("The name must not be None")
    return Named(value)


def _freeze(value: Any) -> Hashable:
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(_freeze(v) for v in value)
    if isinstance(value, dict):
        return tuple(sorted((k, _freeze(v)) for k, v in value.items()))
    if is_qualifier(value) and not isinstance(value, type):
        return qualifier_id(value)
    return value


def _instance_attributes(instance: Any) -> Dict[str, Any]:
    if dataclasses.is_dataclass(instance):
        return {f.name: getattr(instance, f.name) for f in dataclasses.fields(instance)}
    return dict(getattr(instance, "__dict__", {}))


def _default_attributes(cls: type) -> Dict[str, Any]:
    if dataclasses.is_dataclass(cls):
        out: Dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            if f.default is not dataclasses.MISSING:
                out[f.name] = f.default
            elif f.default_factory is not dataclasses.MISSING:
                out[f.name] = f.default_factory()
            else:
                raise BindingBuilderMisuseError(
                    f"Qualifier {cls.__name__} attribute '{f.name}' has no default value; use an instance instead"
                )
        return out
    sig = inspect.signature(cls)
    out = {}
    for name, param in sig.parameters.items():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        if param.default is inspect.Parameter.empty:
            raise BindingBuilderMisuseError(
                f"Qualifier {cls.__name__} attribute '{name}' has no default value; use an instance instead"
            )
        out[name] = param.default
    return out


def qualifier_id(value: Any) -> Optional[QualifierId]:
    """Compute the structural identity of a qualifier instance or qualifier class."""
    if value is None:
        return None
    if isinstance(value, type):
        if not is_qualifier(value):
            raise BindingBuilderMisuseError(f"{value.__name__} is not a qualifier; decorate it with @qualifier")
        attrs = _default_attributes(value)
        cls = value
    else:
        if not is_qualifier(value):
            raise BindingBuilderMisuseError(f"{value!r} is not a qualifier; decorate its class with @qualifier")
        attrs = _instance_attributes(value)
        cls = type(value)
    return cls, tuple(sorted((k, _freeze(v)) for k, v in attrs.items()))


def describe_qualifier(value: Any) -> str:
    if isinstance(value, type):
        return f"@{value.__name__}"
    if isinstance(value, Named):
        return str(value)
    return f"@{value!r}"
