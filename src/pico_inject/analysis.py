import collections.abc
import inspect
import types
import typing
from dataclasses import dataclass, field
from typing import Annotated, Any, Callable, List, Tuple, Union, get_args, get_origin

from .decorators import INJECT, is_nullable_marker
from .exceptions import InjectionPointError, NullNotAllowedError
from .key import BindingKey
from .provider import Provider
from .qualifiers import is_qualifier

_LIST_ORIGINS = (
    list,
    collections.abc.Sequence,
    collections.abc.Collection,
    collections.abc.Iterable,
)

ABSENT = object()
"""Returned by :meth:`InjectionTarget.get_value` for an absent optional parameter with a default."""


@dataclass(frozen=True)
class InjectionTarget:
    """One dependency slot of an injection point.

    Attributes:
        key: The binding key to resolve.
        name: Field or parameter name, used in messages and for keyword passing.
        is_optional: Resolve only when a binding exists (``Optional[X]`` or a defaulted parameter).
        is_nullable: ``None`` is an acceptable value (``Annotated[X, Nullable]``).
        has_default: The parameter declares a default value used when the binding is absent.
        positional_only: The parameter must be passed positionally.
        default: The declared default, passed explicitly to fill a positional-only gap.
    """

    key: BindingKey
    name: str = ""
    is_optional: bool = False
    is_nullable: bool = False
    has_default: bool = False
    positional_only: bool = False
    accepts_none: bool = False
    default: Any = field(default=None, compare=False)

    def get_value(self, injector: Any) -> Any:
        if self.is_optional or self.is_nullable:
            value = injector.get_if_present(self.key, ABSENT)
            if value is ABSENT:
                return ABSENT if self.has_default else None
            return value
        return injector.get_instance(self.key)

    def check_value(self, value: Any, site: str) -> None:
        if value is None and not (self.is_nullable or self.accepts_none):
            raise NullNotAllowedError(self.key, site)


def _extract_annotated(ann: Any, metas: List[Any]) -> Any:
    if get_origin(ann) is Annotated:
        args = get_args(ann)
        metas.extend(args[1:])
        return args[0]
    return ann


def _check_optional(ann: Any) -> Tuple[Any, bool]:
    origin = get_origin(ann)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(ann) if a is not type(None)]
        if len(args) == 1 and len(args) != len(get_args(ann)):
            return args[0], True
    return ann, False


def _element_type(ann: Any, what: str, name: str) -> Any:
    args = get_args(ann)
    if len(args) != 1:
        raise InjectionPointError(f"'{name}': {what} dependency needs exactly one type argument, got {ann!r}")
    return args[0]


def analyze_hint(
    hint: Any, name: str = "", *, has_default: bool = False, positional_only: bool = False, default: Any = None
) -> Tuple[InjectionTarget, bool]:
    """Build the :class:`InjectionTarget` described by a type hint.

    Returns the target and whether the hint carried the ``INJECT`` field marker.
    """
    metas: List[Any] = []
    base = _extract_annotated(hint, metas)
    base, is_optional = _check_optional(base)
    base = _extract_annotated(base, metas)

    is_list = False
    if get_origin(base) in _LIST_ORIGINS:
        is_list = True
        base = _extract_annotated(_element_type(base, "collection", name), metas)

    is_provider = False
    if get_origin(base) is Provider or base is Provider:
        is_provider = True
        base = _extract_annotated(_element_type(base, "Provider", name), metas)

    if base is Any or base is inspect.Parameter.empty or base is None or base is type(None):
        raise InjectionPointError(f"'{name}': can not inject a value of type {base!r}")
    if isinstance(base, typing.TypeVar):
        raise InjectionPointError(f"'{name}': can not inject an unbound type variable {base!r}")

    qualifier = None
    nullable = False
    marked = False
    for m in metas:
        if m is INJECT:
            marked = True
        elif is_nullable_marker(m):
            nullable = True
        elif qualifier is None and is_qualifier(m):
            qualifier = m

    key = BindingKey(base, qualifier, is_provider=is_provider, is_list=is_list)
    target = InjectionTarget(
        key=key,
        name=name,
        is_optional=is_optional or has_default,
        is_nullable=nullable,
        has_default=has_default,
        positional_only=positional_only,
        accepts_none=is_optional,
        default=default,
    )
    return target, marked


def _resolve_hints(fn: Callable[..., Any]) -> dict:
    try:
        return typing.get_type_hints(fn, include_extras=True)
    except (NameError, TypeError) as e:
        name = getattr(fn, "__qualname__", str(fn))
        raise InjectionPointError(f"Can not resolve type hints of {name}: {e}") from e


def analyze_callable_dependencies(fn: Callable[..., Any], *, skip_first: bool) -> Tuple[InjectionTarget, ...]:
    """Describe the injectable parameters of *fn*.

    *skip_first* drops the receiver (``self``/``cls``). Variadic parameters are
    ignored; unannotated parameters with a default keep their default, others
    are an error.
    """
    try:
        sig = inspect.signature(fn)
    except (ValueError, TypeError) as e:
        raise InjectionPointError(f"Can not read the signature of {fn!r}: {e}") from e

    hints = _resolve_hints(fn)
    params = list(sig.parameters.values())
    if skip_first and params:
        params = params[1:]

    qualname = getattr(fn, "__qualname__", str(fn))
    plan: List[InjectionTarget] = []
    skipped_positional = None
    for param in params:
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        has_default = param.default is not inspect.Parameter.empty
        positional_only = param.kind is inspect.Parameter.POSITIONAL_ONLY
        ann = hints.get(param.name, inspect.Parameter.empty)
        if ann is inspect.Parameter.empty:
            if not has_default:
                raise InjectionPointError(f"Parameter '{param.name}' of {qualname} has no type hint")
            if positional_only:
                skipped_positional = param.name
            continue
        if positional_only and skipped_positional is not None:
            raise InjectionPointError(
                f"Parameter '{param.name}' of {qualname} follows the positional-only parameter "
                f"'{skipped_positional}', which has no type hint"
            )
        target, _ = analyze_hint(
            ann,
            param.name,
            has_default=has_default,
            positional_only=positional_only,
            default=param.default if has_default else None,
        )
        plan.append(target)
    return tuple(plan)


def type_name(ann: Any) -> str:
    """Stable textual name of a type hint, used for deterministic ordering."""
    if ann is inspect.Parameter.empty:
        return ""
    if isinstance(ann, str):
        return ann
    if isinstance(ann, type):
        return f"{ann.__module__}.{ann.__qualname__}"
    return repr(ann)
