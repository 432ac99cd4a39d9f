"""Injection points: the concrete sites where dependencies are installed.

Three families exist:

* :class:`FieldInjectionPoint` assigns one resolved value to an attribute
  (``engine: Inject[Engine]``) or, for ``ClassVar`` fields, to the class.
* :class:`ExecutableInjectionPoint` calls a constructor, an ``@inject``
  method, a static/class method or a factory function with resolved
  arguments.
* :func:`create_injection_points` discovers the member points of a class,
  walking its MRO from the base class down to the class itself.

Static points (``ClassVar`` fields, static and class methods) run at most once
per process.
"""

import inspect
import logging
import threading
import types
import typing
from typing import Annotated, Any, Callable, ClassVar, Dict, List, Optional, Set, Tuple, Union, get_args, get_origin

from . import _state
from .analysis import ABSENT, InjectionTarget, analyze_callable_dependencies, analyze_hint, type_name
from .constants import INJECT_FLAG
from .decorators import INJECT, is_inject_marked
from .exceptions import (
    ConstructionError,
    InjectionPointError,
    InvalidFactoryMethodError,
    NoUsableConstructorError,
    PicoInjectError,
)
from .key import BindingKey

_logger = logging.getLogger(__name__)

KIND_CONSTRUCTOR = "constructor"
KIND_METHOD = "method"
KIND_STATIC = "staticmethod"
KIND_CLASSMETHOD = "classmethod"
KIND_FACTORY = "factory"

_STATIC_KINDS = (KIND_STATIC, KIND_CLASSMETHOD)
_PRIMITIVES = (int, float, bool, complex)
_ARRAYS = (list, tuple)

# (owner, kind, name) of static slots already claimed in this process
_static_slots: Set[Tuple[Any, str, str]] = set()
_static_lock = threading.Lock()


def _claim_static(slot: Tuple[Any, str, str]) -> bool:
    with _static_lock:
        if slot in _static_slots:
            return False
        _static_slots.add(slot)
        return True


def _release_static(slot: Tuple[Any, str, str]) -> None:
    with _static_lock:
        _static_slots.discard(slot)


def _wrap_failure(owner: Any, e: Exception) -> ConstructionError:
    path = _state.resolution_path()
    key = path[-1] if path else BindingKey(owner)
    return ConstructionError(key, e, path)


class InjectionPoint:
    """A site receiving dependencies.

    ``inject_to(instance, injector)`` installs the dependencies; constructor
    points ignore *instance* and return the new object.
    """

    owner: Any = None

    def inject_to(self, instance: Any, injector: Any) -> Any:
        raise NotImplementedError


class FieldInjectionPoint(InjectionPoint):
    def __init__(self, owner: type, name: str, target: InjectionTarget, static: bool = False) -> None:
        self.owner = owner
        self.name = name
        self.target = target
        self.static = static

    @property
    def site(self) -> str:
        return f"Field '{self.owner.__qualname__}.{self.name}'"

    def inject_to(self, instance: Any, injector: Any) -> Any:
        slot = (self.owner, "field", self.name)
        if self.static and not _claim_static(slot):
            return None
        try:
            value = self.target.get_value(injector)
            if value is ABSENT:
                value = None
            self.target.check_value(value, self.site)
            receiver = self.owner if self.static else instance
            try:
                setattr(receiver, self.name, value)
            except PicoInjectError:
                raise
            except Exception as e:
                raise _wrap_failure(self.owner, e) from e
        except BaseException:
            if self.static:
                _release_static(slot)
            raise
        return None

    def __repr__(self) -> str:
        kind = "static field" if self.static else "field"
        return f"<{kind} {self.owner.__qualname__}.{self.name} -> {self.target.key}>"


class ExecutableInjectionPoint(InjectionPoint):
    """Calls a constructor, method or factory function with resolved arguments.

    Args:
        kind: One of ``constructor``, ``method``, ``staticmethod``,
            ``classmethod`` or ``factory``.
        owner: The declaring class (the produced class for constructors).
        func: The plain function to call. For constructors it is ``None`` and
            the class itself is called.
        targets: The dependency slots, in parameter order.
        receiver: Factory only: the object passed as the first argument.
    """

    def __init__(
        self,
        kind: str,
        owner: Any,
        func: Optional[Callable[..., Any]],
        targets: Tuple[InjectionTarget, ...],
        receiver: Any = None,
    ) -> None:
        self.kind = kind
        self.owner = owner
        self.func = func
        self.targets = targets
        self.receiver = receiver

    @property
    def name(self) -> str:
        if self.func is None:
            return self.owner.__qualname__
        return getattr(self.func, "__qualname__", repr(self.func))

    @property
    def static(self) -> bool:
        return self.kind in _STATIC_KINDS

    def _arguments(self, injector: Any) -> Tuple[List[Any], Dict[str, Any]]:
        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        for t in self.targets:
            value = t.get_value(injector)
            if value is ABSENT:
                # positional slots after an absent one must not shift
                if t.positional_only:
                    args.append(t.default)
                continue
            t.check_value(value, f"Parameter '{t.name}' of {self.name}")
            if t.positional_only:
                args.append(value)
            else:
                kwargs[t.name] = value
        return args, kwargs

    def _invoke(self, instance: Any, args: List[Any], kwargs: Dict[str, Any]) -> Any:
        if self.kind == KIND_CONSTRUCTOR:
            return self.owner(*args, **kwargs)
        if self.kind == KIND_METHOD:
            return self.func(instance, *args, **kwargs)
        if self.kind == KIND_CLASSMETHOD:
            return self.func(self.owner, *args, **kwargs)
        if self.kind == KIND_FACTORY and self.receiver is not None:
            return self.func(self.receiver, *args, **kwargs)
        return self.func(*args, **kwargs)

    def inject_to(self, instance: Any, injector: Any) -> Any:
        slot = (self.owner, self.kind, self.name)
        if self.static and not _claim_static(slot):
            return None
        try:
            args, kwargs = self._arguments(injector)
            try:
                return self._invoke(instance, args, kwargs)
            except PicoInjectError:
                raise
            except Exception as e:
                raise _wrap_failure(self.owner, e) from e
        except BaseException:
            if self.static:
                _release_static(slot)
            raise

    def __repr__(self) -> str:
        deps = ", ".join(str(t.key) for t in self.targets)
        return f"<{self.kind} {self.name}({deps})>"


def _is_no_arg(init: Callable[..., Any]) -> bool:
    if init is object.__init__:
        return True
    try:
        params = list(inspect.signature(init).parameters.values())[1:]
    except (ValueError, TypeError):
        return False
    for p in params:
        if p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        if p.default is inspect.Parameter.empty:
            return False
    return True


def create_explicit_constructor_point(cls: type) -> ExecutableInjectionPoint:
    """Constructor point for *cls* whether or not its ``__init__`` is marked."""
    init = cls.__init__
    if init is object.__init__:
        return ExecutableInjectionPoint(KIND_CONSTRUCTOR, cls, None, ())
    return ExecutableInjectionPoint(KIND_CONSTRUCTOR, cls, None, analyze_callable_dependencies(init, skip_first=True))


def create_constructor_point(cls: type) -> ExecutableInjectionPoint:
    """Select the constructor of *cls*.

    An ``@inject`` constructor (or a class decorated with ``@inject``) wins;
    otherwise a constructor callable without arguments is used.

    Raises:
        NoUsableConstructorError: If neither exists.
    """
    init = cls.__init__
    if is_inject_marked(init) or cls.__dict__.get(INJECT_FLAG, False):
        return create_explicit_constructor_point(cls)
    if _is_no_arg(init):
        return ExecutableInjectionPoint(KIND_CONSTRUCTOR, cls, None, ())
    raise NoUsableConstructorError(cls)


def _return_hint(fn: Callable[..., Any]) -> Any:
    try:
        hints = typing.get_type_hints(fn, include_extras=True)
    except (NameError, TypeError) as e:
        raise InvalidFactoryMethodError(fn, f"unresolvable type hints ({e})") from e
    return hints.get("return", inspect.Parameter.empty)


def create_factory_point(fn: Any, instance: Any = None) -> ExecutableInjectionPoint:
    """Validate *fn* as a factory method and build its injection point.

    Accepted: plain functions, static methods, class methods accessed through
    their class, and plain functions taking ``self`` when *instance* is given.

    Raises:
        InvalidFactoryMethodError: For instance-bound or receiver-less methods,
            and for functions annotated to return ``None``, a primitive or an
            array.
    """
    if fn is None:
        raise InvalidFactoryMethodError(fn, "the target method must not be None")
    if isinstance(fn, staticmethod):
        fn = fn.__func__
    if isinstance(fn, classmethod):
        raise InvalidFactoryMethodError(fn.__func__, "access the class method through its class")

    owner: Any = None
    receiver = None
    skip_first = False
    if inspect.ismethod(fn):
        if not isinstance(fn.__self__, type):
            raise InvalidFactoryMethodError(fn, "the target method must be static, not bound to an instance")
        if instance is not None:
            raise InvalidFactoryMethodError(fn, "a class method takes no instance")
        owner = fn.__self__
        receiver = fn.__self__
        fn = fn.__func__
        skip_first = True
    elif not callable(fn) or isinstance(fn, type):
        raise InvalidFactoryMethodError(fn, "the target must be a function")
    else:
        params = list(inspect.signature(fn).parameters)
        takes_self = bool(params) and params[0] == "self"
        if instance is not None:
            if not takes_self:
                raise InvalidFactoryMethodError(fn, "an instance was given but the method takes no 'self'")
            receiver = instance
            owner = type(instance)
            skip_first = True
        elif takes_self:
            raise InvalidFactoryMethodError(fn, "the target method must be static")

    ret = _return_hint(fn)
    if ret is None or ret is type(None):
        raise InvalidFactoryMethodError(fn, "the target method must return a non-void result")
    if ret in _PRIMITIVES:
        raise InvalidFactoryMethodError(fn, "the target method must return a non-primitive result")
    if ret in _ARRAYS or get_origin(ret) in _ARRAYS:
        raise InvalidFactoryMethodError(fn, "the target method must return a single object, and not an array")

    targets = analyze_callable_dependencies(fn, skip_first=skip_first)
    return ExecutableInjectionPoint(KIND_FACTORY, owner or fn, fn, targets, receiver=receiver)


def _carries_inject(hint: Any) -> bool:
    origin = get_origin(hint)
    if origin is Annotated:
        return any(m is INJECT for m in hint.__metadata__)
    if origin is Union or origin is types.UnionType:
        return any(_carries_inject(a) for a in get_args(hint))
    return False


def _field_hints(klass: type) -> Dict[str, Any]:
    raw = inspect.get_annotations(klass)
    if not raw:
        return {}
    try:
        hints = typing.get_type_hints(klass, include_extras=True)
        return {n: hints[n] for n in raw if n in hints}
    except (NameError, TypeError, AttributeError, SyntaxError):
        pass

    # one unresolvable annotation must not hide the injectable ones
    localns = dict(vars(klass))
    out: Dict[str, Any] = {}
    for name, ann in raw.items():
        single = type(klass.__name__, (), {"__annotations__": {name: ann}, "__module__": klass.__module__})
        try:
            out[name] = typing.get_type_hints(single, localns=localns, include_extras=True)[name]
        except (NameError, TypeError, AttributeError, SyntaxError) as e:
            if isinstance(ann, str) and "Inject" in ann:
                raise InjectionPointError(
                    f"Can not resolve the type of field '{klass.__qualname__}.{name}': {e}"
                ) from e
    return out


def _field_points(klass: type) -> Tuple[List[FieldInjectionPoint], List[FieldInjectionPoint]]:
    statics: List[Tuple[Tuple[str, str], FieldInjectionPoint]] = []
    members: List[Tuple[Tuple[str, str], FieldInjectionPoint]] = []
    for name, hint in _field_hints(klass).items():
        static = False
        if get_origin(hint) is ClassVar:
            args = get_args(hint)
            if not args:
                continue
            hint = args[0]
            static = True
        if not _carries_inject(hint):
            continue
        target, _ = analyze_hint(hint, name)
        point = FieldInjectionPoint(klass, name, target, static=static)
        order = (name, type_name(target.key.type))
        (statics if static else members).append((order, point))
    statics.sort(key=lambda p: p[0])
    members.sort(key=lambda p: p[0])
    return [p for _, p in statics], [p for _, p in members]


def _raw_function(attr: Any) -> Optional[Callable[..., Any]]:
    if isinstance(attr, (staticmethod, classmethod)):
        attr = attr.__func__
    if inspect.isfunction(attr):
        return attr
    return None


def _method_identity(klass: type, name: str) -> Tuple[str, ...]:
    # a redefined name replaces the inherited method whatever its parameters;
    # module-private names only override within their module
    if name.startswith("_"):
        return (name, klass.__module__)
    return (name,)


def _method_order(func: Callable[..., Any]) -> Tuple[str, str, Tuple[str, ...]]:
    anns = inspect.get_annotations(func)
    ret = type_name(anns.get("return", inspect.Parameter.empty))
    params = tuple(type_name(a) for n, a in anns.items() if n != "return")
    return func.__name__, ret, params


def _method_points(
    klass: type, visited: Set[Tuple[str, ...]]
) -> Tuple[List[ExecutableInjectionPoint], List[ExecutableInjectionPoint]]:
    statics: List[Tuple[Any, ExecutableInjectionPoint]] = []
    members: List[Tuple[Any, ExecutableInjectionPoint]] = []
    seen_here: Set[Tuple[str, ...]] = set()
    for name, attr in vars(klass).items():
        if name.startswith("__") and name.endswith("__"):
            continue
        func = _raw_function(attr)
        if func is None:
            continue
        ident = _method_identity(klass, name)
        seen_here.add(ident)
        if ident in visited or not is_inject_marked(func):
            continue
        if isinstance(attr, staticmethod):
            point = ExecutableInjectionPoint(
                KIND_STATIC, klass, func, analyze_callable_dependencies(func, skip_first=False)
            )
            statics.append((_method_order(func), point))
        elif isinstance(attr, classmethod):
            point = ExecutableInjectionPoint(
                KIND_CLASSMETHOD, klass, func, analyze_callable_dependencies(func, skip_first=True)
            )
            statics.append((_method_order(func), point))
        else:
            point = ExecutableInjectionPoint(
                KIND_METHOD, klass, func, analyze_callable_dependencies(func, skip_first=True)
            )
            members.append((_method_order(func), point))
    visited.update(seen_here)
    statics.sort(key=lambda p: p[0])
    members.sort(key=lambda p: p[0])
    return [p for _, p in statics], [p for _, p in members]


def create_injection_points(cls: type) -> Tuple[InjectionPoint, ...]:
    """Discover the member injection points of *cls*.

    Classes are visited from the topmost base down to *cls* (``object`` is
    skipped). Within a class static points come first, then fields, then
    methods, each group in lexical order. A method overridden further down the
    hierarchy is only injected through the overriding declaration, and only
    when that declaration is itself marked with ``@inject``.
    """
    visited: Set[Tuple[str, ...]] = set()
    per_class: List[List[InjectionPoint]] = []
    for klass in cls.__mro__:
        if klass is object:
            continue
        static_fields, fields = _field_points(klass)
        static_methods, methods = _method_points(klass, visited)
        per_class.append([*static_fields, *static_methods, *fields, *methods])
    points: List[InjectionPoint] = []
    for group in reversed(per_class):
        points.extend(group)
    _logger.debug("Found %d injection points on %s", len(points), cls.__qualname__)
    return tuple(points)
