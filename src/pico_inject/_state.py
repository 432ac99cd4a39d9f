# pico_inject/_state.py
from contextvars import ContextVar
from contextlib import contextmanager
from typing import Any, Iterator, Tuple

from .exceptions import CircularDependencyError

# Bindings currently under construction in this thread/task, outermost first.
_resolving: ContextVar[Tuple[Any, ...]] = ContextVar("pico_inject_resolving", default=())


def resolution_path() -> Tuple[Any, ...]:
    """Keys of the bindings currently under construction, outermost first."""
    return tuple(b.key for b in _resolving.get())


@contextmanager
def resolving(binding: Any) -> Iterator[Tuple[Any, ...]]:
    """Context manager: mark *binding* as under construction within the block.

    Re-entering a binding that is already on the path raises
    :class:`CircularDependencyError`.
    """
    chain = _resolving.get()
    for b in chain:
        if b is binding:
            raise CircularDependencyError(binding.key, tuple(x.key for x in chain) + (binding.key,))
    tok = _resolving.set(chain + (binding,))
    try:
        yield tuple(x.key for x in chain) + (binding.key,)
    finally:
        _resolving.reset(tok)
