"""Named string bindings from property maps and configuration trees.

Example::

    injector = create_injector(PropertiesModule({"SanJose": "Sharks"}, YamlTreeSource("teams.yaml")))
    injector.get_instance(BindingKey.of(str, "SanJose"))  # "Sharks"
"""

import logging
from typing import Any, Dict, Mapping, Union

from .config_sources import TreeSource
from .exceptions import ConfigurationError

_logger = logging.getLogger(__name__)

PropertySource = Union[Mapping[str, Any], TreeSource]


def _flatten(tree: Mapping[str, Any], prefix: str, out: Dict[str, str]) -> None:
    for k, v in tree.items():
        name = f"{prefix}.{k}" if prefix else str(k)
        if isinstance(v, Mapping):
            _flatten(v, name, out)
        elif v is None:
            _logger.debug("Property '%s' has no value, not bound", name)
        else:
            out[name] = v if isinstance(v, str) else str(v)


def load_properties(source: PropertySource) -> Dict[str, str]:
    """Flatten *source* into ``{"dotted.key": "value"}``; non-string leaves are converted with ``str``."""
    if isinstance(source, TreeSource):
        tree = source.get_tree()
    elif isinstance(source, Mapping):
        tree = source
    else:
        raise ConfigurationError(f"Unsupported property source: {source!r}")
    out: Dict[str, str] = {}
    _flatten(tree, "", out)
    return out


def bind_properties(binder: Any, source: PropertySource) -> None:
    """Bind every property of *source* as ``str`` qualified by ``Named(key)``.

    The bindings are eager singletons holding the values.
    """
    for name, value in load_properties(source).items():
        binder.bind(str).named(name).to_instance(value)


class PropertiesModule:
    """Module binding the properties of several sources.

    Sources are read when the injector is configured; a key present in more
    than one source takes the value of the last one.
    """

    def __init__(self, *sources: PropertySource):
        self._sources = sources

    def configure(self, binder: Any) -> None:
        merged: Dict[str, str] = {}
        for source in self._sources:
            merged.update(load_properties(source))
        bind_properties(binder, merged)
