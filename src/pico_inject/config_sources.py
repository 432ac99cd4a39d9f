"""Configuration trees feeding :func:`~pico_inject.properties.bind_properties`.

A source yields a nested mapping; in-memory dicts, JSON and YAML files and
prefixed environment variables are supported.
"""

import json
import os
from typing import Any, Dict, Mapping, Optional

from .exceptions import ConfigurationError


class TreeSource:
    def get_tree(self) -> Mapping[str, Any]:
        raise NotImplementedError


class DictSource(TreeSource):
    """An in-memory tree, e.g. ``DictSource({"db": {"host": "localhost"}})``."""

    def __init__(self, data: Mapping[str, Any]):
        self._data = data

    def get_tree(self) -> Mapping[str, Any]:
        return self._data


class _FileTreeSource(TreeSource):
    """A tree read from a file; subclasses parse the open file with :meth:`_parse`.

    Unreadable or malformed files, and files whose top level is not a mapping,
    raise :class:`~pico_inject.exceptions.ConfigurationError`.
    """

    format_name = "file"

    def __init__(self, path: str):
        self._path = path

    def _parse(self, stream: Any) -> Any:
        raise NotImplementedError

    def _parse_errors(self) -> tuple:
        return (ValueError,)

    def get_tree(self) -> Mapping[str, Any]:
        errors = (OSError, *self._parse_errors())
        try:
            with open(self._path, encoding="utf-8") as f:
                data = self._parse(f)
        except errors as e:
            raise ConfigurationError(f"Failed to load {self.format_name} config {self._path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                f"{self.format_name} config {self._path} must hold a mapping at the top level, "
                f"got {type(data).__name__}"
            )
        return data


class JsonTreeSource(_FileTreeSource):
    format_name = "JSON"

    def _parse(self, stream: Any) -> Any:
        return json.load(stream)


class YamlTreeSource(_FileTreeSource):
    """YAML file source; needs the ``yaml`` extra (PyYAML)."""

    format_name = "YAML"

    def _yaml(self) -> Any:
        try:
            import yaml
        except ImportError as e:
            raise ConfigurationError("PyYAML not installed") from e
        return yaml

    def _parse(self, stream: Any) -> Any:
        return self._yaml().safe_load(stream)

    def _parse_errors(self) -> tuple:
        return (self._yaml().YAMLError,)


class EnvSource(TreeSource):
    """Tree source built from environment variables sharing a prefix.

    The prefix is stripped, names are lower-cased and a double underscore
    opens a nested level: with ``prefix="APP_"``, ``APP_DB__HOST=x`` becomes
    ``{"db": {"host": "x"}}``.

    Args:
        prefix: Only variables starting with it are read.
        environ: Mapping to read instead of :data:`os.environ`.
    """

    def __init__(self, prefix: str = "", environ: Optional[Mapping[str, str]] = None):
        self._prefix = prefix
        self._environ = environ

    def get_tree(self) -> Mapping[str, Any]:
        environ = os.environ if self._environ is None else self._environ
        tree: Dict[str, Any] = {}
        for name in sorted(environ):
            if not name.startswith(self._prefix):
                continue
            parts = [p.lower() for p in name[len(self._prefix):].split("__") if p]
            if not parts:
                continue
            node = tree
            for part in parts[:-1]:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = {}
                    node[part] = child
                node = child
            node[parts[-1]] = environ[name]
        return tree
