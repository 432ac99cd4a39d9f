"""Constants used throughout the pico-inject framework.

This module defines the internal attribute names stamped onto decorated classes
and functions, the framework logger, and the built-in scope tokens.
"""

import logging

LOGGER_NAME: str = "pico_inject"
"""Default logger name for the pico-inject framework."""

LOGGER: logging.Logger = logging.getLogger(LOGGER_NAME)
"""Pre-configured logger instance for pico-inject internal diagnostics."""

INJECT_FLAG: str = "_pico_inject"
"""Attribute set to ``True`` on constructors and methods marked with ``@inject``."""

SCOPE_META: str = "_pico_scope"
"""Attribute storing the scope token declared on a class (``@singleton``, ``@scoped``)."""

QUALIFIER_FLAG: str = "_pico_qualifier"
"""Attribute set to ``True`` on classes usable as binding qualifiers."""

SCOPE_PER_CALL: str = "per_call"
"""Built-in scope: a new instance on every resolution."""

SCOPE_SINGLETON: str = "singleton"
"""Built-in scope: one instance per binding, created on first demand."""

SCOPE_EAGER_SINGLETON: str = "eager_singleton"
"""Built-in scope: one instance per binding, created when configuration ends."""
