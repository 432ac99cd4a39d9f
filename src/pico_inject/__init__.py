# pico_inject/__init__.py
from ._version import __version__

from .api import create_injector, dispose
from .binder import Binder, BindingBuilder, BindingListener, InjectionListener, Module, MultiBinder
from .config_sources import DictSource, EnvSource, JsonTreeSource, TreeSource, YamlTreeSource
from .constants import SCOPE_EAGER_SINGLETON, SCOPE_PER_CALL, SCOPE_SINGLETON
from .decorators import Inject, Nullable, inject, scoped, singleton
from .exceptions import (
    BindingBuilderMisuseError,
    CircularDependencyError,
    ConfigurationClosedError,
    ConfigurationError,
    ConstructionError,
    DuplicateBindingError,
    InjectionPointError,
    InjectorNotConfiguredError,
    InvalidFactoryMethodError,
    NoSuchBindingError,
    NoUsableConstructorError,
    NullNotAllowedError,
    PicoInjectError,
    ScopeError,
)
from .injector import Injector
from .key import BindingKey
from .loader import DefaultInjectionPointLoader, InjectionPointLoader
from .properties import PropertiesModule, bind_properties, load_properties
from .provider import Provider
from .qualifiers import Named, named, qualifier
from .scope import (
    EAGER_SINGLETON,
    PER_CALL,
    SINGLETON,
    ContextVarScope,
    PerCallScope,
    Scope,
    SingletonScope,
    ThreadScope,
)

__all__ = [
    "__version__",
    "create_injector",
    "dispose",
    "Injector",
    "BindingKey",
    "Provider",
    "Binder",
    "BindingBuilder",
    "MultiBinder",
    "Module",
    "InjectionListener",
    "BindingListener",
    "Inject",
    "Nullable",
    "inject",
    "scoped",
    "singleton",
    "qualifier",
    "Named",
    "named",
    "Scope",
    "PerCallScope",
    "SingletonScope",
    "ThreadScope",
    "ContextVarScope",
    "PER_CALL",
    "SINGLETON",
    "EAGER_SINGLETON",
    "SCOPE_PER_CALL",
    "SCOPE_SINGLETON",
    "SCOPE_EAGER_SINGLETON",
    "InjectionPointLoader",
    "DefaultInjectionPointLoader",
    "TreeSource",
    "DictSource",
    "JsonTreeSource",
    "YamlTreeSource",
    "EnvSource",
    "bind_properties",
    "load_properties",
    "PropertiesModule",
    "PicoInjectError",
    "NoSuchBindingError",
    "CircularDependencyError",
    "DuplicateBindingError",
    "BindingBuilderMisuseError",
    "InvalidFactoryMethodError",
    "ConfigurationClosedError",
    "InjectorNotConfiguredError",
    "NullNotAllowedError",
    "ConstructionError",
    "InjectionPointError",
    "NoUsableConstructorError",
    "ScopeError",
    "ConfigurationError",
]
