# tests/test_binder.py
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Protocol

import pytest

from pico_inject import (
    BindingKey,
    Inject,
    Provider,
    create_injector,
    qualifier,
    singleton,
)
from pico_inject.exceptions import (
    BindingBuilderMisuseError,
    ConfigurationClosedError,
    InvalidFactoryMethodError,
)
from pico_inject.scope import EAGER_SINGLETON, PER_CALL, SINGLETON


class Engine(ABC):
    @abstractmethod
    def start(self) -> str: ...


class V8(Engine):
    def start(self) -> str:
        return "vroom"


class Greeter(Protocol):
    def greet(self) -> str: ...


@qualifier
@dataclass(frozen=True)
class Turbo:
    boost: float = 1.5


# --- Targets ---

def test_bind_without_target_constructs_the_type():
    injector = create_injector(lambda b: b.bind(V8))
    assert isinstance(injector.get_instance(V8), V8)


def test_abstract_type_without_target_is_rejected():
    with pytest.raises(BindingBuilderMisuseError, match="abstract"):
        create_injector(lambda b: b.bind(Engine))


def test_protocol_without_target_is_rejected():
    with pytest.raises(BindingBuilderMisuseError):
        create_injector(lambda b: b.bind(Greeter))


def test_abstract_target_is_rejected_at_bind():
    def module(binder):
        binder.bind(Engine).to(Engine)

    with pytest.raises(BindingBuilderMisuseError):
        create_injector(module)


def test_targets_are_mutually_exclusive():
    def module(binder):
        binder.bind(Engine).to(V8).to_instance(V8())

    with pytest.raises(BindingBuilderMisuseError, match="mutually exclusive"):
        create_injector(module)


def test_scopes_are_mutually_exclusive():
    def module(binder):
        builder = binder.bind(V8)
        builder.as_lazy_singleton()
        builder.as_eager_singleton()

    with pytest.raises(BindingBuilderMisuseError, match="mutually exclusive"):
        create_injector(module)


def test_qualifier_only_once():
    def module(binder):
        binder.bind(V8).named("a").named("b")

    with pytest.raises(BindingBuilderMisuseError):
        create_injector(module)


def test_to_instance_is_an_eager_singleton():
    v8 = V8()
    injector = create_injector(lambda b: b.bind(Engine).to_instance(v8))
    assert injector.get_instance(Engine) is v8


def test_to_instance_rejects_none():
    with pytest.raises(BindingBuilderMisuseError):
        create_injector(lambda b: b.bind(Engine).to_instance(None))


class Wheel:
    def __init__(self, size: int = 17, engine: Engine = None):
        self.size = size
        self.engine = engine


def test_to_constructor_uses_unmarked_init():
    def module(binder):
        binder.bind(Engine).to(V8)
        binder.bind(Wheel).to_constructor(Wheel)

    wheel = create_injector(module).get_instance(Wheel)
    assert isinstance(wheel.engine, V8)
    assert wheel.size == 17


class V8Provider(Provider[Engine]):
    wheel: Inject[Wheel]

    def get(self) -> Engine:
        assert self.wheel is not None
        return V8()


def test_to_provider_object_gets_members_injected_once():
    provider = V8Provider()

    def module(binder):
        binder.bind(Wheel)
        binder.bind(Engine).to_provider(provider)

    injector = create_injector(module)
    assert isinstance(injector.get_instance(Engine), V8)
    wheel = provider.wheel
    injector.get_instance(Engine)
    assert provider.wheel is wheel


def test_to_provider_class_is_constructed_and_injected():
    def module(binder):
        binder.bind(Wheel)
        binder.bind(Engine).to_provider_class(V8Provider).as_lazy_singleton()

    injector = create_injector(module)
    assert injector.get_instance(Engine) is injector.get_instance(Engine)


def test_to_provider_callable():
    injector = create_injector(lambda b: b.bind(str).named("motto").to_provider(lambda: "go"))
    assert injector.get_instance(BindingKey.of(str, "motto")) == "go"


def test_to_provider_rejects_non_callables():
    with pytest.raises(BindingBuilderMisuseError):
        create_injector(lambda b: b.bind(str).to_provider(42))


# --- Factory methods ---

class EngineFactory:
    made = 0

    @staticmethod
    def make_static(wheel: Wheel) -> Engine:
        EngineFactory.made += 1
        return V8()

    @classmethod
    def make_class(cls, wheel: Wheel) -> Engine:
        return V8()

    def make_bound(self, wheel: Wheel) -> Engine:
        return V8()

    @staticmethod
    def make_count() -> int:
        return 3

    @staticmethod
    def make_many() -> List[Engine]:
        return [V8()]

    @staticmethod
    def make_nothing() -> None:
        return None


def make_engine(wheel: Wheel) -> Engine:
    return V8()


@pytest.mark.parametrize(
    "factory",
    [EngineFactory.make_static, EngineFactory.make_class, make_engine],
)
def test_to_method_accepts_static_functions(factory):
    injector = create_injector(lambda b: (b.bind(Wheel), b.bind(Engine).to_method(factory)))
    assert isinstance(injector.get_instance(Engine), V8)


def test_to_method_runs_on_every_call():
    EngineFactory.made = 0
    injector = create_injector(lambda b: (b.bind(Wheel), b.bind(Engine).to_method(EngineFactory.make_static)))
    injector.get_instance(Engine)
    injector.get_instance(Engine)
    assert EngineFactory.made == 2


def test_to_method_with_instance():
    factory = EngineFactory()
    injector = create_injector(lambda b: (b.bind(Wheel), b.bind(Engine).to_method(EngineFactory.make_bound, factory)))
    assert isinstance(injector.get_instance(Engine), V8)


@pytest.mark.parametrize(
    "factory, reason",
    [
        (EngineFactory().make_bound, "static"),
        (EngineFactory.make_bound, "static"),
        (EngineFactory.make_count, "primitive"),
        (EngineFactory.make_many, "array"),
        (EngineFactory.make_nothing, "non-void"),
    ],
)
def test_to_method_rejects_invalid_factories(factory, reason):
    with pytest.raises(InvalidFactoryMethodError, match=reason):
        create_injector(lambda b: b.bind(Engine).to_method(factory))


# --- Scopes ---

@singleton
class Registry:
    pass


class SubRegistry(Registry):
    pass


def test_declared_scope_is_used_without_explicit_scope():
    injector = create_injector(lambda b: b.bind(Registry))
    assert injector.get_instance(Registry) is injector.get_instance(Registry)


def test_declared_scope_is_not_inherited():
    injector = create_injector(lambda b: b.bind(SubRegistry))
    assert injector.get_instance(SubRegistry) is not injector.get_instance(SubRegistry)


def test_explicit_scope_wins_over_declared():
    injector = create_injector(lambda b: b.bind(Registry).in_scope("per_call"))
    assert injector.get_instance(Registry) is not injector.get_instance(Registry)


def test_default_scope_applies_per_module():
    def singletons(binder):
        binder.set_default_scope("singleton")
        binder.bind(V8)

    def per_call(binder):
        binder.bind(Wheel)

    injector = create_injector(singletons, per_call)
    assert injector.get_instance(V8) is injector.get_instance(V8)
    assert injector.get_instance(Wheel) is not injector.get_instance(Wheel)


def test_default_scope_reset_with_none():
    def module(binder):
        binder.set_default_scope("singleton")
        binder.set_default_scope(None)
        binder.bind(V8)

    injector = create_injector(module)
    assert injector.get_instance(V8) is not injector.get_instance(V8)


def test_installed_module_default_scope_does_not_leak():
    def inner(binder):
        binder.set_default_scope("singleton")
        binder.bind(V8)

    def outer(binder):
        binder.install(inner)
        binder.bind(Wheel)

    injector = create_injector(outer)
    assert injector.get_instance(V8) is injector.get_instance(V8)
    assert injector.get_instance(Wheel) is not injector.get_instance(Wheel)


def test_scope_token_bound_once():
    def module(binder):
        binder.bind_scope("singleton", PER_CALL)

    with pytest.raises(BindingBuilderMisuseError, match="single scope"):
        create_injector(module)


def test_builtin_scope_instances():
    assert EAGER_SINGLETON.eager
    assert not SINGLETON.eager
    assert not PER_CALL.eager


# --- Qualifiers ---

def test_annotated_with_type_and_instance_are_interchangeable():
    def module(binder):
        binder.bind(Engine).annotated_with(Turbo).to(V8)

    injector = create_injector(module)
    assert isinstance(injector.get_instance(BindingKey.of(Engine, Turbo())), V8)
    assert isinstance(injector.get_instance(BindingKey.of(Engine, Turbo)), V8)


def test_bind_with_a_qualified_key():
    injector = create_injector(lambda b: b.bind(BindingKey.of(Engine, "main")).to(V8))
    assert isinstance(injector.get_instance(BindingKey.of(Engine, "main")), V8)


def test_derived_keys_can_not_be_bound():
    with pytest.raises(BindingBuilderMisuseError):
        create_injector(lambda b: b.bind(BindingKey.of(Engine).as_list()))


def test_multi_binder_components_can_not_be_qualified():
    def module(binder):
        binder.multi_binder(Engine).add_binding().named("x").to(V8)

    with pytest.raises(BindingBuilderMisuseError):
        create_injector(module)


# --- Listeners ---

def test_binding_listener_sees_matching_bindings():
    seen = []

    class Recorder:
        def after_binding(self, key, target_type):
            seen.append((key, target_type))

    def module(binder):
        binder.add_binding_listener(lambda t: isinstance(t, type) and issubclass(t, Engine), Recorder())
        binder.bind(Engine).to(V8)
        binder.bind(Wheel)

    create_injector(module)
    assert seen == [(BindingKey.of(Engine), V8)]


class Frame:
    pass


class Steel(Frame):
    pass


class Carbon(Frame):
    pass


def test_binding_listener_sees_merged_components_once():
    seen = []

    def module(binder):
        binder.add_binding_listener(lambda t: True, lambda key, target_type: seen.append(target_type))
        binder.multi_binder(Frame).add_binding().to(Steel)
        binder.multi_binder(Frame).add_binding().to(Carbon)

    injector = create_injector(module)
    assert seen == [Steel, Carbon]
    assert [type(f) for f in injector.get_instance(BindingKey.of(Frame).as_list())] == [Steel, Carbon]


def test_injection_listener_runs_after_member_injection():
    seen = []

    class Car:
        wheel: Inject[Wheel]

    def listener(key, instance):
        seen.append((key, instance.wheel is not None))

    def module(binder):
        binder.bind(Wheel)
        binder.bind(Car)
        binder.add_injection_listener(lambda t: t is Car, listener)

    injector = create_injector(module)
    injector.get_instance(Car)
    injector.inject_members(Car())

    assert seen == [(BindingKey.of(Car), True), (BindingKey.of(Car), True)]


# --- Closed configuration ---

def test_binder_is_closed_after_configuration():
    kept = []

    def module(binder):
        kept.append(binder)
        kept.append(binder.bind(V8))

    create_injector(module)
    binder, builder = kept

    with pytest.raises(ConfigurationClosedError):
        binder.bind(Wheel)
    with pytest.raises(ConfigurationClosedError):
        builder.as_lazy_singleton()
    with pytest.raises(ConfigurationClosedError):
        binder.add_injection_listener(lambda t: True, lambda k, i: None)


def test_injector_rejects_registration_after_configuration():
    from pico_inject.binding import Binding
    from pico_inject.provider import ConstantProvider

    injector = create_injector(lambda b: b.bind(V8))
    with pytest.raises(ConfigurationClosedError):
        injector._register(Binding(BindingKey.of(str), ConstantProvider("x"), PER_CALL))
