# tests/test_scopes.py
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from pico_inject import (
    BindingKey,
    ContextVarScope,
    Provider,
    SingletonScope,
    ThreadScope,
    create_injector,
    inject,
    scoped,
)
from pico_inject.exceptions import CircularDependencyError, ScopeError
from pico_inject.scope import PER_CALL
from pico_inject.provider import CallableProvider


class SomeClass:
    pass


# --- Scope objects ---

def test_per_call_scope_returns_the_creator():
    creator = CallableProvider(SomeClass)
    assert PER_CALL.wrap(BindingKey.of(SomeClass), creator) is creator


def test_singleton_producer_creates_once():
    calls = []

    def create():
        calls.append(1)
        return SomeClass()

    producer = SingletonScope().wrap(BindingKey.of(SomeClass), CallableProvider(create))
    assert producer.get() is producer.get()
    assert len(calls) == 1


def test_singleton_producer_detects_reentry():
    key = BindingKey.of(SomeClass)
    holder = {}

    def create():
        return holder["producer"].get()

    holder["producer"] = SingletonScope().wrap(key, CallableProvider(create))
    with pytest.raises(CircularDependencyError) as info:
        holder["producer"].get()
    assert info.value.key == key


def test_singleton_producer_single_creation_under_contention():
    calls = []
    started = threading.Event()

    def create():
        calls.append(1)
        started.wait(0.05)
        return SomeClass()

    producer = SingletonScope().wrap(BindingKey.of(SomeClass), CallableProvider(create))
    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(lambda _: producer.get(), range(64)))

    assert len(calls) == 1
    assert all(r is results[0] for r in results)


# --- Thread scope ---

@pytest.fixture
def thread_injector():
    thread_scope = ThreadScope()

    def module(binder):
        binder.bind_scope("thread", thread_scope)
        binder.bind(ThreadScope).to_instance(thread_scope)
        binder.bind(SomeClass).in_scope(thread_scope)

    return create_injector(module)


def test_thread_scope_reset(thread_injector):
    some = thread_injector.get_instance(SomeClass)
    assert thread_injector.get_instance(SomeClass) is some

    thread_injector.get_instance(ThreadScope).clear_context()
    assert thread_injector.get_instance(SomeClass) is not some


def test_thread_scope_locality(thread_injector):
    some = thread_injector.get_instance(SomeClass)
    inner = []

    t = threading.Thread(target=lambda: inner.append(thread_injector.get_instance(SomeClass)))
    t.start()
    t.join()

    assert inner[0] is not some


def test_thread_scope_concurrency(thread_injector):
    def work(_):
        same = thread_injector.get_instance(SomeClass) is thread_injector.get_instance(SomeClass)
        thread_injector.get_instance(ThreadScope).clear_context()
        return same

    with ThreadPoolExecutor(max_workers=50) as pool:
        assert all(pool.map(work, range(200)))


@scoped("thread")
class PerThread:
    pass


def test_scope_token_declared_on_class():
    injector = create_injector(lambda b: b.bind(PerThread), scopes={"thread": ThreadScope()})
    first = injector.get_instance(PerThread)
    assert injector.get_instance(PerThread) is first

    other = []
    t = threading.Thread(target=lambda: other.append(injector.get_instance(PerThread)))
    t.start()
    t.join()
    assert other[0] is not first


def test_child_injector_knows_extra_scopes():
    parent = create_injector(lambda b: None, scopes={"thread": ThreadScope()})
    child = parent.create_child(lambda b: b.bind(PerThread))
    assert child.get_instance(PerThread) is child.get_instance(PerThread)


def test_unknown_scope_token_is_rejected():
    with pytest.raises(ScopeError, match="not bound"):
        create_injector(lambda b: b.bind(PerThread))


# --- Context variable scope ---

class RequestData:
    pass


class TestContextVarScope:
    """Instances cached per active scope id."""

    def test_caches_per_scope_id(self):
        request = ContextVarScope("request")
        injector = create_injector(lambda b: b.bind(RequestData).in_scope(request))

        with request.scope_context("r1"):
            first = injector.get_instance(RequestData)
            assert injector.get_instance(RequestData) is first
        with request.scope_context("r2"):
            second = injector.get_instance(RequestData)
        with request.scope_context("r1"):
            assert injector.get_instance(RequestData) is first

        assert second is not first

    def test_cleanup_drops_the_cached_instances(self):
        """A cleaned up scope id starts over."""
        request = ContextVarScope("request")
        injector = create_injector(lambda b: b.bind(RequestData).in_scope(request))

        with request.scope_context("r1"):
            first = injector.get_instance(RequestData)
        request.cleanup("r1")
        with request.scope_context("r1"):
            assert injector.get_instance(RequestData) is not first

    def test_requires_an_active_id(self):
        request = ContextVarScope("request")
        injector = create_injector(lambda b: b.bind(RequestData).in_scope(request))

        with pytest.raises(ScopeError, match="No active scope ID"):
            injector.get_instance(RequestData)

    def test_caches_none(self):
        calls = []

        def nothing():
            calls.append(1)
            return None

        session = ContextVarScope("session")
        injector = create_injector(lambda b: b.bind(RequestData).to_provider(nothing).in_scope(session))
        token = session.activate("s1")
        try:
            assert injector.get_instance(RequestData) is None
            assert injector.get_instance(RequestData) is None
        finally:
            session.deactivate(token)
        assert len(calls) == 1

    def test_creator_does_not_hold_the_scope_lock(self):
        """A creator may wait on another thread resolving in the same scope."""
        request = ContextVarScope("request")
        holder = {}

        def resolve_elsewhere():
            with request.scope_context("r1"):
                holder["other"] = holder["injector"].get_instance(SomeClass)

        def make_request_data():
            t = threading.Thread(target=resolve_elsewhere)
            t.start()
            t.join(timeout=5)
            return RequestData()

        def module(binder):
            binder.bind(SomeClass).in_scope(request)
            binder.bind(RequestData).to_provider(make_request_data).in_scope(request)

        holder["injector"] = create_injector(module)
        with request.scope_context("r1"):
            data = holder["injector"].get_instance(RequestData)
            assert isinstance(holder["other"], SomeClass)
            assert holder["injector"].get_instance(SomeClass) is holder["other"]
        assert isinstance(data, RequestData)

    def test_name_is_required(self):
        with pytest.raises(ScopeError):
            ContextVarScope("")


# --- Scoped producers through providers ---

class Counter:
    count = 0

    def __init__(self):
        Counter.count += 1


class UsesCounter:
    @inject
    def __init__(self, counter: Provider[Counter]):
        self.counter = counter


def test_provider_dependency_honours_scope():
    Counter.count = 0
    injector = create_injector(lambda b: (b.bind(Counter).as_lazy_singleton(), b.bind(UsesCounter)))
    uses = injector.get_instance(UsesCounter)

    assert Counter.count == 0
    assert uses.counter.get() is uses.counter.get()
    assert Counter.count == 1
