"""
Unit tests for DependencyContainer.
"""

import threading

import pytest

from dropbin.application.dependency_container import DependencyContainer, DependencyNotFoundError


class DummyService:
    def __init__(self, value="default"):
        self.value = value


@pytest.fixture
def container():
    return DependencyContainer()


def test_singleton_is_shared(container):
    service = DummyService("test")
    container.register_singleton(DummyService, service)

    assert container.resolve(DummyService) is service
    assert container.resolve(DummyService) is service
    assert container.is_registered(DummyService)


def test_reregistering_replaces_instance(container):
    container.register_singleton(DummyService, DummyService("first"))
    replacement = DummyService("second")
    container.register_singleton(DummyService, replacement)

    assert container.resolve(DummyService) is replacement
    assert len(container) == 1


def test_unregistered(container):
    assert not container.is_registered(DummyService)
    with pytest.raises(DependencyNotFoundError):
        container.resolve(DummyService)


def test_concurrent_resolution(container):
    service = DummyService()
    container.register_singleton(DummyService, service)
    results = []

    def worker():
        for _ in range(100):
            results.append(container.resolve(DummyService))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 800
    assert all(r is service for r in results)
