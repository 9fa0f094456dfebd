from typing import Dict, List

import pytest
import simpy

from resource_loader.config_channel import ConfigChannel, ConfigReader
from resource_loader.loader import ResourceLoader
from resource_loader.metrics import MetricsCollector
from resource_loader.storage import PermissionSink
from resource_loader.store import CacheStore
from resource_loader.transport import Transport, TransportError


class ManualTransport(Transport):
    """Транспорт, который тест завершает вручную: succeed()/fail() по локатору."""

    def __init__(self, env: simpy.Environment):
        self.env = env
        self.calls: List[str] = []
        self.events: Dict[str, List[simpy.Event]] = {}

    def fetch(self, locator: str) -> simpy.Event:
        self.calls.append(locator)
        evt = self.env.event()
        self.events.setdefault(locator, []).append(evt)
        return evt

    def succeed(self, locator: str, payload, index: int = -1):
        self.events[locator][index].succeed(payload)

    def fail(self, locator: str, index: int = -1):
        self.events[locator][index].fail(TransportError(locator))


class ManualConfigReader(ConfigReader):

    def __init__(self, env: simpy.Environment):
        self.env = env
        self.events: List[simpy.Event] = []

    def read(self) -> simpy.Event:
        evt = self.env.event()
        self.events.append(evt)
        return evt


class RecordingSink(PermissionSink):

    def __init__(self):
        self.values: List[bool] = []

    def set_allowed(self, allowed: bool) -> None:
        self.values.append(allowed)


class Recorder:
    """callback(error, data), который запоминает все вызовы."""

    def __init__(self):
        self.calls = []

    def __call__(self, error, data=None):
        self.calls.append((error, data))

    @property
    def data(self):
        return [d for _, d in self.calls]

    @property
    def errors(self):
        return [e for e, _ in self.calls]


@pytest.fixture
def env():
    return simpy.Environment()


@pytest.fixture
def transport(env):
    return ManualTransport(env)


@pytest.fixture
def reader(env):
    return ManualConfigReader(env)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def store(env):
    return CacheStore(env)


@pytest.fixture
def channel(env, reader, sink, store, metrics):
    return ConfigChannel(env, reader, sink, store, metrics=metrics)


@pytest.fixture
def loader(env, transport, channel, store, metrics):
    return ResourceLoader(env, transport, channel, store=store, metrics=metrics)
