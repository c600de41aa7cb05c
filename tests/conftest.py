import random

import pytest

from defense_in_depth.core.repository import ReferenceDataStore
from defense_in_depth.engine.scheduler import VirtualScheduler
from defense_in_depth.engine.simulation import SimulationEngine


@pytest.fixture(scope="session")
def store():
    return ReferenceDataStore.load()


@pytest.fixture
def layers(store):
    return store.layers


@pytest.fixture
def threats(store):
    return store.threats


@pytest.fixture
def scheduler():
    return VirtualScheduler()


@pytest.fixture
def make_engine(layers, scheduler):
    """
    Builds started engines on the virtual clock. A single threat makes
    threat selection deterministic.
    """
    engines = []

    def factory(threats, seed=0):
        engine = SimulationEngine(layers, threats, scheduler, rng=random.Random(seed))
        engines.append(engine)
        return engine.start()

    yield factory
    for engine in engines:
        engine.close()
