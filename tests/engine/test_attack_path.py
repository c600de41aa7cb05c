import pytest

from defense_in_depth.engine.attack_path import AttackPathSimulator


@pytest.fixture
def simulator(scheduler):
    simulator = AttackPathSimulator(scheduler)
    yield simulator
    simulator.close()


@pytest.fixture
def phishing(store):
    return store.get_threat(2)  # path [1, 2, 3]


def test_simulate_without_selection_is_ignored(simulator, scheduler):
    assert simulator.simulate() is False
    assert scheduler.pending == 0


def test_walks_path_then_resets(simulator, scheduler, phishing):
    simulator.select(phishing)
    assert simulator.simulate() is True
    assert simulator.state.is_simulating
    assert simulator.state.step == 0

    scheduler.advance(1000)
    assert simulator.state.step == 1
    assert simulator.state.reached_layer_ids == [1]

    scheduler.advance(2000)
    assert simulator.state.step == 3
    assert simulator.state.reached_layer_ids == [1, 2, 3]
    assert simulator.state.is_simulating

    scheduler.advance(1499)
    assert simulator.state.step == 3

    scheduler.advance(1)
    assert simulator.state.step == 0
    assert simulator.state.is_simulating is False
    assert simulator.state.selected_threat == phishing
    assert scheduler.pending == 0


def test_simulate_while_running_is_ignored(simulator, scheduler, phishing):
    simulator.select(phishing)
    simulator.simulate()
    scheduler.advance(1000)
    assert simulator.simulate() is False
    assert simulator.state.step == 1
    assert scheduler.pending == 1


def test_selecting_another_threat_abandons_run(simulator, scheduler, store, phishing):
    simulator.select(phishing)
    simulator.simulate()
    scheduler.advance(1000)

    insider = store.get_threat(6)
    simulator.select(insider)
    assert simulator.state.selected_threat == insider
    assert simulator.state.step == 0
    assert simulator.state.is_simulating is False
    assert scheduler.pending == 0


def test_single_layer_path(simulator, scheduler, store):
    simulator.select(store.get_threat(6))  # path [4]
    simulator.simulate()
    scheduler.advance(1000)
    assert simulator.state.reached_layer_ids == [4]
    scheduler.advance(1500)
    assert simulator.state.is_simulating is False


def test_listener_sees_each_step(simulator, scheduler, phishing):
    steps = []
    simulator.subscribe(lambda state: steps.append(state.step))
    simulator.select(phishing)
    simulator.simulate()
    scheduler.advance(5000)
    assert steps == [0, 0, 1, 2, 3, 0]


def test_close_cancels_pending_step(simulator, scheduler, phishing):
    simulator.select(phishing)
    simulator.simulate()
    simulator.close()
    assert scheduler.pending == 0
    with pytest.raises(RuntimeError):
        simulator.simulate()


def test_unsubscribe_stops_updates(simulator, scheduler, phishing):
    steps = []
    unsubscribe = simulator.subscribe(lambda state: steps.append(state.step))
    simulator.select(phishing)
    simulator.simulate()
    scheduler.advance(1000)
    unsubscribe()
    scheduler.advance(4000)
    assert steps == [0, 0, 1]
    assert simulator.state.is_simulating is False


def test_failing_listener_does_not_stall_run(simulator, scheduler, phishing):
    def broken(state):
        raise RuntimeError("render failed")

    simulator.subscribe(broken)
    simulator.select(phishing)
    assert simulator.simulate() is True
    scheduler.advance(3000)
    assert simulator.state.step == 3
    scheduler.advance(1500)
    assert simulator.state.step == 0
    assert simulator.state.is_simulating is False
    assert scheduler.pending == 0
