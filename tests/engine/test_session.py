import random

import pytest

from defense_in_depth.engine.session import VisualizationSession
from defense_in_depth.engine.state import ViewMode


@pytest.fixture
def session(store, scheduler):
    with VisualizationSession.from_store(store, scheduler, rng=random.Random(7)) as session:
        yield session


def test_from_store_reads_everything(session, store):
    assert [layer.id for layer in session.layers] == [1, 2, 3, 4, 5, 6, 7]
    assert len(session.threats) == len(store.threats)
    assert session.quiz.total == len(store.quiz_questions)
    assert session.engine.state.active_threat is not None


def test_difficulty_filters_quiz(store, scheduler):
    session = VisualizationSession.from_store(store, scheduler, difficulty="hard")
    assert [question.id for question in session.quiz.questions] == [6]


def test_no_questions_means_no_quiz(store, scheduler):
    session = VisualizationSession(store.layers, store.threats, [], scheduler)
    assert session.quiz is None


def test_drilldown(session):
    drilldown = session.open_drilldown(3)
    assert drilldown.layer.name == "Perimeter Security"
    assert drilldown.details is not None
    assert session.drilldown == drilldown
    session.close_drilldown()
    assert session.drilldown is None


def test_drilldown_unknown_layer(session):
    with pytest.raises(ValueError):
        session.open_drilldown(99)


def test_select_threat(session):
    threat = session.select_threat(4)
    assert session.attack_path.state.selected_threat == threat
    with pytest.raises(ValueError):
        session.select_threat(42)


def test_switch_mode(session, scheduler):
    session.switch_mode(ViewMode.COMPARISON)
    assert session.mode == ViewMode.COMPARISON
    assert scheduler.pending == 0


def test_posture_follows_engine_toggles(session):
    session.engine.toggle_layer(5)
    report = session.posture()
    assert report.security_score == 86
    assert "Ransomware" in report.vulnerabilities


def test_attack_path_runs_independently(session, scheduler):
    session.select_threat(2)
    session.attack_path.simulate()
    session.engine.pause()
    scheduler.advance(3000)
    assert session.attack_path.state.step == 3
    assert session.engine.state.current_layer_id == 1


def test_close_tears_down_all_timers(store, scheduler):
    session = VisualizationSession.from_store(store, scheduler).start()
    session.select_threat(5)
    session.attack_path.simulate()
    assert scheduler.pending == 2
    session.close()
    assert scheduler.pending == 0
