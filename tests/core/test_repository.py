import random
import shutil

import pytest
import yaml

from defense_in_depth.config import DEFAULT_DATA_DIR
from defense_in_depth.core.models import Difficulty, ThreatType
from defense_in_depth.core.repository import ReferenceDataError, ReferenceDataStore


@pytest.fixture
def data_dir(tmp_path):
    """A writable copy of the packaged data files."""
    target = tmp_path / "data"
    shutil.copytree(DEFAULT_DATA_DIR, target)
    return target


def rewrite(path, mutate):
    with open(path, 'r', encoding='utf-8') as f:
        records = yaml.safe_load(f)
    mutate(records)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(records, f)


def test_load_packaged_data(store):
    assert store.layer_ids == [1, 2, 3, 4, 5, 6, 7]
    assert len(store.threats) == 8
    assert len(store.quiz_questions) == 10
    assert len(store.defense_layers) == 7


def test_layer_lookup(store):
    layer = store.get_layer(4)
    assert layer.short_name == "Internal"
    assert "Lateral movement" in layer.threats
    assert store.get_layer(8) is None


def test_threat_lookup(store):
    threat = store.get_threat(6)
    assert threat.type == ThreatType.INSIDER
    assert threat.attack_path == [4]
    assert store.get_threat(0) is None


def test_random_threat_uses_given_rng(store):
    first = store.random_threat(random.Random(7))
    second = store.random_threat(random.Random(7))
    assert first == second
    assert first in store.threats


def test_questions_by_difficulty(store):
    easy = store.questions_by_difficulty("easy")
    assert easy and all(question.difficulty == Difficulty.EASY for question in easy)
    assert store.questions_by_difficulty("nightmare") == []


def test_layer_details(store):
    assert store.get_layer_details(7).tools[2].name == "HashiCorp Vault"
    assert store.get_layer_details(99) is None


def test_defense_layers_sorted_by_order(store):
    assert [layer.order for layer in store.defense_layers] == list(range(1, 8))
    assert store.get_defense_layer("data").order == 7
    assert store.get_defense_layer("moat") is None


def test_missing_file(data_dir):
    (data_dir / "quiz.yaml").unlink()
    with pytest.raises(ReferenceDataError, match="not found"):
        ReferenceDataStore.load(data_dir)


def test_malformed_yaml(data_dir):
    (data_dir / "threats.yaml").write_text("- id: [unclosed\n", encoding="utf-8")
    with pytest.raises(ReferenceDataError, match="Could not parse"):
        ReferenceDataStore.load(data_dir)


def test_non_contiguous_layer_ids(data_dir):
    rewrite(data_dir / "layers.yaml", lambda records: records.pop(2))
    with pytest.raises(ReferenceDataError, match="contiguous"):
        ReferenceDataStore.load(data_dir)


def test_blocking_layer_must_end_attack_path(data_dir):
    def mutate(records):
        records[0]["attackPath"] = [2, 1]
    rewrite(data_dir / "threats.yaml", mutate)
    with pytest.raises(ReferenceDataError, match="must end at its blocking layer"):
        ReferenceDataStore.load(data_dir)


def test_attack_path_unknown_layer(data_dir):
    def mutate(records):
        records[0]["attackPath"] = [9, 2]
    rewrite(data_dir / "threats.yaml", mutate)
    with pytest.raises(ReferenceDataError, match="unknown layers"):
        ReferenceDataStore.load(data_dir)


def test_invalid_threat_type(data_dir):
    def mutate(records):
        records[0]["type"] = "meteor"
    rewrite(data_dir / "threats.yaml", mutate)
    with pytest.raises(ReferenceDataError, match="Invalid record"):
        ReferenceDataStore.load(data_dir)


def test_quiz_correct_answer_out_of_range(data_dir):
    def mutate(records):
        records[0]["correctAnswer"] = 4
    rewrite(data_dir / "quiz.yaml", mutate)
    with pytest.raises(ReferenceDataError, match="out-of-range"):
        ReferenceDataStore.load(data_dir)


def test_quiz_needs_two_options(data_dir):
    def mutate(records):
        records[0]["options"] = ["Only one"]
        records[0]["correctAnswer"] = 0
    rewrite(data_dir / "quiz.yaml", mutate)
    with pytest.raises(ReferenceDataError):
        ReferenceDataStore.load(data_dir)


def test_details_for_unknown_layer(data_dir):
    def mutate(records):
        records[0]["id"] = 12
    rewrite(data_dir / "layer_details.yaml", mutate)
    with pytest.raises(ReferenceDataError, match="unknown layers"):
        ReferenceDataStore.load(data_dir)
