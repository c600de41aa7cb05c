from unittest.mock import MagicMock, patch

import pytest
import requests

from defense_in_depth import cli


def test_posture_with_perimeter_disabled(capsys):
    assert cli.main(["posture", "-d", "3"]) == 0
    out = capsys.readouterr().out
    assert "Security score: 86%" in out
    assert "Phishing Campaign" in out
    assert "External attacks" in out


def test_posture_all_layers(capsys):
    assert cli.main(["posture"]) == 0
    out = capsys.readouterr().out
    assert "Security score: 100%" in out
    assert "No layer is disabled." in out


def test_simulate_fast_forward(capsys):
    assert cli.main(["simulate", "-n", "7", "--seed", "1"]) == 0
    out = capsys.readouterr().out
    assert "7 ticks simulated in 14.0s" in out
    assert "Loop 2, currently at layer 1." in out


def test_simulate_at_double_speed(capsys):
    assert cli.main(["simulate", "-n", "3", "-s", "2", "--seed", "1"]) == 0
    out = capsys.readouterr().out
    assert "3 ticks simulated in 3.0s" in out


@pytest.mark.parametrize("speed", ["0.6", "1.1", "2.5", "fast"])
def test_simulate_rejects_bad_speed_as_usage_error(speed, capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["simulate", "-n", "1", "-s", speed])
    assert exc_info.value.code == 2
    assert "steps of 0.25" in capsys.readouterr().err


def test_layer_drilldown(capsys):
    assert cli.main(["layer", "2"]) == 0
    out = capsys.readouterr().out
    assert "2. Network Security" in out
    assert "Real-world examples" in out


def test_unknown_layer():
    assert cli.main(["layer", "9"]) == 2


def test_quiz_hard(capsys):
    with patch.object(cli.console, "input", side_effect=["x", "3"]):
        assert cli.main(["quiz", "--difficulty", "hard"]) == 0
    out = capsys.readouterr().out
    assert "Enter a number between 1 and 4." in out
    assert "Correct!" in out
    assert "Final score: 1/1" in out


@patch("requests.Session.get", side_effect=requests.exceptions.ConnectionError("refused"))
def test_unreachable_api(mock_get, capsys):
    assert cli.main(["posture", "--api-url", "http://localhost:9"]) == 1
    assert "could not load data" in capsys.readouterr().out


def test_repeated_disable_keeps_layer_off(capsys):
    assert cli.main(["posture", "-d", "3", "-d", "3"]) == 0
    out = capsys.readouterr().out
    assert "Security score: 86%" in out
    assert "No layer is disabled." not in out


def test_disable_unknown_layer():
    assert cli.main(["posture", "-d", "9"]) == 2


def fake_api(store, missing_details=()):
    """Serves the packaged data the way the API would, minus some layer details."""
    routes = {
        "/api/layers": [layer.model_dump(mode="json", by_alias=True) for layer in store.layers],
        "/api/threats": [threat.model_dump(mode="json", by_alias=True) for threat in store.threats],
        "/api/quiz": [question.model_dump(mode="json", by_alias=True) for question in store.quiz_questions],
    }
    for layer_id in store.layer_ids:
        if layer_id not in missing_details:
            details = store.get_layer_details(layer_id)
            routes[f"/api/layers/{layer_id}/details"] = details.model_dump(mode="json", by_alias=True)

    def get(url, timeout=None):
        path = url.replace("http://localhost:8000", "")
        response = MagicMock()
        if path in routes:
            response.status_code = 200
            response.json.return_value = routes[path]
        else:
            response.status_code = 404
            response.json.return_value = {"error": "Layer details not found"}
            response.raise_for_status.side_effect = requests.exceptions.HTTPError("404 Not Found")
        return response

    return get


def test_api_layer_without_details(store, capsys):
    with patch("requests.Session.get", side_effect=fake_api(store, missing_details={4})):
        assert cli.main(["posture", "-d", "3", "--api-url", "http://localhost:8000"]) == 0
        assert "Security score: 86%" in capsys.readouterr().out

        assert cli.main(["layer", "4", "--api-url", "http://localhost:8000"]) == 0
        out = capsys.readouterr().out
        assert "4. Internal Network Security" in out
        assert "Real-world examples" not in out
