import json
import logging

import pytest

import main


@pytest.fixture
def clean_package_logger():
    logger = logging.getLogger("geo_assign")
    before = list(logger.handlers)
    yield
    for h in logger.handlers[:]:
        if h not in before:
            logger.removeHandler(h)


def test_cli_prints_only_the_result_document(tmp_path, capsys, clean_package_logger):
    scenario = tmp_path / "scenario.json"
    scenario.write_text(json.dumps({"run_id": "cli", "oracle": {"strategies": [{"kind": "haversine"}]}}))
    points = tmp_path / "points.json"
    points.write_text(
        json.dumps(
            [
                {"latitude": 0.0, "longitude": 0.0, "category": "facility"},
                {"latitude": 0.0, "longitude": 0.01, "category": "pwd"},
                {"latitude": 0.0, "longitude": 0.02, "category": "male"},
            ]
        )
    )

    main.main([str(points), "--scenario", str(scenario), "--straight"])
    out, err = capsys.readouterr()

    doc = json.loads(out)
    assert doc["statistics"]["total_assigned"] == 2
    assert doc["oracle"]["cache_timeout_ms"] == 300000
    # run events and logs land on stderr as JSON lines
    assert '"run_id": "cli"' in err
