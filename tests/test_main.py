import json

import pytest

from ingestion import main as cli
from ingestion.errors import ConfigError
from ingestion.pipeline import IngestPipeline
from ingestion.warehouse import WarehouseReader

from conftest import NOW


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)


def test_config_error_exits_with_2(monkeypatch):
    def broken():
        raise ConfigError("PG_DSN missing")

    monkeypatch.setattr(cli, "load_settings", broken)

    assert cli.main(["run"]) == 2


def test_run_prints_result_json(monkeypatch, capsys, nashville, store, settings):
    monkeypatch.setattr(cli, "load_settings", lambda: settings)
    monkeypatch.setattr(
        cli,
        "build_pipeline",
        lambda s: IngestPipeline(WarehouseReader(nashville), store, s, clock=lambda: NOW),
    )

    assert cli.main([]) == 0

    body = json.loads(capsys.readouterr().out)
    assert body["status"] == "success"
    assert body["stats"]["workoutsSeeded"] == 1


def test_failed_run_exits_with_1(monkeypatch, capsys, nashville, store, settings):
    nashville.fail_on.add("active_events")
    monkeypatch.setattr(cli, "load_settings", lambda: settings)
    monkeypatch.setattr(
        cli,
        "build_pipeline",
        lambda s: IngestPipeline(WarehouseReader(nashville), store, s, clock=lambda: NOW),
    )

    assert cli.main(["--force"]) == 1
    assert json.loads(capsys.readouterr().out)["status"] == "error"


def test_single_stage(monkeypatch, nashville, store, settings):
    monkeypatch.setattr(cli, "load_settings", lambda: settings)
    monkeypatch.setattr(cli, "get_warehouse_client", lambda s: nashville)
    monkeypatch.setattr(cli, "get_postgres_client", lambda s: store)

    assert cli.main(["seed-regions"]) == 0
    assert cli.main(["seed-workouts"]) == 0

    assert set(store.regions) == {"1"}
    assert set(store.workouts) == {"1000"}


def test_rejects_unknown_command():
    with pytest.raises(SystemExit):
        cli.main(["explode"])
