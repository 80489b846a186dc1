from pathlib import Path

import pytest

import slackbridge.tasks as tasks_module
from slackbridge.config import get_settings
from slackbridge.db.migrations.runner import run_migrations


@pytest.fixture(autouse=True)
def test_env(tmp_path: Path, monkeypatch):
    db = tmp_path / "test.db"
    monkeypatch.setenv("APP_DB", str(db))
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.setenv("HOMESERVER_URL", "http://matrix.test")
    monkeypatch.setenv("HOMESERVER_DOMAIN", "matrix.test")
    monkeypatch.setenv("MATRIX_AS_TOKEN", "as-token")
    monkeypatch.setenv("SLACK_API_BASE_URL", "http://slack.test/api")
    get_settings.cache_clear()
    run_migrations()
    monkeypatch.setattr(tasks_module, "_task_runner", None)
    yield
    get_settings.cache_clear()
