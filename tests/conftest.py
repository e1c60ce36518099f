from datetime import datetime, timezone

import pytest


@pytest.fixture
def at():
    """Build deterministic creation instants: at(1) is one minute after at(0)."""
    def _at(minute):
        return datetime(2025, 1, 1, 12, minute, tzinfo=timezone.utc)
    return _at


@pytest.fixture
def cashflow_env(tmp_path, monkeypatch):
    """Point config and data at a temporary directory."""
    config_path = tmp_path / 'config.yaml'
    data_dir = tmp_path / 'data'
    monkeypatch.setenv('CASHFLOW_CONFIG', str(config_path))
    monkeypatch.setenv('CASHFLOW_DATA_DIR', str(data_dir))
    monkeypatch.delenv('CASHFLOW_LOG_LEVEL', raising=False)
    return {'config_path': config_path, 'data_path': data_dir / 'data.yaml'}
