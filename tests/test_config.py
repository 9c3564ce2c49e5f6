import logging

import pytest

from taskcal.config import load_settings
from taskcal.logging_setup import setup_logging


@pytest.fixture()
def clean_env(monkeypatch):
    for name in ('DATABASE_URL', 'STORE_MODE', 'SECRET_KEY', 'LOG_DIR', 'LOG_LEVEL', 'HOST', 'PORT', 'DEBUG'):
        monkeypatch.delenv(f'TASKCAL_{name}', raising=False)
    return monkeypatch


def test_defaults(clean_env, tmp_path):
    settings = load_settings(tmp_path)

    assert settings.database_url == f'sqlite:///{tmp_path / "taskcal.db"}'
    assert settings.synced
    assert settings.port == 5000
    assert settings.debug is False
    assert settings.flask_config()['SQLALCHEMY_TRACK_MODIFICATIONS'] is False


def test_environment_overrides(clean_env, tmp_path):
    clean_env.setenv('TASKCAL_DATABASE_URL', 'postgresql://db/taskcal')
    clean_env.setenv('TASKCAL_STORE_MODE', 'LOCAL')
    clean_env.setenv('TASKCAL_PORT', 'not-a-number')
    clean_env.setenv('TASKCAL_DEBUG', 'yes')
    clean_env.setenv('TASKCAL_LOG_LEVEL', 'debug')

    settings = load_settings(tmp_path)

    assert settings.database_url == 'postgresql://db/taskcal'
    assert settings.store_mode == 'local'
    assert not settings.synced
    assert settings.port == 5000
    assert settings.debug is True
    assert settings.log_level == 'DEBUG'


def test_unknown_store_mode(clean_env, tmp_path):
    clean_env.setenv('TASKCAL_STORE_MODE', 'cloud')
    with pytest.raises(ValueError):
        load_settings(tmp_path)


def test_setup_logging_writes_file(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        log_file = setup_logging(log_dir=tmp_path / 'logs')
        logging.getLogger('taskcal.test').debug('hello from the test')
        for h in root.handlers:
            h.flush()

        assert log_file == tmp_path / 'logs' / 'taskcal.log'
        assert 'hello from the test' in log_file.read_text(encoding='utf-8')
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
        logging.captureWarnings(False)
