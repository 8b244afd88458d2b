"""Tests for backend/config.py."""

import sys
from pathlib import Path
from zoneinfo import ZoneInfo

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from backend.config import Settings


def test_defaults(monkeypatch):
    for var in ('DATABASE_URL', 'STUDY_DB_PATH', 'SESSION_LOG_PATH', 'QUICKDRAW_TZ',
                'QUICKDRAW_DISABLE_FUZZ', 'LOG_LEVEL'):
        monkeypatch.delenv(var, raising=False)
    s = Settings()
    assert s.database_url == 'sqlite:///./quickdraw.db'
    assert s.study_db_path.name == 'study_store.jsonl'
    assert s.session_log_path == s.study_db_path.parent / 'session_log.jsonl'
    assert s.tz is None
    assert s.disable_fuzz is False
    assert s.log_level == 'WARNING'


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv('DATABASE_URL', 'sqlite:///x.db')
    monkeypatch.setenv('STUDY_DB_PATH', str(tmp_path / 'cards.jsonl'))
    monkeypatch.setenv('QUICKDRAW_TZ', 'Europe/Madrid')
    monkeypatch.setenv('QUICKDRAW_DISABLE_FUZZ', 'true')
    monkeypatch.setenv('LOG_LEVEL', 'debug')
    monkeypatch.delenv('SESSION_LOG_PATH', raising=False)
    s = Settings()
    assert s.database_url == 'sqlite:///x.db'
    assert s.study_db_path == tmp_path / 'cards.jsonl'
    assert s.session_log_path == tmp_path / 'session_log.jsonl'
    assert s.tz == ZoneInfo('Europe/Madrid')
    assert s.disable_fuzz is True
    assert s.log_level == 'DEBUG'


def test_explicit_values_win(monkeypatch, tmp_path):
    monkeypatch.setenv('DATABASE_URL', 'sqlite:///env.db')
    s = Settings(database_url='sqlite:///arg.db', study_db_path=str(tmp_path / 'a.jsonl'))
    assert s.database_url == 'sqlite:///arg.db'
    assert s.study_db_path == tmp_path / 'a.jsonl'


def test_unknown_timezone_falls_back(caplog):
    s = Settings(timezone_name='Mars/Olympus_Mons')
    assert s.tz is None
    assert 'Unknown timezone' in caplog.text


def test_invalid_log_level_ignored(monkeypatch):
    monkeypatch.setenv('LOG_LEVEL', 'chatty')
    assert Settings().log_level == 'WARNING'
