"""Settings loaded from ``TASKCAL_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = 'TASKCAL'

STORE_MODES = ('synced', 'local')


def _k(suffix: str) -> str:
    return f'{ENV_PREFIX}_{suffix}'


def _env(name: str, default: str = '') -> str:
    v = os.getenv(_k(name))
    return default if v is None or v.strip() == '' else v.strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(_k(name))
    if raw is None:
        return default
    return raw.strip().lower() in {'1', 'true', 'yes', 'y', 'on'}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(_k(name))
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    database_url: str
    store_mode: str
    secret_key: str
    log_dir: Path
    log_level: str
    host: str
    port: int
    debug: bool
    max_sessions: int
    session_idle_minutes: int

    @property
    def synced(self) -> bool:
        return self.store_mode == 'synced'

    def flask_config(self) -> dict:
        return {
            'SQLALCHEMY_DATABASE_URI': self.database_url,
            'SQLALCHEMY_TRACK_MODIFICATIONS': False,
            'SECRET_KEY': self.secret_key,
            'STORE_MODE': self.store_mode,
            'LOCAL_MAX_SESSIONS': self.max_sessions,
            'LOCAL_IDLE_SECONDS': self.session_idle_minutes * 60,
            'SESSION_COOKIE_HTTPONLY': True,
            'SESSION_COOKIE_SAMESITE': 'Lax',
        }


def load_settings(base_dir=None) -> Settings:
    base_dir = Path(base_dir or os.getcwd())

    store_mode = _env('STORE_MODE', 'synced').lower()
    if store_mode not in STORE_MODES:
        raise ValueError(f'{_k("STORE_MODE")} must be one of {STORE_MODES}, got {store_mode!r}')

    return Settings(
        database_url=_env('DATABASE_URL', f'sqlite:///{base_dir / "taskcal.db"}'),
        store_mode=store_mode,
        secret_key=_env('SECRET_KEY', 'dev-only-key'),
        log_dir=Path(_env('LOG_DIR', str(base_dir / '.local' / 'taskcal'))).expanduser(),
        log_level=_env('LOG_LEVEL', 'INFO').upper(),
        host=_env('HOST', '0.0.0.0'),
        port=_env_int('PORT', 5000),
        debug=_env_bool('DEBUG', False),
        max_sessions=_env_int('MAX_SESSIONS', 500),
        session_idle_minutes=_env_int('SESSION_IDLE_MINUTES', 120),
    )
