import os


def _split(value):
    return [v.strip() for v in value.split(',') if v.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///cipherquiz.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Shared admin password for the REST admin session; unset disables admin login
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD', '')
    # 'sql' keeps rooms across restarts, 'memory' is process-local
    ROOM_STORE = os.environ.get('ROOM_STORE', 'sql')
    # Time-limit sweeper interval (sec). 0 disables.
    TIME_CHECK_INTERVAL_SEC = int(os.environ.get('TIME_CHECK_INTERVAL_SEC', '5'))
    DEFAULT_LANGUAGE = os.environ.get('DEFAULT_LANGUAGE', 'tr')
    CORS_ORIGINS = _split(os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5174,http://127.0.0.1:5174',
    ))
