"""
Database configuration for the storefront backend.

Deployment scenarios:
- Local development and tests (SQLite)
- Docker / traditional server (PostgreSQL)
- AWS Lambda (PostgreSQL behind RDS Proxy)
"""
import os
import re
from pathlib import Path

_URL_PATTERN = re.compile(
    r'postgres(?:ql)?://(?P<user>[^:]+):(?P<password>[^@]+)@(?P<host>[^:/]+)'
    r'(?::(?P<port>\d+))?/(?P<name>[^?]+)'
)


def get_database_config(base_dir: Path) -> dict:
    """
    Returns the default database configuration.

    Resolution order:
    1. DATABASE_URL (postgres:// or postgresql://)
    2. DB_HOST and friends
    3. SQLite file next to the project
    """
    database_url = os.getenv('DATABASE_URL', '')
    if database_url.startswith('postgres'):
        config = _parse_database_url(database_url)
    elif os.getenv('DB_HOST'):
        config = _get_env_config()
    else:
        return {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': os.getenv('SQLITE_PATH', str(base_dir / 'db.sqlite3')),
        }

    # Lambda: connection pooling lives in RDS Proxy
    if os.getenv('AWS_LAMBDA_FUNCTION_NAME'):
        config['CONN_MAX_AGE'] = 0
        config.setdefault('OPTIONS', {})['connect_timeout'] = 5
    else:
        config['CONN_MAX_AGE'] = int(os.getenv('DB_CONN_MAX_AGE', '60'))

    return config


def _parse_database_url(url: str) -> dict:
    """Parse a PostgreSQL DATABASE_URL into a Django config dict."""
    match = _URL_PATTERN.match(url)
    if not match:
        raise ValueError("Invalid DATABASE_URL format")

    return {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': match.group('name'),
        'USER': match.group('user'),
        'PASSWORD': match.group('password'),
        'HOST': match.group('host'),
        'PORT': match.group('port') or '5432',
    }


def _get_env_config() -> dict:
    """Build config from individual DB_* environment variables."""
    config = {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.getenv('DB_NAME', 'storefront'),
        'USER': os.getenv('DB_USER', 'postgres'),
        'HOST': os.getenv('DB_HOST', 'localhost'),
        'PORT': os.getenv('DB_PORT', '5432'),
    }

    password = os.getenv('DB_PASSWORD')
    if password:
        config['PASSWORD'] = password

    if os.getenv('DB_SSL_REQUIRE', '').lower() == 'true':
        config['OPTIONS'] = {'sslmode': 'require'}

    return config
