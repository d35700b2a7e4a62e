"""
Database connection helpers for dbexport.

Parses connection URLs and opens DB-API connections for PostgreSQL/Greenplum
(psycopg2), Vertica (vertica_python) and local SQLite files.
"""

import sqlite3
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote, urlparse

import psycopg2
import vertica_python

from dbexport.enhanced_logger import logger
from dbexport.errors import ConfigurationError, DatabaseError

DEFAULT_PORTS = {
    'postgresql': 5432,
    'greenplum': 5432,
    'vertica': 5433,
}

SCHEME_ALIASES = {
    'postgres': 'postgresql',
    'postgresql': 'postgresql',
    'greenplum': 'greenplum',
    'vertica': 'vertica',
    'sqlite': 'sqlite',
}


@dataclass
class ConnectionConfig:
    """Database connection configuration"""
    db_type: str
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None
    connect_timeout: int = 30


def parse_connection_url(url: str, username: Optional[str] = None,
                         password: Optional[str] = None) -> ConnectionConfig:
    """
    Build a ConnectionConfig from a URL like postgresql://user@host:5432/db

    Explicit username/password take precedence over credentials in the URL.
    A leading "jdbc:" is ignored. For SQLite the path is the database, e.g.
    sqlite:///tmp/data.db or sqlite:///:memory:.
    """
    if not url:
        raise ConfigurationError("--connectionUrl must be configured")

    if url.lower().startswith('jdbc:'):
        url = url[len('jdbc:'):]

    parsed = urlparse(url)
    db_type = SCHEME_ALIASES.get(parsed.scheme.lower())
    if db_type is None:
        raise ConfigurationError(f"Unsupported database type in --connectionUrl: {parsed.scheme}")

    if db_type == 'sqlite':
        path = parsed.path[1:] if parsed.path.startswith('/:memory:') else parsed.path
        if not path:
            raise ConfigurationError(f"SQLite connection URL needs a path: {url}")
        return ConnectionConfig(db_type=db_type, database=path)

    if not parsed.hostname:
        raise ConfigurationError(f"Connection URL needs a host: {url}")

    try:
        port = parsed.port or DEFAULT_PORTS[db_type]
    except ValueError as e:
        raise ConfigurationError(f"Invalid port in connection URL {url}: {e}") from e

    return ConnectionConfig(
        db_type=db_type,
        host=parsed.hostname,
        port=port,
        username=username if username is not None else (unquote(parsed.username) if parsed.username else None),
        password=password if password is not None else (unquote(parsed.password) if parsed.password else None),
        database=parsed.path.lstrip('/') or None,
    )


def create_data_source_connection(config: ConnectionConfig):
    """
    Create database connection for data source (PostgreSQL/Greenplum/Vertica/SQLite)

    Args:
        config: Connection configuration

    Returns:
        Database connection object

    Raises:
        DatabaseError: if the driver cannot connect
    """
    db_type = config.db_type.lower()
    try:
        if db_type in ['postgresql', 'greenplum']:
            connection = psycopg2.connect(
                host=config.host,
                port=config.port,
                database=config.database or 'postgres',
                user=config.username,
                password=config.password,
                connect_timeout=config.connect_timeout
            )
        elif db_type == 'vertica':
            connection = vertica_python.connect(
                host=config.host,
                port=config.port,
                database=config.database or 'defaultdb',
                user=config.username,
                password=config.password,
                connection_timeout=config.connect_timeout
            )
        elif db_type == 'sqlite':
            # Workers run on their own threads
            connection = sqlite3.connect(config.database, check_same_thread=False)
        else:
            raise ConfigurationError(f"Unsupported database type for data source: {config.db_type}")
    except ConfigurationError:
        raise
    except Exception as e:
        raise DatabaseError(f"Could not connect to {db_type} database {config.database}: {e}") from e

    logger.debug(f"Connected to {db_type} database {config.database}")
    return connection
