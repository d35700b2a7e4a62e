"""
Command line and environment options for dbexport.

Every flag can also be set through a DBEXPORT_* environment variable; the
flag wins when both are given. Values are kept raw here, dbexport.validation
turns them into an ExtractionRequest.
"""

import argparse
import os
from dataclasses import dataclass
from typing import List, Optional

from dbexport.errors import ConfigurationError

DEFAULT_FETCH_SIZE = 10000
DEFAULT_MAX_WORKERS = 4


@dataclass
class ExportOptions:
    """Raw export options as given by the user"""
    connection_url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    password_file: Optional[str] = None
    table: Optional[str] = None
    sql_file: Optional[str] = None
    limit: Optional[int] = None
    partition: Optional[str] = None
    partition_column: Optional[str] = None
    partition_period: Optional[str] = None
    split_column: Optional[str] = None
    query_parallelism: Optional[int] = None
    skip_partition_check: bool = False
    min_partition_period: Optional[str] = None
    fetch_size: int = DEFAULT_FETCH_SIZE
    output: Optional[str] = None
    max_workers: int = DEFAULT_MAX_WORKERS
    dry_run: bool = False


def _env(name: str) -> Optional[str]:
    value = os.environ.get(f"DBEXPORT_{name}")
    return value if value else None


def _env_int(name: str, default=None) -> Optional[int]:
    value = _env(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"DBEXPORT_{name} must be an integer, got: {value}")


def _env_flag(name: str) -> bool:
    return (_env(name) or 'false').lower() in ('1', 'true', 'yes')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dbexport',
        description='Export a table or query from a relational database, optionally '
                    'restricted to a time partition and split into parallel queries.',
    )

    conn = parser.add_argument_group('connection')
    conn.add_argument('--connectionUrl', dest='connection_url', default=_env('CONNECTION_URL'),
                      help='e.g. postgresql://host:5432/db, vertica://host/db, sqlite:///path.db')
    conn.add_argument('--username', default=_env('USERNAME'))
    conn.add_argument('--password', default=None,
                      help='Database password (prefer --passwordFile or DBEXPORT_PASSWORD)')
    conn.add_argument('--passwordFile', dest='password_file', default=_env('PASSWORD_FILE'))
    conn.add_argument('--fetchSize', dest='fetch_size', type=int,
                      default=_env_int('FETCH_SIZE', DEFAULT_FETCH_SIZE))

    query = parser.add_argument_group('query')
    query.add_argument('--table', default=_env('TABLE'))
    query.add_argument('--sqlFile', dest='sql_file', default=_env('SQL_FILE'),
                       help='File holding the query to export instead of a whole table')
    query.add_argument('--limit', type=int, default=_env_int('LIMIT'))
    query.add_argument('--partition', default=_env('PARTITION'),
                       help='Partition date/time, e.g. 2027-07-31 or 2027-07-31T13')
    query.add_argument('--partitionColumn', dest='partition_column', default=_env('PARTITION_COLUMN'))
    query.add_argument('--partitionPeriod', dest='partition_period', default=_env('PARTITION_PERIOD'),
                       help='ISO-8601 period of a partition (default: P1D)')
    query.add_argument('--skipPartitionCheck', dest='skip_partition_check', action='store_true',
                       default=_env_flag('SKIP_PARTITION_CHECK'))
    query.add_argument('--minPartitionPeriod', dest='min_partition_period',
                       default=_env('MIN_PARTITION_PERIOD'))
    query.add_argument('--splitColumn', dest='split_column', default=_env('SPLIT_COLUMN'))
    query.add_argument('--queryParallelism', dest='query_parallelism', type=int,
                       default=_env_int('QUERY_PARALLELISM'))

    output = parser.add_argument_group('output')
    output.add_argument('--output', default=_env('OUTPUT'), help='Directory for exported files')
    output.add_argument('--maxWorkers', dest='max_workers', type=int,
                        default=_env_int('MAX_WORKERS', DEFAULT_MAX_WORKERS))
    output.add_argument('--dryRun', dest='dry_run', action='store_true', default=_env_flag('DRY_RUN'),
                        help='Print the queries instead of running them')
    return parser


def parse_args(argv: Optional[List[str]] = None) -> ExportOptions:
    """Parse command line arguments (falling back to DBEXPORT_* variables)"""
    namespace = build_parser().parse_args(argv)
    return ExportOptions(**vars(namespace))


def read_text_file(path: str) -> str:
    """Read a whole UTF-8 file and strip surrounding whitespace"""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read().strip()
    except OSError as e:
        raise ConfigurationError(f"Could not read file {path}: {e}") from e


def resolve_password(options: ExportOptions) -> Optional[str]:
    """
    Resolve the database password

    --password wins, then --passwordFile, then DBEXPORT_PASSWORD.
    """
    if options.password is not None:
        return options.password
    if options.password_file:
        return read_text_file(options.password_file)
    return _env('PASSWORD')
