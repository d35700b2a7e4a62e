#!/usr/bin/env python3
"""
Query building for table exports

Turns a validated ExtractionRequest into the ordered list of SQL statements
to run: base query, optional partition window, optional split ranges and an
optional LIMIT on every statement.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union

from dateutil.relativedelta import relativedelta

from dbexport.enhanced_logger import logger
from dbexport.errors import ConfigurationError, IllegalStateError
from dbexport.range_chunking import SplitRange, probe_split_bounds, split_range
from dbexport.temporal import DEFAULT_PARTITION_PERIOD, format_date

TABLE_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def check_table_name(table_name: Optional[str]) -> str:
    """Return table_name if it is a plain identifier, raise ConfigurationError otherwise"""
    if table_name is None or not TABLE_NAME_PATTERN.match(table_name):
        raise ConfigurationError(
            f"'table' must follow {TABLE_NAME_PATTERN.pattern} "
            f"(letters, digits and underscore, no schema prefix), got: {table_name}"
        )
    return table_name


@dataclass(frozen=True)
class TableSource:
    """Export every row of a single table"""
    table_name: str

    def __post_init__(self):
        check_table_name(self.table_name)

    def base_query(self) -> str:
        return f"SELECT * FROM {self.table_name} WHERE 1=1"


@dataclass(frozen=True)
class RawSqlSource:
    """Export the rows of a user supplied query"""
    sql: str

    def __post_init__(self):
        if not self.sql or not self.sql.strip():
            raise ConfigurationError("'sqlFile' must contain a SQL query")

    def base_query(self) -> str:
        return f"SELECT * FROM ({self.sql}) WHERE 1=1"


QuerySource = Union[TableSource, RawSqlSource]


@dataclass(frozen=True)
class ExtractionRequest:
    """
    Fully resolved export request. Built once by dbexport.validation and
    never modified afterwards.
    """
    source: QuerySource
    table_name: Optional[str] = None
    limit: Optional[int] = None
    partition: Optional[datetime] = None
    partition_column: Optional[str] = None
    partition_period: relativedelta = field(default_factory=lambda: DEFAULT_PARTITION_PERIOD)
    split_column: Optional[str] = None
    query_parallelism: Optional[int] = None

    @property
    def export_name(self) -> str:
        """Label used for logging and output naming"""
        if self.table_name:
            return self.table_name
        if isinstance(self.source, TableSource):
            return self.source.table_name
        return "sql"

    @property
    def is_split(self) -> bool:
        return self.split_column is not None and self.query_parallelism is not None


class QueryBuilder:
    """
    Builds the SQL statements for an ExtractionRequest

    All predicates are appended to a `WHERE 1=1` anchor so that each one can
    start with AND.
    """

    def __init__(self, request: ExtractionRequest):
        self.request = request

    def base_query(self) -> str:
        return self.request.source.base_query()

    def partition_predicate(self) -> str:
        """Partition window as `col >= 'start' AND col < 'end'`, empty when not configured"""
        request = self.request
        if request.partition_column is None or request.partition is None:
            return ""

        start = format_date(request.partition)
        end = format_date(request.partition + request.partition_period)
        column = request.partition_column
        return f" AND {column} >= '{start}' AND {column} < '{end}'"

    def limit_clause(self) -> str:
        if self.request.limit is None:
            return ""
        return f" LIMIT {self.request.limit}"

    def filtered_query(self) -> str:
        """Base query plus partition window, without split ranges or LIMIT"""
        return self.base_query() + self.partition_predicate()

    def split_ranges(self, connection) -> List[SplitRange]:
        """
        Probe the split column over the filtered query and divide its range

        Raises:
            IllegalStateError: if no connection is given
            DatabaseError: if the probe fails
        """
        request = self.request
        if connection is None:
            raise IllegalStateError(
                f"A database connection is required to split on {request.split_column}"
            )

        min_value, max_value = probe_split_bounds(
            connection, self.filtered_query(), request.split_column
        )
        return split_range(min_value, max_value, request.query_parallelism)

    def build_queries(self, connection=None) -> List[str]:
        """
        Build the statements to execute, in a stable order

        Args:
            connection: DB-API connection used to probe split bounds. Only
                required when a split column is configured; ignored otherwise.

        Returns:
            One statement without split, one per split range otherwise.
        """
        request = self.request
        prefix = self.filtered_query()
        suffix = self.limit_clause()

        if not request.is_split:
            queries = [prefix + suffix]
        else:
            queries = [
                f"{prefix} AND {split.predicate(request.split_column)}{suffix}"
                for split in self.split_ranges(connection)
            ]

        logger.queries_built(len(queries), request.query_parallelism)
        return queries
