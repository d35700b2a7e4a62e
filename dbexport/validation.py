#!/usr/bin/env python3
"""
Validation of export options

create_request() parses the temporal options, then runs GUARDS in order.
Each guard raises ConfigurationError on the first problem it finds; no
database access happens here.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from dateutil.relativedelta import relativedelta

from dbexport.enhanced_logger import logger
from dbexport.errors import ConfigurationError
from dbexport.options import ExportOptions, read_text_file
from dbexport.query_builder import (
    ExtractionRequest,
    QuerySource,
    RawSqlSource,
    TableSource,
    check_table_name,
)
from dbexport.temporal import (
    DEFAULT_PARTITION_PERIOD,
    format_instant,
    parse_instant,
    parse_period,
)


@dataclass(frozen=True)
class ResolvedOptions:
    """Options with their literals parsed, as seen by the guards"""
    options: ExportOptions
    partition: Optional[datetime]
    partition_period: relativedelta
    min_partition: Optional[datetime]
    now: datetime


def check_query_source(resolved: ResolvedOptions):
    options = resolved.options
    if options.sql_file is None and options.table is None:
        raise ConfigurationError("Either --table or --sqlFile must be configured")
    if options.table is not None:
        check_table_name(options.table)


def check_partition_column(resolved: ResolvedOptions):
    if resolved.options.partition_column is not None and resolved.partition is None:
        raise ConfigurationError(
            "To use --partitionColumn the --partition parameter must also be configured"
        )


def check_split_column(resolved: ResolvedOptions):
    options = resolved.options
    if (options.split_column is None) != (options.query_parallelism is None):
        raise ConfigurationError(
            "Either both --queryParallelism and --splitColumn must be present or none of them"
        )


def check_parallelism(resolved: ResolvedOptions):
    parallelism = resolved.options.query_parallelism
    if parallelism is not None and parallelism <= 0:
        raise ConfigurationError(
            f"Query Parallelism must be a positive number. "
            f"Specified queryParallelism was {parallelism}"
        )


def check_limit(resolved: ResolvedOptions):
    limit = resolved.options.limit
    if limit is not None and limit <= 0:
        raise ConfigurationError(f"--limit must be a positive number, got {limit}")


def minimum_partition(resolved: ResolvedOptions) -> datetime:
    """Oldest allowed partition: --minPartitionPeriod or now minus two partition periods"""
    if resolved.min_partition is not None:
        return resolved.min_partition
    return resolved.now - resolved.partition_period * 2


def check_partition_freshness(resolved: ResolvedOptions):
    options = resolved.options
    # A partition column selects old data through WHERE, so any date is fine
    if options.skip_partition_check or options.partition_column is not None:
        return
    if resolved.partition is None:
        return

    min_partition = minimum_partition(resolved)
    if not resolved.partition > min_partition:
        raise ConfigurationError(
            f"Too old partition date {format_instant(resolved.partition)}. "
            f"Use a partition date >= {format_instant(min_partition)} "
            f"or use --skipPartitionCheck"
        )


Guard = Callable[[ResolvedOptions], None]

GUARDS: Tuple[Guard, ...] = (
    check_query_source,
    check_partition_column,
    check_split_column,
    check_parallelism,
    check_limit,
    check_partition_freshness,
)


def resolve_options(options: ExportOptions, now: Optional[datetime] = None) -> ResolvedOptions:
    """Parse the partition related literals, raising ParseError on bad input"""
    partition_period = (
        parse_period(options.partition_period)
        if options.partition_period is not None
        else DEFAULT_PARTITION_PERIOD
    )
    partition = parse_instant(options.partition) if options.partition is not None else None
    min_partition = (
        parse_instant(options.min_partition_period)
        if options.min_partition_period is not None
        else None
    )
    return ResolvedOptions(
        options=options,
        partition=partition,
        partition_period=partition_period,
        min_partition=min_partition,
        now=now or datetime.now(timezone.utc),
    )


def create_source(options: ExportOptions) -> QuerySource:
    if options.sql_file is not None:
        return RawSqlSource(read_text_file(options.sql_file))
    return TableSource(options.table)


def create_request(options: ExportOptions, now: Optional[datetime] = None) -> ExtractionRequest:
    """
    Validate options and build the ExtractionRequest

    Args:
        options: Raw options from the command line or environment
        now: Reference time for the partition freshness check (default: current UTC time)

    Raises:
        ParseError: if a partition, period or minimum partition literal is invalid
        ConfigurationError: if the options are inconsistent
    """
    resolved = resolve_options(options, now)
    for guard in GUARDS:
        guard(resolved)

    request = ExtractionRequest(
        source=create_source(options),
        table_name=options.table,
        limit=options.limit,
        partition=resolved.partition,
        partition_column=options.partition_column,
        partition_period=resolved.partition_period,
        split_column=options.split_column,
        query_parallelism=options.query_parallelism,
    )
    logger.request_validated(
        "sqlFile" if isinstance(request.source, RawSqlSource) else f"table {options.table}",
        partition=format_instant(request.partition) if request.partition else None,
        split_column=request.split_column,
        parallelism=request.query_parallelism,
    )
    return request
