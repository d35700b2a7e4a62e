#!/usr/bin/env python3
"""
Range-Based Splitting for Parallel Exports
Divides a numeric column's [min, max] domain into contiguous WHERE-clause ranges
"""

import math
import time
from dataclasses import dataclass
from typing import List, Tuple

from dbexport.enhanced_logger import logger
from dbexport.errors import DatabaseError


@dataclass(frozen=True)
class SplitRange:
    """Closed interval [low, high] of split column values handled by one query"""
    low: int
    high: int

    def predicate(self, column: str) -> str:
        return f"{column} >= {self.low} AND {column} <= {self.high}"


def split_range(min_value: int, max_value: int, parallelism: int) -> List[SplitRange]:
    """
    Split [min_value, max_value] into at most `parallelism` contiguous ranges

    Buckets are ceil((max - min) / parallelism) wide. Every bucket except the
    last is closed one below the next bucket's start; the last one is closed
    at max_value, so small domains collapse into fewer, wider ranges instead
    of empty or duplicated ones.

    Args:
        min_value: Smallest observed value of the split column
        max_value: Largest observed value of the split column
        parallelism: Requested upper bound on the number of ranges

    Returns:
        Ranges ordered ascending by low bound
    """
    if parallelism <= 0:
        raise ValueError(f"parallelism must be positive, got {parallelism}")

    if min_value >= max_value:
        # Single value or inverted domain, nothing to split
        return [SplitRange(min_value, max_value)]

    span = max_value - min_value
    bucket_size = max(1, -(-span // parallelism))
    bucket_count = -(-span // bucket_size)

    ranges = []
    for i in range(bucket_count):
        low = min_value + i * bucket_size
        if i == bucket_count - 1:
            high = max_value
        else:
            high = low + bucket_size - 1
        ranges.append(SplitRange(low, high))

    logger.debug(f"Split [{min_value}, {max_value}] into {len(ranges)} ranges "
                 f"(bucket size: {bucket_size}, requested: {parallelism})")
    return ranges


def _as_bound(value, rounding) -> int:
    # NULL bounds (no rows) read as 0
    if value is None:
        return 0
    return int(rounding(value))


def probe_split_bounds(connection, query: str, column: str) -> Tuple[int, int]:
    """
    Find the minimum and maximum of `column` over the rows returned by `query`

    Args:
        connection: DB-API connection
        query: Filtered base query; the probe wraps it as a subquery
        column: Split column name

    Returns:
        Tuple of (min_value, max_value)

    Raises:
        DatabaseError: if the probe query fails
    """
    probe_query = f"SELECT MIN({column}), MAX({column}) FROM ({query})"
    start_time = time.time()

    try:
        cursor = connection.cursor()
        try:
            cursor.execute(probe_query)
            result = cursor.fetchone()
        finally:
            cursor.close()
    except Exception as e:
        raise DatabaseError(f"Failed to probe bounds of {column} with '{probe_query}': {e}") from e

    if not result:
        raise DatabaseError(f"Probe query returned no rows: '{probe_query}'")

    try:
        # Fractional bounds are widened outwards, never truncated
        min_value = _as_bound(result[0], math.floor)
        max_value = _as_bound(result[1], math.ceil)
    except (TypeError, ValueError, OverflowError) as e:
        raise DatabaseError(f"Split column {column} is not numeric: {result[0]!r}, {result[1]!r}") from e

    logger.probe_completed(column, min_value, max_value, time.time() - start_time)
    return min_value, max_value
