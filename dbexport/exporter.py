#!/usr/bin/env python3
"""
Local execution of generated export queries
Runs each statement once on its own connection and writes it to a Parquet file
"""

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

import polars as pl

from dbexport.database_utils import ConnectionConfig, create_data_source_connection
from dbexport.enhanced_logger import logger
from dbexport.errors import DatabaseError


@dataclass
class ExportResult:
    """Summary of a finished export"""
    queries: int = 0
    rows: int = 0
    files: List[Path] = field(default_factory=list)
    duration: float = 0.0


def part_file_name(index: int) -> str:
    return f"part-{index:04d}.parquet"


def _fetch_frame(cursor, fetch_size: int) -> pl.DataFrame:
    """Drain a cursor in fetch_size batches into a single DataFrame"""
    column_names = [desc[0] for desc in cursor.description]
    batches = []

    while True:
        rows = cursor.fetchmany(fetch_size)
        if not rows:
            break
        batches.append(pl.DataFrame(
            [list(row) for row in rows],
            schema=column_names,
            orient="row",
            infer_schema_length=None,
        ))

    if not batches:
        return pl.DataFrame(schema={name: pl.Null for name in column_names})
    return pl.concat(batches, how="vertical_relaxed")


def export_query(config: ConnectionConfig, index: int, query: str, output_dir: Path,
                 fetch_size: int) -> Tuple[int, Path, float]:
    """
    Run one query and write its rows to part-<index>.parquet

    Returns:
        Tuple of (rows_exported, file_path, duration_seconds)
    """
    start_time = time.time()
    chunk_file = output_dir / part_file_name(index)
    connection = create_data_source_connection(config)
    try:
        cursor = connection.cursor()
        try:
            cursor.arraysize = fetch_size
            cursor.execute(query)
            df = _fetch_frame(cursor, fetch_size)
        finally:
            cursor.close()
    except Exception as e:
        raise DatabaseError(f"Query {index} failed: {e}") from e
    finally:
        connection.close()

    df.write_parquet(chunk_file, compression="snappy", use_pyarrow=True)
    return df.height, chunk_file, time.time() - start_time


def export_queries(config: ConnectionConfig, queries: List[str], output_dir: Path,
                   max_workers: int = 4, fetch_size: int = 10000,
                   name: str = "export") -> ExportResult:
    """
    Execute every query once, in parallel, writing one file per query

    Args:
        config: Connection configuration; each worker opens its own connection
        queries: Statements from QueryBuilder.build_queries
        output_dir: Directory for the part files
        max_workers: Maximum concurrent queries
        fetch_size: Rows fetched per round trip
        name: Export label used in log messages

    Returns:
        ExportResult with files ordered like the queries

    Raises:
        DatabaseError: if any query fails (after the others finish)
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    workers = max(1, min(max_workers, len(queries)))
    logger.export_started(name, len(queries), workers)
    start_time = time.time()

    files = {}
    total_rows = 0
    failures = []

    try:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"Export-{name}") as executor:
            future_to_index = {}
            for index, query in enumerate(queries):
                future = executor.submit(export_query, config, index, query, output_dir, fetch_size)
                future_to_index[future] = index

            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    rows, chunk_file, query_duration = future.result()
                except Exception as e:
                    failures.append((index, e))
                    logger.query_failed(index, str(e))
                    continue

                files[index] = chunk_file
                total_rows += rows
                logger.query_completed(index, rows, query_duration)

        duration = time.time() - start_time
        if failures:
            index, error = min(failures, key=lambda failure: failure[0])
            message = f"{len(failures)}/{len(queries)} queries failed, first: query {index}: {error}"
            logger.export_failed(message)
            raise DatabaseError(message) from error

        logger.export_completed(total_rows, duration)
        return ExportResult(
            queries=len(queries),
            rows=total_rows,
            files=[files[i] for i in sorted(files)],
            duration=duration,
        )
    finally:
        logger.clear_export_context()
