#!/usr/bin/env python3
"""
dbexport command line entry point

Usage:
    dbexport --connectionUrl=postgresql://host/db --table=orders \\
             --partition=2027-07-31 --partitionColumn=created_at \\
             --splitColumn=id --queryParallelism=8 --output=/data/orders
    dbexport ... --dryRun        # print the queries only
"""

import sys
from typing import List, Optional

from dbexport.database_utils import create_data_source_connection, parse_connection_url
from dbexport.enhanced_logger import logger
from dbexport.errors import (
    ConfigurationError,
    DatabaseError,
    ExportError,
    ParseError,
)
from dbexport.exporter import export_queries
from dbexport.options import ExportOptions, parse_args, resolve_password
from dbexport.query_builder import QueryBuilder
from dbexport.validation import create_request

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIGURATION = 2
EXIT_DATABASE = 3


def run(options: ExportOptions, out=None) -> int:
    """Validate, build the queries and either print or execute them"""
    out = out or sys.stdout

    request = create_request(options)
    builder = QueryBuilder(request)

    if options.dry_run and not request.is_split:
        queries = builder.build_queries()
        config = None
    else:
        config = parse_connection_url(options.connection_url, options.username, resolve_password(options))
        if not options.dry_run and not options.output:
            raise ConfigurationError("--output must be configured unless --dryRun is used")

        connection = create_data_source_connection(config) if request.is_split else None
        try:
            queries = builder.build_queries(connection)
        finally:
            if connection is not None:
                connection.close()

    if options.dry_run:
        for query in queries:
            out.write(query + "\n")
        return EXIT_OK

    result = export_queries(
        config,
        queries,
        options.output,
        max_workers=options.max_workers,
        fetch_size=options.fetch_size,
        name=request.export_name,
    )
    out.write(f"Exported {result.rows} rows to {len(result.files)} files in {options.output}\n")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    try:
        options = parse_args(argv)
        return run(options)
    except (ConfigurationError, ParseError) as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIGURATION
    except DatabaseError as e:
        logger.error(f"Database error: {e}")
        return EXIT_DATABASE
    except ExportError as e:
        logger.error(f"Export failed: {e}")
        return EXIT_FAILED


if __name__ == '__main__':
    sys.exit(main())
