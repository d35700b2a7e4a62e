"""
dbexport - turns a table/query export request into the SQL statements to run
"""

__version__ = "0.1.0"
