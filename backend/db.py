"""
Database connection helper.

This module centralizes how connections are created. Rows come back as
dicts (`dict_row`) because analytics collections do not share a fixed
schema: the repository maps whatever columns a table has.

Usage:
    from db import get_conn
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1;")

Note: switching to a connection pool will change the `get_conn()`
implementation — repository code should remain unchanged.
"""

import psycopg
from psycopg.rows import dict_row
from settings import settings


def get_conn():
    """Return a new psycopg connection using `settings.db_url`.

    A short `connect_timeout` keeps report requests from hanging when
    the database is unreachable; the repository then serves fallback data.
    """

    return psycopg.connect(settings.db_url, connect_timeout=5, row_factory=dict_row)
