import sys

from psycopg import sql

from db import get_conn
from settings import settings

DDL = '''
CREATE TABLE IF NOT EXISTS {table} (
    id BIGSERIAL PRIMARY KEY,
    doc JSONB NOT NULL,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
);
'''

table = sys.argv[1] if len(sys.argv) > 1 else settings.collection_candidates[0]

print('Connecting to', settings.db_url)
with get_conn() as conn:
    with conn.cursor() as cur:
        cur.execute(sql.SQL(DDL).format(table=sql.Identifier(table)))
    conn.commit()
print('DDL applied to', table)
