"""Integration test fixtures.

Applies the schedule migrations against an ephemeral PostgreSQL database
provided by pytest-postgresql and seeds the reference tables the upload
reads (hardware, operator, obs_app).
"""

from __future__ import annotations

from pathlib import Path

import psycopg
import pytest
from pytest_postgresql import factories

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).parent.parent.parent
MIGRATIONS = [
    PROJECT_ROOT / "migrations" / "0001_schedule_tables.sql",
]

# ---------------------------------------------------------------------------
# pytest-postgresql process fixture
# ---------------------------------------------------------------------------

postgresql_proc = factories.postgresql_proc()
postgresql = factories.postgresql("postgresql_proc")


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------

SEED_SQL = """
INSERT INTO hardware (hardware_id, item_name, type, notes, obsolete) VALUES
  ('10', 'SpeX', 'instrument', NULL, false),
  ('11', 'iSHELL', 'instrument', NULL, false),
  ('12', 'MORIS', 'instrument', 'retired', true),
  ('99', 'TBD', 'instrument', 'placeholder', false);

INSERT INTO operator (operator_id, last_name, first_name, operator_code) VALUES
  ('op1', 'Lopez', 'Ana', 'AL'),
  ('op2', 'Kim', 'Jae', 'JK');

INSERT INTO obs_app (
  program_number, semester_year, semester_code,
  inv_first_name1, inv_last_name1, inv_first_name2, inv_last_name2,
  additional_co_invs, other_info, pi_email, pi_name
) VALUES
  (4, 2025, 'A', 'Ann', 'Smith', 'Bo', 'Lee', NULL, 'Thesis & follow-up', 'ann@example.org', 'Ann Smith'),
  (4, 2024, 'B', 'Old', 'Program', NULL, NULL, NULL, NULL, 'old@example.org', 'Old Program');
"""


# ---------------------------------------------------------------------------
# Schema fixture: applies all migrations and seeds reference data
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def db_conn(postgresql):
    """Return a psycopg connection with schema and reference data applied.

    Each test gets a fresh schema via function scope so tests are isolated.
    """
    dsn = (
        f"host={postgresql.info.host} "
        f"port={postgresql.info.port} "
        f"dbname={postgresql.info.dbname} "
        f"user={postgresql.info.user} "
        f"password={postgresql.info.password or ''}"
    )
    conn = psycopg.connect(dsn, autocommit=True)
    try:
        for migration in MIGRATIONS:
            sql = migration.read_text(encoding="utf-8")
            conn.execute(sql)
        conn.execute(SEED_SQL)
        conn.autocommit = False
        yield conn, dsn
    finally:
        conn.close()
