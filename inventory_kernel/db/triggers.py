"""
Module: inventory_kernel.db.triggers
Responsibility: Installing, verifying and removing the database-level
    append-only triggers on the ledger table.  This is the database-level
    complement to the ORM listeners in db/immutability.py.
Architecture position: Kernel > DB.  May import from db/ only.

Invariants enforced:
    LEDGER_APPEND_ONLY -- inventory_transactions rows: no UPDATE, no DELETE.

Failure modes:
    - PostgreSQL RAISE EXCEPTION / SQLite RAISE(ABORT) on a violating
      statement, surfaced by SQLAlchemy as IntegrityError or
      DatabaseError depending on the driver.

Audit relevance:
    Even if the ORM layer is bypassed (raw SQL, bulk operations, direct
    database access) the ledger cannot be rewritten.
"""

from sqlalchemy import bindparam, inspect, text
from sqlalchemy.engine import Engine

LEDGER_TABLE = "inventory_transactions"

ALL_TRIGGER_NAMES = [
    "trg_inventory_transaction_no_update",
    "trg_inventory_transaction_no_delete",
]

# PostgreSQL: one function shared by both triggers.
_POSTGRES_INSTALL = [
    """
    CREATE OR REPLACE FUNCTION inventory_ledger_append_only()
    RETURNS TRIGGER AS $$
    BEGIN
        RAISE EXCEPTION 'IMMUTABILITY_VIOLATION: % on inventory_transactions is not allowed', TG_OP
            USING ERRCODE = 'integrity_constraint_violation';
    END;
    $$ LANGUAGE plpgsql
    """,
    "DROP TRIGGER IF EXISTS trg_inventory_transaction_no_update ON inventory_transactions",
    """
    CREATE TRIGGER trg_inventory_transaction_no_update
    BEFORE UPDATE ON inventory_transactions
    FOR EACH ROW EXECUTE FUNCTION inventory_ledger_append_only()
    """,
    "DROP TRIGGER IF EXISTS trg_inventory_transaction_no_delete ON inventory_transactions",
    """
    CREATE TRIGGER trg_inventory_transaction_no_delete
    BEFORE DELETE ON inventory_transactions
    FOR EACH ROW EXECUTE FUNCTION inventory_ledger_append_only()
    """,
]

_POSTGRES_UNINSTALL = [
    "DROP TRIGGER IF EXISTS trg_inventory_transaction_no_update ON inventory_transactions",
    "DROP TRIGGER IF EXISTS trg_inventory_transaction_no_delete ON inventory_transactions",
    "DROP FUNCTION IF EXISTS inventory_ledger_append_only()",
]

# SQLite: pysqlite executes one statement per call, so each trigger is a
# single CREATE statement.
_SQLITE_INSTALL = [
    """
    CREATE TRIGGER IF NOT EXISTS trg_inventory_transaction_no_update
    BEFORE UPDATE ON inventory_transactions
    BEGIN
        SELECT RAISE(ABORT, 'IMMUTABILITY_VIOLATION: UPDATE on inventory_transactions is not allowed');
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_inventory_transaction_no_delete
    BEFORE DELETE ON inventory_transactions
    BEGIN
        SELECT RAISE(ABORT, 'IMMUTABILITY_VIOLATION: DELETE on inventory_transactions is not allowed');
    END
    """,
]

_SQLITE_UNINSTALL = [
    "DROP TRIGGER IF EXISTS trg_inventory_transaction_no_update",
    "DROP TRIGGER IF EXISTS trg_inventory_transaction_no_delete",
]

_STATEMENTS = {
    "postgresql": (_POSTGRES_INSTALL, _POSTGRES_UNINSTALL),
    "sqlite": (_SQLITE_INSTALL, _SQLITE_UNINSTALL),
}


def _statements_for(engine: Engine) -> tuple[list[str], list[str]]:
    try:
        return _STATEMENTS[engine.dialect.name]
    except KeyError:
        raise NotImplementedError(
            f"No ledger triggers defined for dialect {engine.dialect.name!r}"
        ) from None


def install_immutability_triggers(engine: Engine) -> None:
    """
    Install database-level append-only triggers on the ledger table.

    Preconditions: Tables must exist (call after create_all()).
    Postconditions: Every trigger in ALL_TRIGGER_NAMES is installed.
        Installation is idempotent.
    """
    install, _ = _statements_for(engine)
    with engine.connect() as conn:
        for statement in install:
            conn.execute(text(statement))
        conn.commit()


def uninstall_immutability_triggers(engine: Engine) -> None:
    """
    Remove the append-only triggers.

    WARNING: Only for teardown and migrations.  Re-install immediately.
    """
    _, uninstall = _statements_for(engine)
    if not inspect(engine).has_table(LEDGER_TABLE):
        # PostgreSQL rejects DROP TRIGGER ... ON a missing table, even IF EXISTS
        uninstall = [s for s in uninstall if "DROP TRIGGER" not in s]
    with engine.connect() as conn:
        for statement in uninstall:
            conn.execute(text(statement))
        conn.commit()


def get_installed_triggers(engine: Engine) -> list[str]:
    """Get the installed append-only triggers, sorted by name."""
    if engine.dialect.name == "postgresql":
        query = "SELECT tgname FROM pg_trigger WHERE tgname IN :names ORDER BY tgname"
    else:
        query = (
            "SELECT name FROM sqlite_master WHERE type = 'trigger' "
            "AND name IN :names ORDER BY name"
        )
    stmt = text(query).bindparams(bindparam("names", expanding=True))
    with engine.connect() as conn:
        return [row[0] for row in conn.execute(stmt, {"names": ALL_TRIGGER_NAMES})]


def triggers_installed(engine: Engine) -> bool:
    """Check if all append-only triggers are installed."""
    return set(get_installed_triggers(engine)) == set(ALL_TRIGGER_NAMES)
