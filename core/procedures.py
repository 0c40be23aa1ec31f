import logging

from core.imports import text, SQLAlchemyError, ProgrammingError, OperationalError
from core.errors import FatalQueryError
from core.db_utils import rows_to_dicts, driver_message

logger = logging.getLogger(__name__)

# What a missing or failing procedure raises. Integrity and data errors are
# not in this list and reach the caller unchanged.
PROCEDURE_FAILURES = (ProgrammingError, OperationalError)


def procedure_statement(name, params, nocount=False):
    assignments = ", ".join(f"@{key} = :{key}" for key in params)
    statement = f"EXEC {name} {assignments}".strip()
    # row-count messages ahead of the SELECT would hide the result set
    if nocount:
        statement = "SET NOCOUNT ON; " + statement
    return text(statement)


class ProcedureRunner:
    """Runs a stored procedure and falls back to an equivalent query when it fails.

    ``run`` tries the procedure on its own pooled connection. If the call
    raises one of ``PROCEDURE_FAILURES`` a warning is logged and ``fallback``
    (a zero-argument callable returning rows) runs instead, exactly once. A
    failing fallback raises ``FatalQueryError``.
    """

    def __init__(self, engine):
        self.engine = engine
        self.nocount = engine.dialect.name == "mssql"

    def call(self, name, params=None):
        params = params or {}
        with self.engine.connect() as conn:
            result = conn.execute(procedure_statement(name, params, self.nocount), params)
            rows = rows_to_dicts(result) if result.returns_rows else []
            conn.commit()
        return rows

    def query(self, sql, params=None):
        with self.engine.connect() as conn:
            return rows_to_dicts(conn.execute(text(sql), params or {}))

    def run(self, name, params, fallback):
        try:
            return self.call(name, params)
        except PROCEDURE_FAILURES as e:
            logger.warning(
                "Failed to execute %s. Falling back to SQL query. Error: %s",
                name, driver_message(e),
            )

        try:
            return fallback()
        except SQLAlchemyError as e:
            logger.error("Fallback query for %s failed: %s", name, driver_message(e))
            raise FatalQueryError("Database query failed.", error=driver_message(e)) from e
