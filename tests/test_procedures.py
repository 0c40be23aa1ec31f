import pytest

from core.imports import OperationalError, ProgrammingError, IntegrityError
from core.errors import FatalQueryError
from core.procedures import ProcedureRunner, procedure_statement


def test_procedure_statement_names_every_parameter():
    statement = procedure_statement("usp_GetOrderDetails", {"p_StatusFilter": None, "p_MinItems": 0})
    assert str(statement) == "EXEC usp_GetOrderDetails @p_StatusFilter = :p_StatusFilter, @p_MinItems = :p_MinItems"


def test_procedure_statement_without_parameters():
    assert str(procedure_statement("usp_GetAllProductsSimple", {})) == "EXEC usp_GetAllProductsSimple"


def test_procedure_rows_are_returned_without_fallback(engine, monkeypatch):
    runner = ProcedureRunner(engine)
    monkeypatch.setattr(runner, "call", lambda name, params: [{"ID": "O1"}])

    def fallback():
        raise AssertionError("fallback must not run")

    assert runner.run("usp_GetOrderDetails", {}, fallback) == [{"ID": "O1"}]


def test_missing_procedure_falls_back_once(engine):
    # SQLite has no EXEC, so the call fails with OperationalError
    runner = ProcedureRunner(engine)
    calls = []

    def fallback():
        calls.append(1)
        return [{"ID": "O1"}]

    assert runner.run("usp_GetOrderDetails", {"p_MinItems": 0}, fallback) == [{"ID": "O1"}]
    assert calls == [1]


def test_programming_error_falls_back(engine, monkeypatch):
    runner = ProcedureRunner(engine)

    def broken(name, params):
        raise ProgrammingError("EXEC usp_x", {}, Exception("Could not find stored procedure"))

    monkeypatch.setattr(runner, "call", broken)
    assert runner.run("usp_x", {}, lambda: []) == []


def test_integrity_error_is_not_masked(engine, monkeypatch):
    runner = ProcedureRunner(engine)

    def violates(name, params):
        raise IntegrityError("EXEC usp_x", {}, Exception("duplicate key"))

    monkeypatch.setattr(runner, "call", violates)
    with pytest.raises(IntegrityError):
        runner.run("usp_x", {}, lambda: [])


def test_failing_fallback_is_fatal(engine):
    runner = ProcedureRunner(engine)

    def fallback():
        raise OperationalError("SELECT", {}, Exception("no such table: Nope"))

    with pytest.raises(FatalQueryError) as excinfo:
        runner.run("usp_x", {}, fallback)
    assert excinfo.value.status_code == 503
    assert "no such table" in excinfo.value.error


def test_query_returns_dicts(engine):
    rows = ProcedureRunner(engine).query("SELECT 1 AS One, 'a' AS Two")
    assert rows == [{"One": 1, "Two": "a"}]


def test_procedure_statement_suppresses_row_counts():
    statement = procedure_statement("usp_GetProductReviews", {"Barcode": "B1"}, nocount=True)
    assert str(statement) == "SET NOCOUNT ON; EXEC usp_GetProductReviews @Barcode = :Barcode"


def test_row_counts_only_suppressed_on_sql_server(engine):
    assert ProcedureRunner(engine).nocount is False
