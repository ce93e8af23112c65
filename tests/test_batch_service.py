import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from core.exceptions import NotFoundError
from schemas.imports import CustomerImportRow
from services.batch_service import describe_error, run_batch


def test_every_item_attempted_once_in_order():
    seen = []

    def operation(item):
        seen.append(item)
        if item % 2:
            raise ValueError(f"odd {item}")
        return item * 10

    result = run_batch([1, 2, 3, 4], operation)

    assert seen == [1, 2, 3, 4]
    assert result.succeeded == [20, 40]
    assert [(s.identifier, s.reason) for s in result.skipped] == [(1, "odd 1"), (3, "odd 3")]
    assert result.total == 4


def test_identify_and_values_are_reported_for_skips():
    rows = [{"code": "A"}, {"code": ""}]

    def operation(row):
        if not row["code"]:
            raise HTTPException(status_code=422, detail="code is required")
        return row["code"]

    result = run_batch(rows, operation, identify=lambda index, row: index + 2, values=dict)

    assert result.succeeded_count == 1
    skipped = result.skipped[0]
    assert skipped.identifier == 3
    assert skipped.reason == "code is required"
    assert skipped.values == {"code": ""}


def test_rollback_runs_after_each_failed_item():
    rollbacks = []

    def operation(item):
        if item == "bad":
            raise NotFoundError("Damage report")
        return item

    run_batch(["ok", "bad", "ok", "bad"], operation, rollback=lambda: rollbacks.append(True))

    assert len(rollbacks) == 2


def test_database_errors_are_skipped_with_generic_reason():
    def operation(item):
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    result = run_batch(["x"], operation)

    assert result.skipped[0].reason == "Database error"


def test_unexpected_errors_propagate():
    def operation(item):
        raise KeyError(item)

    with pytest.raises(KeyError):
        run_batch(["x"], operation)


def test_empty_batch():
    result = run_batch([], lambda item: item)
    assert result.succeeded == []
    assert result.skipped == []


def test_describe_error_prefers_http_detail():
    assert describe_error(NotFoundError("Customer")) == "Customer not found"
    assert describe_error(ValueError()) == "ValueError"


def test_pydantic_errors_report_only_the_first_message():
    def operation(row):
        return CustomerImportRow.model_validate(row)

    result = run_batch([{"name": "", "code": "X1", "email": "bad"}], operation)

    assert result.skipped[0].reason == "name is required"
    assert "validation error" not in result.skipped[0].reason
