"""
Generic per-item batch execution.

Bulk status change, bulk archive and every CSV import run through ``run_batch``:
each item is attempted exactly once, in input order, and an item that fails is
recorded as skipped instead of aborting the rest of the batch.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from schemas.imports import first_error_message

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# Per-item failures that become skipped entries; anything else is a bug and propagates
ITEM_ERRORS: tuple[type[BaseException], ...] = (HTTPException, SQLAlchemyError, ValueError)


@dataclass
class SkippedItem:
    identifier: Any
    reason: str
    values: Optional[dict] = None


@dataclass
class BatchResult(Generic[R]):
    succeeded: list[R] = field(default_factory=list)
    skipped: list[SkippedItem] = field(default_factory=list)

    @property
    def succeeded_count(self) -> int:
        return len(self.succeeded)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.skipped)


def describe_error(exc: BaseException) -> str:
    if isinstance(exc, HTTPException):
        return str(exc.detail)
    if isinstance(exc, SQLAlchemyError):
        return "Database error"
    if isinstance(exc, ValidationError):
        return first_error_message(exc)
    return str(exc) or exc.__class__.__name__


def run_batch(
    items: Iterable[T],
    operation: Callable[[T], R],
    *,
    identify: Callable[[int, T], Any] = lambda index, item: item,
    values: Optional[Callable[[T], dict]] = None,
    rollback: Optional[Callable[[], None]] = None,
    label: str = "batch",
) -> BatchResult[R]:
    """
    Apply ``operation`` to every item, collecting results and skips.

    ``identify`` maps (index, item) to what the caller reports back (an id or a
    CSV row number). ``rollback`` runs after a failed item so none of its
    partial writes survive.
    """
    result: BatchResult[R] = BatchResult()

    for index, item in enumerate(items):
        try:
            outcome = operation(item)
        except ITEM_ERRORS as exc:
            if rollback is not None:
                rollback()
            reason = describe_error(exc)
            if isinstance(exc, SQLAlchemyError):
                log.warning("%s: item %s failed on the database: %s", label, identify(index, item), exc)
            result.skipped.append(
                SkippedItem(
                    identifier=identify(index, item),
                    reason=reason,
                    values=values(item) if values is not None else None,
                )
            )
            continue
        result.succeeded.append(outcome)

    log.info("%s finished: %s succeeded, %s skipped", label, result.succeeded_count, len(result.skipped))
    return result
