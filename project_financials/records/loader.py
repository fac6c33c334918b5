"""
Record Loader Module

Converts raw rows (dicts from the data layer) into validated records.
"""

import logging
from decimal import Decimal
from typing import Any, Iterable, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .models import ExpenseRecord, LedgerRecord

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)
LedgerT = TypeVar("LedgerT", bound=LedgerRecord)


class RecordValidationError(ValueError):
    """Raised when an input row fails validation at ingestion."""

    def __init__(self, entity: str, index: int, errors: list[dict]):
        self.entity = entity
        self.index = index
        self.errors = errors

        fields = ", ".join(
            ".".join(str(part) for part in error.get("loc", ())) or "<root>"
            for error in errors
        )
        super().__init__(f"Invalid {entity} record at index {index}: {fields}")

    def to_dict(self) -> dict:
        return {
            "entity": self.entity,
            "index": self.index,
            "errors": [
                {
                    "field": ".".join(str(part) for part in error.get("loc", ())),
                    "message": error.get("msg", ""),
                    "type": error.get("type", ""),
                }
                for error in self.errors
            ],
        }


def coerce_records(
    model: type[RecordT],
    rows: Iterable[Any] | None,
    entity: str | None = None,
) -> list[RecordT]:
    """Validate rows into records of the given model.

    Args:
        model: Record model class
        rows: Dicts or already-built model instances
        entity: Entity name used in error reports (defaults to model name)

    Returns:
        List of validated records, in input order

    Raises:
        RecordValidationError: If any row fails validation
    """
    if not rows:
        return []

    entity = entity or model.__name__
    records: list[RecordT] = []

    for index, row in enumerate(rows):
        if isinstance(row, model):
            records.append(row)
            continue

        if isinstance(row, BaseModel):
            row = row.model_dump()

        try:
            records.append(model.model_validate(row))
        except PydanticValidationError as e:
            raise RecordValidationError(entity, index, e.errors(include_url=False)) from e

    return records


def filter_by_project(records: list[LedgerT], project_id: str | None) -> list[LedgerT]:
    """Keep records for one project (None keeps everything)."""
    if project_id is None:
        return list(records)
    return [r for r in records if r.project_id == project_id]


def realized_expenses(expenses: list[ExpenseRecord]) -> list[ExpenseRecord]:
    """Keep only paid/approved expenses."""
    realized = [e for e in expenses if e.is_realized]
    logger.debug(f"{len(realized)} of {len(expenses)} expenses are realized")
    return realized


def money_sum(records: Iterable[Any], attr: str) -> Decimal:
    """Sum a Decimal attribute across records."""
    return sum((getattr(r, attr) for r in records), Decimal("0"))
