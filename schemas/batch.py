"""
Response envelopes for batch endpoints.

These shapes are consumed as-is by existing clients; field names must not change.
"""
from pydantic import BaseModel


class SkippedItem(BaseModel):
    id: str
    reason: str


class BulkStatusResult(BaseModel):
    updated: int
    skipped: list[SkippedItem]


class BulkStatusResponse(BaseModel):
    data: BulkStatusResult


class BulkArchiveResult(BaseModel):
    archived: int
    skipped: list[SkippedItem]


class BulkArchiveResponse(BaseModel):
    data: BulkArchiveResult


class ImportRowError(BaseModel):
    row: int
    message: str
    values: dict[str, str]


class ImportResult(BaseModel):
    created: int
    errors: list[ImportRowError]


class ImportResponse(BaseModel):
    data: ImportResult
