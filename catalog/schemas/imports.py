"""
Pydantic schemas for CSV bulk import.
"""
from pydantic import BaseModel, Field, ConfigDict


class ImportRowFailure(BaseModel):
    """A row that passed the duplicate check but was rejected by storage."""
    row: int
    name: str
    error: str


class ImportResult(BaseModel):
    """Summary of one import run, in file order."""
    model_config = ConfigDict(populate_by_name=True)

    added: int = 0
    skipped_count: int = Field(0, alias="skippedCount")
    skipped: list[str] = Field(default_factory=list)
    failed_count: int = Field(0, alias="failedCount")
    failed: list[ImportRowFailure] = Field(default_factory=list)
