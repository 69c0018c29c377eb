"""Pydantic schemas for document indexing endpoints."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ReindexResponse(BaseModel):
    document_id: uuid.UUID
    job_id: uuid.UUID
    status: str


class IndexStatusResponse(BaseModel):
    document_id: uuid.UUID
    status: Optional[str] = Field(
        default=None, description="Status of the latest index job, if any."
    )
    error: Optional[str] = None
    last_checksum: Optional[str] = None
    last_indexed_at: Optional[datetime] = None
    up_to_date: bool = Field(
        default=False,
        description="The indexed checksum matches the document's current content.",
    )


class IndexJobSummary(BaseModel):
    queued: int = 0
    processing: int = 0
    failed: int = 0
