"""Pydantic schemas for hybrid search."""

import uuid
from typing import List, Optional

from pydantic import BaseModel, Field


class SearchQuery(BaseModel):
    tenant_id: uuid.UUID
    q: str = Field(..., max_length=500, description="Free-text query.")
    limit: int = Field(default=10, ge=1, le=50)
    offset: int = Field(default=0, ge=0)


class SearchResultItem(BaseModel):
    document_id: uuid.UUID = Field(..., alias="id")
    title: str
    snippet: Optional[str] = None
    score: float

    model_config = {"populate_by_name": True}


class SearchResponse(BaseModel):
    items: List[SearchResultItem] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10
    no_strong_matches: bool = Field(
        default=False,
        description="Only weak semantic candidates were found, so none are returned.",
    )
    degraded: bool = Field(
        default=False,
        description="Semantic retrieval was unavailable; results are lexical only.",
    )
