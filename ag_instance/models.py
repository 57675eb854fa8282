"""Typed response shapes and per-boot records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class ScoredPoint(BaseModel):
    """One similarity search hit."""

    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    score: float
    payload: Optional[Dict[str, Any]] = None


class SearchResponse(BaseModel):
    """Envelope returned by the points search endpoint."""

    model_config = ConfigDict(extra="ignore")

    result: List[ScoredPoint]
    status: Optional[str] = None


class CollectionInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    points_count: StrictInt = Field(ge=0)
    status: Optional[str] = None


class CollectionInfoResponse(BaseModel):
    """Envelope returned by the collection info endpoint."""

    model_config = ConfigDict(extra="ignore")

    result: CollectionInfo


@dataclass(frozen=True)
class BootRecord:
    """Metrics captured for one start-to-stop lifecycle of an instance."""

    label: str
    ready_latency_ms: int
    rss_kb_at_ready: int | None = None
    rss_kb_after_workload: int | None = None
