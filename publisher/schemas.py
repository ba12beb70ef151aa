"""Pydantic schemas for Bee and GitHub API responses."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class StampResponse(BaseModel):
    """Postage batch as returned by GET /stamps."""
    batch_id: str = Field(alias="batchID")
    batch_ttl: int = Field(alias="batchTTL")
    usable: bool
    label: Optional[str] = None
    depth: Optional[int] = None
    utilization: Optional[int] = None


class StampsResponse(BaseModel):
    """Response model for GET /stamps."""
    stamps: List[StampResponse] = []


class TagResponse(BaseModel):
    """Upload tag as returned by POST /tags and GET /tags/{uid}."""
    uid: int
    split: int = Field(default=0, ge=0)
    seen: int = Field(default=0, ge=0)
    synced: int = Field(default=0, ge=0)
    stored: int = 0
    sent: int = 0


class ReferenceResponse(BaseModel):
    """Response model for uploads returning a Swarm reference."""
    reference: str


class ArtifactResponse(BaseModel):
    """A single GitHub Actions artifact."""
    id: int
    name: str
    created_at: datetime
    expired: bool = False
    size_in_bytes: int = 0


class ArtifactListResponse(BaseModel):
    """Response model for GET /repos/{owner}/{repo}/actions/artifacts."""
    total_count: int = 0
    artifacts: List[ArtifactResponse] = []
