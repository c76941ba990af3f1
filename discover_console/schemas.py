"""
Pydantic schemas for API request/response models
"""
from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from discover_console.cache import ResourceFamily


class InvalidateRequest(BaseModel):
    """Which cache entries to drop. No family means everything."""
    family: Optional[ResourceFamily] = None
    type_id: Optional[int] = None


class InvalidateResponse(BaseModel):
    """Result of an invalidation."""
    success: bool = True
    removed: int


class DiscoverResponse(BaseModel):
    """Envelope for discover listings served from the preload cache."""
    success: bool = True
    data: List[Dict[str, Any]]
    meta: Dict[str, Any]
