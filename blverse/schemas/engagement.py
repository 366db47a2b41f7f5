# blverse/schemas/engagement.py
"""Request/response schemas for counters (likes, favorites, bookmarks, kudos, hits)."""

from typing import Optional

from pydantic import Field

from ._strict_base import StrictModel, StrictRequestModel


class ToggleResponse(StrictModel):
    active: bool
    count: int


class KudosResponse(StrictModel):
    already_given: bool = Field(..., serialization_alias="alreadyGiven")
    count: int


class HitRequest(StrictRequestModel):
    anon_id: Optional[str] = Field(None, alias="anonId", max_length=64)


class HitResponse(StrictModel):
    deduped: bool
    count: int
