"""API Request and Response Schemas

Request bodies keep numbers strict so that ``true`` is never accepted as a
weight or percentage; range checks happen in the domain services.
"""

from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, StrictFloat, StrictInt

Number = Union[StrictInt, StrictFloat]


class Envelope(BaseModel):
    """Standard response envelope; `status` is 1 on success and 0 on failure."""

    success: bool
    status: int = Field(..., description="1 on success, 0 on failure")
    code: str
    message: str
    data: Optional[Any] = None


class FingerprintRequest(BaseModel):
    fingerprint: str = Field(..., description="Opaque per-device identifier", max_length=128)


class SearchKeywordRequest(BaseModel):
    keyword: str = Field(..., description="Visitor search term", max_length=200)
    fingerprint: Optional[str] = Field(None, max_length=128)


class SetWeightRequest(BaseModel):
    weight: Number = Field(..., description="New non-negative weight; floats are floored")


class DemoteRequest(BaseModel):
    percentage: Number = Field(..., description="Demotion percentage in (0, 100]")


class PromoteRequest(BaseModel):
    amount: Number = Field(..., description="Percentage (capped at 1000) or fixed amount")
    mode: Literal["percentage", "fixed"] = "percentage"


class SetLikesRequest(BaseModel):
    total: StrictInt = Field(..., description="New total like count")


class BatchIdsRequest(BaseModel):
    channel_ids: List[str] = Field(..., min_length=1)


class BatchDemoteRequest(BatchIdsRequest):
    percentage: Number


class BatchPromoteRequest(BatchIdsRequest):
    amount: Number
    mode: Literal["percentage", "fixed"] = "percentage"


class LanguageDemoteRequest(BaseModel):
    language_code: str = Field(..., min_length=2, max_length=8)
    demote_percent: StrictInt = Field(..., description="Integer percentage in (0, 100]")


class AddChannelsRequest(BaseModel):
    usernames: str = Field(
        ...,
        description="One or more @name, t.me/name or URLs separated by whitespace or commas",
        max_length=20000,
    )
