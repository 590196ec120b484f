from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field as PydanticField


class BookmarkCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    coin_id: str = PydanticField(..., alias="coinId", min_length=1, max_length=100)


class VoteCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    coin_id: str = PydanticField(..., alias="coinId", min_length=1, max_length=100)
    vote: Literal[-1, 1]


class SentimentSummary(BaseModel):
    bullish: int = 0
    bearish: int = 0


class VoteResponse(BaseModel):
    vote: Optional[int] = None
