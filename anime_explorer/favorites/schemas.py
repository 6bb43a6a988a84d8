"""Pydantic schemas for favorites API."""
from pydantic import BaseModel, ConfigDict, Field

from anime_explorer.config import MAX_ANIME_ID


class FavoriteToggle(BaseModel):
    """Request body for adding or removing a favorite."""
    anime_id: int = Field(
        ...,
        alias="animeId",
        gt=0,
        le=MAX_ANIME_ID,
        description="External catalog id of the anime"
    )

    model_config = ConfigDict(populate_by_name=True)


class SuccessResponse(BaseModel):
    """Acknowledgement of a favorite mutation."""
    success: bool = True
