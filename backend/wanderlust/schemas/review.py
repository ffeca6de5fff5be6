"""Validation model for the `review[...]` fields of the review form."""

from pydantic import BaseModel, Field, field_validator


class ReviewForm(BaseModel):
    comment: str = Field(min_length=1, description="Review text")
    rating: int = Field(ge=1, le=5, description="Star rating, 1 to 5")

    @field_validator("comment", mode="before")
    @classmethod
    def strip_comment(cls, v):
        return v.strip() if isinstance(v, str) else v

    model_config = {"extra": "ignore"}
