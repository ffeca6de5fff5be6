"""
Wanderlust: Listing Form Schema
===============================

What:  Validation model for the `listing[...]` fields of the create/edit
       forms. The optional `listing[image]` upload is handled separately by
       FileService; it is not part of this model.
"""

from pydantic import BaseModel, Field, field_validator


class ListingForm(BaseModel):
    title: str = Field(min_length=1, max_length=200, description="Listing headline")
    description: str = Field(min_length=1, description="Free-text description")
    price: float = Field(ge=0, description="Price per night")
    location: str = Field(min_length=1, max_length=200)
    country: str = Field(min_length=1, max_length=100)

    @field_validator("title", "description", "location", "country", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    model_config = {"extra": "ignore"}
