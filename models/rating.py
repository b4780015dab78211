# models/rating.py
from pydantic import BaseModel, Field, field_validator

from .user import dedupe


class RatingCreate(BaseModel):
    """Score left by one side of a job for the other."""

    rating: int = Field(ge=1, le=5)
    comment: str
    qualities: list[str] = []

    @field_validator("comment")
    @classmethod
    def comment_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("comment is required")
        return v

    @field_validator("qualities")
    @classmethod
    def unique_qualities(cls, v: list[str]) -> list[str]:
        return dedupe(v)
