from __future__ import annotations

from pydantic import BaseModel, Field


class Annotation(BaseModel):
    start: int = Field(ge=1)
    end: int = Field(ge=1)
    text: str


class Feedback(BaseModel):
    annotations: list[Annotation] = Field(default_factory=list)
    comment: str | None = None
