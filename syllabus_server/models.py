"""
Wire models for the syllabus extraction call.

The extraction service speaks camelCase JSON; these pydantic models accept
either the camelCase alias or the Python field name.
"""
from __future__ import annotations

import typing as t

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExtractionRequest(BaseModel):
    """Request payload: the raw syllabus text plus the course it belongs to."""
    model_config = ConfigDict(populate_by_name=True)

    syllabus_text: str = Field(alias="syllabusText")
    course_code: str = Field(default="", alias="courseCode")
    course_title: str = Field(default="", alias="courseTitle")


class ExtractedAssignment(BaseModel):
    """
    One assignment as returned by the model. Values are loose strings; the
    review step turns them into real assignments.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = ""
    type: str = "Other"
    due_date: str = Field(default="", alias="dueDate")     # "YYYY-MM-DD"
    due_time: t.Optional[str] = Field(default=None, alias="dueTime")  # "HH:MM AM/PM"
    weight: t.Optional[float] = None
    notes: t.Optional[str] = None

    @field_validator("title", "type", "due_date", mode="before")
    @classmethod
    def _none_to_empty(cls, value: t.Any) -> t.Any:
        return "" if value is None else value

    @field_validator("weight", mode="before")
    @classmethod
    def _lenient_weight(cls, value: t.Any) -> t.Optional[float]:
        # Models sometimes answer "10%" or "10 points"
        if value is None or isinstance(value, (int, float)):
            return value
        text = str(value).strip().rstrip("%").split(" ")[0]
        try:
            return float(text)
        except ValueError:
            return None


class ExtractionResponse(BaseModel):
    """An empty list is a valid answer meaning nothing was found."""
    assignments: list[ExtractedAssignment] = Field(default_factory=list)
