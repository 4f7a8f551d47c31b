"""
Data models for Grading Service
"""

from typing import Optional, List
from pydantic import BaseModel, Field, field_validator


class GradingAttribute(BaseModel):
    """Corrected attribute value submitted by a grader"""

    id: int  # attribute id
    name: str = ""
    value: Optional[str] = ""

    @field_validator("value")
    @classmethod
    def normalize_value(cls, v: Optional[str]) -> str:
        return "" if v is None else str(v).strip()


class GradingSubmission(BaseModel):
    product_id: int
    attributes: List[GradingAttribute] = Field(default_factory=list)
    approved: bool


class GradingStats(BaseModel):
    """
    A grader's totals over all of their sessions

    accuracy is measured against the grader: the percentage of graded
    products whose final values equal the AI values (100.0 when nothing is
    graded). It is not an average of ai_confidence, which only measures how
    many attributes the LLM filled in and ignores corrections.
    """

    reviewed: int = 0
    accuracy: float = 100.0
    approved: int = 0
    rejected: int = 0


class GradingResponse(BaseModel):
    message: str
    stats: GradingStats


class GradingSession(BaseModel):
    id: int
    user_id: int
    started_at: str
    completed_at: Optional[str] = None
    graded_count: int = 0
