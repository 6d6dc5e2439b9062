"""Admissions Analytics — Campus Models."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel
from sqlmodel import SQLModel, Field


class Campus(SQLModel, table=True):
    """Managed campus record.

    The table is owned by the hosted database; it is mapped here read-only.
    """

    __tablename__ = "campuses"

    id: Optional[int] = Field(default=None, primary_key=True)
    campus_id: str = Field(index=True, description="Identifier used for filtering")
    campus_name: str = Field(index=True, description="Display name")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CampusOption(BaseModel):
    """A campus as offered in the dashboard filter."""

    campus_id: str
    campus_name: str


class GradeBandEnrollment(BaseModel):
    """Enrolled students in one grade band."""

    grade_band: str
    enrollment_count: int = 0
