from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class AssessmentSettings(BaseModel):
    """Immutable settings snapshot handed to every engine operation.

    The defaults are the built-in values used when no settings row is stored.
    """
    model_config = ConfigDict(frozen=True, from_attributes=True)

    mcq_count: int = Field(10, ge=0)
    coding_count: int = Field(2, ge=0)
    mcq_time_limit: int = Field(30, ge=0)
    coding_time_limit: int = Field(45, ge=0)

    passing_percentage: float = Field(70.0, ge=0, le=100)
    round1_passing_percentage: float = Field(60.0, ge=0, le=100)

    max_violations: int = Field(5, ge=1)
    auto_submit_on_violation: bool = True
    violation_penalty_percent: float = Field(5.0, ge=0, le=25)
    require_fullscreen: bool = True


class AssessmentSettingsUpdate(BaseModel):
    mcq_count: Optional[int] = Field(None, ge=0)
    coding_count: Optional[int] = Field(None, ge=0)
    mcq_time_limit: Optional[int] = Field(None, ge=0)
    coding_time_limit: Optional[int] = Field(None, ge=0)
    passing_percentage: Optional[float] = Field(None, ge=0, le=100)
    round1_passing_percentage: Optional[float] = Field(None, ge=0, le=100)
    max_violations: Optional[int] = Field(None, ge=1)
    auto_submit_on_violation: Optional[bool] = None
    violation_penalty_percent: Optional[float] = Field(None, ge=0, le=25)
    require_fullscreen: Optional[bool] = None
