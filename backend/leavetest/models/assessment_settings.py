from sqlalchemy import Column, DateTime, Float, Boolean, Integer
from ..core.database import Base
from ..utils.timezone import get_naive_now


class AssessmentSettingsRecord(Base):
    """The single persisted configuration row. Absent row means built-in defaults."""
    __tablename__ = "assessment_settings"

    id = Column(Integer, primary_key=True)

    mcq_count = Column(Integer, default=10, nullable=False)
    coding_count = Column(Integer, default=2, nullable=False)
    mcq_time_limit = Column(Integer, default=30, nullable=False)
    coding_time_limit = Column(Integer, default=45, nullable=False)

    passing_percentage = Column(Float, default=70.0, nullable=False)
    round1_passing_percentage = Column(Float, default=60.0, nullable=False)

    max_violations = Column(Integer, default=5, nullable=False)
    auto_submit_on_violation = Column(Boolean, default=True, nullable=False)
    violation_penalty_percent = Column(Float, default=5.0, nullable=False)
    require_fullscreen = Column(Boolean, default=True, nullable=False)

    updated_by = Column(Integer, nullable=True)
    updated_at = Column(DateTime, default=get_naive_now, onupdate=get_naive_now)
