from sqlalchemy import Column, String, DateTime, Date, Float, Text, Integer, JSON, Index
from ..core.database import Base
from ..utils.timezone import get_naive_now


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    subjects = Column(JSON, default=list)
    # pending, test-assigned, test-completed, approved, rejected
    status = Column(String, default="pending", nullable=False)
    test_score = Column(Float, default=0.0)
    test_result = Column(String, default="pending")
    created_at = Column(DateTime, default=get_naive_now)
    updated_at = Column(DateTime, default=get_naive_now, onupdate=get_naive_now)

    __table_args__ = (
        Index("ix_leave_requests_student_status", "student_id", "status"),
    )
