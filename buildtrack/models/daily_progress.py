"""
Daily progress model - the activities logged for one project on one day
"""
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from buildtrack.database import Base


class DailyProgress(Base):
    __tablename__ = "daily_progress"
    __table_args__ = (
        UniqueConstraint("project_id", "date", name="uq_daily_progress_project_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)

    # Site notes
    weather_condition = Column(String, nullable=True)
    site_condition = Column(String, nullable=True)
    general_notes = Column(Text, nullable=True)
    crew_size = Column(Integer, nullable=True)

    approved = Column(Boolean, default=False)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    submitted_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    project = relationship("Project")
    activities = relationship(
        "Activity",
        back_populates="daily_progress",
        order_by="Activity.start_date",
        cascade="all, delete-orphan",
    )
