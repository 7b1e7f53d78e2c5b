"""
Milestone model
"""
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from buildtrack.database import Base
import enum


class MilestoneStatus(str, enum.Enum):
    UPCOMING = "upcoming"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class MilestonePriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


MILESTONE_STATUS_LABELS = {
    MilestoneStatus.UPCOMING: "Upcoming",
    MilestoneStatus.IN_PROGRESS: "In Progress",
    MilestoneStatus.COMPLETED: "Completed",
    MilestoneStatus.OVERDUE: "Overdue",
}


class Milestone(Base):
    __tablename__ = "milestones"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default=MilestoneStatus.UPCOMING.value)
    progress = Column(Integer, nullable=False, default=0)
    priority = Column(String, nullable=False, default=MilestonePriority.MEDIUM.value)
    dependencies = Column(JSON, nullable=False, default=list)  # milestone ids
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True)
    completed_date = Column(DateTime, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    project = relationship("Project")
    assignee = relationship("User", foreign_keys=[assigned_to])
