"""
Project and schedule phase models
"""
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from buildtrack.database import Base
import enum


class ProjectStatus(str, enum.Enum):
    PLANNING = "planning"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"
    CANCELLED = "cancelled"


class PhaseStatus(str, enum.Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"
    DELAYED = "delayed"


PROJECT_STATUS_LABELS = {
    ProjectStatus.PLANNING: "Planning",
    ProjectStatus.IN_PROGRESS: "In Progress",
    ProjectStatus.COMPLETED: "Completed",
    ProjectStatus.ON_HOLD: "On Hold",
    ProjectStatus.CANCELLED: "Cancelled",
}

PHASE_STATUS_LABELS = {
    PhaseStatus.UPCOMING: "Upcoming",
    PhaseStatus.ACTIVE: "Active",
    PhaseStatus.COMPLETED: "Completed",
    PhaseStatus.DELAYED: "Delayed",
}


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    site_address = Column(String, nullable=True)
    status = Column(String, nullable=False, default=ProjectStatus.PLANNING.value)
    progress = Column(Integer, nullable=False, default=0)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    manager_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    manager = relationship("User", foreign_keys=[manager_id])
    client = relationship("User", foreign_keys=[client_id])
    phases = relationship(
        "SchedulePhase",
        back_populates="project",
        order_by="SchedulePhase.start_date",
        cascade="all, delete-orphan",
    )


class SchedulePhase(Base):
    __tablename__ = "schedule_phases"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default=PhaseStatus.UPCOMING.value)
    progress = Column(Integer, nullable=False, default=0)
    dependencies = Column(JSON, nullable=False, default=list)  # phase ids
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    project = relationship("Project", back_populates="phases")
    activities = relationship(
        "Activity",
        back_populates="schedule_phase",
        order_by="Activity.start_date",
        cascade="all, delete-orphan",
    )
