"""
Activity model - a single trackable unit of site work.

An activity belongs either to a schedule phase (planned work) or to a
daily progress record (work logged against a calendar day).
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from buildtrack.database import Base
import enum


class ActivityStatus(str, enum.Enum):
    TODO = "to-do"
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DELAYED = "delayed"
    ON_HOLD = "on_hold"


class ActivityPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ActivityCategory(str, enum.Enum):
    STRUCTURAL = "structural"
    ELECTRICAL = "electrical"
    PLUMBING = "plumbing"
    FINISHING = "finishing"
    OTHER = "other"


class ActivityPhase(str, enum.Enum):
    """Construction phase tag, in delivery order"""
    SITE_PRELIMINARIES = "site_preliminaries"
    CONSTRUCTION = "construction"
    INSTALLATION = "installation"
    SETUP_STYLING = "setup_styling"
    POST_HANDOVER = "post_handover"


PHASE_ORDER = list(ActivityPhase)

ACTIVITY_STATUS_LABELS = {
    ActivityStatus.TODO: "To Do",
    ActivityStatus.PENDING: "Pending",
    ActivityStatus.IN_PROGRESS: "In Progress",
    ActivityStatus.COMPLETED: "Completed",
    ActivityStatus.DELAYED: "Delayed",
    ActivityStatus.ON_HOLD: "On Hold",
}

ACTIVITY_PRIORITY_LABELS = {
    ActivityPriority.LOW: "Low",
    ActivityPriority.MEDIUM: "Medium",
    ActivityPriority.HIGH: "High",
    ActivityPriority.URGENT: "Urgent",
}

ACTIVITY_CATEGORY_LABELS = {
    ActivityCategory.STRUCTURAL: "Structural",
    ActivityCategory.ELECTRICAL: "Electrical",
    ActivityCategory.PLUMBING: "Plumbing",
    ActivityCategory.FINISHING: "Finishing",
    ActivityCategory.OTHER: "Other",
}

ACTIVITY_PHASE_LABELS = {
    ActivityPhase.SITE_PRELIMINARIES: "Site Preliminaries",
    ActivityPhase.CONSTRUCTION: "Construction",
    ActivityPhase.INSTALLATION: "Installation",
    ActivityPhase.SETUP_STYLING: "Set up & Styling",
    ActivityPhase.POST_HANDOVER: "Post Handover",
}


class Activity(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    contractor = Column(String, nullable=False)
    supervisor = Column(String, nullable=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default=ActivityStatus.TODO.value)
    priority = Column(String, nullable=False, default=ActivityPriority.MEDIUM.value)
    category = Column(String, nullable=False, default=ActivityCategory.OTHER.value)
    progress = Column(Integer, nullable=False, default=0)
    images = Column(JSON, nullable=False, default=list)  # storage URLs
    phase = Column(String, nullable=True)  # ActivityPhase tag
    week_number = Column(Integer, nullable=True)
    comments = Column(Text, nullable=True)

    # Exactly one owner is set
    phase_id = Column(Integer, ForeignKey("schedule_phases.id", ondelete="CASCADE"), nullable=True, index=True)
    daily_progress_id = Column(Integer, ForeignKey("daily_progress.id", ondelete="CASCADE"), nullable=True, index=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    schedule_phase = relationship("SchedulePhase", back_populates="activities")
    daily_progress = relationship("DailyProgress", back_populates="activities")
    client_comments = relationship(
        "ActivityComment",
        back_populates="activity",
        order_by="ActivityComment.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
