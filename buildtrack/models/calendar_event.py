"""
Calendar event model
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime
from buildtrack.database import Base
import enum


class EventType(str, enum.Enum):
    MEETING = "meeting"
    DEADLINE = "deadline"
    INSPECTION = "inspection"
    DELIVERY = "delivery"
    MILESTONE = "milestone"


class CalendarEvent(Base):
    __tablename__ = "calendar_events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, nullable=False, default=EventType.MEETING.value)
    start = Column("starts_at", DateTime, nullable=False, index=True)
    end = Column("ends_at", DateTime, nullable=False)
    location = Column(String, nullable=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True)
    visible_to_client = Column(Boolean, default=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    project = relationship("Project")
