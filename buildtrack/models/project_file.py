"""
Project file library model
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Boolean, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from buildtrack.database import Base
import enum


class FileCategory(str, enum.Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    OTHER = "other"


class ProjectFile(Base):
    __tablename__ = "project_files"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)

    # File metadata
    filename = Column(String, nullable=False)
    original_name = Column(String, nullable=False)
    file_path = Column(String, nullable=False)
    url = Column(String, nullable=False)
    size = Column(Integer, nullable=False, default=0)
    mime_type = Column(String, nullable=True)
    category = Column(String, nullable=False, default=FileCategory.OTHER.value)

    tags = Column(JSON, nullable=False, default=list)
    description = Column(Text, nullable=True)
    is_public = Column(Boolean, default=False)
    download_count = Column(Integer, default=0)
    last_accessed_at = Column(DateTime, nullable=True)

    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    project = relationship("Project")
    uploader = relationship("User")
