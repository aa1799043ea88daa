"""
Resume - one uploaded resume per row; at most one active resume per user.
Original file lives in blob storage (blob_id) or, for legacy rows, at file_url.
"""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, JSON, String, Text

from roman.app.db.base import Base


def new_resume_id() -> str:
    return uuid.uuid4().hex


class Resume(Base):
    __tablename__ = "resumes"

    id = Column(String(32), primary_key=True, default=new_resume_id)
    user_id = Column(String(64), nullable=False, index=True)
    active = Column(Boolean, nullable=False, default=False)

    file_url = Column(String(1024), nullable=True)  # legacy remote URL
    blob_id = Column(String(64), nullable=True, index=True)
    title = Column(String(255), nullable=True)

    # Denormalized copy of the latest parse
    parsed_text = Column(Text, nullable=True)
    structured_data = Column(JSON, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
