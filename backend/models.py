import datetime as dt
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.types import JSON

from .db import Base


class SubmissionRecord(Base):
    __tablename__ = "submissions"

    id = Column(String, primary_key=True, index=True)
    submission_id = Column(String, unique=True, index=True)
    owner_user_id = Column(String, index=True)
    state_ut = Column(String, index=True)
    status = Column(String, index=True, default="DRAFT")

    form_data = Column(JSON)
    review_comments = Column(JSON)
    rejection_count = Column(Integer, default=0)

    created_at = Column(DateTime, default=dt.datetime.utcnow)
    updated_at = Column(DateTime, default=dt.datetime.utcnow)
    version = Column(Integer, default=1, nullable=False)


class AuditEvent(Base):
    __tablename__ = "audit_log"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String, unique=True, index=True)
    entity_type = Column(String, index=True)
    entity_id = Column(String, index=True)
    action = Column(String, index=True)
    actor_user_id = Column(String, index=True)
    actor_role = Column(String)
    timestamp = Column(DateTime, default=dt.datetime.utcnow)
    details = Column(JSON)
