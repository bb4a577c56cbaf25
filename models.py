from datetime import datetime, timezone
import uuid

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import relationship

from database import Base
from schemas import TimelineEntryView

COMPLAINT_STATUSES = ("open", "assigned", "inProgress", "resolved", "closed")
PRIORITY_LEVELS = ("low", "medium", "high", "critical")


def utcnow():
    return datetime.now(timezone.utc)


# ------------------------------------
# USERS TABLE
# ------------------------------------
class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(150), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)  # bcrypt hash
    role = Column(
        String(20),
        nullable=False,
        default="user",
        server_default=text("'user'")
    )  # user, supportStaff, admin
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


# ------------------------------------
# COMPLAINTS TABLE
# ------------------------------------
class Complaint(Base):
    __tablename__ = "complaints"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(
        String(20),
        nullable=False,
        default="open",
        server_default=text("'open'")
    )
    priority = Column(
        String(20),
        nullable=False,
        default="medium",
        server_default=text("'medium'")
    )
    image_url = Column(String(1024), nullable=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    assigned_to = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    creator = relationship("User", foreign_keys=[created_by], lazy="joined")
    assignee = relationship("User", foreign_keys=[assigned_to], lazy="joined")
    timeline_entries = relationship(
        "TimelineEntry",
        back_populates="complaint",
        order_by="TimelineEntry.id",
        cascade="save-update, merge",
    )
    feedback = relationship("Feedback", back_populates="complaint", uselist=False)

    @property
    def timeline(self):
        """Frozen snapshot of the entries in insertion order. Append through utils.timeline only."""
        return tuple(
            TimelineEntryView(
                status=entry.status,
                comment=entry.comment,
                timestamp=entry.timestamp,
                created_by=entry.created_by,
                author_username=entry.author.username if entry.author else None,
            )
            for entry in self.timeline_entries
        )


# ------------------------------------
# COMPLAINT TIMELINE TABLE (append-only)
# ------------------------------------
class TimelineEntry(Base):
    __tablename__ = "complaint_timeline"

    id = Column(Integer, primary_key=True, autoincrement=True)
    complaint_id = Column(Uuid(as_uuid=True), ForeignKey("complaints.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    comment = Column(Text, nullable=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    complaint = relationship("Complaint", back_populates="timeline_entries")
    author = relationship("User", lazy="joined")


# ------------------------------------
# COMPLAINT FEEDBACK TABLE (one per complaint)
# ------------------------------------
class Feedback(Base):
    __tablename__ = "complaint_feedback"

    id = Column(Integer, primary_key=True, autoincrement=True)
    complaint_id = Column(Uuid(as_uuid=True), ForeignKey("complaints.id"), nullable=False, unique=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    complaint = relationship("Complaint", back_populates="feedback")
