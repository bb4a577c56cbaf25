# utils/timeline.py
from sqlalchemy.orm import Session

from models import Complaint, TimelineEntry


def append_timeline_entry(
    db: Session,
    complaint: Complaint,
    status: str,
    comment: str,
    author_id,
):
    """Stage a new entry at the end of the complaint's timeline. The caller commits."""
    entry = TimelineEntry(
        status=status,
        comment=comment,
        created_by=author_id,
    )
    complaint.timeline_entries.append(entry)
    db.add(entry)
    return entry
