"""
Complaint service: creation, role-scoped reads, updates and feedback.

Handlers in ``main.py`` stay thin; every rule about who may do what to a
complaint lives here and in ``permissions``. Functions take the request's
session and the caller's verified ``Identity`` and raise the errors from
``utils.errors``.
"""
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

import permissions
from auth import Identity
from models import PRIORITY_LEVELS, Complaint, Feedback, User, utcnow
from priority import classify_priority
from schemas import ComplaintUpdateSchema
from supabase_client import upload_complaint_image
from utils.errors import Forbidden, InvalidState, NotFound, ValidationError
from utils.logger import get_logger
from utils.timeline import append_timeline_entry

logger = get_logger("complaints")

CREATED_COMMENT = "Complaint created"
UPDATE_FORBIDDEN = "Forbidden: You don't have permission to update this complaint"

# API field name -> model attribute
FIELD_ATTRIBUTES = {
    "title": "title",
    "description": "description",
    "status": "status",
    "priority": "priority",
    "assignedTo": "assigned_to",
}


# ---------------------- SERIALIZATION ----------------------
def _iso(value):
    return value.isoformat() if value else None


def _user_ref(user):
    if user is None:
        return None
    return {"id": str(user.id), "username": user.username}


def serialize_timeline(complaint: Complaint):
    result = []
    for view in complaint.timeline:
        result.append({
            "status": view.status,
            "comment": view.comment,
            "timestamp": _iso(view.timestamp),
            "createdBy": {"id": str(view.created_by), "username": view.author_username},
        })
    return result


def serialize_feedback(feedback):
    if feedback is None:
        return None
    return {
        "rating": feedback.rating,
        "comment": feedback.comment,
        "createdAt": _iso(feedback.created_at),
        "updatedAt": _iso(feedback.updated_at),
    }


def _field_value(complaint: Complaint, field: str):
    if field == "createdBy":
        return _user_ref(complaint.creator)
    if field == "assignedTo":
        return _user_ref(complaint.assignee)
    if field == "imageUrl":
        return complaint.image_url
    if field == "timeline":
        return serialize_timeline(complaint)
    if field == "feedback":
        return serialize_feedback(complaint.feedback)
    return getattr(complaint, field)


def serialize_list_item(complaint: Complaint, role: str):
    item = {"id": str(complaint.id)}
    for field in permissions.list_projection(role):
        item[field] = _field_value(complaint, field)
    item["createdAt"] = _iso(complaint.created_at)
    return item


def serialize_detail(complaint: Complaint, role: str):
    item = {"id": str(complaint.id)}
    for field in permissions.FIELDS:
        if permissions.can_read(role, field):
            item[field] = _field_value(complaint, field)
    item["createdAt"] = _iso(complaint.created_at)
    item["updatedAt"] = _iso(complaint.updated_at)
    return item


# ---------------------- LOOKUPS ----------------------
def load_complaint(db: Session, complaint_id) -> Complaint:
    try:
        complaint_uuid = complaint_id if isinstance(complaint_id, UUID) else UUID(str(complaint_id))
    except ValueError:
        raise NotFound("Complaint not found")

    complaint = db.query(Complaint).filter(Complaint.id == complaint_uuid).first()
    if not complaint:
        raise NotFound("Complaint not found")
    return complaint


def resolve_support_staff(db: Session, email: str) -> User:
    staff = db.query(User).filter(User.email == email.strip().lower()).first()
    if not staff or staff.role != "supportStaff":
        raise ValidationError("Invalid assignedTo: No support staff found with that email")
    return staff


def _require_text(value, field):
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required")
    return text


# ---------------------- CREATE ----------------------
def create_complaint(db: Session, identity: Identity, title: str, description: str, image=None) -> Complaint:
    """
    File a new complaint for the calling user.

    ``image`` is an optional ``(data, content_type, filename)`` triple; it is
    uploaded to object storage and only the URL is kept. The priority comes
    from the classifier, which never fails the request.
    """
    if identity.role != "user":
        raise Forbidden("Forbidden: Only users can create complaints")

    title = _require_text(title, "title")
    description = _require_text(description, "description")

    image_url = None
    if image is not None:
        data, content_type, filename = image
        image_url = upload_complaint_image(data, content_type, filename)
        logger.info("Image uploaded for user %s", identity.user_id, extra={"user_id": str(identity.user_id)})

    complaint = Complaint(
        title=title,
        description=description,
        status="open",
        priority=classify_priority(title, description),
        image_url=image_url,
        created_by=identity.user_id,
    )
    db.add(complaint)
    append_timeline_entry(db, complaint, "open", CREATED_COMMENT, identity.user_id)
    db.commit()
    db.refresh(complaint)

    logger.info(
        "Complaint created successfully by user %s: %s", identity.user_id, title,
        extra={"user_id": str(identity.user_id), "complaint_id": str(complaint.id)},
    )
    return complaint


# ---------------------- READ ----------------------
def list_complaints(db: Session, identity: Identity, status=None, priority=None, q=None):
    query = db.query(Complaint)

    if identity.role == "admin":
        pass
    elif identity.role == "supportStaff":
        query = query.filter(Complaint.assigned_to == identity.user_id)
    elif identity.role == "user":
        query = query.filter(Complaint.created_by == identity.user_id)
    else:
        raise Forbidden()

    if status:
        query = query.filter(Complaint.status == status)
    if priority:
        query = query.filter(Complaint.priority == priority)
    if q:
        query = query.filter(or_(
            Complaint.title.icontains(q, autoescape=True),
            Complaint.description.icontains(q, autoescape=True),
        ))

    complaints = query.order_by(Complaint.created_at.desc()).all()
    return [serialize_list_item(c, identity.role) for c in complaints]


def get_complaint(db: Session, identity: Identity, complaint_id):
    """Return ``(complaint_payload, assignee_email)`` for a permitted caller."""
    complaint = load_complaint(db, complaint_id)
    if not permissions.can_view(identity.role, identity.user_id, complaint):
        raise Forbidden()

    assignee_email = complaint.assignee.email if complaint.assignee else None
    return serialize_detail(complaint, identity.role), assignee_email


# ---------------------- UPDATE ----------------------
def _generated_comment(field, value):
    if field == "assignedTo":
        return "Complaint reassigned"
    if field == "title":
        return "Title updated"
    if field == "description":
        return "Description updated"
    if field == "status":
        return f"Status changed to {value}"
    return f"Priority changed to {value}"


def _resolve_value(db: Session, field, value):
    if field == "assignedTo":
        return resolve_support_staff(db, value).id
    if field in ("title", "description"):
        return value.strip()
    if field == "status" and not permissions.is_valid_status(value):
        raise ValidationError(f"Invalid status: {value}")
    if field == "priority" and value not in PRIORITY_LEVELS:
        raise ValidationError(f"Invalid priority: {value}")
    return value


def update_complaint(db: Session, identity: Identity, complaint_id, changes: ComplaintUpdateSchema):
    """
    Full update. Each role writes only its permitted fields; others are
    ignored. A timeline entry is appended when a value actually changed or a
    comment was supplied, otherwise the complaint is left untouched.
    """
    complaint = load_complaint(db, complaint_id)

    if identity.role not in permissions.ROLES:
        raise Forbidden("Unauthorized action")
    if not permissions.can_modify(identity.role, identity.user_id, complaint):
        raise Forbidden(UPDATE_FORBIDDEN)

    requested = changes.model_dump(by_alias=True, exclude_none=True)
    comment = (requested.pop("comment", None) or "").strip() or None

    ignored = [f for f in requested if not permissions.can_write(identity.role, f)]
    if ignored:
        logger.debug("Ignoring fields %s for role %s", ignored, identity.role)

    generated = None
    for field in permissions.writable_fields(identity.role):
        value = requested.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue

        new_value = _resolve_value(db, field, value)
        attribute = FIELD_ATTRIBUTES[field]
        if getattr(complaint, attribute) == new_value:
            continue

        setattr(complaint, attribute, new_value)
        generated = generated or _generated_comment(field, new_value)

    timeline_comment = comment or generated
    if timeline_comment is None:
        logger.info("No changes for complaint %s", complaint.id, extra={"complaint_id": str(complaint.id)})
        return complaint

    append_timeline_entry(db, complaint, complaint.status, timeline_comment, identity.user_id)
    db.commit()
    db.refresh(complaint)

    logger.info(
        "Complaint updated successfully by user %s: %s", identity.user_id, complaint.id,
        extra={"user_id": str(identity.user_id), "complaint_id": str(complaint.id)},
    )
    return complaint


def update_status(db: Session, identity: Identity, complaint_id, status: str, comment=None):
    """Status-only update for staff; unlike the full update, a no-op is an error."""
    if identity.role not in ("admin", "supportStaff"):
        raise Forbidden()

    complaint = load_complaint(db, complaint_id)
    if identity.role == "supportStaff" and not permissions.is_assignee(identity.user_id, complaint):
        raise Forbidden(UPDATE_FORBIDDEN)

    if not permissions.is_valid_status(status):
        raise ValidationError(f"Invalid status: {status}")
    if not permissions.is_valid_transition(complaint.status, status, require_change=True):
        raise InvalidState(f"Complaint is already marked as {status}")

    complaint.status = status
    comment = (comment or "").strip() or f"Status changed to {status}"
    append_timeline_entry(db, complaint, status, comment, identity.user_id)
    db.commit()
    db.refresh(complaint)

    logger.info(
        "Complaint status updated successfully by user %s: %s", identity.user_id, complaint.id,
        extra={"user_id": str(identity.user_id), "complaint_id": str(complaint.id)},
    )
    return complaint


# ---------------------- FEEDBACK ----------------------
def submit_feedback(db: Session, identity: Identity, complaint_id, rating: int, comment=None) -> Feedback:
    if identity.role != "user":
        raise Forbidden("Forbidden: Only users can provide feedback")

    complaint = load_complaint(db, complaint_id)
    if not permissions.is_creator(identity.user_id, complaint):
        raise Forbidden("Forbidden: You don't have permission to provide feedback for this complaint")
    if not permissions.can_leave_feedback(complaint.status):
        raise InvalidState("Feedback can only be provided for resolved or closed complaints")
    if not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("rating must be between 1 and 5")

    feedback = complaint.feedback
    if feedback is None:
        feedback = Feedback(complaint_id=complaint.id, rating=rating, comment=comment)
        db.add(feedback)
    else:
        # Singleton: last write wins
        feedback.rating = rating
        feedback.comment = comment
        feedback.updated_at = utcnow()

    db.commit()
    db.refresh(feedback)

    logger.info(
        "Feedback added successfully by user %s for complaint %s", identity.user_id, complaint.id,
        extra={"user_id": str(identity.user_id), "complaint_id": str(complaint.id)},
    )
    return feedback
