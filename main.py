from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

import complaints
from auth import (
    Identity,
    get_current_identity,
    login_user,
    register_user,
    require_roles,
    resolve_identity_user,
)
from config import APP_NAME, CORS_ORIGINS, ENVIRONMENT, MAX_IMAGE_UPLOAD_BYTES
from database import Base, engine, get_db
from schemas import (
    ComplaintUpdateSchema,
    FeedbackSchema,
    LoginSchema,
    RegisterSchema,
    UpdateComplaintStatusSchema,
)
from utils.errors import ValidationError, register_exception_handlers
from utils.logger import RequestLoggingMiddleware, get_logger, setup_logging

setup_logging()
logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("Connected to database, tables ready (%s)", ENVIRONMENT)
    yield
    engine.dispose()


app = FastAPI(title=APP_NAME, lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)
register_exception_handlers(app)


# ---------------------- ROUTES ----------------------
@app.get("/")
def root():
    return {"message": "Complaint Desk API is running!"}


# ---------------------- AUTH ----------------------
@app.post("/api/auth/register", status_code=201)
def register(data: RegisterSchema, db: Session = Depends(get_db)):
    user, token = register_user(db, data)
    return {
        "message": "User registered successfully",
        "token": token,
        "userId": str(user.id),
        "role": user.role,
    }


@app.post("/api/auth/login")
def login(data: LoginSchema, db: Session = Depends(get_db)):
    user, token = login_user(db, data.email, data.password)
    return {
        "message": "Login successful",
        "token": token,
        "userId": str(user.id),
        "role": user.role,
    }


@app.post("/api/auth/me")
def read_me(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    user = resolve_identity_user(db, identity)
    logger.info("Auto-login successful for user: %s", user.email)
    return {"message": "Auto-login successful", "userId": str(user.id), "role": user.role}


# ---------------------- COMPLAINTS ----------------------
@app.post("/complaints", status_code=201)
def submit_complaint(
    title: str = Form(...),
    description: str = Form(...),
    image: Optional[UploadFile] = File(None),
    identity: Identity = Depends(require_roles("user")),
    db: Session = Depends(get_db),
):
    upload = None
    if image is not None and image.filename:
        if image.size is not None and image.size > MAX_IMAGE_UPLOAD_BYTES:
            raise ValidationError("Uploaded image is too large")
        upload = (image.file.read(), image.content_type, image.filename)

    complaint = complaints.create_complaint(db, identity, title, description, upload)
    return {"message": "Complaint created successfully", "complaintId": str(complaint.id)}


@app.get("/complaints")
def get_complaints(
    status: Optional[str] = None,
    priority: Optional[str] = None,
    q: Optional[str] = None,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    results = complaints.list_complaints(db, identity, status=status, priority=priority, q=q)
    return {"message": "Complaints fetched successfully", "complaints": results}


@app.get("/complaints/{complaint_id}")
def get_complaint(
    complaint_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    complaint, assignee_email = complaints.get_complaint(db, identity, complaint_id)
    return {"complaint": complaint, "assigneeEmail": assignee_email}


@app.put("/complaints/{complaint_id}")
def update_complaint(
    complaint_id: str,
    data: ComplaintUpdateSchema,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    complaints.update_complaint(db, identity, complaint_id, data)
    return {"message": "Complaint updated successfully"}


@app.put("/complaints/{complaint_id}/status")
def update_complaint_status(
    complaint_id: str,
    data: UpdateComplaintStatusSchema,
    identity: Identity = Depends(require_roles("admin", "supportStaff")),
    db: Session = Depends(get_db),
):
    complaints.update_status(db, identity, complaint_id, data.status, data.comment)
    return {"message": "Complaint status updated successfully"}


@app.post("/complaints/{complaint_id}/feedback")
def add_feedback(
    complaint_id: str,
    data: FeedbackSchema,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    complaints.submit_feedback(db, identity, complaint_id, data.rating, data.comment)
    return {"message": "Feedback added successfully"}
