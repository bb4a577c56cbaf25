import os
from dotenv import load_dotenv

load_dotenv()  # Load variables from .env

# ---------------------- APPLICATION ----------------------
APP_NAME = os.getenv("APP_NAME", "Complaint Desk")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# ---------------------- DATABASE ----------------------
# Prefer a single DATABASE_URL (PostgreSQL in deployments); local runs fall back to SQLite.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./complaint_desk.db")

# ---------------------- AUTH ----------------------
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_HOURS = int(os.getenv("ACCESS_TOKEN_EXPIRE_HOURS", 2))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 10))


def get_jwt_secret():
    # Read per call so a missing secret surfaces as a server fault, not at import time.
    return os.getenv("JWT_SECRET")


def get_admin_secret():
    return os.getenv("ADMIN_SECRET")


# ---------------------- PRIORITY CLASSIFIER ----------------------
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_TIMEOUT_SECONDS = float(os.getenv("GEMINI_TIMEOUT_SECONDS", 15))

# ---------------------- STORAGE ----------------------
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
SUPABASE_BUCKET = os.getenv("SUPABASE_BUCKET", "complaints")
MAX_IMAGE_UPLOAD_BYTES = int(os.getenv("MAX_IMAGE_UPLOAD_BYTES", 8 * 1024 * 1024))

# ---------------------- LOGGING ----------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs")
