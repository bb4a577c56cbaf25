import mimetypes
import os
from functools import lru_cache
from uuid import uuid4

from supabase import create_client

from config import MAX_IMAGE_UPLOAD_BYTES, SUPABASE_BUCKET, SUPABASE_KEY, SUPABASE_URL
from utils.errors import ServerFault, ValidationError
from utils.logger import get_logger

logger = get_logger("storage")


@lru_cache(maxsize=1)
def get_supabase():
    if not SUPABASE_URL or not SUPABASE_KEY:
        raise ServerFault("Image storage is not configured")

    url = SUPABASE_URL
    # Storage endpoint needs a trailing slash to satisfy SDK expectations
    if not url.endswith("/"):
        url = f"{url}/"
    return create_client(url, SUPABASE_KEY)


def _extension_for(filename, content_type):
    ext = os.path.splitext(filename or "")[1].lower()
    if ext:
        return ext
    return mimetypes.guess_extension(content_type or "") or ""


def upload_complaint_image(data: bytes, content_type: str, filename=None) -> str:
    """Upload an image to the complaints bucket and return its public URL."""
    if not content_type or not content_type.startswith("image/"):
        raise ValidationError("Only image uploads are allowed")
    if not data:
        raise ValidationError("Uploaded image is empty")
    if len(data) > MAX_IMAGE_UPLOAD_BYTES:
        raise ValidationError("Uploaded image is too large")

    storage_path = f"complaints/{uuid4()}{_extension_for(filename, content_type)}"
    bucket = get_supabase().storage.from_(SUPABASE_BUCKET)
    try:
        bucket.upload(storage_path, data, {"content-type": content_type})
        public_url = bucket.get_public_url(storage_path)
    except Exception as exc:
        logger.exception("Image upload to bucket %s failed", SUPABASE_BUCKET)
        raise ServerFault("Image upload failed") from exc

    logger.info("Image uploaded to %s", storage_path)
    return public_url
