"""Upload buckets stored under ``UPLOAD_FOLDER``, one subdirectory per bucket."""

import logging
import os
import uuid

from flask import current_app
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

BUCKETS = ("match-proofs", "team-assets", "chat-uploads")


def bucket_path(bucket):
    return os.path.join(current_app.config["UPLOAD_FOLDER"], bucket)


def allowed_file(filename):
    if "." not in filename:
        return False
    ext = filename.rsplit(".", 1)[1].lower()
    return ext in current_app.config["ALLOWED_UPLOAD_EXTENSIONS"]


def save_upload(bucket, file_storage):
    """Store an uploaded file under a fresh unique name.

    Returns ``(stored_name, error)``.
    """
    if bucket not in BUCKETS:
        return None, "Unknown upload bucket"

    if not file_storage or not file_storage.filename:
        return None, "No file provided"

    original = secure_filename(file_storage.filename)
    if not original or not allowed_file(original):
        return None, "File type not allowed"

    ext = original.rsplit(".", 1)[1].lower()
    name = f"{uuid.uuid4().hex}.{ext}"

    directory = bucket_path(bucket)
    os.makedirs(directory, exist_ok=True)
    file_storage.save(os.path.join(directory, name))
    logger.info("Stored upload %s/%s (%s)", bucket, name, original)
    return name, None


def resolve_upload(bucket, name):
    """Directory and sanitized file name for serving, or ``(None, None)``."""
    if bucket not in BUCKETS:
        return None, None
    safe_name = secure_filename(os.path.basename(name))
    directory = bucket_path(bucket)
    if not safe_name or not os.path.exists(os.path.join(directory, safe_name)):
        return None, None
    return directory, safe_name
