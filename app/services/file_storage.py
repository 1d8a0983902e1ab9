import hashlib
import logging
import os
import time

from fastapi import UploadFile

from services.exceptions import IoFailure, NotFoundOnDisk
from utils.security import is_safe_path, sanitize_filename

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024

ALLOWED_ARCHIVE_TYPES = {"application/zip", "application/x-zip-compressed", "application/octet-stream"}
ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}


class UploadTooLarge(Exception):
    pass


def uploads_dir():
    path = os.path.abspath(os.getenv("UPLOADS_DIR", "uploads"))
    os.makedirs(path, exist_ok=True)
    return path


def images_dir():
    path = os.path.join(uploads_dir(), "images")
    os.makedirs(path, exist_ok=True)
    return path


def max_upload_size():
    return int(os.getenv("MAX_UPLOAD_SIZE", str(5 * 1024 * 1024 * 1024)))


def storage_key_for(stored_name):
    return f"/uploads/{stored_name}"


def image_url_for(stored_name):
    return f"/uploads/images/{stored_name}"


def save_upload(upload: UploadFile, directory: str):
    """Copy an upload to ``directory`` in chunks.

    Returns (stored_name, size_bytes, sha256 hex digest). The partial file is
    removed if the upload exceeds MAX_UPLOAD_SIZE.
    """
    safe_name = sanitize_filename(upload.filename)
    stamp = int(time.time() * 1000)
    while os.path.exists(os.path.join(directory, f"{stamp}_{safe_name}")):
        stamp += 1
    stored_name = f"{stamp}_{safe_name}"
    dest_path = os.path.join(directory, stored_name)
    limit = max_upload_size()
    digest = hashlib.sha256()
    size = 0

    upload.file.seek(0)
    with open(dest_path, "wb") as out:
        while True:
            chunk = upload.file.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > limit:
                out.close()
                os.remove(dest_path)
                raise UploadTooLarge(f"{upload.filename} exceeds {limit} bytes")
            digest.update(chunk)
            out.write(chunk)

    logger.info("Stored upload %s (%d bytes)", stored_name, size)
    return stored_name, size, digest.hexdigest()


def stored_file_path(storage_key):
    """Absolute path of a stored feed file; only the base name of the key is used."""
    return os.path.join(uploads_dir(), os.path.basename(storage_key or ""))


def stored_image_path(image_url):
    return os.path.join(images_dir(), os.path.basename(image_url or ""))


def remove_file(path):
    if path and os.path.isfile(path):
        os.remove(path)
        logger.info("Deleted stored file %s", path)


def resolve_download(file_name):
    """Map a token's fileName to a readable path inside the uploads directory."""
    base = uploads_dir()
    path = os.path.join(base, os.path.basename(file_name or ""))
    if not os.path.basename(file_name or "") or not is_safe_path(base, path) or not os.path.isfile(path):
        raise NotFoundOnDisk(file_name)
    return path


def ensure_readable(path):
    if not os.access(path, os.R_OK):
        logger.error("Stored file %s is not readable", path)
        raise IoFailure(path)
    return path
