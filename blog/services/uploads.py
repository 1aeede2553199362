import io
import logging

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from fastapi import HTTPException, UploadFile

from blog.config import (
    ALLOWED_IMAGE_TYPES,
    CLOUDINARY_API_KEY,
    CLOUDINARY_API_SECRET,
    CLOUDINARY_CLOUD_NAME,
    MAX_UPLOAD_BYTES,
)
from blog.exceptions import BadRequest

logger = logging.getLogger(__name__)

# Cloudinary setup; CLOUDINARY_URL in the environment also works
_credentials = {
    "cloud_name": CLOUDINARY_CLOUD_NAME,
    "api_key": CLOUDINARY_API_KEY,
    "api_secret": CLOUDINARY_API_SECRET,
}
cloudinary.config(secure=True, **{k: v for k, v in _credentials.items() if v})


def read_image(file: UploadFile) -> bytes:
    """Validate type and size of an uploaded image and return its bytes."""
    if file is None or not file.filename:
        raise BadRequest("No file uploaded")

    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise BadRequest("Only image files are allowed (jpeg, png, gif, webp)")

    content = file.file.read(MAX_UPLOAD_BYTES + 1)
    if not content:
        raise BadRequest("Uploaded file is empty")
    if len(content) > MAX_UPLOAD_BYTES:
        raise BadRequest(f"File too large (max {MAX_UPLOAD_BYTES // (1024 * 1024)}MB)")
    return content


def upload_image(file: UploadFile) -> dict:
    """Send the image to Cloudinary and return its public URL."""
    content = read_image(file)

    try:
        result = cloudinary.uploader.upload(io.BytesIO(content), resource_type="image")
    except CloudinaryError:
        logger.exception("Image upload failed for %s", file.filename)
        raise HTTPException(status_code=502, detail="Image upload failed")

    return {"url": result["secure_url"], "public_id": result["public_id"]}
