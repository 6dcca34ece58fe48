# app/services/storage.py

import logging

import httpx
from fastapi import UploadFile

from app.clients.media import media_client, UploadResult
from app.core.config import settings
from app.core.exceptions import UpstreamServiceError, ValidationFailedError

logger = logging.getLogger(__name__)


async def _upload(file: UploadFile | None, folder: str, upload_preset: str | None) -> UploadResult:
    if not file or not file.filename:
        raise ValidationFailedError("File is required", field="file")

    content = await file.read()
    if not content:
        raise ValidationFailedError("File is required", field="file")

    try:
        result = await media_client.upload(content, file.filename, folder=folder, upload_preset=upload_preset)
    except (httpx.HTTPError, RuntimeError, KeyError) as e:
        logger.error(f"Upload of '{file.filename}' to '{folder}' failed: {e}", exc_info=True)
        raise UpstreamServiceError("Upload failed")

    logger.info(f"Uploaded '{file.filename}' as {result.public_id}.")
    return result


async def upload_proof_image(file: UploadFile | None) -> UploadResult:
    """Stores a payment proof image."""
    return await _upload(file, settings.CLOUDINARY_PROOFS_FOLDER, settings.CLOUDINARY_UPLOAD_PRESET_PROOFS)


async def upload_project_image(file: UploadFile | None) -> UploadResult:
    """Stores a phase deliverable or comment attachment."""
    return await _upload(file, settings.CLOUDINARY_PROJECTS_FOLDER, settings.CLOUDINARY_UPLOAD_PRESET_PROJECTS)


async def has_content(file: UploadFile | None) -> bool:
    """True for a named, non-empty file part. The read position is left at the start."""
    if not file or not file.filename:
        return False
    if file.size is not None:
        return file.size > 0
    head = await file.read(1)
    await file.seek(0)
    return bool(head)
