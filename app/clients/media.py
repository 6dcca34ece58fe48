# app/clients/media.py

import logging
import time
from dataclasses import dataclass

import httpx
from cloudinary.utils import api_sign_request

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    url: str
    public_id: str


class MediaClient:
    """
    Async client for the Cloudinary upload REST API.
    Uses signed uploads; the signature comes from the Cloudinary SDK.
    """
    def __init__(self, cloud_name: str | None, api_key: str | None, api_secret: str | None):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        timeouts = httpx.Timeout(20.0, read=60.0)
        self.async_client = httpx.AsyncClient(
            base_url="https://api.cloudinary.com/v1_1",
            timeout=timeouts
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    async def upload(
        self,
        content: bytes,
        filename: str,
        folder: str | None = None,
        upload_preset: str | None = None,
    ) -> UploadResult:
        """
        Uploads a file. Returns the secure URL and public id.
        Raises httpx errors on network/HTTP failures, RuntimeError when credentials are missing.
        """
        if not self.is_configured:
            raise RuntimeError("Cloudinary is not configured")

        params = {"timestamp": int(time.time())}
        if folder:
            params["folder"] = folder
        if upload_preset:
            params["upload_preset"] = upload_preset

        data = {**params, "api_key": self.api_key, "signature": api_sign_request(params, self.api_secret)}
        try:
            response = await self.async_client.post(
                f"/{self.cloud_name}/auto/upload",
                data=data,
                files={"file": (filename, content)},
            )
            response.raise_for_status()
        except httpx.RequestError as e:
            logger.error(f"Network error during upload to {e.request.url!r}.", exc_info=True)
            raise
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error during upload to {e.request.url!r}: {e.response.text}", exc_info=True)
            raise

        payload = response.json()
        return UploadResult(url=payload["secure_url"], public_id=payload["public_id"])


# Singleton
media_client = MediaClient(
    cloud_name=settings.CLOUDINARY_CLOUD_NAME,
    api_key=settings.CLOUDINARY_API_KEY,
    api_secret=settings.CLOUDINARY_API_SECRET
)
