"""Image storage on Cloudinary."""

import logging
import re
import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

import cloudinary.utils
import httpx

from src.config import Settings, get_settings

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB

CLOUDINARY_API_PREFIX = "https://api.cloudinary.com"
CLOUDINARY_HOST = "res.cloudinary.com"

VERSION_SEGMENT = re.compile(r"^v\d+$")


class ImageStorageError(Exception):
    """The image service is unreachable, misconfigured or refused the call."""

    def __init__(self, message: str, status_code: int = 503) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def public_message(self) -> str:
        if get_settings().is_production:
            return "Image service is temporarily unavailable. Please try again."
        return self.message


@dataclass(frozen=True)
class UploadedImage:
    url: str
    public_id: str
    width: int | None
    height: int | None
    format: str | None
    size: int | None


def public_id_from_url(url: str) -> str | None:
    """Derive the Cloudinary public id from a delivery URL.

    ``https://res.cloudinary.com/demo/image/upload/v17/blog/car.jpg`` gives
    ``blog/car``. Returns None for URLs that are not Cloudinary uploads.
    """
    parsed = urlparse(url)
    if (parsed.hostname or "").lower() != CLOUDINARY_HOST:
        return None

    segments = [s for s in parsed.path.split("/") if s]
    if "upload" not in segments:
        return None
    tail = segments[segments.index("upload") + 1 :]

    versions = [i for i, s in enumerate(tail) if VERSION_SEGMENT.match(s)]
    if versions:
        tail = tail[versions[0] + 1 :]
    if not tail:
        return None

    public_id = "/".join(tail)
    return re.sub(r"\.[A-Za-z0-9]+$", "", public_id)


class CloudinaryImageStorage:
    """Signed upload/destroy calls against the Cloudinary REST API.

    Requests are signed with the Cloudinary SDK and sent with httpx so the
    upload timeout applies.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.timeout = self.settings.image_upload_timeout_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return self.settings.cloudinary_configured

    def _endpoint(self, action: str) -> str:
        return cloudinary.utils.cloudinary_api_url(
            action,
            cloud_name=self.settings.cloudinary_cloud_name,
            resource_type="image",
            upload_prefix=CLOUDINARY_API_PREFIX,
        )

    def _sign(self, params: dict[str, Any]) -> str:
        return cloudinary.utils.api_sign_request(params, self.settings.cloudinary_api_secret)

    def _signed_params(self, params: dict[str, Any]) -> dict[str, Any]:
        if not self.configured:
            raise ImageStorageError("Image upload service not configured")
        params = {**params, "timestamp": int(time.time())}
        return {
            **params,
            "api_key": self.settings.cloudinary_api_key,
            "signature": self._sign(params),
        }

    async def _post(self, action: str, data: dict[str, Any], files: dict | None = None) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self._endpoint(action), data=data, files=files)
        except httpx.TimeoutException as e:
            raise ImageStorageError(f"Cloudinary {action} timed out") from e
        except httpx.HTTPError as e:
            raise ImageStorageError(f"Cloudinary {action} failed: {e}") from e

        if response.is_error:
            try:
                detail = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                detail = response.text
            raise ImageStorageError(
                f"Cloudinary {action} rejected ({response.status_code}): {detail}"
            )
        return response.json()

    async def upload(
        self, data: bytes, filename: str, content_type: str, folder: str = "blog"
    ) -> UploadedImage:
        """Upload image bytes into ``folder``."""
        params = self._signed_params({"folder": folder})
        result = await self._post(
            "upload", params, files={"file": (filename, data, content_type)}
        )
        logger.info(f"Uploaded image {result.get('public_id')} ({len(data)} bytes)")
        return UploadedImage(
            url=result["secure_url"],
            public_id=result["public_id"],
            width=result.get("width"),
            height=result.get("height"),
            format=result.get("format"),
            size=result.get("bytes"),
        )

    async def delete(self, public_id: str) -> str:
        """Destroy an image. Returns ``"ok"`` or ``"not found"``."""
        params = self._signed_params({"public_id": public_id})
        result = await self._post("destroy", params)
        outcome = result.get("result")
        if outcome not in ("ok", "not found"):
            raise ImageStorageError(f"Cloudinary destroy returned {outcome!r}", status_code=500)
        return outcome
