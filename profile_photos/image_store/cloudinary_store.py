import hashlib
import logging
import os
import time
from typing import Any
from urllib.parse import urlparse

import requests

from .image_store import (
    DeletionResult,
    ImageStore,
    ImageStoreError,
    Transformation,
    UploadResult,
)

logger = logging.getLogger(__name__)


class CloudinaryStoreError(ImageStoreError):
    """Custom exception for CloudinaryImageStore errors."""


class CloudinaryImageStore(ImageStore):
    """
    Image store using the Cloudinary upload HTTP API.

    Credentials come from CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and
    CLOUDINARY_API_SECRET, or from a single CLOUDINARY_URL of the form
    cloudinary://<api_key>:<api_secret>@<cloud_name>.
    """

    _API_BASE_URL = "https://api.cloudinary.com/v1_1"
    _SUCCESS_CODE = 200
    _DELETE_OK = "ok"
    _DEFAULT_TIMEOUT = 10  # seconds

    def __init__(
        self,
        cloud_name: str | None = None,
        api_key: str | None = None,
        api_secret: str | None = None,
        timeout: float | None = None,
    ) -> None:
        env_cloud, env_key, env_secret = self._credentials_from_env()
        self.cloud_name = cloud_name or env_cloud
        self.api_key = api_key or env_key
        self.api_secret = api_secret or env_secret
        if timeout is None:
            timeout = float(
                os.getenv("IMAGE_STORE_TIMEOUT", str(self._DEFAULT_TIMEOUT))
            )
        self.timeout = timeout
        self.session = requests.Session()

    @staticmethod
    def _credentials_from_env() -> tuple[str | None, str | None, str | None]:
        cloudinary_url = os.getenv("CLOUDINARY_URL")
        if cloudinary_url:
            parsed = urlparse(cloudinary_url)
            return parsed.hostname, parsed.username, parsed.password
        return (
            os.getenv("CLOUDINARY_CLOUD_NAME"),
            os.getenv("CLOUDINARY_API_KEY"),
            os.getenv("CLOUDINARY_API_SECRET"),
        )

    def _require_credentials(self) -> None:
        if not all([self.cloud_name, self.api_key, self.api_secret]):
            error_message = "Cloudinary credentials are not set"
            raise CloudinaryStoreError(error_message)

    def _endpoint(self, action: str) -> str:
        return f"{self._API_BASE_URL}/{self.cloud_name}/image/{action}"

    def _sign(self, params: dict[str, str]) -> str:
        """
        Cloudinary request signature: SHA-1 over the sorted key=value pairs
        joined with '&', followed by the API secret.
        """
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
        payload = f"{to_sign}{self.api_secret}".encode()
        return hashlib.sha1(payload).hexdigest()  # noqa: S324

    def _signed(self, params: dict[str, str]) -> dict[str, str]:
        return {**params, "api_key": str(self.api_key), "signature": self._sign(params)}

    def _post(
        self,
        action: str,
        data: dict[str, str],
        files: dict[str, tuple[str, bytes]] | None = None,
    ) -> requests.Response:
        try:
            return self.session.post(
                self._endpoint(action),
                data=data,
                files=files,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            msg = f"Cloudinary API request failed: {exc}"
            raise CloudinaryStoreError(msg) from exc

    @staticmethod
    def _json_body(resp: requests.Response) -> dict[str, Any] | None:
        """Decoded reply body, or None when it is not a JSON object."""
        try:
            body = resp.json()
        except ValueError:
            # requests.JSONDecodeError is a ValueError
            return None
        return body if isinstance(body, dict) else None

    def upload(
        self,
        data: bytes,
        transformation: Transformation,
        filename: str | None = None,
    ) -> UploadResult:
        self._require_credentials()
        params = {
            "timestamp": str(int(time.time())),
            "transformation": transformation.to_param(),
        }
        resp = self._post(
            "upload",
            self._signed(params),
            files={"file": (filename or "upload", data)},
        )
        if resp.status_code != self._SUCCESS_CODE:
            msg = f"Cloudinary API error: {resp.status_code} {resp.text}"
            raise CloudinaryStoreError(msg)
        body = self._json_body(resp)
        if body is None:
            msg = f"Cloudinary upload response is not a JSON object: {resp.text}"
            raise CloudinaryStoreError(msg)
        public_id = body.get("public_id")
        url = body.get("secure_url") or body.get("url")
        if not public_id or not url:
            msg = f"Cloudinary upload response missing url or public_id: {body}"
            raise CloudinaryStoreError(msg)
        logger.debug("Uploaded image to Cloudinary as %s", public_id)
        return UploadResult(url=url, public_id=public_id)

    def delete(self, public_id: str) -> DeletionResult:
        self._require_credentials()
        params = {"public_id": public_id, "timestamp": str(int(time.time()))}
        resp = self._post("destroy", self._signed(params))
        if resp.status_code != self._SUCCESS_CODE:
            return DeletionResult(
                succeeded=False, detail=f"{resp.status_code} {resp.text}"
            )
        body = self._json_body(resp)
        if body is None:
            return DeletionResult(succeeded=False, detail=resp.text)
        result = body.get("result")
        if result == self._DELETE_OK:
            return DeletionResult(succeeded=True, detail=result)
        return DeletionResult(succeeded=False, detail=str(result))
