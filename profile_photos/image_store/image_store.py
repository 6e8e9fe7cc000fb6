from abc import ABC, abstractmethod
from dataclasses import dataclass


class ImageStoreError(Exception):
    """Base exception for image store failures (transport, credentials, bad replies)."""


@dataclass(frozen=True)
class Transformation:
    """Transformation applied by the image host when an upload is stored."""

    width: int
    height: int
    crop: str
    gravity: str

    def to_param(self) -> str:
        # Cloudinary URL syntax, components in alphabetical order
        return f"c_{self.crop},g_{self.gravity},h_{self.height},w_{self.width}"


@dataclass(frozen=True)
class UploadResult:
    url: str
    public_id: str


@dataclass(frozen=True)
class DeletionResult:
    succeeded: bool
    detail: str = ""


class ImageStore(ABC):
    """
    Interface for remote image stores.
    """

    @abstractmethod
    def upload(
        self,
        data: bytes,
        transformation: Transformation,
        filename: str | None = None,
    ) -> UploadResult:
        """
        Store the image bytes and return where it lives and how to delete it.
        """
        error_message = "upload not implemented"
        raise NotImplementedError(error_message)

    @abstractmethod
    def delete(self, public_id: str) -> DeletionResult:
        """
        Ask the store to delete the image; the result reports whether it did.
        """
        error_message = "delete not implemented"
        raise NotImplementedError(error_message)
