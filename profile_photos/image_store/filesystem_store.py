import os
import uuid
from pathlib import Path

from .image_store import DeletionResult, ImageStore, Transformation, UploadResult


class FileSystemImageStore(ImageStore):
    """
    Image store using the local filesystem, for development without a
    Cloudinary account. Images are stored as uploaded; transformations
    are not applied.
    """

    def __init__(self, base_path: str | None = None) -> None:
        if base_path is None:
            base_path = os.getenv("IMAGE_STORE_PATH", "./uploads")
        self.base_path = Path(base_path)

    def upload(
        self,
        data: bytes,
        transformation: Transformation,  # noqa: ARG002
        filename: str | None = None,  # noqa: ARG002
    ) -> UploadResult:
        self.base_path.mkdir(parents=True, exist_ok=True)
        public_id = uuid.uuid4().hex
        file_path = self.base_path / public_id
        file_path.write_bytes(data)
        return UploadResult(url=file_path.resolve().as_uri(), public_id=public_id)

    def delete(self, public_id: str) -> DeletionResult:
        file_path = self.base_path / public_id
        # public ids are generated by upload(); anything else is not ours
        if file_path.parent != self.base_path or not file_path.is_file():
            return DeletionResult(succeeded=False, detail="not found")
        file_path.unlink()
        return DeletionResult(succeeded=True, detail="ok")
