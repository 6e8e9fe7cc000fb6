"""
Photo lifecycle for user profiles.

Owns the rule that a user has at most one main photo, and keeps local photo
rows consistent with what the remote image store reports.
"""

import logging
from collections.abc import Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from profile_photos.dao import PhotoDAO, UserDAO
from profile_photos.image_store import ImageStore, ImageStoreError, Transformation
from profile_photos.models import Photo, User

logger = logging.getLogger(__name__)

UPLOAD_TRANSFORMATION = Transformation(
    width=500, height=500, crop="fill", gravity="face"
)


class PhotoError(Exception):
    """Base exception for photo lifecycle failures."""


class UnauthorizedError(PhotoError):
    """Principal is not the user, or the photo is not the user's."""


class NotFoundError(PhotoError):
    """Unknown user or photo id."""


class InvalidStateError(PhotoError):
    """Operation would break the main photo rule."""


class RemoteDeleteFailedError(PhotoError):
    """Image store did not confirm deletion; the local row is kept."""


class PersistenceError(PhotoError):
    """Database commit failed; the transaction was rolled back."""


class PhotoManager:
    """Upload, set-main, delete and read operations on a user's photos."""

    def __init__(self, db: Session, image_store: ImageStore) -> None:
        self.db = db
        self.image_store = image_store
        self.users = UserDAO(db)
        self.photos = PhotoDAO(db)

    def _authorize(self, user_id: int, principal_id: int) -> None:
        if principal_id != user_id:
            msg = "Not allowed to manage another user's photos"
            raise UnauthorizedError(msg)

    def _get_user(self, user_id: int, *, lock: bool = False) -> User:
        user = self.users.lock(user_id) if lock else self.users.get(user_id)
        if user is None:
            msg = "User not found"
            raise NotFoundError(msg)
        return user

    def _get_owned_photo(
        self, user_id: int, photo_id: int, principal_id: int, *, lock: bool = True
    ) -> Photo:
        self._authorize(user_id, principal_id)
        # Lock before reading photo flags so the checks below hold until commit
        user = self._get_user(user_id, lock=lock)
        photo = self.photos.get(photo_id)
        if photo is None or photo.user_id != user.id:
            msg = "Photo does not belong to this user"
            raise UnauthorizedError(msg)
        return photo

    def get_photo(self, photo_id: int) -> Photo:
        photo = self.photos.get(photo_id)
        if photo is None:
            msg = "Photo not found"
            raise NotFoundError(msg)
        return photo

    def list_photos(
        self, user_id: int, limit: int = 100, offset: int = 0
    ) -> Sequence[Photo]:
        user = self._get_user(user_id)
        return self.photos.list_for_user(user.id, limit=limit, offset=offset)

    def upload(
        self,
        user_id: int,
        data: bytes,
        principal_id: int,
        filename: str | None = None,
        description: str | None = None,
    ) -> Photo:
        """
        Send the image to the remote store and record it for the user.

        The user's first photo becomes the main photo. An empty payload skips
        the remote store and records a photo with an empty url. If the local
        save fails after a successful upload, the remote image is left behind
        and logged for reconciliation.
        """
        self._authorize(user_id, principal_id)
        self._get_user(user_id)

        url = ""
        public_id: str | None = None
        if data:
            result = self.image_store.upload(data, UPLOAD_TRANSFORMATION, filename)
            url, public_id = result.url, result.public_id

        try:
            try:
                photo = self._insert_photo(user_id, url, public_id, description)
            except IntegrityError:
                # Another request took the main slot between the check and commit
                self.db.rollback()
                logger.info(
                    "Main photo for user %s changed concurrently, retrying", user_id
                )
                photo = self._insert_photo(user_id, url, public_id, description)
        except SQLAlchemyError as exc:
            self.db.rollback()
            if public_id is not None:
                logger.warning(
                    "Orphaned remote image %s: saving photo for user %s failed",
                    public_id,
                    user_id,
                )
            else:
                logger.exception("Saving photo for user %s failed", user_id)
            msg = "Could not add the photo"
            raise PersistenceError(msg) from exc
        self.db.refresh(photo)
        logger.info(
            "Added photo %s for user %s (main=%s)", photo.id, user_id, photo.is_main
        )
        return photo

    def _insert_photo(
        self,
        user_id: int,
        url: str,
        public_id: str | None,
        description: str | None,
    ) -> Photo:
        # The main flag is decided under the user lock, after the remote call
        self._get_user(user_id, lock=True)
        photo = Photo(
            user_id=user_id,
            url=url,
            public_id=public_id,
            description=description,
            is_main=self.photos.get_main_for_user(user_id) is None,
        )
        self.photos.add(photo)
        self.db.commit()
        return photo

    def set_main(self, user_id: int, photo_id: int, principal_id: int) -> None:
        photo = self._get_owned_photo(user_id, photo_id, principal_id)
        if photo.is_main:
            msg = "This is already the main photo"
            raise InvalidStateError(msg)

        try:
            current_main = self.photos.get_main_for_user(user_id)
            if current_main is not None:
                current_main.is_main = False
                # Clear the old flag first; the partial unique index checks each row
                self.db.flush()
            photo.is_main = True
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception(
                "Setting main photo %s for user %s failed", photo_id, user_id
            )
            msg = "Could not set photo to main"
            raise PersistenceError(msg) from exc
        logger.info("Photo %s is now main for user %s", photo_id, user_id)

    def delete(self, user_id: int, photo_id: int, principal_id: int) -> None:
        """
        Delete a non-main photo. When the photo has a remote public id the
        remote image is deleted first, and the local row is only removed
        once the store confirms.

        No lock is held during the remote call. The photo is re-read under
        the user lock afterwards, so a concurrent set_main that made it the
        main photo still wins.
        """
        photo = self._get_owned_photo(user_id, photo_id, principal_id, lock=False)
        if photo.is_main:
            msg = "Could not delete, this is the main photo"
            raise InvalidStateError(msg)

        public_id = photo.public_id
        if public_id is not None:
            try:
                result = self.image_store.delete(public_id)
            except ImageStoreError as exc:
                msg = "Failed to delete photo"
                raise RemoteDeleteFailedError(msg) from exc
            if not result.succeeded:
                logger.warning(
                    "Image store refused to delete %s: %s", public_id, result.detail
                )
                msg = "Failed to delete photo"
                raise RemoteDeleteFailedError(msg)

        self._get_user(user_id, lock=True)
        photo = self.photos.get(photo_id, refresh=True)
        if photo is None:
            logger.info("Photo %s was already deleted", photo_id)
            return
        if photo.is_main:
            if public_id is not None:
                logger.warning(
                    "Photo %s became main while deleting remote image %s",
                    photo_id,
                    public_id,
                )
            msg = "Could not delete, this is the main photo"
            raise InvalidStateError(msg)

        try:
            self.photos.delete(photo)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception(
                "Deleting photo %s failed after remote image %s was removed",
                photo_id,
                public_id,
            )
            msg = "Failed to delete photo"
            raise PersistenceError(msg) from exc
        logger.info("Deleted photo %s for user %s", photo_id, user_id)
