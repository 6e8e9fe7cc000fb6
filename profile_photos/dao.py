from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from profile_photos.models import Photo, User


class UserDAO:
    """Data Access Object for User."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, user_id: int) -> User | None:
        return self.db.get(User, user_id)

    def lock(self, user_id: int) -> User | None:
        """
        Load the user with a row lock held until the current transaction ends.
        Serializes main-photo changes for one user on backends that support
        SELECT ... FOR UPDATE; SQLite ignores the clause.
        """
        stmt = select(User).where(User.id == user_id).with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def create(self, username: str) -> User:
        user = User(username=username)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user


class PhotoDAO:
    """Data Access Object for Photo."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, photo_id: int, *, refresh: bool = False) -> Photo | None:
        """With refresh=True, reload the row even if it is already in the session."""
        return self.db.get(Photo, photo_id, populate_existing=refresh)

    def list_for_user(
        self, user_id: int, limit: int = 100, offset: int = 0
    ) -> Sequence[Photo]:
        stmt = (
            select(Photo)
            .where(Photo.user_id == user_id)
            .order_by(Photo.id)
            .offset(offset)
            .limit(limit)
        )
        return self.db.scalars(stmt).all()

    def get_main_for_user(self, user_id: int) -> Photo | None:
        stmt = select(Photo).where(Photo.user_id == user_id, Photo.is_main.is_(True))
        return self.db.scalars(stmt).first()

    def add(self, photo: Photo) -> None:
        self.db.add(photo)

    def delete(self, photo: Photo) -> None:
        self.db.delete(photo)

    def create(
        self,
        user_id: int,
        url: str,
        public_id: str | None = None,
        *,
        is_main: bool = False,
        description: str | None = None,
    ) -> Photo:
        photo = Photo(
            user_id=user_id,
            url=url,
            public_id=public_id,
            is_main=is_main,
            description=description,
        )
        self.db.add(photo)
        self.db.commit()
        self.db.refresh(photo)
        return photo
