# pyright: reportUnknownVariableType=false
# pyright: reportUnknownArgumentType=false
# pyright: reportUnknownMemberType=false
import logging
from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from profile_photos.dao import UserDAO
from profile_photos.database import Base
from profile_photos.deps import get_db
from profile_photos.image_store import (
    DeletionResult,
    ImageStore,
    ImageStoreError,
    Transformation,
    UploadResult,
    get_image_store,
)
from profile_photos.main import app
from profile_photos.models import User
from profile_photos.utils.jwt import create_access_token

# Configure basic logging for tests
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

# Use an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeImageStore(ImageStore):
    """In-memory image store that records calls and answers as configured."""

    def __init__(self) -> None:
        self.uploads: list[tuple[bytes, Transformation, str | None]] = []
        self.deleted: list[str] = []
        self.delete_result = DeletionResult(succeeded=True, detail="ok")
        self.fail_uploads = False
        self.fail_deletes = False
        # Runs after a confirmed remote delete, before the caller continues
        self.on_delete: Callable[[str], None] | None = None

    def upload(
        self,
        data: bytes,
        transformation: Transformation,
        filename: str | None = None,
    ) -> UploadResult:
        if self.fail_uploads:
            msg = "upload refused"
            raise ImageStoreError(msg)
        self.uploads.append((data, transformation, filename))
        public_id = f"photo_{len(self.uploads)}"
        return UploadResult(
            url=f"https://res.cloudinary.com/demo/image/upload/{public_id}.jpg",
            public_id=public_id,
        )

    def delete(self, public_id: str) -> DeletionResult:
        if self.fail_deletes:
            msg = "connection reset"
            raise ImageStoreError(msg)
        self.deleted.append(public_id)
        if self.on_delete is not None:
            self.on_delete(public_id)
        return self.delete_result


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JWT_SECRET_KEY", "testsecret")


# Database Fixture (Overrides get_db dependency)
@pytest.fixture
def session() -> Generator[Session, None, None]:
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def image_store() -> FakeImageStore:
    return FakeImageStore()


@pytest.fixture
def client(
    session: Session, image_store: FakeImageStore
) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_store] = lambda: image_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session: Session) -> Callable[[str], User]:
    dao = UserDAO(session)

    def _make_user(username: str) -> User:
        return dao.create(username)

    return _make_user


@pytest.fixture
def user(make_user: Callable[[str], User]) -> User:
    return make_user("alice")


def auth_headers(user_id: int) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}
