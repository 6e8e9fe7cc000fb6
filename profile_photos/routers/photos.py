import logging
from typing import Annotated, Any

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    Query,
    Request,
    Response,
    UploadFile,
)
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.status import (
    HTTP_200_OK,
    HTTP_201_CREATED,
    HTTP_204_NO_CONTENT,
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_502_BAD_GATEWAY,
)

from profile_photos.deps import get_current_principal_id, get_current_user, get_db
from profile_photos.image_store import ImageStore, ImageStoreError, get_image_store
from profile_photos.models import Photo
from profile_photos.photo_manager import (
    NotFoundError,
    PhotoError,
    PhotoManager,
    UnauthorizedError,
)
from profile_photos.schemas import ErrorResponse, PhotoResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/users/{user_id}/photos",
    tags=["photos"],
    dependencies=[Depends(get_current_user)],
)

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
    HTTP_404_NOT_FOUND: {"model": ErrorResponse},
}


def _error_response(exc: PhotoError) -> JSONResponse:
    # RemoteDeleteFailedError and PersistenceError are business failures: 400
    if isinstance(exc, UnauthorizedError):
        status_code = HTTP_401_UNAUTHORIZED
    elif isinstance(exc, NotFoundError):
        status_code = HTTP_404_NOT_FOUND
    else:
        status_code = HTTP_400_BAD_REQUEST
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def _to_response(photo: Photo) -> PhotoResponse:
    return PhotoResponse(
        id=photo.id,
        url=photo.url,
        description=photo.description,
        date_added=photo.date_added,
        is_main=photo.is_main,
        public_id=photo.public_id,
    )


@router.get("", response_model=list[PhotoResponse], responses=ERROR_RESPONSES)
def list_photos(
    user_id: int,
    db: Annotated[Session, Depends(get_db)],
    image_store: Annotated[ImageStore, Depends(get_image_store)],
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> JSONResponse | list[PhotoResponse]:
    manager = PhotoManager(db, image_store)
    try:
        photos = manager.list_photos(user_id, limit=limit, offset=offset)
    except PhotoError as exc:
        return _error_response(exc)
    return [_to_response(photo) for photo in photos]


@router.get(
    "/{photo_id}",
    name="get_photo",
    response_model=PhotoResponse,
    responses=ERROR_RESPONSES,
)
def get_photo(
    user_id: int,  # noqa: ARG001
    photo_id: int,
    db: Annotated[Session, Depends(get_db)],
    image_store: Annotated[ImageStore, Depends(get_image_store)],
) -> JSONResponse | PhotoResponse:
    # Any authenticated caller may read any photo by id
    manager = PhotoManager(db, image_store)
    try:
        photo = manager.get_photo(photo_id)
    except PhotoError as exc:
        return _error_response(exc)
    return _to_response(photo)


@router.post(
    "",
    status_code=HTTP_201_CREATED,
    response_model=PhotoResponse,
    responses={**ERROR_RESPONSES, HTTP_502_BAD_GATEWAY: {"model": ErrorResponse}},
)
def add_photo_for_user(
    user_id: int,
    request: Request,
    response: Response,
    file: Annotated[UploadFile, File()],
    db: Annotated[Session, Depends(get_db)],
    image_store: Annotated[ImageStore, Depends(get_image_store)],
    principal_id: Annotated[int, Depends(get_current_principal_id)],
    description: Annotated[str | None, Form()] = None,
) -> JSONResponse | PhotoResponse:
    """
    Upload an image for the user. The first photo a user uploads becomes
    their main photo.
    """
    manager = PhotoManager(db, image_store)
    data = file.file.read()
    try:
        photo = manager.upload(
            user_id,
            data,
            principal_id,
            filename=file.filename,
            description=description,
        )
    except PhotoError as exc:
        return _error_response(exc)
    except ImageStoreError as exc:
        logger.warning("Image upload for user %s failed: %s", user_id, exc)
        return JSONResponse(
            status_code=HTTP_502_BAD_GATEWAY,
            content={"detail": "Could not upload the photo"},
        )
    response.headers["Location"] = str(
        request.url_for("get_photo", user_id=user_id, photo_id=photo.id)
    )
    return _to_response(photo)


@router.post(
    "/{photo_id}/setMain",
    status_code=HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=ERROR_RESPONSES,
)
def set_main_photo(
    user_id: int,
    photo_id: int,
    db: Annotated[Session, Depends(get_db)],
    image_store: Annotated[ImageStore, Depends(get_image_store)],
    principal_id: Annotated[int, Depends(get_current_principal_id)],
) -> Response:
    manager = PhotoManager(db, image_store)
    try:
        manager.set_main(user_id, photo_id, principal_id)
    except PhotoError as exc:
        return _error_response(exc)
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.delete("/{photo_id}", responses=ERROR_RESPONSES)
def delete_photo(
    user_id: int,
    photo_id: int,
    db: Annotated[Session, Depends(get_db)],
    image_store: Annotated[ImageStore, Depends(get_image_store)],
    principal_id: Annotated[int, Depends(get_current_principal_id)],
) -> Response:
    manager = PhotoManager(db, image_store)
    try:
        manager.delete(user_id, photo_id, principal_id)
    except PhotoError as exc:
        return _error_response(exc)
    return Response(status_code=HTTP_200_OK)
