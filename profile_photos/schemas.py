from datetime import datetime

from pydantic import BaseModel


class PhotoResponse(BaseModel):
    id: int
    url: str
    description: str | None
    date_added: datetime
    is_main: bool
    public_id: str | None


class ErrorResponse(BaseModel):
    detail: str
