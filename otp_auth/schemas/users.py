from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    phone: str
    registered_at: datetime


class UserListResponse(BaseModel):
    total: int
    page: int
    size: int
    data: list[UserResponse]
