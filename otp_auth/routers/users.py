from fastapi import APIRouter, Depends

from otp_auth.deps import get_current_user_id, get_user_store
from otp_auth.errors import NotFoundError
from otp_auth.schemas.users import UserListResponse, UserResponse
from otp_auth.services.users import UserStore

router = APIRouter(prefix="/users", tags=["users"])

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
# Offsets are bound as signed 64-bit integers by the database drivers.
MAX_OFFSET = 2**63 - 1


def _positive_int(raw: str | None, default: int) -> int:
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@router.get("", response_model=UserListResponse)
def list_users(
    search: str = "",
    page: str | None = None,
    size: str | None = None,
    _: int = Depends(get_current_user_id),
    user_store: UserStore = Depends(get_user_store),
) -> UserListResponse:
    page_number = _positive_int(page, 1)
    page_size = min(_positive_int(size, DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)
    if (page_number - 1) * page_size > MAX_OFFSET:
        page_number = 1
    offset = (page_number - 1) * page_size
    users, total = user_store.list_users(search, offset, page_size)
    return UserListResponse(
        total=total,
        page=page_number,
        size=page_size,
        data=[UserResponse.model_validate(user) for user in users],
    )


@router.get("/me", response_model=UserResponse)
def get_me(
    user_id: int = Depends(get_current_user_id),
    user_store: UserStore = Depends(get_user_store),
) -> UserResponse:
    user = user_store.get_user(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    _: int = Depends(get_current_user_id),
    user_store: UserStore = Depends(get_user_store),
) -> UserResponse:
    user = user_store.get_user(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return UserResponse.model_validate(user)
