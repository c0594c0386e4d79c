from fastapi import Depends, Header, Request

from otp_auth.services.auth import AuthService
from otp_auth.services.users import UserStore


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_current_user_id(
    authorization: str | None = Header(default=None),
    auth_service: AuthService = Depends(get_auth_service),
) -> int:
    return auth_service.authenticate(authorization)
