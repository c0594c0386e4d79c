from fastapi import APIRouter, Depends, Request

from otp_auth.deps import get_auth_service
from otp_auth.schemas.otp import OtpRequest, OtpResponse, OtpVerifyRequest, OtpVerifyResponse
from otp_auth.schemas.users import UserResponse
from otp_auth.services.auth import AuthService

router = APIRouter(prefix="/otp", tags=["auth"])


@router.post("/request", response_model=OtpResponse, response_model_exclude_none=True)
def request_otp(
    payload: OtpRequest,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> OtpResponse:
    record = auth_service.request_code(payload.phone)
    settings = request.app.state.settings
    return OtpResponse(
        expires_in_seconds=settings.otp_ttl_seconds,
        otp=record.code if settings.otp_debug else None,
    )


@router.post("/verify", response_model=OtpVerifyResponse)
def verify_otp(
    payload: OtpVerifyRequest,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> OtpVerifyResponse:
    login = auth_service.verify_code(payload.phone, payload.code)
    return OtpVerifyResponse(
        token=login.token,
        expires_in_seconds=request.app.state.token_issuer.lifetime_seconds,
        user_created=login.created,
        user=UserResponse.model_validate(login.user),
    )
