from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from otp_auth.schemas.users import UserResponse


class OtpRequest(BaseModel):
    phone: str = Field(max_length=32)


class OtpResponse(BaseModel):
    status: str = "otp_generated"
    expires_in_seconds: int
    otp: Optional[str] = None


class OtpVerifyRequest(BaseModel):
    phone: str = Field(max_length=32)
    code: str = Field(max_length=16, validation_alias=AliasChoices("code", "otp"))


class OtpVerifyResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in_seconds: int
    user_created: bool
    user: UserResponse
