from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from booknet.core.rate_limiter import rate_limit_ip
from booknet.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


class RegistrationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    firstname: str
    lastname: str
    email: str
    password: str
    date_of_birth: Optional[date] = Field(None, alias="dateOfBirth")


class AuthenticationRequest(BaseModel):
    email: str
    password: str


class CodeVerificationRequest(BaseModel):
    token: str


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str
    new_password: str = Field(alias="newPassword")
    confirm_password: str = Field(alias="confirmPassword")


def get_auth_service() -> AuthService:
    return AuthService()


@router.post("/register", status_code=202)
def register(request: Request, payload: RegistrationRequest, service: AuthService = Depends(get_auth_service)):
    rate_limit_ip(request, "auth:register", limit=3, window_seconds=300)
    service.register(payload.firstname, payload.lastname, payload.email, payload.password, payload.date_of_birth)
    return JSONResponse({}, status_code=202)


@router.post("/authenticate")
def authenticate(request: Request, payload: AuthenticationRequest, service: AuthService = Depends(get_auth_service)):
    rate_limit_ip(request, "auth:login", limit=5, window_seconds=60)
    result = service.authenticate(payload.email, payload.password)
    return {"token": result.token}


@router.post("/activate-account")
def activate_account(request: Request, payload: CodeVerificationRequest, service: AuthService = Depends(get_auth_service)):
    rate_limit_ip(request, "auth:code", limit=10, window_seconds=300)
    service.activate_account(payload.token)
    return {"message": "Account activated"}


@router.post("/forgot-password")
def forgot_password(request: Request, payload: ForgotPasswordRequest, service: AuthService = Depends(get_auth_service)):
    rate_limit_ip(request, "auth:forgot", limit=5, window_seconds=300)
    service.forgot_password(payload.email)
    return {"message": "Reset password instructions sent to your email"}


@router.post("/verify-reset-code")
def verify_reset_code(request: Request, payload: CodeVerificationRequest, service: AuthService = Depends(get_auth_service)):
    rate_limit_ip(request, "auth:code", limit=10, window_seconds=300)
    service.verify_reset_code(payload.token)
    return {"message": "Code verified"}


@router.post("/reset-password")
def reset_password(request: Request, payload: ResetPasswordRequest, service: AuthService = Depends(get_auth_service)):
    rate_limit_ip(request, "auth:code", limit=10, window_seconds=300)
    service.reset_password(payload.token, payload.new_password, payload.confirm_password)
    return {"message": "Password reset successful"}
