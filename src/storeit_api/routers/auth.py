from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from storeit_api.dependencies import get_auth_service, get_current_identity
from storeit_api.identity.tokens import Identity
from storeit_api.schemas import (
    ConfirmRequest,
    EmailRequest,
    RefreshRequest,
    ResetPasswordRequest,
    SigninRequest,
    SignupRequest,
    VerifyRequest,
    VerifyResetOtpRequest,
)
from storeit_api.services.auth import AuthService

router = APIRouter(prefix="/auth")


@router.post("/signup")
async def signup(body: SignupRequest, auth: AuthService = Depends(get_auth_service)):
    """Register an account; Cognito emails a confirmation code."""
    return await run_in_threadpool(auth.signup, body.email, body.password, body.username)


@router.post("/confirm")
async def confirm(body: ConfirmRequest, auth: AuthService = Depends(get_auth_service)):
    """Confirm a sign-up code or check a password-reset code, depending on `type`."""
    return await run_in_threadpool(auth.confirm, body.email, body.otp, body.type, body.password)


@router.post("/verify")
async def verify(body: VerifyRequest, auth: AuthService = Depends(get_auth_service)):
    return await run_in_threadpool(auth.verify, body.email, body.otp)


@router.post("/signin")
async def signin(body: SigninRequest, auth: AuthService = Depends(get_auth_service)):
    return await run_in_threadpool(auth.signin, body.email, body.password)


@router.post("/refresh")
async def refresh(body: RefreshRequest, auth: AuthService = Depends(get_auth_service)):
    return await run_in_threadpool(auth.refresh, body.refresh_token, body.username)


@router.post("/forgot-password")
async def forgot_password(body: EmailRequest, auth: AuthService = Depends(get_auth_service)):
    return await run_in_threadpool(auth.forgot_password, body.email)


@router.post("/reset-password")
async def reset_password(body: ResetPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    return await run_in_threadpool(auth.reset_password, body.email, body.reset_code, body.new_password)


@router.post("/resend-otp")
async def resend_otp(body: EmailRequest, auth: AuthService = Depends(get_auth_service)):
    return await run_in_threadpool(auth.resend_otp, body.email)


@router.post("/verify-reset-otp")
async def verify_reset_otp(body: VerifyResetOtpRequest, auth: AuthService = Depends(get_auth_service)):
    return await run_in_threadpool(auth.verify_reset_otp, body.email, body.reset_code)


@router.get("/me")
async def me(identity: Identity = Depends(get_current_identity)):
    """The caller's identity as resolved from the bearer token."""
    return AuthService.me(identity)
