# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication API endpoints.

This module provides endpoints for user authentication:
- POST /register - Create an account and sign the device in
- POST /login - Email and password login
- POST /verify-otp - Verify the account email with its one-time code
- POST /resend-otp - Issue a new verification code
- POST /refresh - Rotate the token pair
- POST /logout - End the current device session
- POST /logout-all - End every session of the user

Example:
    POST /api/v1/auth/login
    Body:
        {
            "email": "learner@example.com",
            "password": "s3cretpass",
            "device_id": "ios-7f3a",
            "platform": "ios"
        }
"""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from src.api.dependencies import DB, JWT, AuthenticatedUser
from src.api.middleware.rate_limit import RATE_LIMIT_AUTH, get_ip_only, limiter
from src.domains.auth import (
    AccountInactiveError,
    AccountNotFoundError,
    AuthService,
    EmailAlreadyRegisteredError,
    EmailAlreadyVerifiedError,
    InvalidCredentialsError,
    InvalidVerificationCodeError,
    TokenRefreshError,
    WeakPasswordError,
)
from src.domains.auth.jwt import TokenPair
from src.models.auth import (
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    ResendCodeRequest,
    TokenResponse,
    VerifyEmailRequest,
)
from src.models.common import CountResponse, MessageResponse
from src.models.user import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _auth_response(user, tokens: TokenPair) -> AuthResponse:
    return AuthResponse(
        **tokens.model_dump(),
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
@limiter.limit(RATE_LIMIT_AUTH, key_func=get_ip_only)
async def register(request: Request, data: RegisterRequest, db: DB, jwt_manager: JWT) -> AuthResponse:
    """Create a learner account and return tokens for the registering device.

    Raises:
        HTTPException: 409 if the email is taken, 400 for a weak password.
    """
    service = AuthService(db, jwt_manager)
    try:
        user, tokens = await service.register(data)
    except EmailAlreadyRegisteredError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except WeakPasswordError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return _auth_response(user, tokens)


@router.post("/login", response_model=AuthResponse, summary="Log in with email and password")
@limiter.limit(RATE_LIMIT_AUTH, key_func=get_ip_only)
async def login(request: Request, data: LoginRequest, db: DB, jwt_manager: JWT) -> AuthResponse:
    """Authenticate and open (or replace) the device session.

    Raises:
        HTTPException: 401 for bad credentials, 403 for a deactivated account.
    """
    service = AuthService(db, jwt_manager)
    try:
        user, tokens = await service.login(data)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    except AccountInactiveError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    return _auth_response(user, tokens)


@router.post("/verify-otp", response_model=UserResponse, summary="Verify account email")
@limiter.limit(RATE_LIMIT_AUTH, key_func=get_ip_only)
async def verify_otp(request: Request, data: VerifyEmailRequest, db: DB, jwt_manager: JWT) -> UserResponse:
    """Mark the email verified with the code sent after registration.

    Raises:
        HTTPException: 400 for a wrong or expired code, 404 for an unknown email.
    """
    service = AuthService(db, jwt_manager)
    try:
        user = await service.verify_email(data.email, data.otp)
    except InvalidVerificationCodeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except AccountNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return UserResponse.model_validate(user)


@router.post("/resend-otp", response_model=MessageResponse, summary="Resend verification code")
@limiter.limit(RATE_LIMIT_AUTH, key_func=get_ip_only)
async def resend_otp(request: Request, data: ResendCodeRequest, db: DB, jwt_manager: JWT) -> MessageResponse:
    """Replace the pending verification code with a new one.

    Raises:
        HTTPException: 404 for an unknown email, 409 if already verified.
    """
    service = AuthService(db, jwt_manager)
    try:
        await service.resend_verification_code(data.email, data.language)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except EmailAlreadyVerifiedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return MessageResponse(message="Verification code sent")


@router.post("/refresh", response_model=TokenResponse, summary="Refresh access token")
@limiter.limit(RATE_LIMIT_AUTH, key_func=get_ip_only)
async def refresh_token(request: Request, data: RefreshRequest, db: DB, jwt_manager: JWT) -> TokenResponse:
    """Exchange a refresh token for a new pair.

    The old refresh token stops working once the pair is rotated.
    """
    service = AuthService(db, jwt_manager)
    try:
        tokens = await service.refresh_tokens(data.refresh_token)
    except TokenRefreshError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    return TokenResponse(**tokens.model_dump())


@router.post("/logout", response_model=MessageResponse, summary="Log out this device")
async def logout(db: DB, jwt_manager: JWT, current_user: AuthenticatedUser) -> MessageResponse:
    await AuthService(db, jwt_manager).logout(current_user.id, current_user.device_id)
    return MessageResponse(message="Logged out successfully")


@router.post("/logout-all", response_model=CountResponse, summary="Log out every device")
async def logout_all(db: DB, jwt_manager: JWT, current_user: AuthenticatedUser) -> CountResponse:
    count = await AuthService(db, jwt_manager).logout_all(current_user.id)
    return CountResponse(count=count)
