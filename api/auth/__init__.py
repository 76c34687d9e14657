"""Authentication API endpoints."""

from typing import Optional, Dict, Any

from fastapi import APIRouter, HTTPException, status, Depends
from pydantic import BaseModel, Field

from auth import (
    IdentityResolver, TokenIssuer, CodeVerifier, get_current_user,
    AuthError, ValidationError, CodeVerificationError
)
from ..deps import get_identity_resolver, get_token_issuer, get_code_verifier

router = APIRouter(tags=["Authentication"])

class LoginRequest(BaseModel):
    """Request model for provider login."""
    auth_provider: str = Field(..., min_length=1)
    auth_id: str = Field(..., min_length=1)
    email: Optional[str] = None
    wallet_address: Optional[str] = None

class LoginResponse(BaseModel):
    """Response model for login."""
    token: str
    user_id: str
    is_merchant: bool

class SendCodeRequest(BaseModel):
    """Request model for sending a one-time code."""
    phone: str = Field(..., min_length=1)

class SendCodeResponse(BaseModel):
    """Response model for sending a one-time code."""
    message: str
    demo: bool

class VerifyCodeRequest(BaseModel):
    """Request model for verifying a one-time code."""
    phone: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)

class VerifyCodeResponse(LoginResponse):
    """Response model for phone verification."""
    phone: str

def _issue_token(issuer: TokenIssuer, identity: Dict[str, Any]) -> str:
    try:
        return issuer.issue(identity)
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate token"
        )

@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    resolver: IdentityResolver = Depends(get_identity_resolver),
    issuer: TokenIssuer = Depends(get_token_issuer)
):
    """Log in with an external provider, creating the user on first login."""
    try:
        identity = await resolver.resolve(
            request.auth_provider,
            request.auth_id,
            email=request.email,
            wallet_address=request.wallet_address
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except AuthError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user"
        )

    return {
        "token": _issue_token(issuer, identity),
        "user_id": identity["user_id"],
        "is_merchant": identity["is_merchant"]
    }

@router.post("/register/send-sms", response_model=SendCodeResponse)
async def send_sms_code(
    request: SendCodeRequest,
    verifier: CodeVerifier = Depends(get_code_verifier)
):
    """Send a one-time verification code to a phone number."""
    try:
        return await verifier.issue(request.phone)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@router.post("/register/verify-sms", response_model=VerifyCodeResponse)
async def verify_sms_code(
    request: VerifyCodeRequest,
    verifier: CodeVerifier = Depends(get_code_verifier),
    issuer: TokenIssuer = Depends(get_token_issuer)
):
    """Verify a one-time code and log in the phone's user."""
    try:
        identity = await verifier.verify(request.phone, request.code)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except CodeVerificationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )
    except AuthError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user"
        )

    return {
        "token": _issue_token(issuer, identity),
        "user_id": identity["user_id"],
        "is_merchant": identity["is_merchant"],
        "phone": request.phone
    }

@router.get("/auth/verify")
async def verify_session(user: Dict[str, Any] = Depends(get_current_user)):
    """Check that the bearer token is valid and return its identity."""
    return {
        "valid": True,
        "user_id": user["user_id"],
        "is_merchant": user.get("is_merchant", False)
    }
