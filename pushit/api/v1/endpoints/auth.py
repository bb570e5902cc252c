"""Authentication endpoints.

User identities come from the external identity provider as bearer JWTs;
only the operator's admin session is issued here.
"""
import structlog
from fastapi import APIRouter, HTTPException, Response

from pushit.schemas import AdminLoginRequest, SuccessResponse
from pushit.core.security import verify_admin_password, create_access_token
from pushit.core import config

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/admin/login", response_model=SuccessResponse)
async def admin_login(request: AdminLoginRequest, response: Response) -> SuccessResponse:
    """
    Authenticate the operator and set the admin JWT in an httpOnly cookie.

    Raises:
        HTTPException: 401 Unauthorized if password is invalid

    Example:
        Request:
            POST /api/v1/auth/admin/login
            {"password": "your-secure-password"}

        Response (200):
            {"success": true, "message": "Logged in successfully"}
            Set-Cookie: admin_token=eyJhbGc...; HttpOnly; SameSite=Lax
    """
    if not verify_admin_password(request.password):
        logger.warning("admin_login_failed")
        raise HTTPException(status_code=401, detail="Invalid password")

    access_token = create_access_token(data={"is_admin": True})

    response.set_cookie(
        key="admin_token",
        value=access_token,
        httponly=True,
        secure=config.settings.ENVIRONMENT == "production",  # HTTPS only in production
        samesite="lax",
        max_age=config.settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )

    logger.info("admin_logged_in")
    return SuccessResponse(success=True, message="Logged in successfully")


@router.post("/admin/logout", response_model=SuccessResponse)
async def admin_logout(response: Response) -> SuccessResponse:
    """Clear the admin cookie. Safe to call when not logged in."""
    response.delete_cookie(key="admin_token")
    return SuccessResponse(success=True, message="Logged out successfully")
