# File location: src/portal/utils/dependencies.py
import uuid
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session

from src.portal.config.settings import DOCUMENT_STORAGE_BACKEND
from src.portal.db.session import get_db
from src.portal.models.user import User
from src.portal.utils.payment_gateway import RazorpayGateway
from src.portal.utils.pdf_renderer import PlaywrightPdfRenderer
from src.portal.utils.security import decode_access_token
from src.portal.utils.storage import build_document_storage

# Tokens are issued by the identity service; this API only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    session: Annotated[Session, Depends(get_db)],
) -> User:
    """
    Dependency to get the current user from a JWT token provided
    in the Authorization header.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    payload = decode_access_token(token)
    user_id = payload.get("user_id")
    if user_id is None:
        raise credentials_exception
    try:
        user_uuid = uuid.UUID(str(user_id))
    except ValueError:
        raise credentials_exception

    user = session.get(User, user_uuid)
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")
    return user


async def get_current_admin_user(
    current_user: Annotated[User, Depends(get_current_user)]
) -> User:
    """
    Dependency to get the current user and verify they are an admin.
    """
    if current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions. Admin access required.",
        )
    return current_user


# ─── Collaborator providers (overridden in tests) ─────────────

@lru_cache
def get_payment_gateway() -> RazorpayGateway:
    return RazorpayGateway()


@lru_cache
def get_document_renderer() -> PlaywrightPdfRenderer:
    return PlaywrightPdfRenderer()


@lru_cache
def get_document_storage():
    return build_document_storage(DOCUMENT_STORAGE_BACKEND)
