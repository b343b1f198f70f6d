# File: src/portal/routers/application_router.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from src.portal.controllers import application_controller
from src.portal.db.session import get_db
from src.portal.models.user import User
from src.portal.schemas.application import ApplicationCreate, ApplicationRead, ApplicationWithDocuments
from src.portal.utils.dependencies import get_current_user

router = APIRouter(tags=["Internship Applications"])


@router.post("", response_model=ApplicationRead, status_code=status.HTTP_201_CREATED)
async def submit_application(
    payload: ApplicationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return application_controller.submit_application(db, payload, current_user)


@router.get("/me", response_model=List[ApplicationWithDocuments])
async def my_applications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Applications of the signed-in student; only published documents carry a URL."""
    return application_controller.list_my_applications(db, current_user.id)
