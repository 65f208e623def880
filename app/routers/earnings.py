import logging
from typing import Iterator

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.context import AppContext, get_context
from app.models.earning import EarningCreate, EarningPublic, EarningUpdate
from app.models.user import UserPublic
from app.routers.auth import get_current_user
from app.utils.month_view import ConfirmationRequired, MonthView

router = APIRouter()
logger = logging.getLogger(__name__)


def mount_month_view(
    month_number: int,
    user: UserPublic,
    context: AppContext,
) -> MonthView:
    if not 1 <= month_number <= 12:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Month not found")
    return MonthView.mount(
        context.earnings,
        context.rates,
        user_id=user.user_id,
        month=month_number,
        clock=context.clock,
    )


def month_view(
    month_number: int,
    user: UserPublic = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> Iterator[MonthView]:
    """One MonthView per request; closing it drops results that arrive after the response."""
    with mount_month_view(month_number, user, context) as view:
        yield view


@router.get("/monthly/{month_number}")
def get_month(view: MonthView = Depends(month_view)):
    return view.render()


@router.post("/monthly/{month_number}", status_code=status.HTTP_201_CREATED)
def create_earning(earning: EarningCreate, view: MonthView = Depends(month_view)):
    try:
        created = view.create(earning)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if created is None:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to save earning")
    return {
        "earning": EarningPublic.from_earning(created).model_dump(mode="json"),
        "view": view.render(),
    }


@router.put("/monthly/{month_number}/{earning_id}")
def update_earning(
    earning_id: str,
    earning: EarningUpdate,
    view: MonthView = Depends(month_view),
):
    if not view.update(earning_id, earning):
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to update earning")
    return view.render()


@router.delete("/monthly/{month_number}/{earning_id}")
def delete_earning(
    earning_id: str,
    confirm: bool = Query(False),
    view: MonthView = Depends(month_view),
):
    try:
        deleted = view.delete(earning_id, confirmed=confirm)
    except ConfirmationRequired as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to delete earning")
    return view.render()
