"""
Session-gated views: the public login view, the dashboard and the month view.

Each request opens a SessionGate on the caller's token. A signed-in user
visiting "/" is sent to the dashboard, and a signed-out user visiting any
other view is sent back to "/".
"""
import logging
from typing import Dict, Iterator, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse

from app.core.context import AppContext, get_context
from app.core.session import SessionGate
from app.routers.auth import get_token
from app.routers.earnings import mount_month_view
from app.utils.aggregator import EarningsAggregator, month_tiles

router = APIRouter()
logger = logging.getLogger(__name__)
aggregator = EarningsAggregator()


def session_gate(
    token: Optional[str] = Depends(get_token),
    context: AppContext = Depends(get_context),
) -> Iterator[SessionGate]:
    gate = SessionGate.open(context.identity, token)
    try:
        yield gate
    finally:
        gate.close()


def _gated(gate: SessionGate, request: Request):
    """Return a response when the gate does not let the request through, else None."""
    decision = gate.route(request.url.path)
    if decision.kind == "redirect":
        return RedirectResponse(decision.location, status_code=303)
    if decision.kind == "loading":
        return JSONResponse({"view": "loading"}, status_code=503)
    return None


@router.get("/")
def login_view(request: Request, gate: SessionGate = Depends(session_gate)):
    blocked = _gated(gate, request)
    if blocked is not None:
        return blocked
    return {"view": "login", "actions": ["/api/auth/login", "/api/auth/register"]}


@router.get("/dashboard")
def dashboard_view(
    request: Request,
    gate: SessionGate = Depends(session_gate),
    context: AppContext = Depends(get_context),
):
    blocked = _gated(gate, request)
    if blocked is not None:
        return blocked

    user = gate.current_user
    quote = context.rates.fetch()
    records = context.earnings.list_earnings(user.user_id)
    if records is None:
        logger.error(f"Could not load earnings for user {user.user_id}")
        records = []

    year = context.clock().year
    return {
        "view": "dashboard",
        "user": user.model_dump(),
        "all_time": aggregator.summarize(records, quote.rate).to_dict(),
        "rate": quote.to_dict(),
        "months": month_tiles(year),
    }


@router.get("/month/{month_number}")
def month_detail_view(
    request: Request,
    month_number: int,
    gate: SessionGate = Depends(session_gate),
    context: AppContext = Depends(get_context),
):
    blocked = _gated(gate, request)
    if blocked is not None:
        return blocked

    with mount_month_view(month_number, gate.current_user, context) as view:
        payload: Dict = view.render()
    payload["view"] = "month"
    return payload
