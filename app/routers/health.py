"""
Health Check Router
Liveness and DynamoDB connectivity checks
"""
from fastapi import APIRouter, Depends
from datetime import datetime, timezone
import logging

from app.core.config import settings
from app.core.context import AppContext, get_context

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


def _table_status(name: str, table) -> dict:
    try:
        table.scan(Limit=1)
        return {"name": name, "status": "accessible", "region": settings.DYNAMO_REGION}
    except Exception as e:
        logger.error(f"DynamoDB check failed for {name}: {str(e)}")
        return {"name": name, "status": "error", "error": str(e)}


@router.get("/status")
def dynamo_status(context: AppContext = Depends(get_context)):
    """
    Check connectivity of the DynamoDB tables:
    - Users
    - Earnings
    """
    tables = {
        "users": _table_status(settings.DYNAMO_USERS_TABLE, context.users.table),
        "earnings": _table_status(settings.DYNAMO_EARNINGS_TABLE, context.earnings.table),
    }
    connected = all(table["status"] == "accessible" for table in tables.values())
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {"dynamodb": {"connected": connected, "tables": tables}},
        "overall_status": "healthy" if connected else "degraded",
    }
