import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from fastapi import Request

from app.core.config import Settings
from app.core.session import IdentityProvider
from app.db import dynamo
from app.utils.currency import NbuRateProvider

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a request needs to talk to the outside world, created once per app."""

    earnings: dynamo.EarningsStore
    users: dynamo.UserStore
    identity: IdentityProvider
    rates: object
    clock: Callable[[], datetime] = field(default=datetime.now)

    @classmethod
    def from_settings(cls, config: Settings) -> "AppContext":
        resource = dynamo.connect(config)
        users = dynamo.UserStore(resource.Table(config.DYNAMO_USERS_TABLE))
        earnings = dynamo.EarningsStore(resource.Table(config.DYNAMO_EARNINGS_TABLE))
        rates = NbuRateProvider(
            url=config.RATE_API_URL,
            fallback_rate=config.RATE_FALLBACK,
            timeout=config.RATE_TIMEOUT_SECONDS,
        )
        logger.info(
            f"Context ready: users={config.DYNAMO_USERS_TABLE}, earnings={config.DYNAMO_EARNINGS_TABLE}"
        )
        return cls(earnings=earnings, users=users, identity=IdentityProvider(users), rates=rates)

    def close(self) -> None:
        close_rates = getattr(self.rates, "close", None)
        if close_rates:
            close_rates()
        logger.info("Context closed")


def get_context(request: Request) -> AppContext:
    return request.app.state.context
