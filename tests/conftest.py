from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.core.context import AppContext
from app.core.session import IdentityProvider
from app.main import create_app
from app.models.earning import Currency, Earning
from app.utils.currency import StaticRateProvider

NOW = datetime(2025, 3, 15, 10, 30)


class FakeEarningsStore:
    """Dict-backed stand-in for EarningsStore. Set fail_* to simulate store errors."""

    def __init__(self) -> None:
        self.items: Dict[str, Earning] = {}
        self.fail_insert = False
        self.fail_list = False
        self.fail_update = False
        self.fail_delete = False
        self.list_calls = 0
        self.on_insert = None

    def add(self, user_id: str, amount, currency: str, task: str, date: datetime) -> Earning:
        earning = Earning(
            earning_id=uuid4().hex,
            user_id=user_id,
            amount=Decimal(str(amount)),
            currency=Currency(currency),
            task=task,
            date=date,
        )
        self.items[earning.earning_id] = earning
        return earning

    def insert_earning(self, user_id, fields) -> Optional[Earning]:
        if self.on_insert:
            self.on_insert()
        if self.fail_insert:
            return None
        return self.add(user_id, fields.amount, fields.currency.value, fields.task, fields.date)

    def list_earnings(self, user_id) -> Optional[List[Earning]]:
        self.list_calls += 1
        if self.fail_list:
            return None
        return [e.model_copy() for e in self.items.values() if e.user_id == user_id]

    def update_earning(self, user_id, earning_id, fields) -> bool:
        if self.fail_update:
            return False
        current = self.items.get(earning_id)
        if current is None or current.user_id != user_id:
            return False
        self.items[earning_id] = current.model_copy(update=fields.model_dump())
        return True

    def delete_earning(self, user_id, earning_id) -> bool:
        if self.fail_delete:
            return False
        current = self.items.get(earning_id)
        if current is not None and current.user_id == user_id:
            del self.items[earning_id]
        return True


class FakeUserStore:
    def __init__(self) -> None:
        self.users: Dict[str, dict] = {}

    def get_user_by_email(self, email):
        return next((u for u in self.users.values() if u["email"] == email), None)

    def get_user_by_id(self, user_id):
        return self.users.get(user_id)

    def put_user(self, user_item):
        self.users[user_item["user_id"]] = dict(user_item)
        return True


@pytest.fixture
def earnings_store():
    return FakeEarningsStore()


@pytest.fixture
def user_store():
    return FakeUserStore()


@pytest.fixture
def context(earnings_store, user_store):
    return AppContext(
        earnings=earnings_store,
        users=user_store,
        identity=IdentityProvider(user_store),
        rates=StaticRateProvider(41.0),
        clock=lambda: NOW,
    )


@pytest.fixture
def client(context):
    with TestClient(create_app(context=context)) as test_client:
        yield test_client


@pytest.fixture
def signed_in(client):
    """Register a user; the client keeps the session cookie. Returns (user, auth headers)."""
    response = client.post("/api/auth/register", json={"email": "olena@example.com", "password": "secret123"})
    assert response.status_code == 201
    body = response.json()
    return body["user"], {"Authorization": f"Bearer {body['access_token']}"}
