"""
Identity provider and session gate.

The provider owns accounts and tokens. The gate only observes signed-in and
signed-out transitions for one session and decides which view a path gets.
"""
import logging
import re
import threading
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from app.core.security import create_access_token, decode_token, get_password_hash, verify_password
from app.models.user import UserInDB, UserPublic

logger = logging.getLogger(__name__)

AuthListener = Callable[[Optional[UserPublic]], None]

PUBLIC_PATH = "/"
HOME_PATH = "/dashboard"
_PROTECTED_PATHS = (re.compile(r"^/dashboard/?$"), re.compile(r"^/month/[^/]+/?$"))


class AuthError(Exception):
    """Raised by the identity provider; the message is shown to the user as is."""


@dataclass
class SignInResult:
    access_token: str
    user: UserPublic
    token_type: str = "bearer"


class IdentityProvider:
    def __init__(self, users) -> None:
        self.users = users
        # jti -> exp; shared by requests running on the threadpool
        self._revoked: Dict[str, float] = {}
        self._listeners: Dict[str, List[AuthListener]] = defaultdict(list)
        self._lock = threading.Lock()

    def sign_up(self, email: str, password: str) -> SignInResult:
        if self.users.get_user_by_email(email):
            logger.warning(f"Sign-up rejected, email already registered: {email}")
            raise AuthError("User already exists")

        user_db = UserInDB(email=email, password_hash=get_password_hash(password))
        if not self.users.put_user(user_db.model_dump()):
            raise AuthError("Error saving user")

        logger.info(f"Registered user {user_db.user_id}")
        return self._issue(UserPublic(**user_db.model_dump()))

    def sign_in(self, email: str, password: str) -> SignInResult:
        user = self.users.get_user_by_email(email)
        if not user:
            logger.warning(f"User not found: {email}")
            raise AuthError("Invalid credentials")
        if not verify_password(password, user.get("password_hash", "")):
            logger.warning(f"Invalid password for user: {email}")
            raise AuthError("Invalid credentials")

        logger.info(f"Login successful for user: {email}")
        return self._issue(UserPublic(**user))

    def sign_out(self, token: str) -> None:
        payload = decode_token(token)
        with self._lock:
            if payload and payload.get("jti"):
                now = time.time()
                # revoked tokens past their exp fail decode_token anyway
                for jti in [jti for jti, exp in self._revoked.items() if exp <= now]:
                    del self._revoked[jti]
                self._revoked[payload["jti"]] = float(payload.get("exp", now))
                logger.info(f"Signed out user {payload.get('sub')}")
            listeners = list(self._listeners.get(token, []))
        for listener in listeners:
            listener(None)

    def current_user(self, token: Optional[str]) -> Optional[UserPublic]:
        """Resolve a token to its user; None for missing, invalid, expired or revoked tokens."""
        if not token:
            return None
        payload = decode_token(token)
        if not payload:
            return None
        with self._lock:
            if payload.get("jti") in self._revoked:
                return None
        user_id = payload.get("sub")
        if not user_id:
            return None
        user = self.users.get_user_by_id(user_id)
        return UserPublic(**user) if user else None

    def on_auth_state_changed(self, token: Optional[str], listener: AuthListener) -> Callable[[], None]:
        """
        Subscribe to the session identified by token. The listener fires
        immediately with the resolved user and again with None on sign-out.
        """
        key = token or ""
        with self._lock:
            self._listeners[key].append(listener)
        listener(self.current_user(token))

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(key)
                if listeners and listener in listeners:
                    listeners.remove(listener)
                    if not listeners:
                        self._listeners.pop(key, None)

        return unsubscribe

    def _issue(self, user: UserPublic) -> SignInResult:
        return SignInResult(access_token=create_access_token({"sub": user.user_id}), user=user)


@dataclass
class RouteDecision:
    kind: str  # "loading", "render" or "redirect"
    location: Optional[str] = None


class SessionGate:
    def __init__(self) -> None:
        self.current_user: Optional[UserPublic] = None
        self.loading = True
        self._unsubscribe: Optional[Callable[[], None]] = None

    @classmethod
    def open(cls, provider: IdentityProvider, token: Optional[str]) -> "SessionGate":
        gate = cls()
        gate._unsubscribe = provider.on_auth_state_changed(token, gate.on_auth_state)
        return gate

    def on_auth_state(self, user: Optional[UserPublic]) -> None:
        self.current_user = user
        self.loading = False

    @property
    def signed_in(self) -> bool:
        return self.current_user is not None

    def route(self, path: str) -> RouteDecision:
        if self.loading:
            return RouteDecision("loading")
        if path == PUBLIC_PATH:
            return RouteDecision("redirect", HOME_PATH) if self.signed_in else RouteDecision("render")
        if any(pattern.match(path) for pattern in _PROTECTED_PATHS):
            return RouteDecision("render") if self.signed_in else RouteDecision("redirect", PUBLIC_PATH)
        return RouteDecision("redirect", PUBLIC_PATH)

    def close(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
