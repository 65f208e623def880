import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Header, HTTPException, Response, status

from app.core.config import settings
from app.core.context import AppContext, get_context
from app.core.session import AuthError, SignInResult
from app.models.user import UserCreate, UserLogin, UserPublic

router = APIRouter()
logger = logging.getLogger(__name__)


def get_token(
    authorization: Optional[str] = Header(None),
    session: Optional[str] = Cookie(None, alias=settings.SESSION_COOKIE_NAME),
) -> Optional[str]:
    """Bearer token from the Authorization header, else the session cookie."""
    if authorization and authorization.startswith("Bearer "):
        return authorization.replace("Bearer ", "", 1)
    return session


def get_current_user(
    token: Optional[str] = Depends(get_token),
    context: AppContext = Depends(get_context),
) -> UserPublic:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token required")
    user = context.identity.current_user(token)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return user


def _session_response(response: Response, result: SignInResult) -> dict:
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        result.access_token,
        httponly=True,
        samesite="lax",
        max_age=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return {
        "access_token": result.access_token,
        "token_type": result.token_type,
        "user": result.user.model_dump(),
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, response: Response, context: AppContext = Depends(get_context)):
    try:
        result = context.identity.sign_up(user.email, user.password)
    except AuthError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _session_response(response, result)


@router.post("/login")
def login(login_data: UserLogin, response: Response, context: AppContext = Depends(get_context)):
    try:
        logger.info(f"Login attempt for email: {login_data.email}")
        result = context.identity.sign_in(login_data.email, login_data.password)
    except AuthError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except Exception as e:
        logger.error(f"Login error: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Login failed: {str(e)}")
    return _session_response(response, result)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(token: Optional[str] = Depends(get_token), context: AppContext = Depends(get_context)):
    if token:
        context.identity.sign_out(token)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return response


@router.get("/me", response_model=UserPublic)
def get_me(user: UserPublic = Depends(get_current_user)):
    """Get current user profile"""
    return user
