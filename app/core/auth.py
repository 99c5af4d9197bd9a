"""
Authentification des routes.

- Utilisateurs: JWT HS256 (cookie access_token ou header Bearer), sub = user id
- Cron: secret partagé CRON_SECRET en Bearer
"""
import hmac

from fastapi import HTTPException, Request
from jose import jwt, JWTError

from app.core import config


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    return ""


def get_current_user_id(request: Request) -> str:
    """Extract and validate current user id from token."""
    token = request.cookies.get("access_token") or _bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = jwt.decode(
            token,
            config.JWT_SECRET,
            algorithms=[config.JWT_ALGO],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub") or payload.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    return str(user_id)


def verify_cron_secret(request: Request) -> None:
    secret = config.CRON_SECRET
    token = _bearer_token(request) or request.headers.get("X-Cron-Secret", "")
    if not secret or not hmac.compare_digest(token, secret):
        raise HTTPException(status_code=401, detail="Invalid cron secret")
