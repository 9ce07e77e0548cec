import secrets

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session
from app.config import settings
from app.database import get_db
from app.models.user import User


def get_current_user(
    x_user_id: int | None = Header(None),
    db: Session = Depends(get_db),
) -> User:
    """Actor resolved by the upstream auth gateway and forwarded as ``X-User-Id``."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    user = db.get(User, x_user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Unknown or inactive user")
    return user


def require_cron_secret(authorization: str | None = Header(None)) -> None:
    expected = f"Bearer {settings.CRON_SECRET}"
    if not authorization or not secrets.compare_digest(authorization, expected):
        raise HTTPException(status_code=401, detail="Invalid cron secret")
