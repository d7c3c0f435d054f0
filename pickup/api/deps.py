from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status
from jose import JWTError
from sqlalchemy.orm import Session

from pickup.core.security import decode_token
from pickup.db.session import get_db
from pickup.models import Profile


def get_current_profile(
    db: Session = Depends(get_db), authorization: str | None = Header(default=None)
) -> Profile:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing_token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = decode_token(token)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
    profile_id = payload.get("sub")
    if not profile_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
    profile = db.get(Profile, int(profile_id))
    if not profile:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="profile_not_found")
    return profile


def require_admin(profile: Profile = Depends(get_current_profile)) -> Profile:
    if not profile.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="admin_required")
    return profile
