import logging
from typing import Optional

import jwt
from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from steelerp.config import settings
from steelerp.models import Project, User

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


def _token_from_request(request: Request) -> Optional[str]:
    header = request.headers.get("authorization")
    if header and header.lower().startswith("bearer "):
        return header[7:].strip()
    return request.cookies.get(settings.session_cookie)


def resolve_user(request: Request, db: Session) -> Optional[User]:
    token = _token_from_request(request)
    if not token:
        return None
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.InvalidTokenError as exc:
        logger.debug("rejected session token: %s", exc)
        return None
    user_id = claims.get("userId")
    if not user_id:
        return None
    return db.get(User, user_id)


def require_user(user: Optional[User]) -> User:
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def require_admin(user: Optional[User]) -> User:
    if user is None or user.role != ADMIN_ROLE:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def ensure_project_access(user: User, project: Project) -> None:
    if user.role != ADMIN_ROLE and project.client_id != user.id:
        raise HTTPException(status_code=403, detail="Forbidden")


def issue_token(user_id: str) -> str:
    return jwt.encode({"userId": user_id}, settings.jwt_secret, algorithm=settings.jwt_algorithm)
