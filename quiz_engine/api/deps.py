"""FastAPI dependencies shared across routes."""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from quiz_engine.core.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)

INSTRUCTOR_ROLES = frozenset({"instructor", "admin"})


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as asserted by the identity provider."""

    id: str
    role: str
    organization_id: str | None = None

    @property
    def is_instructor(self) -> bool:
        return self.role in INSTRUCTOR_ROLES


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    """Decode the bearer JWT and return the caller, or 401."""
    payload = decode_access_token(credentials.credentials) if credentials else None
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload"
        )
    return Principal(
        id=str(user_id),
        role=payload.get("role", "student"),
        organization_id=payload.get("org"),
    )


def require_instructor(current_user: Principal = Depends(get_current_user)) -> Principal:
    """Raise 403 unless the caller is an instructor or admin."""
    if not current_user.is_instructor:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Instructor access required"
        )
    return current_user
