from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from eventrec_user.store import Repository
from .deps import get_repo


def require_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Authorization header format")
    return token.strip()


def resolve_user_id(token: str = Depends(require_bearer_token)) -> str:
    """
    Identity provider seam. The reference deployment treats the bearer token
    as the opaque user id; swap this dependency for a real token verifier.
    """
    return token


async def get_current_user_id(
    user_id: str = Depends(resolve_user_id),
    repo: Repository = Depends(get_repo),
) -> str:
    await repo.ensure_user(user_id)
    return user_id
