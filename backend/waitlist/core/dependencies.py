"""FastAPI dependencies for authentication and the database session."""

from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from waitlist.core.logging import get_logger
from waitlist.core.security import verify_access_token
from waitlist.db.session import get_db
from waitlist.models.account import Account

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Account:
    """Resolve the staff account behind the bearer token.

    The role claim must still match the account, so a revoked or changed
    role invalidates outstanding tokens.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        payload = verify_access_token(credentials.credentials)
        account_id = int(payload["sub"])
        role = payload.get("role")
    except (jwt.PyJWTError, KeyError, ValueError) as e:
        logger.warning("Access token rejected: %s", e)
        raise _unauthorized("Invalid or expired token") from e

    account = db.get(Account, account_id)
    if account is None:
        raise _unauthorized("Account not found")
    if account.staff_role != role:
        raise _unauthorized("Token role mismatch. Please login again.")

    return account


CurrentUser = Annotated[Account, Depends(get_current_user)]
DbSession = Annotated[Session, Depends(get_db)]
