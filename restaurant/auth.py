"""
Adapter for the external authentication provider.

The gateway in front of this service authenticates the user and forwards the
resulting identity as two headers. They are trusted as-is.
"""

import uuid

from fastapi import Depends, Header, HTTPException, status

from restaurant.services.access_policy import Caller, Operation, authorize, parse_role

USER_ID_HEADER = "X-User-ID"
USER_ROLE_HEADER = "X-User-Role"


async def get_caller(
    x_user_id: str | None = Header(default=None, alias=USER_ID_HEADER),
    x_user_role: str | None = Header(default=None, alias=USER_ROLE_HEADER),
) -> Caller:
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing identity headers")
    try:
        parsed_id = uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Malformed user id") from None
    return Caller(user_id=parsed_id, role=parse_role(x_user_role))


def require(operation: Operation):
    """Dependency that rejects the caller before the request body is looked at."""

    async def dependency(caller: Caller = Depends(get_caller)) -> Caller:
        authorize(caller, operation)
        return caller

    return dependency
