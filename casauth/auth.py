from typing import Optional

from fastapi import HTTPException, Request, status

COOKIE_NAME = "cas_user"


def create_access_token(data: dict):
    """
    Mock token: just returns the subject (CAS user id) for the cookie.
    """
    return str(data.get("sub"))


def get_current_user(request: Request) -> str:
    """
    Reads the CAS user id from the session cookie.
    """
    user_id = request.cookies.get(COOKIE_NAME)
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user_id


def get_current_user_optional(request: Request) -> Optional[str]:
    return request.cookies.get(COOKIE_NAME) or None
