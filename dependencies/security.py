import hmac
from typing import Optional, Annotated

from fastapi import Header

from config.settings import settings
from utils.errors import AuthenticationError, UnclassifiedServerError

AuthHeader = Annotated[Optional[str], Header(alias="Authorization")]

BEARER = "bearer"


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError("Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != BEARER or not token.strip():
        raise AuthenticationError("Expected 'Authorization: Bearer <token>'")
    return token.strip()


# ✅ every /v1 admin route: static bearer token from ADMIN_API_TOKEN
def require_admin_token(authorization: AuthHeader = None) -> dict:
    expected = settings.ADMIN_API_TOKEN
    if not expected:
        raise UnclassifiedServerError("Server token not configured")

    token = _bearer_token(authorization)
    if not hmac.compare_digest(token.encode(), expected.encode()):
        raise AuthenticationError("Invalid token")
    return {"client": "admin"}
