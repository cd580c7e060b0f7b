"""Token signing and webhook verification with the app secret."""

import hashlib
import hmac
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from jose import jwt

JWT_ALGORITHM = "HS256"


def server_token(secret: str) -> str:
    """JWT sent in the Authorization header of every server-side request."""
    return jwt.encode({"server": True}, secret, algorithm=JWT_ALGORITHM)


def user_token(secret: str, user_id: str, expire: Optional[datetime] = None,
               issued_at: Optional[datetime] = None) -> str:
    """
    JWT a client app uses to connect as `user_id`.

    Args:
        secret: API secret the token is signed with
        user_id: id the token is valid for
        expire: optional expiration; naive datetimes are taken as UTC
        issued_at: optional `iat` claim, used by the service to revoke old tokens

    Raises:
        ValueError: If user_id is empty
    """
    if not user_id:
        raise ValueError("user ID is empty")

    claims: Dict[str, Any] = {"user_id": user_id}
    if expire is not None:
        claims["exp"] = _to_timestamp(expire)
    if issued_at is not None:
        claims["iat"] = _to_timestamp(issued_at)
    return jwt.encode(claims, secret, algorithm=JWT_ALGORITHM)


def decode_token(secret: str, token: str) -> Dict[str, Any]:
    return jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])


def verify_webhook(secret: str, body: Union[bytes, str], signature: str) -> bool:
    """Check the X-Signature header of a webhook call against the raw body."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature or "")


def _to_timestamp(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())
