"""
Identity verification for bearer tokens.

Tokens are issued by the external identity provider and signed with a shared
secret; this module only checks them and pulls out the identity claims.
"""

import logging
import os

from jose import ExpiredSignatureError, JWTError, jwt

from errors import Unauthorized

logger = logging.getLogger(__name__)

JWT_SECRET = os.getenv("JWT_SECRET", "supersecretkey-change")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE")


def verify_token(token: str) -> dict:
    if not token:
        raise Unauthorized("Missing credentials")
    options = {"verify_aud": bool(JWT_AUDIENCE)}
    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
            options=options,
        )
    except ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except JWTError as e:
        logger.info("Rejected bearer token", extra={"reason": str(e)})
        raise Unauthorized("Could not validate credentials")

    user_id = payload.get("sub")
    if not user_id:
        raise Unauthorized("Could not validate credentials")
    return {
        "id": str(user_id),
        "email": payload.get("email"),
        "user_metadata": payload.get("user_metadata") or {},
    }
