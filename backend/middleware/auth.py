"""
Wallet authentication helpers.

The identity provider that verifies wallet ownership lives outside this
service; it issues short-lived HS256 JWTs whose ``sub`` is the wallet
address. Fee changes trust that verified claim.

Accepted credentials:
    - Authorization: Bearer <jwt>       (preferred)
    - X-Wallet-Address: <wallet>        (legacy; development only, not secure)
"""
import logging
from datetime import datetime, timezone, timedelta
from fastapi import HTTPException, Header, Path
from typing import Optional

import jwt

from config import settings

logger = logging.getLogger(__name__)

_AUTH_REQUIRED = (
    "Authentication required. Provide Authorization: Bearer <token> (preferred) "
    "or X-Wallet-Address (legacy)."
)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def _require_secret() -> str:
    if not settings.jwt_secret:
        raise HTTPException(
            status_code=500,
            detail="Server auth misconfigured (JWT secret missing).",
        )
    return settings.jwt_secret


def decode_access_token(token: str) -> dict:
    secret = _require_secret()
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            issuer=settings.jwt_issuer,
            options={"require": ["exp", "iat", "iss", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Access token expired.")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid access token.")


def issue_access_token(*, wallet_address: str, ttl_minutes: Optional[int] = None) -> str:
    """Mint a token for ``wallet_address`` (used by the identity provider and tests)."""
    now = _now_utc().replace(microsecond=0)
    ttl = settings.jwt_access_ttl_minutes if ttl_minutes is None else ttl_minutes
    payload = {
        "iss": settings.jwt_issuer,
        "sub": wallet_address,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl)).timestamp()),
    }
    return jwt.encode(payload, _require_secret(), algorithm="HS256")


def _legacy_header_allowed() -> bool:
    return settings.environment != "production"


async def require_wallet_auth(
    wallet: str = Path(..., description="Wallet address that owns the resource"),
    authorization: Optional[str] = Header(None, alias="Authorization"),
    x_wallet_address: Optional[str] = Header(
        None,
        alias="X-Wallet-Address",
        description="Legacy caller wallet header (deprecated).",
    ),
) -> str:
    """
    Dependency for routes that act on a `{wallet}` path parameter.

    - If JWT is provided, its subject must match the path wallet.
    - Otherwise falls back to legacy X-Wallet-Address header match.
    """
    token = _parse_bearer_token(authorization)
    if token:
        auth_wallet = decode_access_token(token).get("sub")
        if auth_wallet != wallet:
            raise HTTPException(status_code=403, detail="Wallet mismatch for access token.")
        return wallet

    if not x_wallet_address or not _legacy_header_allowed():
        raise HTTPException(status_code=401, detail=_AUTH_REQUIRED)
    if x_wallet_address != wallet:
        logger.warning(
            f"Auth mismatch: path wallet={wallet[:8]}... vs header wallet={x_wallet_address[:8]}..."
        )
        raise HTTPException(
            status_code=403,
            detail="Wallet mismatch: X-Wallet-Address header does not match the wallet in the URL.",
        )
    return wallet
