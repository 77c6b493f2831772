"""
Auth module: password hashing, JWT creation/validation, and the FastAPI
dependencies that authenticate a request and gate it on role.

Authentication is REQUIRED. A missing, malformed, tampered or expired bearer
token raises Unauthenticated (401). A valid token whose role or identity is
not good enough for the operation raises Forbidden (403). Clients rely on the
difference: a 401 sends the user back to the login page.
"""

import time
from dataclasses import dataclass
from typing import Iterable, Optional, Union
import bcrypt
from jose import jwt, JWTError
from fastapi import Request
from ehr_portal.config import get_settings
from ehr_portal.exceptions import Unauthenticated, Forbidden
from ehr_portal.models.user import Role

ALGORITHM = "HS256"
BCRYPT_ROUNDS = 10
# Identity of the configured administrator; never a users-table id.
BUILTIN_ADMIN_ID = "admin"


@dataclass(frozen=True)
class UserPrincipal:
    """Resolved identity attached to each request (the token claims)."""
    user_id: str
    email: str
    role: Role
    wallet_address: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_builtin_admin(self) -> bool:
        return self.user_id == BUILTIN_ADMIN_ID

    def is_user(self, user_id: Union[int, str, None]) -> bool:
        return user_id is not None and str(user_id) == self.user_id


def hash_password(password: str) -> str:
    # bcrypt only looks at the first 72 bytes
    hashed = bcrypt.hashpw(password.encode("utf-8")[:72], bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:72], password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_token(user_id: Union[int, str], email: str, role: Role, wallet_address: str, settings=None) -> str:
    """Create a signed, time-limited JWT carrying identity, role and wallet."""
    settings = settings or get_settings()
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role.value,
        "walletAddress": wallet_address or "",
        "iat": now,
        "exp": now + settings.token_expire_seconds,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=ALGORITHM)


def decode_token(token: str, settings=None) -> Optional[UserPrincipal]:
    """Decode and validate a JWT. Returns None if invalid/expired."""
    settings = settings or get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[ALGORITHM])
        return UserPrincipal(
            user_id=payload["sub"],
            email=payload.get("email", ""),
            role=Role(payload["role"]),
            wallet_address=payload.get("walletAddress", ""),
        )
    except (JWTError, KeyError, ValueError):
        return None


def authorize(principal: UserPrincipal, roles: Iterable[Role]) -> bool:
    return principal.role in set(roles)


def authorize_ownership(principal: UserPrincipal, owner_id: Union[int, str, None]) -> bool:
    return principal.is_user(owner_id) or principal.is_admin


async def get_current_user(request: Request) -> UserPrincipal:
    """FastAPI dependency. Extracts and verifies the JWT from the Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise Unauthenticated("Authorization header missing")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("Token missing")
    principal = decode_token(token.strip(), request.app.state.settings)
    if principal is None:
        raise Unauthenticated("Invalid or expired token")
    return principal


def require_roles(*roles: Role):
    """Dependency factory: authenticate, then allow only the given roles."""
    allowed = frozenset(roles)

    async def dependency(request: Request) -> UserPrincipal:
        principal = await get_current_user(request)
        if not authorize(principal, allowed):
            raise Forbidden("Forbidden: insufficient permissions")
        return principal

    return dependency
