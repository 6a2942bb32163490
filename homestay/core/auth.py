from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from typing import Optional, Callable
from .config import settings

security = HTTPBearer(auto_error=False)

OWNER_ROLE = "property_owner"
DA_ROLE = "dealing_assistant"
DTDO_ROLES = frozenset({"district_tourism_officer", "district_officer"})
ADMIN_ROLES = frozenset({"admin", "super_admin"})
SYSTEM_ROLE = "system"

VALID_ROLES = frozenset({OWNER_ROLE, DA_ROLE, SYSTEM_ROLE}) | DTDO_ROLES | ADMIN_ROLES


class AuthContext:
    """Authenticated actor as supplied by the identity provider"""

    def __init__(
        self,
        user_id: str,
        role: str,
        district: Optional[str] = None,
        email: Optional[str] = None,
    ):
        self.user_id = user_id
        self.role = role
        self.district = district
        self.email = email

    @property
    def is_owner(self) -> bool:
        return self.role == OWNER_ROLE

    @property
    def is_da(self) -> bool:
        return self.role == DA_ROLE

    @property
    def is_dtdo(self) -> bool:
        return self.role in DTDO_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_system(self) -> bool:
        return self.role == SYSTEM_ROLE

    @property
    def is_staff(self) -> bool:
        return self.is_da or self.is_dtdo or self.is_admin

    def __repr__(self) -> str:
        return f"<AuthContext(user={self.user_id}, role={self.role}, district={self.district})>"


def decode_jwt(token: str) -> dict:
    """Decode and validate JWT token"""
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[AuthContext]:
    """
    Extract authenticated user from JWT token

    Optional dependency - returns None if no token present
    """
    if not credentials:
        return None

    payload = decode_jwt(credentials.credentials)

    user_id = payload.get("sub")
    role = payload.get("role")

    if not user_id or not role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token claims",
        )

    if role not in VALID_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Invalid role: {role}",
        )

    return AuthContext(
        user_id=user_id,
        role=role,
        district=payload.get("district"),
        email=payload.get("email"),
    )


async def require_auth(
    auth: Optional[AuthContext] = Depends(get_current_user),
) -> AuthContext:
    """Require authentication - raises 401 if not authenticated"""
    if not auth:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth


def require_role(*allowed_roles: str) -> Callable:
    """Factory for role-based authorization"""

    async def _check_role(auth: AuthContext = Depends(require_auth)) -> AuthContext:
        if auth.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{auth.role}' not authorized for this operation",
            )
        return auth

    return _check_role
