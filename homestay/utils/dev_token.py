"""Development JWT token generator"""
from jose import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional
from ..core.config import settings


def generate_dev_token(
    user_id: str = "owner_001",
    role: str = "property_owner",
    district: Optional[str] = None,
    email: str = "owner@homestay.local",
) -> str:
    """
    Generate development JWT token

    Usage:
        token = generate_dev_token(role="dealing_assistant", district="Shimla")
        headers = {"Authorization": f"Bearer {token}"}
    """
    payload = {
        "sub": user_id,
        "role": role,
        "email": email,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(days=1),
    }
    if district:
        payload["district"] = district

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


if __name__ == "__main__":
    print("Development tokens:\n")
    for role, district in [
        ("property_owner", None),
        ("dealing_assistant", "Shimla"),
        ("district_tourism_officer", "Shimla"),
        ("admin", None),
    ]:
        token = generate_dev_token(user_id=f"dev_{role}", role=role, district=district)
        print(f"{role}:")
        print(f"  {token}\n")
