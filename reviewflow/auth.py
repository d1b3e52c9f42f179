import time

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from reviewflow.config import JWT_SECRET, JWT_ALGORITHM


security = HTTPBearer()

TOKEN_TTL_SECONDS = 7 * 24 * 3600


# Create JWT token
def create_jwt(business_id: str, email: str, role: str = "owner"):

    now = int(time.time())
    payload = {
        "sub": email,
        "business_id": business_id,
        "role": role,
        "iat": now,
        "exp": now + TOKEN_TTL_SECONDS,
    }

    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


# Decode bearer token
def get_current_user(creds: HTTPAuthorizationCredentials = Depends(security)):

    try:
        payload = jwt.decode(
            creds.credentials,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM]
        )
    except JWTError:
        raise HTTPException(401, "Invalid token")

    if not payload.get("business_id"):
        raise HTTPException(401, "Invalid token")

    return payload


def require_admin(user=Depends(get_current_user)):

    if user.get("role") != "admin":
        raise HTTPException(403, "Admin access required")

    return user
