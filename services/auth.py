from datetime import datetime, timedelta, UTC
from typing import Any, Dict, Optional
import logging

import jwt
from jwt import PyJWTError
from fastapi import HTTPException, status

from settings.config import get_settings

logger = logging.getLogger(__name__)


def create_jwt_token(
    data: Dict[str, Any], expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a new JWT token with the given data and expiration
    """
    settings = get_settings()
    try:
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.now(UTC) + expires_delta
        else:
            expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)

        to_encode.update({"exp": expire})

        return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)

    except Exception as e:
        raise Exception(f"Error creating token: {str(e)}")


def create_access_token(person_id: int, expires_delta: Optional[timedelta] = None) -> str:
    return create_jwt_token({"person_id": person_id}, expires_delta)


def decode_jwt(token: str) -> Dict[str, Any]:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        )
    except PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    if "person_id" not in payload:
        logger.warning("Token without person_id rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return payload
