from fastapi import Depends, Header
from jose import JWTError, jwt

from vetsphere.config import Settings, get_settings
from vetsphere.errors import AuthenticationError


def verify_token(authorization: str = Header(None), settings: Settings = Depends(get_settings)):
    if not authorization or not settings.jwt_secret:
        raise AuthenticationError()
    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError()
    if scheme.lower() != "bearer":
        raise AuthenticationError()
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
    except JWTError:
        raise AuthenticationError()
