import uuid

import jwt
from datetime import datetime, timezone
from django.conf import settings


def create_jwt_token(payload: dict, lifetime=None) -> str:
    """Create a signed HS256 token; lifetime defaults to JWT_ACCESS_TOKEN_LIFETIME."""
    lifetime = lifetime or settings.JWT_ACCESS_TOKEN_LIFETIME
    now = datetime.now(timezone.utc)
    payload = dict(payload)
    payload.update({
        'exp': now + lifetime,
        'iat': now,
    })
    return jwt.encode(payload, settings.SECRET_KEY, algorithm='HS256')


def decode_jwt_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=['HS256'])


def issue_session_token(user) -> str:
    """Issue a token and make it the user's only valid session."""
    token = create_jwt_token({
        'user_id': user.id,
        'email': user.email,
        'role': user.role,
        'jti': uuid.uuid4().hex,
    })
    user.current_token_user = token
    user.save(update_fields=['current_token_user'])
    return token
