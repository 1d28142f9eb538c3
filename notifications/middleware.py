# middleware.py
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser
from rest_framework.exceptions import AuthenticationFailed


@database_sync_to_async
def get_user_for_token(token):
    from accounts.authentication import JWTAuthentication

    try:
        return JWTAuthentication().authenticate_token(token)
    except AuthenticationFailed:
        return AnonymousUser()


class JWTQueryAuthMiddleware(BaseMiddleware):
    """Authenticates websocket connections from a ``?token=`` query parameter."""

    async def __call__(self, scope, receive, send):
        query = parse_qs(scope.get('query_string', b'').decode())
        token = (query.get('token') or [None])[0]
        scope = dict(scope)
        scope['user'] = await get_user_for_token(token) if token else AnonymousUser()
        return await super().__call__(scope, receive, send)
