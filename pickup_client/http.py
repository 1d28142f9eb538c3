"""
Every network call from the device goes through ``ResilientClient``.

Identical requests already in flight share one response. Server errors and
dropped connections are retried with exponential backoff; once retries run
out the result is marked ``degraded`` so callers can fall back to local
state. A 401 ends the session on this device.
"""
import asyncio
import json
import logging
from urllib.parse import urlencode

import httpx

from .broadcast import AUTH_LOGOUT
from .errors import ApiResult, ErrorKind

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = 'auth_token'

# Retrying cannot change the outcome of these
NON_RETRYABLE_ERRORS = (
    httpx.UnsupportedProtocol,
    httpx.ProxyError,
    httpx.LocalProtocolError,
    httpx.StreamConsumed,
    httpx.ResponseNotRead,
)


class ResilientClient:
    def __init__(self, config, store, broadcast=None, transport=None, demo_responses=None, sleep=None):
        self.config = config
        self.store = store
        self.broadcast = broadcast
        self.demo_responses = demo_responses or {}
        self._sleep = sleep or asyncio.sleep
        self._inflight = {}
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout,
            transport=transport,
        )

    async def aclose(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    @property
    def token(self):
        return self.store.get(AUTH_TOKEN_KEY)

    def set_token(self, token):
        self.store.set(AUTH_TOKEN_KEY, token)

    def clear_token(self):
        self.store.delete(AUTH_TOKEN_KEY)

    async def get(self, path, params=None, timeout=None):
        return await self.request('GET', path, params=params, timeout=timeout)

    async def post(self, path, json_body=None, timeout=None):
        return await self.request('POST', path, json_body=json_body, timeout=timeout)

    async def put(self, path, json_body=None, timeout=None):
        return await self.request('PUT', path, json_body=json_body, timeout=timeout)

    async def request(self, method, path, json_body=None, params=None, timeout=None) -> ApiResult:
        key = self._dedup_key(method, path, params, json_body)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._send(method, path, json_body, params, timeout))
            self._inflight[key] = task
            task.add_done_callback(lambda _done, key=key: self._inflight.pop(key, None))
        else:
            logger.debug("Joining in-flight %s %s", method, path)
        # A cancelled caller must not cancel the request other callers share
        return await asyncio.shield(task)

    @staticmethod
    def _dedup_key(method, path, params, json_body):
        query = urlencode(sorted((params or {}).items()))
        body = json.dumps(json_body, sort_keys=True, separators=(',', ':'), default=str)
        return f"{method.upper()} {path}?{query} {body}"

    def _headers(self):
        headers = {'Accept': 'application/json'}
        token = self.token
        if token:
            headers['Authorization'] = f'Bearer {token}'
        return headers

    async def _send(self, method, path, json_body, params, timeout):
        timeout = timeout if timeout is not None else self.config.timeout
        last_error = None

        for attempt in range(self.config.max_retries + 1):
            if attempt:
                await self._sleep(self.config.retry_delay * 2 ** (attempt - 1))
            try:
                response = await self._client.request(
                    method, path, json=json_body, params=params,
                    headers=self._headers(), timeout=timeout,
                )
            except NON_RETRYABLE_ERRORS as e:
                logger.warning("%s %s failed without retry: %s", method, path, e)
                last_error = e
                break
            except httpx.TimeoutException as e:
                last_error = e
                logger.warning("%s %s timed out (attempt %s)", method, path, attempt + 1)
                if attempt >= 1:
                    break
                continue
            except httpx.TransportError as e:
                last_error = e
                logger.warning("%s %s transport error (attempt %s): %s", method, path, attempt + 1, e)
                continue

            if response.status_code >= 500:
                last_error = f"HTTP {response.status_code}"
                logger.warning("%s %s returned %s (attempt %s)", method, path, response.status_code, attempt + 1)
                continue
            return self._to_result(method, path, response)

        return self._degraded(method, path, last_error)

    def _to_result(self, method, path, response):
        status = response.status_code
        try:
            data = response.json() if response.content else None
        except ValueError:
            if status < 400:
                logger.error("%s %s returned a body that is not JSON", method, path)
                return ApiResult.failure(ErrorKind.MALFORMED_RECORD, status_code=status)
            data = None

        if status == 401:
            logger.info("Session rejected by the server; signing out")
            self.clear_token()
            if self.broadcast is not None:
                self.broadcast.publish(AUTH_LOGOUT, {'reason': 'unauthorized'})
            return ApiResult.failure(ErrorKind.AUTH_REQUIRED, status_code=status, data=data)
        if status == 409:
            return ApiResult.failure(ErrorKind.CONFLICT, status_code=status, data=data)
        if status >= 400:
            return ApiResult.failure(ErrorKind.PERMANENT_SERVER, status_code=status, data=data)
        return ApiResult(ok=True, status_code=status, data=data)

    def _degraded(self, method, path, last_error):
        if self.config.demo_mode and method.upper() == 'GET' and '/admin/' in path:
            logger.info("Serving demo data for %s", path)
            return ApiResult(ok=True, data=self.demo_responses.get(path, {}), degraded=True, demo=True)
        logger.error("%s %s gave up: %s", method, path, last_error)
        return ApiResult.failure(ErrorKind.TRANSIENT_NETWORK)
