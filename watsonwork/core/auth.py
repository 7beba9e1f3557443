"""
OAuth token lifecycle for Watson Work Services.

TokenLifecycleManager 负责:
- 使用 client_credentials 换取 JWT access token
- 在 token 过期前 (exp - 60s) 自动续期
- 失败时按固定间隔重试，连续失败超过上限后进入 FAILED 终态

State machine::

    UNSTARTED -> ACQUIRING -> VALID -> ACQUIRING (renewal) -> ... -> FAILED
"""

import asyncio
import enum
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

import httpx
import jwt
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from watsonwork.core.config import settings
from watsonwork.core.errors import (
    AcquisitionFailed,
    AcquisitionInProgress,
    InvalidCredentialFormat,
)
from watsonwork.core.log import _mask_token, verbose
from watsonwork.schemas.workspace import Credential

logger = logging.getLogger(__name__)

# HTTP 请求超时配置（秒），仅作用于 token 交换请求
HTTP_TIMEOUT = 10.0

TOKEN_PATH = "/oauth/token"

# 平台签发的凭证为固定长度
APP_ID_LENGTH = 36
APP_SECRET_LENGTH = 28


class TokenState(str, enum.Enum):
    UNSTARTED = "unstarted"
    ACQUIRING = "acquiring"
    VALID = "valid"
    FAILED = "failed"


class _AttemptFailed(Exception):
    """单次 token 请求失败（可重试）"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


def decode_expiry(token: str) -> Optional[datetime]:
    """
    Read the `exp` claim of a JWT without verifying its signature.

    Returns:
        Expiry as an aware UTC datetime, or None if the token has no `exp`.

    Raises:
        jwt.PyJWTError: the token is not a decodable JWT
    """
    claims = jwt.decode(token, options={"verify_signature": False})
    exp = claims.get("exp")
    if exp is None:
        return None
    return datetime.fromtimestamp(exp, tz=timezone.utc)


def validate_credentials(app_id: Optional[str], app_secret: Optional[str]) -> None:
    """校验 app id / secret 的格式，不发起任何网络请求"""
    if (
        not isinstance(app_id, str)
        or not isinstance(app_secret, str)
        or len(app_id) != APP_ID_LENGTH
        or len(app_secret) != APP_SECRET_LENGTH
    ):
        raise InvalidCredentialFormat(
            f"appId '{app_id}' or appSecret has a problem: expected "
            f"{APP_ID_LENGTH} and {APP_SECRET_LENGTH} characters"
        )


class TokenLifecycleManager:
    """
    Acquires a bearer token and keeps it fresh for the lifetime of the manager.

    The token is read through current_token() or an accessor() closure; the
    stored Credential is replaced with a single assignment on every refresh,
    so readers always see the latest committed token.

    Renewal runs refresh_margin seconds before `exp`. A token whose lifetime
    is already within refresh_margin (short-lived tokens, server clock skew)
    is renewed immediately after every successful acquisition, with no
    backoff between requests.

    Example:
        manager = TokenLifecycleManager(app_id, app_secret)
        credential = await manager.start()
        headers = {"Authorization": f"Bearer {manager.current_token().token}"}
        ...
        await manager.stop()
    """

    def __init__(
        self,
        app_id: Optional[str] = None,
        app_secret: Optional[str] = None,
        token: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        retry_interval: Optional[float] = None,
        max_failures: Optional[int] = None,
        refresh_margin: Optional[float] = None,
    ):
        self.app_id = app_id if app_id is not None else settings.WATSONWORK_APP_ID
        self.app_secret = (
            app_secret if app_secret is not None else settings.WATSONWORK_APP_SECRET
        )

        # 显式传入的 app 凭证优先于环境中的静态 token
        if token is None and app_id is None:
            token = settings.WATSONWORK_JWT_TOKEN
        self._static_token = token

        self.base_url = (base_url or settings.WATSONWORK_BASE_URL).rstrip("/")
        self.retry_interval = (
            retry_interval
            if retry_interval is not None
            else settings.WATSONWORK_TOKEN_RETRY_INTERVAL
        )
        self.max_failures = (
            max_failures
            if max_failures is not None
            else settings.WATSONWORK_TOKEN_MAX_FAILURES
        )
        self.refresh_margin = (
            refresh_margin
            if refresh_margin is not None
            else settings.WATSONWORK_TOKEN_REFRESH_MARGIN
        )

        self._credential: Optional[Credential] = None
        self._state = TokenState.UNSTARTED
        self._error: Optional[AcquisitionFailed] = None
        self._task: Optional[asyncio.Task] = None
        self._task_credentials: Optional[Tuple[str, str]] = None
        # 尚未完成的 start() 信号，首次获取成功或失败时统一完成
        self._waiters: List[asyncio.Future] = []

        self.failures = 0
        self.next_refresh_in: Optional[float] = None

    @property
    def state(self) -> TokenState:
        return self._state

    def start(
        self, app_id: Optional[str] = None, app_secret: Optional[str] = None
    ) -> "asyncio.Future[Credential]":
        """
        Begin acquisition and autonomous renewal.

        Must be called from a running event loop. Every call gets its own
        future:

        - while an acquisition with the same credentials is in flight, the
          new future shares its outcome and no extra request is made
        - once a token is held, the future resolves immediately with it
        - with different credentials the renewal task is restarted; futures
          from earlier calls still pending resolve with the new outcome

        Returns:
            Future resolved once with the first Credential, or failed with
            AcquisitionFailed when retries are exhausted.

        Raises:
            InvalidCredentialFormat: app id / secret has the wrong shape
        """
        if app_id is not None:
            self.app_id = app_id
        if app_secret is not None:
            self.app_secret = app_secret

        loop = asyncio.get_running_loop()
        ready = loop.create_future()

        if self._static_token:
            logger.info("Using pre-issued token; skipping OAuth acquisition")
            self._store(
                Credential(token=self._static_token, expires_at=self._static_expiry())
            )
            ready.set_result(self._credential)
            return ready

        validate_credentials(self.app_id, self.app_secret)
        credentials = (self.app_id, self.app_secret)

        running = self._task is not None and not self._task.done()
        if running and self._task_credentials == credentials:
            if self._state is TokenState.VALID:
                ready.set_result(self._credential)
            else:
                logger.debug("Token acquisition already in progress; sharing its result")
                self._waiters.append(ready)
            return ready

        self._cancel_task()
        self._waiters.append(ready)
        self._error = None
        self.failures = 0
        self._state = TokenState.ACQUIRING
        self._task_credentials = credentials
        self._task = loop.create_task(self._run(), name="watsonwork-token-renewal")
        return ready

    def current_token(self) -> Credential:
        """
        Return the latest stored credential without waiting.

        Raises:
            AcquisitionFailed: the manager reached the FAILED state
            AcquisitionInProgress: no token has been acquired yet
        """
        if self._state is TokenState.FAILED:
            error = self._error
            raise AcquisitionFailed(
                str(error),
                attempts=error.attempts if error else 0,
                status_code=error.status_code if error else None,
            ) from error

        credential = self._credential
        if credential is None:
            raise AcquisitionInProgress(
                "No access token yet; await the future returned by start()"
            )
        return credential

    def accessor(self) -> Callable[[], str]:
        """返回读取当前 token 字符串的闭包，续期后自动读到新 token"""
        manager = self

        def current() -> str:
            return manager.current_token().token

        return current

    async def stop(self) -> None:
        """取消续期任务并等待其退出；可重复调用"""
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.cancel()

        task, self._task = self._task, None
        if task is None or task.done():
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Token renewal task stopped")

    async def __aenter__(self) -> "TokenLifecycleManager":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            logger.debug("Cancelling previous token renewal task")
            self._task.cancel()
        self._task = None

    def _static_expiry(self) -> Optional[datetime]:
        try:
            return decode_expiry(self._static_token)
        except jwt.PyJWTError as e:
            logger.warning("Pre-issued token is not a decodable JWT: %s", e)
            return None

    def _store(self, credential: Credential) -> None:
        refreshed = self._credential is not None
        self._credential = credential
        self._state = TokenState.VALID

        if refreshed:
            verbose(logger, "Refreshed access token: %s", _mask_token(credential.token))
        else:
            logger.info(
                "Successfully requested token: %s", _mask_token(credential.token)
            )

    def _schedule(self, credential: Credential) -> Optional[float]:
        """
        计算下次续期的等待时间: max(0, ttl - refresh_margin)

        ttl 不超过 refresh_margin 的 token (有效期过短或服务端时钟偏差)
        会在每次获取成功后立即续期，期间没有退避。
        """
        ttl = credential.ttl()
        if ttl is None:
            logger.warning("Token carries no exp claim; automatic renewal disabled")
            self.next_refresh_in = None
            return None

        delay = max(0.0, ttl - self.refresh_margin)
        self.next_refresh_in = delay
        verbose(
            logger,
            "Token time-to-live %.0f seconds; next renewal in %.0f seconds",
            ttl,
            delay,
        )
        return delay

    def _notify(
        self,
        credential: Optional[Credential] = None,
        error: Optional[AcquisitionFailed] = None,
    ) -> None:
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if waiter.done():
                continue
            if error is not None:
                waiter.set_exception(error)
            else:
                waiter.set_result(credential)

    async def _run(self) -> None:
        try:
            while True:
                credential = await self._acquire()
                self._store(credential)
                self._notify(credential)

                delay = self._schedule(credential)
                if delay is None:
                    return

                await asyncio.sleep(delay)
                self._state = TokenState.ACQUIRING
                verbose(logger, "Renewing access token")
        except AcquisitionFailed as e:
            self._fail_permanently(e)
        except Exception as e:
            logger.exception("Unexpected error in token renewal")
            error = AcquisitionFailed(
                f"Unexpected token renewal error: {e}", attempts=self.failures
            )
            error.__cause__ = e
            self._fail_permanently(error)

    def _fail_permanently(self, error: AcquisitionFailed) -> None:
        self._error = error
        self._state = TokenState.FAILED
        logger.error("Token acquisition failed permanently: %s", error)
        self._notify(error=error)

    async def _acquire(self) -> Credential:
        """
        Request a token, retrying every retry_interval seconds.

        More than max_failures consecutive failures is terminal.
        """
        attempts = self.max_failures + 1
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(attempts),
                wait=wait_fixed(self.retry_interval),
                retry=retry_if_exception_type(_AttemptFailed),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    credential = await self._request_token()
        except _AttemptFailed as e:
            raise AcquisitionFailed(
                f"Too many JWT token attempts ({self.failures}); giving up",
                attempts=self.failures,
                status_code=e.status_code,
            ) from e

        self.failures = 0
        return credential

    def _failed(self, message: str, status_code: Optional[int] = None) -> _AttemptFailed:
        self.failures += 1
        if self.failures > self.max_failures:
            logger.error(
                "Failed to get JWT token (%d/%d): %s; no retries left",
                self.failures,
                self.max_failures,
                message,
            )
        else:
            logger.error(
                "Failed to get JWT token (%d/%d): %s; retrying in %.0f seconds",
                self.failures,
                self.max_failures,
                message,
                self.retry_interval,
            )
        return _AttemptFailed(message, status_code=status_code)

    async def _request_token(self) -> Credential:
        logger.info(
            "Requesting token for appId '%s' and secret '%s'",
            _mask_token(self.app_id),
            _mask_token(self.app_secret, visible_chars=0),
        )

        url = f"{self.base_url}{TOKEN_PATH}"
        try:
            async with httpx.AsyncClient(
                trust_env=False, timeout=httpx.Timeout(HTTP_TIMEOUT)
            ) as client:
                resp = await client.post(
                    url,
                    auth=(self.app_id, self.app_secret),
                    data={"grant_type": "client_credentials"},
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            raise self._failed(f"network error: {e}") from e

        if resp.status_code != 200:
            logger.debug("Token error response body: %s", resp.text[:200])
            raise self._failed(f"HTTP {resp.status_code}", status_code=resp.status_code)

        try:
            token = resp.json()["access_token"]
            return Credential(token=token, expires_at=decode_expiry(token))
        except (ValueError, KeyError, TypeError, jwt.PyJWTError) as e:
            raise self._failed(f"unusable token response: {e}") from e
