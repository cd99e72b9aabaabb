"""
Garmin Connect authentication.

Credentials are obtained by opening a visible browser on the Connect
workouts page, letting the user log in by hand, and capturing the bearer
token the web client sends with its own API calls. The token's embedded
claims give the issue and expiry times.
"""

import asyncio
import base64
import binascii
import json
import logging
from typing import Callable, Dict, Iterable, Optional, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .config import (
    AUTHENTICATED_PAGE_SELECTOR,
    BROWSER_ARGS,
    BROWSER_USER_AGENT,
    BROWSER_VIEWPORT,
    LOGIN_TIMEOUT_SEC,
    RELOAD_SETTLE_SEC,
    SSO_HOST,
    WORKOUTS_PAGE_URL,
)
from .models import (
    AcquisitionFailure,
    AcquisitionFailureReason,
    Credential,
    now_ms,
)
from .store import CredentialStore, FileCredentialStore

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

# Extra time on top of the login wait for browser start-up, navigation and the reload
STARTUP_GRACE_SEC = 60

HIDE_AUTOMATION_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
window.chrome = { runtime: {}, loadTimes: function () {}, csi: function () {}, app: {} };
""".strip()

LOGIN_COMPLETE_JS = """
([pagePath, ssoHost, selector]) =>
    window.location.href.includes(pagePath) &&
    !window.location.href.includes(ssoHost) &&
    document.querySelector(selector) !== null
""".strip()


def decode_token_claims(token: str) -> Dict:
    """
    Decode the payload segment of a JWT without verifying it.

    Accepts the raw token or a full "Bearer ..." header value. Returns
    {"exp": 0, "iat": 0} if the token cannot be decoded.
    """
    if token.startswith(BEARER_PREFIX):
        token = token[len(BEARER_PREFIX):]

    try:
        payload = token.split(".")[1]
        padded = payload + "=" * (-len(payload) % 4)
        claims = json.loads(base64.urlsafe_b64decode(padded))
    except (IndexError, ValueError, binascii.Error, UnicodeDecodeError) as e:
        logger.warning(f"Failed to parse token claims: {e}")
        return {"exp": 0, "iat": 0}

    if not isinstance(claims, dict):
        logger.warning("Token payload is not a JSON object")
        return {"exp": 0, "iat": 0}
    return claims


def _claim_ms(claims: Dict, key: str) -> int:
    try:
        return int(float(claims.get(key, 0)) * 1000)
    except (TypeError, ValueError):
        return 0


def credential_from_token(token: str, cookies: str) -> Credential:
    """Build a credential whose lifetime comes from the token's own claims."""
    claims = decode_token_claims(token)
    return Credential(
        auth_token=token,
        cookies=cookies,
        issued_at=_claim_ms(claims, "iat"),
        expires_at=_claim_ms(claims, "exp"),
    )


def cookie_header(cookies: Iterable[Dict]) -> str:
    return "; ".join(f"{c['name']}={c['value']}" for c in cookies)


class TokenCapture:
    """Remembers the first bearer authorization header seen on the wire."""

    def __init__(self):
        self.token: Optional[str] = None

    def observe(self, headers: Dict[str, str]) -> bool:
        if self.token:
            return False
        value = headers.get("authorization") or headers.get("Authorization")
        if value and value.startswith(BEARER_PREFIX):
            self.token = value
            logger.info("Captured auth token")
            return True
        return False

    async def on_request(self, request) -> None:
        if self.token:
            return
        try:
            headers = await request.all_headers()
        except PlaywrightError as e:
            # Page navigated away or closed before the headers were read
            logger.debug(f"Could not read request headers: {e}")
            return
        self.observe(headers)


class CredentialAcquirer:
    """Something that can produce a fresh credential."""

    async def acquire(self) -> Union[Credential, AcquisitionFailure]:
        raise NotImplementedError


class BrowserCredentialAcquirer(CredentialAcquirer):
    """Interactive login through a visible Chromium window."""

    def __init__(self, login_timeout: int = LOGIN_TIMEOUT_SEC, start_url: str = WORKOUTS_PAGE_URL):
        self.login_timeout = login_timeout
        self.start_url = start_url

    async def acquire(self) -> Union[Credential, AcquisitionFailure]:
        try:
            return await asyncio.wait_for(
                self._login_flow(), timeout=self.login_timeout + STARTUP_GRACE_SEC
            )
        except (asyncio.TimeoutError, PlaywrightTimeoutError):
            logger.error(f"Login was not completed within {self.login_timeout} seconds")
            return AcquisitionFailure(
                reason=AcquisitionFailureReason.TIMEOUT,
                detail=f"Login was not completed within {self.login_timeout} seconds",
            )
        except PlaywrightError as e:
            logger.error(f"Browser automation failed: {e}")
            return AcquisitionFailure(reason=AcquisitionFailureReason.BROWSER_ERROR, detail=str(e))

    async def _login_flow(self) -> Union[Credential, AcquisitionFailure]:
        logger.info("Starting Garmin authentication...")
        capture = TokenCapture()

        async with async_playwright() as pw:
            browser = await pw.chromium.launch(headless=False, args=BROWSER_ARGS)
            try:
                context = await browser.new_context(
                    user_agent=BROWSER_USER_AGENT,
                    viewport=BROWSER_VIEWPORT,
                )
                await context.add_init_script(HIDE_AUTOMATION_SCRIPT)
                context.on("request", capture.on_request)

                page = await context.new_page()
                logger.info("Opening Garmin Connect login, please log in in the browser window")
                await page.goto(self.start_url, wait_until="domcontentloaded")

                await page.wait_for_function(
                    LOGIN_COMPLETE_JS,
                    arg=["/modern/workouts", SSO_HOST, AUTHENTICATED_PAGE_SELECTOR],
                    timeout=self.login_timeout * 1000,
                )
                logger.info("Workouts page loaded")

                if not capture.token:
                    logger.info("No token seen yet, reloading to trigger an API request...")
                    await page.reload()
                    await asyncio.sleep(RELOAD_SETTLE_SEC)

                cookies = cookie_header(await context.cookies())
            finally:
                await browser.close()

        if not capture.token or not cookies:
            logger.error("Could not extract authentication data")
            return AcquisitionFailure(
                reason=AcquisitionFailureReason.NO_TOKEN,
                detail="Logged in, but no bearer token or cookies were captured",
            )

        logger.info("Authentication successful")
        return credential_from_token(capture.token, cookies)


class CredentialManager:
    """
    Owns the credential lifecycle: read-check, interactive acquisition,
    persistence and invalidation.

    Acquisition is serialized per manager; callers never see an exception
    from it, only a Credential or an AcquisitionFailure.
    """

    def __init__(
        self,
        store: Optional[CredentialStore] = None,
        acquirer: Optional[CredentialAcquirer] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store or FileCredentialStore()
        self.acquirer = acquirer or BrowserCredentialAcquirer()
        self._clock = clock
        self._lock = asyncio.Lock()

    def get_valid_credential(self) -> Optional[Credential]:
        credential = self.store.read()
        if credential and credential.is_valid(self._clock()):
            return credential
        return None

    async def acquire_credential(self) -> Union[Credential, AcquisitionFailure]:
        async with self._lock:
            try:
                result = await self.acquirer.acquire()
            except Exception as e:
                logger.exception("Authentication failed")
                return AcquisitionFailure(
                    reason=AcquisitionFailureReason.BROWSER_ERROR,
                    detail=str(e) or type(e).__name__,
                )

            if isinstance(result, AcquisitionFailure):
                logger.warning(f"Authentication failed ({result.reason.value}): {result.detail}")
                return result

            try:
                self.store.write(result)
            except OSError as e:
                logger.error(f"Failed to store auth data: {e}")
                return AcquisitionFailure(reason=AcquisitionFailureReason.IO_ERROR, detail=str(e))

            return result

    def invalidate_credential(self) -> None:
        self.store.clear()
