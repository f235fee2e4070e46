"""Telemetry capture by replaying the login journey in a real browser."""
from typing import Callable, Optional

from playwright.sync_api import Browser, BrowserContext, Error as PlaywrightError, Frame, Page, Request
from playwright.sync_api import sync_playwright

from .selectors import SelectorAttempt, build_attempts, try_in_order
from ledgerflow.config.settings import AppSettings
from ledgerflow.utils.deadline import Deadline
from ledgerflow.utils.exceptions import (
    LoginFormError,
    LoginFrameError,
    NavigationError,
    TelemetryNotCapturedError
)
from ledgerflow.utils.logger import get_logger, mask_identifier

logger = get_logger()

HIDE_WEBDRIVER_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });
"""


class TelemetryCapture:
    """Drives the login UI and records the anti-automation header from outgoing traffic."""

    def __init__(
        self,
        settings: AppSettings,
        headless: bool = True,
        verbose: bool = False,
        playwright_factory: Callable = sync_playwright
    ):
        """
        Initialize capture.

        Args:
            settings: Application settings (URLs, selectors, timings)
            headless: Render invisibly when True
            verbose: Log step progress at INFO instead of DEBUG
            playwright_factory: Context manager factory yielding a Playwright instance
        """
        self.settings = settings
        self.headless = headless
        self.verbose = verbose
        self._playwright_factory = playwright_factory
        self._deadline = Deadline()
        self.telemetry: Optional[str] = None

    def _log(self, message: str) -> None:
        if self.verbose:
            logger.info(message)
        else:
            logger.debug(message)

    def _ms(self, timeout_ms: int) -> int:
        return self._deadline.clamp_ms(timeout_ms)

    def capture(self, username: str, password: str, deadline: Optional[Deadline] = None) -> str:
        """
        Log in through the browser and return the last observed telemetry value.

        Args:
            username: Login identifier
            password: Login secret
            deadline: Optional end-to-end deadline bounding every wait

        Returns:
            Telemetry header value

        Raises:
            NavigationError, LoginFrameError, LoginFormError, TelemetryNotCapturedError
        """
        self.telemetry = None
        self._deadline = deadline or Deadline()

        self._log("Starting browser...")
        with self._playwright_factory() as playwright:
            browser = playwright.chromium.launch(
                headless=self.headless,
                args=list(self.settings.launch_args)
            )
            try:
                context = self._new_context(browser)
                page = context.new_page()
                self._login(page, username, password)
            finally:
                browser.close()
                self._log("Browser closed")

        if not self.telemetry:
            raise TelemetryNotCapturedError(
                f"No outgoing request carried the '{self.settings.telemetry_header}' header"
            )

        self._log(f"Telemetry captured ({len(self.telemetry)} chars)")
        return self.telemetry

    def _new_context(self, browser: Browser) -> BrowserContext:
        """Open an isolated session with automation fingerprints hidden."""
        context = browser.new_context(
            user_agent=self.settings.user_agent,
            viewport={
                "width": self.settings.viewport_width,
                "height": self.settings.viewport_height
            }
        )
        context.add_init_script(HIDE_WEBDRIVER_SCRIPT)
        # Listen on the context so requests from the login iframe are seen too
        context.on("request", self._on_request)
        return context

    def _on_request(self, request: Request) -> None:
        value = request.headers.get(self.settings.telemetry_header.lower())
        if value:
            self.telemetry = value
            logger.debug(f"Telemetry header observed on {request.method} {request.url[:80]}")

    def _login(self, page: Page, username: str, password: str) -> None:
        self._open_private_area(page)
        frame = self._find_login_frame(page)

        self._log(f"Filling login form for {mask_identifier(username)}...")
        self._fill_field(frame, "username", username)
        page.wait_for_timeout(self._ms(self.settings.field_pause_ms))
        self._fill_field(frame, "password", password)

        self._log("Submitting login form...")
        self._submit(frame)

        # The anti-automation script attaches telemetry to background requests after submit
        page.wait_for_timeout(self._ms(self.settings.settle_after_submit_ms))

    def _open_private_area(self, page: Page) -> None:
        s = self.settings
        self._log(f"Navigating to {s.login_url}...")
        try:
            page.goto(s.login_url, wait_until="networkidle", timeout=self._ms(s.navigation_timeout_ms))
        except PlaywrightError as e:
            raise NavigationError(f"Failed to load {s.login_url}: {e}") from e

        self._log("Opening private area login...")
        try:
            page.wait_for_selector(s.entry_selector, timeout=self._ms(s.entry_timeout_ms))
            page.click(s.entry_selector, timeout=self._ms(s.entry_timeout_ms))
        except PlaywrightError as e:
            raise NavigationError(f"Private area entry control not available: {e}") from e

    def _find_login_frame(self, page: Page) -> Frame:
        s = self.settings
        self._log("Waiting for login frame...")
        try:
            page.wait_for_selector(s.login_frame_selector, timeout=self._ms(s.frame_timeout_ms))
        except PlaywrightError as e:
            raise LoginFrameError(f"Login frame did not appear: {e}") from e

        page.wait_for_timeout(self._ms(s.frame_settle_ms))

        for frame in page.frames:
            if s.login_frame_url_hint in frame.url or frame.name == s.login_frame_name:
                return frame
        raise LoginFrameError("Login frame element present but no matching frame was attached")

    def _fill_field(self, frame: Frame, field: str, value: str) -> None:
        attempts = build_attempts(self.settings.login_selectors.get(field, []))
        # Typing time counts against the action timeout
        typing_ms = len(value) * self.settings.typing_delay_ms

        def type_into(attempt: SelectorAttempt) -> None:
            frame.wait_for_selector(attempt.selector, timeout=self._ms(attempt.timeout_ms))
            frame.locator(attempt.selector).first.press_sequentially(
                value,
                delay=self.settings.typing_delay_ms,
                timeout=self._ms(attempt.timeout_ms + typing_ms)
            )

        result = try_in_order(attempts, type_into, label=field)
        if not result.success:
            raise LoginFormError(field, result.tried)
        self._log(f"  {field} entered via {result.selector}")

    def _submit(self, frame: Frame) -> None:
        attempts = build_attempts(self.settings.login_selectors.get("submit", []))

        def click(attempt: SelectorAttempt) -> None:
            frame.wait_for_selector(attempt.selector, timeout=self._ms(attempt.timeout_ms))
            frame.locator(attempt.selector).first.click(timeout=self._ms(attempt.timeout_ms))

        result = try_in_order(attempts, click, label="submit")
        if not result.success:
            raise LoginFormError("submit", result.tried)
        self._log(f"  form submitted via {result.selector}")
