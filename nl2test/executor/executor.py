import logging
import os
import time
from typing import List, Optional
from urllib.parse import urlsplit

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page, sync_playwright
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from pydantic import BaseModel, ConfigDict, Field

from nl2test.compiler.locators import UNRESOLVED, playwright_selector
from nl2test.models.dsl import UNSPECIFIED_PATTERN, Assertion, Locator, TestCase, TestStep

LOGGER = logging.getLogger(__name__)


class ExecutionOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timeout: int = Field(30000, description="Per-action timeout in milliseconds")
    capture_screenshots: bool = Field(False, alias="captureScreenshots")
    headless: bool = True
    screenshot_dir: str = Field("screenshots", alias="screenshotDir")
    ignore_https_errors: bool = Field(False, alias="ignoreHttpsErrors")


class StepResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    step_index: int = Field(..., alias="stepIndex")
    action: str
    status: str = Field(..., description="passed, failed or skipped")
    message: Optional[str] = None
    duration: Optional[int] = None
    error: Optional[str] = None
    screenshot: Optional[str] = None


class TestResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = Field(..., description="passed, failed, running or skipped")
    message: str
    duration: Optional[int] = None
    error: Optional[str] = None
    step_results: List[StepResult] = Field(default_factory=list, alias="stepResults")
    screenshots: List[str] = Field(default_factory=list)

    __test__ = False


class CaseCheck(BaseModel):
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ElementNotFound(Exception):
    pass


def _is_placeholder(value: Optional[str]) -> bool:
    return not value or bool(UNSPECIFIED_PATTERN.search(value)) or UNRESOLVED in value


def validate_test_case(test_case: TestCase) -> CaseCheck:
    """Pre-flight check: a case with markers or no reachable base URL cannot run."""
    errors, warnings = [], []
    base_url = test_case.meta.base_url
    if not base_url:
        errors.append("Base URL is required for real URL testing")
    elif urlsplit(base_url).scheme not in ("http", "https") or not urlsplit(base_url).netloc:
        errors.append("Base URL must be a valid URL (include http:// or https://)")
    if not test_case.steps:
        errors.append("Test case must have at least one step")

    for index, step in enumerate(test_case.steps, start=1):
        if step.action == "fill":
            if step.locator is None or _is_placeholder(step.locator.value or step.locator.name):
                errors.append(f"Step {index}: Fill action needs specific locator (label text, ID, or CSS selector)")
            if _is_placeholder(step.text):
                errors.append(f"Step {index}: Fill action needs actual text value (no TODO placeholders)")
        elif step.action == "click":
            if step.locator is None or _is_placeholder(step.locator.name or step.locator.value):
                errors.append(f"Step {index}: Click action needs specific locator (button text, ID, or CSS selector)")
        elif step.action == "assert":
            a = step.assertion
            if a is None:
                errors.append(f"Step {index}: Assert action requires assertion")
            elif a.type != "urlContains" and a.locator is None:
                errors.append(f"Step {index}: Assert action needs a locator")
            elif a.type in ("containsText", "exactText", "hasValue", "urlContains") and _is_placeholder(a.value):
                errors.append(f"Step {index}: Assert action needs specific expected value (no TODO placeholders)")
        elif step.action != "goto":
            errors.append(f"Step {index}: Unknown action '{step.action}'")

    if not any(step.action == "goto" for step in test_case.steps):
        warnings.append("Test case should include a navigation step")
    if not any(step.action == "assert" for step in test_case.steps):
        warnings.append("Test case should include at least one assertion")
    return CaseCheck(is_valid=not errors, errors=errors, warnings=warnings)


def _elapsed(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class PlaywrightExecutor:
    """Replays a TestCase in a real browser. A step runs once; the first failure ends the run."""

    def __init__(self, options: Optional[ExecutionOptions] = None):
        self.options = options or ExecutionOptions()

    def execute(self, test_case: TestCase) -> TestResult:
        start = time.monotonic()
        check = validate_test_case(test_case)
        if not check.is_valid:
            return TestResult(
                status="failed",
                message="Test case validation failed",
                error=", ".join(check.errors),
                duration=_elapsed(start),
            )

        with sync_playwright() as p:
            browser = p.chromium.launch(headless=self.options.headless)
            context = browser.new_context(ignore_https_errors=self.options.ignore_https_errors)
            page = context.new_page()
            page.set_default_timeout(self.options.timeout)
            try:
                result = self.run_steps(page, test_case)
            finally:
                browser.close()
        result.duration = _elapsed(start)
        return result

    def run_steps(self, page: Page, test_case: TestCase) -> TestResult:
        name = test_case.meta.name
        step_results: List[StepResult] = []
        screenshots: List[str] = []
        failure: Optional[StepResult] = None

        for index, step in enumerate(test_case.steps):
            if failure:
                step_results.append(StepResult(step_index=index, action=step.action, status="skipped"))
                continue

            step_start = time.monotonic()
            result = StepResult(step_index=index, action=step.action, status="passed",
                                message=f"Step {index + 1} passed")
            try:
                self.run_step(page, step, test_case.meta.base_url)
            except PlaywrightTimeoutError as e:
                result.status, result.error = "failed", f"Timeout: {_first_line(e)}"
            except ElementNotFound as e:
                result.status, result.error = "failed", f"Element not found: {e}"
            except AssertionError as e:
                result.status, result.error = "failed", f"Assertion failed: {e}"
            except PlaywrightError as e:
                result.status, result.error = "failed", _first_line(e)
            result.duration = _elapsed(step_start)

            if result.status == "failed":
                result.message = f"Step {index + 1} failed"
                failure = result
                LOGGER.warning("%s: step %d (%s) failed: %s", name, index + 1, step.action, result.error)
            if self.options.capture_screenshots:
                result.screenshot = self._screenshot(page, f"{name}-step-{index + 1}")
                screenshots.append(result.screenshot)
            step_results.append(result)

        if failure:
            return TestResult(
                status="failed",
                message=f"Test failed at step {failure.step_index + 1}: {failure.action}",
                error=failure.error,
                step_results=step_results,
                screenshots=screenshots,
            )
        return TestResult(
            status="passed",
            message=f"Test '{name}' completed successfully",
            step_results=step_results,
            screenshots=screenshots,
        )

    def run_step(self, page: Page, step: TestStep, base_url: str):
        if step.action == "goto":
            page.goto(_join(base_url, step.path or "/"))
        elif step.action == "fill":
            self._locate(page, step.locator).fill(step.text or "")
        elif step.action == "click":
            self._locate(page, step.locator).click()
        elif step.action == "assert":
            self._check(page, step.assertion)
        else:
            raise AssertionError(f"unknown action '{step.action}'")

    def _selector(self, locator: Optional[Locator]) -> str:
        selector = playwright_selector(locator) if locator else UNRESOLVED
        if selector.startswith(UNRESOLVED):
            raise ElementNotFound(selector)
        return selector

    def _locate(self, page: Page, locator: Optional[Locator]):
        selector = self._selector(locator)
        found = page.locator(selector)
        if found.count() == 0:
            raise ElementNotFound(selector)
        return found.first

    def _check(self, page: Page, a: Optional[Assertion]):
        if a is None:
            raise AssertionError("missing assertion")
        timeout = self.options.timeout
        if a.type == "urlContains":
            try:
                page.wait_for_url(lambda url: a.value in url, timeout=timeout)
            except PlaywrightTimeoutError:
                raise AssertionError(f"URL '{page.url}' does not contain '{a.value}'")
            return
        if a.type == "visible":
            # absence is a failed expectation here, not a missing target
            page.locator(self._selector(a.locator)).first.wait_for(state="visible", timeout=timeout)
            return

        el = self._locate(page, a.locator)
        if a.type == "containsText":
            actual = el.inner_text()
            if a.value not in actual:
                raise AssertionError(f"expected text '{a.value}' not found in '{actual}'")
        elif a.type == "exactText":
            actual = el.inner_text().strip()
            if actual != a.value:
                raise AssertionError(f"expected '{a.value}', got '{actual}'")
        elif a.type == "hasValue":
            actual = el.input_value()
            if actual != a.value:
                raise AssertionError(f"expected value '{a.value}', got '{actual}'")
        elif a.type == "isEnabled":
            if not el.is_enabled():
                raise AssertionError("element is disabled")
        elif a.type == "isDisabled":
            if el.is_enabled():
                raise AssertionError("element is enabled")
        else:
            raise AssertionError(f"unknown assertion type '{a.type}'")

    def _screenshot(self, page: Page, name: str) -> str:
        os.makedirs(self.options.screenshot_dir, exist_ok=True)
        path = os.path.join(self.options.screenshot_dir, f"{name}.png")
        page.screenshot(path=path)
        return path


def _join(base_url: str, path: str) -> str:
    if path.startswith(("http://", "https://")):
        return path
    return base_url.rstrip("/") + "/" + path.lstrip("/")


def _first_line(error: Exception) -> str:
    return str(error).splitlines()[0] if str(error) else error.__class__.__name__
