import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Type

from pydantic import BaseModel, Field

from nl2test.compiler.locators import UnsupportedFrameworkError, quote, to_selector, unresolved
from nl2test.models.dsl import Assertion, Locator, TestCase, TestStep, not_specified

LOGGER = logging.getLogger(__name__)

LOCATED_ASSERTIONS = ("containsText", "exactText", "visible", "hasValue", "isEnabled", "isDisabled")


class RenderOptions(BaseModel):
    framework: str = "playwright"
    language: str = "typescript"
    include_comments: bool = True
    include_screenshots: bool = False
    timeout: int = Field(30000, description="Test timeout in milliseconds")


class GeneratedCode(BaseModel):
    code: str
    framework: str
    language: str
    dependencies: List[str] = Field(default_factory=list)
    setup_instructions: List[str] = Field(default_factory=list)


def camel(name: str) -> str:
    joined = "".join(part.capitalize() for part in name.split("_") if part)
    if not joined or joined[0].isdigit():
        joined = "Generated" + joined
    return joined


def one_line(text: Optional[str]) -> str:
    return " ".join((text or "").split())


def _dq(value: str) -> str:
    return quote(value, '"')


class BaseRenderer(ABC):
    """Fixed-skeleton renderer: imports, test wrapper, one block per step, closing."""

    framework = ""
    languages: tuple = ()
    comment = "//"

    def __init__(self, options: RenderOptions):
        self.options = options
        self.language = options.language
        self.base_url = ""

    @abstractmethod
    def render(self, test_case: TestCase) -> GeneratedCode:
        pass

    def selector(self, locator: Optional[Locator], what: str = "step") -> str:
        if locator is None:
            return unresolved(f"{what} has no locator")
        return to_selector(locator, self.framework, self.language)

    def target_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        if self.base_url.startswith(("http://", "https://")):
            return self.base_url.rstrip("/") + "/" + path.lstrip("/")
        return path

    def body(self, test_case: TestCase, indent: str) -> List[str]:
        self.base_url = test_case.meta.base_url or ""
        lines = []
        for index, step in enumerate(test_case.steps, start=1):
            if self.options.include_comments:
                lines.append(f"{indent}{self.comment} Step {index}: {step.action}")
            lines.extend(indent + line for line in self.step(step))
            if self.options.include_screenshots:
                lines.append(indent + self.screenshot(f"step-{index}-{step.action}"))
        return lines

    def step(self, step: TestStep) -> List[str]:
        if step.action == "goto":
            if not step.path:
                return [f"{self.comment} {not_specified('url')}"]
            return [self.goto(self.target_url(step.path))]
        if step.action == "fill":
            return [self.fill(self.selector(step.locator, "fill"), step.text or not_specified("text"))]
        if step.action == "click":
            return [self.click(self.selector(step.locator, "click"))]
        if step.action == "assert":
            if step.assertion is None:
                return [f"{self.comment} {not_specified('assertion')}"]
            return [self.assertion(step.assertion)]
        LOGGER.warning("Unknown action %r rendered as comment", step.action)
        return [f"{self.comment} Unknown action: {step.action}"]

    def assertion(self, a: Assertion) -> str:
        if a.type == "urlContains":
            return self.assert_url(a.value or not_specified("expected url"))
        if a.type not in LOCATED_ASSERTIONS:
            LOGGER.warning("Unknown assertion type %r rendered as comment", a.type)
            return f"{self.comment} Unknown assertion type: {a.type}"
        target = self.selector(a.locator, "assertion")
        value = a.value or not_specified("expected value")
        return self.assert_located(a.type, target, value)

    @abstractmethod
    def goto(self, url: str) -> str:
        pass

    @abstractmethod
    def fill(self, target: str, text: str) -> str:
        pass

    @abstractmethod
    def click(self, target: str) -> str:
        pass

    @abstractmethod
    def assert_url(self, value: str) -> str:
        pass

    @abstractmethod
    def assert_located(self, kind: str, target: str, value: str) -> str:
        pass

    @abstractmethod
    def screenshot(self, name: str) -> str:
        pass

    def header(self, test_case: TestCase) -> List[str]:
        if not self.options.include_comments:
            return []
        meta = test_case.meta
        lines = [
            f"{self.comment} Test: {one_line(meta.description) or meta.name}",
            f"{self.comment} Base URL: {meta.base_url}",
        ]
        if meta.tags:
            lines.append(f"{self.comment} Tags: {', '.join(meta.tags)}")
        return lines


class PlaywrightRenderer(BaseRenderer):
    framework = "playwright"
    languages = ("typescript", "javascript", "python")

    def __init__(self, options: RenderOptions):
        super().__init__(options)
        self.python = self.language == "python"
        if self.python:
            self.comment = "#"

    def render(self, test_case: TestCase) -> GeneratedCode:
        name = test_case.meta.name
        timeout = self.options.timeout
        if self.python:
            lines = ["from playwright.sync_api import Page, expect", "", ""]
            lines.extend(self.header(test_case))
            lines.append(f"def test_{name}(page: Page):")
            lines.append(f"    page.set_default_timeout({timeout})")
            lines.append("")
            lines.extend(self.body(test_case, "    "))
            return GeneratedCode(
                code="\n".join(lines) + "\n",
                framework=self.framework,
                language=self.language,
                dependencies=["pytest-playwright"],
                setup_instructions=[
                    "pip install pytest-playwright",
                    "playwright install",
                    f"Save the test as test_{name}.py",
                    "Run with: pytest",
                ],
            )

        typescript = self.language == "typescript"
        if typescript:
            lines = ["import { test, expect, Page } from '@playwright/test';", ""]
            signature = f"test({quote(name)}, async ({{ page }}: {{ page: Page }}) => {{"
        else:
            lines = ["const { test, expect } = require('@playwright/test');", ""]
            signature = f"test({quote(name)}, async ({{ page }}) => {{"
        lines.extend(self.header(test_case))
        lines.append("")
        lines.append(signature)
        if self.options.include_comments:
            lines.append("  // Set timeout for the test")
        lines.append(f"  test.setTimeout({timeout});")
        lines.append("")
        lines.extend(self.body(test_case, "  "))
        lines.append("});")

        ext = ".ts" if typescript else ".js"
        return GeneratedCode(
            code="\n".join(lines) + "\n",
            framework=self.framework,
            language=self.language,
            dependencies=["@playwright/test"] + (["typescript", "@types/node"] if typescript else []),
            setup_instructions=[
                "npm install @playwright/test",
                "npx playwright install",
                f"Save the test as {name}.spec{ext}",
                "Run with: npx playwright test",
            ],
        )

    def _stmt(self, expr: str) -> str:
        return expr if self.python else f"await {expr};"

    def goto(self, url: str) -> str:
        return self._stmt(f"page.goto({quote(url)})")

    def fill(self, target: str, text: str) -> str:
        return self._stmt(f"page.locator({quote(target)}).fill({quote(text)})")

    def click(self, target: str) -> str:
        return self._stmt(f"page.locator({quote(target)}).click()")

    def assert_url(self, value: str) -> str:
        if self.python:
            return f"assert {quote(value)} in page.url"
        return f"expect(page.url()).toContain({quote(value)});"

    def assert_located(self, kind: str, target: str, value: str) -> str:
        loc = f"page.locator({quote(target)})"
        if self.python:
            matchers: Dict[str, str] = {
                "containsText": f"to_contain_text({quote(value)})",
                "exactText": f"to_have_text({quote(value)})",
                "visible": "to_be_visible()",
                "hasValue": f"to_have_value({quote(value)})",
                "isEnabled": "to_be_enabled()",
                "isDisabled": "to_be_disabled()",
            }
            return f"expect({loc}).{matchers[kind]}"
        matchers = {
            "containsText": f"toContainText({quote(value)})",
            "exactText": f"toHaveText({quote(value)})",
            "visible": "toBeVisible()",
            "hasValue": f"toHaveValue({quote(value)})",
            "isEnabled": "toBeEnabled()",
            "isDisabled": "toBeDisabled()",
        }
        return f"await expect({loc}).{matchers[kind]};"

    def screenshot(self, name: str) -> str:
        if self.python:
            return f"page.screenshot(path={quote(name + '.png')})"
        return f"await page.screenshot({{ path: {quote(name + '.png')} }});"


class SeleniumRenderer(BaseRenderer):
    framework = "selenium"
    languages = ("python", "java")

    def __init__(self, options: RenderOptions):
        super().__init__(options)
        self.python = self.language == "python"
        if self.python:
            self.comment = "#"

    def render(self, test_case: TestCase) -> GeneratedCode:
        name = test_case.meta.name
        cls = camel(name) + "Test"
        if self.python:
            lines = [
                "import unittest",
                "",
                "from selenium import webdriver",
                "from selenium.webdriver.common.by import By",
                "",
                "",
            ]
            lines.extend(self.header(test_case))
            lines.extend([
                f"class {cls}(unittest.TestCase):",
                "    def setUp(self):",
                "        self.driver = webdriver.Chrome()",
                f"        self.driver.implicitly_wait({self.options.timeout / 1000:g})",
                "",
                "    def tearDown(self):",
                "        self.driver.quit()",
                "",
                f"    def test_{name}(self):",
                "        driver = self.driver",
            ])
            lines.extend(self.body(test_case, "        "))
            lines.extend(["", "", 'if __name__ == "__main__":', "    unittest.main()"])
            return GeneratedCode(
                code="\n".join(lines) + "\n",
                framework=self.framework,
                language=self.language,
                dependencies=["selenium"],
                setup_instructions=[
                    "pip install selenium",
                    "Install Chrome (Selenium Manager fetches the driver)",
                    f"Save as test_{name}.py",
                    f"Run with: python test_{name}.py",
                ],
            )

        lines = [
            "import java.io.File;",
            "import java.time.Duration;",
            "import org.junit.After;",
            "import org.junit.Before;",
            "import org.junit.Test;",
            "import org.openqa.selenium.By;",
            "import org.openqa.selenium.OutputType;",
            "import org.openqa.selenium.TakesScreenshot;",
            "import org.openqa.selenium.WebDriver;",
            "import org.openqa.selenium.chrome.ChromeDriver;",
            "import static org.junit.Assert.*;",
            "",
        ]
        lines.extend(self.header(test_case))
        lines.extend([
            f"public class {cls} {{",
            "    private WebDriver driver;",
            "",
            "    @Before",
            "    public void setUp() {",
            "        driver = new ChromeDriver();",
            f"        driver.manage().timeouts().implicitlyWait(Duration.ofMillis({self.options.timeout}));",
            "    }",
            "",
            "    @After",
            "    public void tearDown() {",
            "        driver.quit();",
            "    }",
            "",
            "    @Test",
            f"    public void test{camel(name)}() {{",
        ])
        lines.extend(self.body(test_case, "        "))
        lines.extend(["    }", "}"])
        return GeneratedCode(
            code="\n".join(lines) + "\n",
            framework=self.framework,
            language=self.language,
            dependencies=["selenium-java", "junit"],
            setup_instructions=[
                "Add selenium-java and junit to dependencies",
                "Install Chrome (Selenium Manager fetches the driver)",
                f"Save as {cls}.java",
                "Run with JUnit",
            ],
        )

    def selector(self, locator: Optional[Locator], what: str = "step") -> str:
        if locator is None:
            marker = _dq(unresolved(f"{what} has no locator"))
            return f"By.CSS_SELECTOR, {marker}" if self.python else f"By.cssSelector({marker})"
        return super().selector(locator, what)

    def _element(self, target: str) -> str:
        if self.python:
            return f"driver.find_element({target})"
        return f"driver.findElement({target})"

    def goto(self, url: str) -> str:
        return f"driver.get({_dq(url)})" + ("" if self.python else ";")

    def fill(self, target: str, text: str) -> str:
        if self.python:
            return f"{self._element(target)}.send_keys({_dq(text)})"
        return f"{self._element(target)}.sendKeys({_dq(text)});"

    def click(self, target: str) -> str:
        return f"{self._element(target)}.click()" + ("" if self.python else ";")

    def assert_url(self, value: str) -> str:
        if self.python:
            return f"self.assertIn({_dq(value)}, driver.current_url)"
        return f"assertTrue(driver.getCurrentUrl().contains({_dq(value)}));"

    def assert_located(self, kind: str, target: str, value: str) -> str:
        el = self._element(target)
        v = _dq(value)
        if self.python:
            return {
                "containsText": f"self.assertIn({v}, {el}.text)",
                "exactText": f"self.assertEqual({v}, {el}.text)",
                "visible": f"self.assertTrue({el}.is_displayed())",
                "hasValue": f'self.assertEqual({v}, {el}.get_attribute("value"))',
                "isEnabled": f"self.assertTrue({el}.is_enabled())",
                "isDisabled": f"self.assertFalse({el}.is_enabled())",
            }[kind]
        return {
            "containsText": f"assertTrue({el}.getText().contains({v}));",
            "exactText": f"assertEquals({v}, {el}.getText());",
            "visible": f"assertTrue({el}.isDisplayed());",
            "hasValue": f'assertEquals({v}, {el}.getAttribute("value"));',
            "isEnabled": f"assertTrue({el}.isEnabled());",
            "isDisabled": f"assertFalse({el}.isEnabled());",
        }[kind]

    def screenshot(self, name: str) -> str:
        if self.python:
            return f"driver.save_screenshot({_dq(name + '.png')})"
        return (
            "((TakesScreenshot) driver).getScreenshotAs(OutputType.FILE)"
            f".renameTo(new File({_dq(name + '.png')}));"
        )


class CypressRenderer(BaseRenderer):
    framework = "cypress"
    languages = ("typescript", "javascript")

    def render(self, test_case: TestCase) -> GeneratedCode:
        meta = test_case.meta
        typescript = self.language == "typescript"
        lines = ['/// <reference types="cypress" />', ""] if typescript else []
        lines.extend(self.header(test_case))
        if lines:
            lines.append("")
        lines.extend([
            f"describe({quote(meta.name)}, () => {{",
            f"  it({quote(one_line(meta.description) or meta.name)}, () => {{",
            f"    Cypress.config('defaultCommandTimeout', {self.options.timeout});",
        ])
        lines.extend(self.body(test_case, "    "))
        lines.extend(["  });", "});"])

        ext = "ts" if typescript else "js"
        return GeneratedCode(
            code="\n".join(lines) + "\n",
            framework=self.framework,
            language=self.language,
            dependencies=["cypress"] + (["typescript"] if typescript else []),
            setup_instructions=[
                "npm install cypress",
                f"Save as cypress/e2e/{meta.name}.cy.{ext}",
                "Run with: npx cypress open",
            ],
        )

    def goto(self, url: str) -> str:
        return f"cy.visit({quote(url)});"

    def fill(self, target: str, text: str) -> str:
        return f"cy.get({quote(target)}).type({quote(text)});"

    def click(self, target: str) -> str:
        return f"cy.get({quote(target)}).click();"

    def assert_url(self, value: str) -> str:
        return f"cy.url().should('include', {quote(value)});"

    def assert_located(self, kind: str, target: str, value: str) -> str:
        chain = {
            "containsText": f"should('contain', {quote(value)})",
            "exactText": f"should('have.text', {quote(value)})",
            "visible": "should('be.visible')",
            "hasValue": f"should('have.value', {quote(value)})",
            "isEnabled": "should('be.enabled')",
            "isDisabled": "should('be.disabled')",
        }[kind]
        return f"cy.get({quote(target)}).{chain};"

    def screenshot(self, name: str) -> str:
        return f"cy.screenshot({quote(name)});"


RENDERERS: Dict[str, Type[BaseRenderer]] = {
    "playwright": PlaywrightRenderer,
    "selenium": SeleniumRenderer,
    "cypress": CypressRenderer,
}


def get_renderer(options: RenderOptions) -> BaseRenderer:
    renderer_cls = RENDERERS.get(options.framework)
    if renderer_cls is None:
        raise UnsupportedFrameworkError(f"Unsupported framework: {options.framework}")
    if options.language not in renderer_cls.languages:
        raise UnsupportedFrameworkError(
            f"Unsupported language for {options.framework}: {options.language} "
            f"(expected one of {', '.join(renderer_cls.languages)})"
        )
    return renderer_cls(options)


def render(test_case: TestCase, options: Optional[RenderOptions] = None) -> GeneratedCode:
    options = options or RenderOptions()
    renderer = get_renderer(options)
    LOGGER.debug("Rendering %d steps with %s/%s", len(test_case.steps), options.framework, options.language)
    return renderer.render(test_case)
