import pytest

from nl2test.compiler.compiler import RenderOptions, get_renderer, render
from nl2test.compiler.locators import UNRESOLVED, UnsupportedFrameworkError
from nl2test.models.dsl import Assertion, Locator, TestCase, TestMeta, TestStep


@pytest.fixture
def login_case():
    return TestCase(
        meta=TestMeta(name="login_as_sam", base_url="https://example.com", description="login as sam", tags=["authentication"]),
        steps=[
            TestStep.goto("/login"),
            TestStep.fill(Locator.label("Username"), "Sam"),
            TestStep.fill(Locator.label("Password"), "sammy"),
            TestStep.click(Locator.by_role("button", "Login")),
            TestStep.check(Assertion(type="urlContains", value="/dashboard")),
        ],
    )


def test_playwright_typescript(login_case):
    generated = render(login_case)
    code = generated.code
    assert code.startswith("import { test, expect, Page } from '@playwright/test';")
    assert "test('login_as_sam', async ({ page }: { page: Page }) => {" in code
    assert "test.setTimeout(30000);" in code
    assert "await page.goto('https://example.com/login');" in code
    assert "await page.locator('label:has-text(\"Username\")').fill('Sam');" in code
    assert "await page.locator('role=button[name=\"Login\"]').click();" in code
    assert "expect(page.url()).toContain('/dashboard');" in code
    assert code.rstrip().endswith("});")
    assert generated.dependencies[0] == "@playwright/test"


def test_steps_render_in_order(login_case):
    code = render(login_case).code
    positions = [code.index(marker) for marker in ("goto(", "fill('Sam')", "fill('sammy')", ".click()", "toContain(")]
    assert positions == sorted(positions)
    assert [code.index(f"// Step {i}:") for i in range(1, 6)] == sorted(code.index(f"// Step {i}:") for i in range(1, 6))


def test_playwright_python(login_case):
    code = render(login_case, RenderOptions(language="python")).code
    assert "from playwright.sync_api import Page, expect" in code
    assert "def test_login_as_sam(page: Page):" in code
    assert "    page.locator('label:has-text(\"Username\")').fill('Sam')" in code
    assert "    assert '/dashboard' in page.url" in code
    assert "await" not in code


def test_selenium_java(login_case):
    generated = render(login_case, RenderOptions(framework="selenium", language="java"))
    code = generated.code
    assert "public class LoginAsSamTest {" in code
    assert 'driver.get("https://example.com/login");' in code
    assert ".sendKeys(\"Sam\");" in code
    assert "assertTrue(driver.getCurrentUrl().contains(\"/dashboard\"));" in code
    assert "Duration.ofMillis(30000)" in code


def test_selenium_python(login_case):
    code = render(login_case, RenderOptions(framework="selenium", language="python")).code
    assert "class LoginAsSamTest(unittest.TestCase):" in code
    assert ".send_keys(\"sammy\")" in code
    assert 'self.assertIn("/dashboard", driver.current_url)' in code


def test_cypress(login_case):
    code = render(login_case, RenderOptions(framework="cypress", language="javascript")).code
    assert "describe('login_as_sam', () => {" in code
    assert "cy.visit('https://example.com/login');" in code
    assert "cy.get('label:contains(\"Username\") + input').type('Sam');" in code
    assert "cy.url().should('include', '/dashboard');" in code


def test_values_embedded_verbatim():
    case = TestCase(
        meta=TestMeta(name="odd_values", base_url="https://example.com"),
        steps=[TestStep.fill(Locator.label("Password"), "it's-P@ss!")],
    )
    assert "fill(\"it's-P@ss!\")" in render(case).code


def test_unknown_action_and_assertion_are_commented():
    case = TestCase(
        meta=TestMeta(name="odd_steps", base_url="https://example.com"),
        steps=[
            TestStep(action="hover", locator=Locator.css(".menu")),
            TestStep.check(Assertion(type="hasCount", locator=Locator.css("li"), value="3")),
        ],
    )
    code = render(case).code
    assert "// Unknown action: hover" in code
    assert "// Unknown assertion type: hasCount" in code


def test_missing_locator_renders_unresolved():
    case = TestCase(
        meta=TestMeta(name="no_target", base_url="https://example.com"),
        steps=[TestStep(action="click"), TestStep.click(Locator.by_role("button"))],
    )
    for framework, language in (("playwright", "typescript"), ("selenium", "java"), ("cypress", "typescript")):
        code = render(case, RenderOptions(framework=framework, language=language)).code
        assert code.count(UNRESOLVED) == 2


def test_comments_and_screenshots_toggle(login_case):
    bare = render(login_case, RenderOptions(include_comments=False)).code
    assert "//" not in bare.replace("https://", "")
    shots = render(login_case, RenderOptions(include_screenshots=True)).code
    assert "await page.screenshot({ path: 'step-1-goto.png' });" in shots


def test_unsupported_selection():
    with pytest.raises(UnsupportedFrameworkError):
        get_renderer(RenderOptions(framework="puppeteer"))
    with pytest.raises(UnsupportedFrameworkError):
        get_renderer(RenderOptions(framework="cypress", language="java"))
