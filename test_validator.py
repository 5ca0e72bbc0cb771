import pytest

from nl2test.compiler.compiler import RenderOptions, render
from nl2test.extractor.extractor import extract
from nl2test.models.dsl import ExtractedValues, LockedValue, LockType
from nl2test.resolver.resolver import StepResolver
from nl2test.validator.instructions import parse_instructions, validate_instruction_compliance
from nl2test.validator.strict import (
    perform_final_validation,
    validate,
    validate_input_completeness,
    validate_strict_mode,
)

TEXT = "login with username Sam and password sammy"
GOOD_CODE = """
test('login', async ({ page }) => {
  await page.goto('https://example.com/login');
  await page.locator('label:has-text("Username")').fill('Sam');
  await page.locator('label:has-text("Password")').fill('sammy');
  await page.locator('role=button[name="Login"]').click();
  expect(page.url()).toContain('/dashboard');
});
"""


@pytest.fixture
def values():
    return ExtractedValues(username="Sam", password="sammy")


def test_clean_code_passes(values):
    result = validate(TEXT, GOOD_CODE, values)
    assert result.is_valid
    assert result.errors == [] and result.deviations == []


def test_placeholder_substitution_rejected(values):
    code = GOOD_CODE.replace("'Sam'", "'testuser'").replace("'sammy'", "'password123'")
    result = validate(TEXT, code, values)
    assert not result.is_valid
    assert 'DEVIATION DETECTED: username "Sam" not found in generated code' in result.deviations
    assert 'DEVIATION DETECTED: Value replaced with placeholder "testuser"' in result.deviations
    assert 'DEVIATION DETECTED: Value replaced with placeholder "password123"' in result.deviations


def test_placeholder_allowed_when_it_is_the_real_value():
    code = GOOD_CODE.replace("'Sam'", "'testuser'").replace("'sammy'", "'password123'")
    result = validate("login with username testuser and password password123", code,
                      {"username": "testuser", "password": "password123"})
    assert result.is_valid


@pytest.mark.parametrize("addition", [
    "await page.waitForTimeout(1000);",
    "await page.waitForSelector('#x');",
    "page.wait_for_timeout(500)",
    "try { x(); } catch (e) {}",
    "await page.reload();",
    "await page.goBack();",
    "const retryCount = 3;",
])
def test_forbidden_constructs(values, addition):
    code = GOOD_CODE.replace("});\n", addition + "\n});\n")
    result = validate(TEXT, code, values)
    assert not result.is_valid
    assert any("Unauthorized addition" in d for d in result.deviations)


def test_forbidden_word_inside_a_known_value_is_not_flagged():
    code = GOOD_CODE.replace("'sammy'", "'retry-me'")
    result = validate("login with username Sam and password retry-me", code,
                      ExtractedValues(username="Sam", password="retry-me"))
    assert result.is_valid


def test_markers_are_errors():
    code = GOOD_CODE.replace("'Sam'", "'TODO: username not specified'").replace(
        "role=button[name=\"Login\"]", "UNRESOLVED_SELECTOR: role=button locator requires a name")
    result = validate("login and submit", code, {})
    assert not result.is_valid
    assert "INCOMPLETE: TODO: username not specified" in result.errors
    assert any("UNRESOLVED_SELECTOR" in e for e in result.errors)


def test_lock_checks():
    locks = [
        LockedValue(type=LockType.URL, key="url", value="https://app.test/login"),
        LockedValue(type=LockType.SELECTOR, key="selector", value=".login-error"),
        LockedValue(type=LockType.ASSERTION_TYPE, key="assertion_type", value="containsText"),
    ]
    code = "await page.goto('http://localhost:3000/login');\nawait expect(page.locator('#error')).toBeVisible();"
    result = validate_strict_mode(locks, code)
    assert not result.is_valid
    assert 'DEVIATION DETECTED: locked URL "https://app.test/login" not found in generated code' in result.deviations
    assert "DEVIATION DETECTED: URL replaced with localhost" in result.deviations
    assert "DEVIATION DETECTED: Selector replaced with generic #error" in result.deviations
    assert not any("containsText" in d for d in result.deviations)


def test_input_completeness():
    locks = [
        LockedValue(type=LockType.VALUE, key="value", value="<your password>"),
        LockedValue(type=LockType.URL, key="url", value="https://app.test"),
    ]
    result = validate_input_completeness(locks)
    assert result.errors == ['INCOMPLETE: VALUE "value" is not properly specified']
    final = perform_final_validation("", "page.goto('https://app.test')", locks)
    assert not final.is_valid
    assert final.model_dump(by_alias=True)["isValid"] is False


def test_parse_instructions():
    actions = [i.action for i in parse_instructions(
        "go to the login page and login with username sam and password pw then click the submit button and expect welcome"
    )]
    assert actions == ["navigate", "login", "click", "assert"]


def test_instruction_compliance():
    text = "login with username Sam and password sammy then click login and expect dashboard"
    assert validate_instruction_compliance(text, GOOD_CODE).is_valid

    result = validate_instruction_compliance(text, "await page.goto('/');")
    assert not result.is_valid
    assert result.extracted_values == {"username": "Sam", "password": "sammy"}
    assert 'Username "Sam" not found in generated code' in result.deviations
    assert "Missing click action" in result.missing_requirements
    assert "Missing assertion step" in result.missing_requirements


@pytest.mark.parametrize("framework,language", [
    ("playwright", "typescript"),
    ("playwright", "python"),
    ("selenium", "java"),
    ("selenium", "python"),
    ("cypress", "javascript"),
])
def test_value_only_in_header_or_test_name_is_missing(framework, language):
    text = "login with username Sam and password sammy"
    test_case = StepResolver().resolve(text, extract(text), "https://example.com")
    code = render(test_case, RenderOptions(framework=framework, language=language)).code
    assert validate(text, code, extract(text)).is_valid

    swapped = code.replace("'sammy')", "'hunter2')").replace('"sammy")', '"hunter2")')
    assert swapped != code
    result = validate(text, swapped, extract(text))
    assert result.deviations == ['DEVIATION DETECTED: password "sammy" not found in generated code']


def test_instruction_words_in_names_are_not_additions():
    text = "login with username sam and password pw1 and do not retry"
    code = (
        "// Test: login with username sam and password pw1 and do not retry\n"
        "describe('login_with_username_sam_and_password_pw1_and_do_not_retry', () => {\n"
        "  it('login with username sam and password pw1 and do not retry', () => {\n"
        "    cy.visit('https://retry.example.com/login');\n"
        "    cy.get('#u').type('sam');\n"
        "    cy.get('#p').type('pw1');\n"
        "  });\n"
        "});\n"
    )
    assert not validate(text, code, extract(text)).is_valid
    assert validate(text, code, extract(text), ["https://retry.example.com", "/login"]).is_valid
