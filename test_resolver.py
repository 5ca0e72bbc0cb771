import random
import string

import pytest

from nl2test.extractor.extractor import extract, extract_locked_values
from nl2test.models.dsl import Assertion, Locator, TestStep, derive_name, not_specified
from nl2test.resolver.resolver import (
    ERROR_LOCATOR,
    ResolverTables,
    StepResolver,
    Strictness,
    describe_steps,
    resolve,
)

BASE_URL = "https://example.com"


def resolve_text(text, resolver=None):
    resolver = resolver or StepResolver()
    return resolver.resolve(text, extract(text), BASE_URL, extract_locked_values(text))


def test_login_example_steps():
    test_case = resolve_text("try to login with username Sam and password sammy")
    assert test_case.steps == [
        TestStep.goto("/login"),
        TestStep.fill(Locator.label("Username"), "Sam"),
        TestStep.fill(Locator.label("Password"), "sammy"),
        TestStep.click(Locator.by_role("button", "Login")),
        TestStep.check(Assertion(type="urlContains", value="/dashboard")),
    ]
    assert test_case.meta.name == "try_to_login_with_username_sam_and_password_sammy"
    assert test_case.meta.base_url == BASE_URL
    assert test_case.meta.tags == ["authentication"]


@pytest.mark.parametrize("username,password", [("Sam", "sammy"), ("a.b@c", "x_y-z"), ("u1", "p.2")])
def test_fills_follow_credentials_in_order(username, password):
    test_case = resolve_text(f"login with username {username} and password {password}")
    fills = [step.text for step in test_case.steps if step.action == "fill"]
    assert fills == [username, password]


def _credentials(count, seed=7):
    rng = random.Random(seed)
    alphabet = string.ascii_letters + string.digits + "._@-"
    words = ["a", "and", "to", "is", "on", "the", "user", "username", "password", "with", "email"]

    def token():
        return "".join(rng.choice(alphabet) for _ in range(rng.randint(1, 12)))

    pairs = [(rng.choice(words), rng.choice(words)) for _ in range(count // 4)]
    pairs += [(token(), token()) for _ in range(count - len(pairs))]
    return pairs


def test_fills_keep_any_paired_credentials_verbatim():
    for username, password in _credentials(400):
        test_case = resolve_text(f"login with username {username} and password {password}")
        fills = [step.text for step in test_case.steps if step.action == "fill"]
        assert fills == [username, password], (username, password)


def test_resolution_is_deterministic():
    text = 'login with username sam and password pw and expect "Hello sam"'
    first = resolve_text(text)
    second = resolve(text, extract(text), BASE_URL)
    assert first == second
    assert first.to_json() == second.to_json()


def test_missing_credentials_become_markers():
    test_case = resolve_text("login with wrong password and expect error message")
    fills = [step.text for step in test_case.steps if step.action == "fill"]
    assert fills == [not_specified("username"), not_specified("password")]
    assertion = test_case.steps[-1].assertion
    assert assertion.type == "visible"
    assert assertion.locator == Locator.css(ERROR_LOCATOR)


def test_legacy_mode_uses_canned_defaults():
    resolver = StepResolver(strictness=Strictness.LEGACY)
    test_case = resolve_text("login with wrong password and expect error message", resolver)
    fills = [step.text for step in test_case.steps if step.action == "fill"]
    assert fills == ["testuser", "password123"]


def test_test_data_fills_gaps_before_markers():
    resolver = StepResolver(test_data={"username": "qa_user"})
    test_case = resolve_text("login with password pw1", resolver)
    fills = [step.text for step in test_case.steps if step.action == "fill"]
    assert fills == ["qa_user", "pw1"]


def test_value_locks_fill_missing_credentials():
    test_case = resolve_text("login and see the dashboard\n[LOCK VALUE] admin\n[LOCK VALUE] s3cret")
    fills = [step.text for step in test_case.steps if step.action == "fill"]
    assert fills == ["admin", "s3cret"]
    assert test_case.meta.name == "login_and_see_the_dashboard"


def test_quoted_expectation_wins():
    test_case = resolve_text('login as sam and pw1, expect "Welcome back" on the dashboard after the error')
    assertions = [step for step in test_case.steps if step.action == "assert"]
    assert len(assertions) == 1
    assert assertions[0].assertion == Assertion(type="containsText", locator=Locator.css("body"), value="Welcome back")


def test_dashboard_cue_beats_error_cue():
    test_case = resolve_text("login as sam and pw1 and land on the dashboard without any error")
    assert test_case.steps[-1].assertion == Assertion(type="urlContains", value="/dashboard")


def test_success_cue():
    test_case = resolve_text("register as sam and pw1 and see a success message")
    assert test_case.steps[0].path == "/register"
    assertion = test_case.steps[-1].assertion
    assert assertion.type == "visible"
    assert "success" in assertion.locator.value


def test_expected_url():
    test_case = resolve_text('login as sam and pw1 and the url contains "/home"')
    assert test_case.steps[-1].assertion == Assertion(type="urlContains", value="/home")


def test_locked_assertion_text_selector_and_type():
    text = (
        "login with username sam and password pw1\n"
        "[LOCK ASSERTION TEXT] Invalid credentials\n"
        "[LOCK SELECTOR] #login-error\n"
        "[LOCK ASSERTION TYPE] exactText"
    )
    test_case = resolve_text(text)
    assert test_case.steps[-1].assertion == Assertion(
        type="exactText", locator=Locator(type="id", value="login-error"), value="Invalid credentials"
    )
    assert test_case.meta.description == text


def test_locked_url_used_for_navigation():
    test_case = resolve_text("login as sam and pw1\n[LOCK URL] https://app.test/signin")
    assert test_case.steps[0] == TestStep.goto("https://app.test/signin")


def test_explicit_path_and_clicked_word():
    test_case = resolve_text("open the settings page and click save")
    assert test_case.steps == [
        TestStep.goto("/settings"),
        TestStep.click(Locator.by_role("button", "Save")),
    ]


def test_quoted_button_name():
    test_case = resolve_text('go to /account, login as sam and pw1 then click "Sign In"')
    assert test_case.steps[0].path == "/account"
    clicks = [step for step in test_case.steps if step.action == "click"]
    assert clicks == [TestStep.click(Locator.by_role("button", "Sign In"))]


def test_unknown_page_defaults_to_root():
    test_case = resolve_text("check the footer links")
    assert test_case.steps == [TestStep.goto("/")]


def test_tables_are_injectable():
    tables = ResolverTables.from_mapping({
        "paths": [[r"\bcheckout\b", "/checkout"]],
        "buttons": [{"pattern": r"\bpay\b", "result": "Pay now"}],
    })
    test_case = resolve_text("go through checkout and press pay", StepResolver(tables=tables))
    assert test_case.steps == [
        TestStep.goto("/checkout"),
        TestStep.click(Locator.by_role("button", "Pay now")),
    ]


def test_derive_name():
    assert derive_name("Login: valid user!") == "login_valid_user"
    assert derive_name("  ?? ") == "untitled_test"


def test_describe_steps():
    lines = describe_steps(resolve_text("try to login with username Sam and password sammy"))
    assert lines == [
        "Navigate to /login",
        'Fill Username field with "Sam"',
        'Fill Password field with "sammy"',
        "Click Login button",
        "Assert: URL contains '/dashboard'",
    ]
