import json

import pytest

from nl2test.extractor.extractor import extract
from nl2test.models.dsl import Locator, TestStep
from nl2test.resolver.catalog import PageCatalog, generate_smart_locator, match_field
from nl2test.resolver.resolver import StepResolver

ELEMENTS = [
    {"id": "user-name", "name": "Username", "tag": "input", "label": "Username", "placeholder": "", "role": "input"},
    {"id": "", "name": "pwd", "tag": "input", "label": "", "placeholder": "Your secret", "role": "input"},
    {"id": "", "name": "Sign in", "tag": "button", "text": "Sign in", "role": "button", "data-testid": "login-btn"},
]


@pytest.fixture
def pages_dir(tmp_path):
    (tmp_path / "login.json").write_text(json.dumps({"url": "https://app.test/login", "elements": ELEMENTS}))
    (tmp_path / "broken.json").write_text("{not json")
    return str(tmp_path)


def test_smart_locator_priority():
    assert generate_smart_locator(ELEMENTS[2]) == Locator.css('[data-testid="login-btn"]')
    assert generate_smart_locator(ELEMENTS[0]) == Locator(type="id", value="user-name")
    assert generate_smart_locator(ELEMENTS[1]) == Locator.css('[placeholder="Your secret"]')
    assert generate_smart_locator({"role": "link", "name": "Home", "tag": "link"}) == Locator.by_role("link", "Home")


def test_match_field_scores():
    el, score = match_field("username", ELEMENTS)
    assert el is ELEMENTS[0]
    assert score >= 10


def test_catalog_loads_pages_and_skips_broken(pages_dir):
    catalog = PageCatalog(pages_dir)
    assert list(catalog.pages) == ["login"]
    assert len(catalog.elements) == 3


def test_missing_directory_is_empty(tmp_path):
    assert PageCatalog(str(tmp_path / "nope")).elements == []


def test_refine_fill_steps_only(pages_dir):
    catalog = PageCatalog(pages_dir)
    fill = catalog.refine_step(TestStep.fill(Locator.label("Password"), "pw1"))
    assert fill.locator == Locator.css('[placeholder="Your secret"]')
    assert fill.text == "pw1"
    click = TestStep.click(Locator.by_role("button", "Sign in"))
    assert catalog.refine_step(click) == click


def test_resolver_uses_catalog(pages_dir):
    text = "login with username sam and password pw1"
    test_case = StepResolver(catalog=PageCatalog(pages_dir)).resolve(text, extract(text), "https://app.test")
    fills = [step for step in test_case.steps if step.action == "fill"]
    assert [f.locator for f in fills] == [Locator(type="id", value="user-name"), Locator.css('[placeholder="Your secret"]')]
    assert [f.text for f in fills] == ["sam", "pw1"]


def test_smart_locator_escapes_attribute_values():
    element = {"id": "", "name": "", "tag": "input", "placeholder": 'Type "yes"', "role": "input"}
    assert generate_smart_locator(element) == Locator.css('[placeholder="Type \\"yes\\""]')
