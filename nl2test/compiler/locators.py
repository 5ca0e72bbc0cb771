import re
from typing import Optional

from nl2test.models.dsl import Locator

UNRESOLVED = "UNRESOLVED_SELECTOR"
FRAMEWORKS = ("playwright", "selenium", "cypress")


class UnsupportedFrameworkError(ValueError):
    pass


def unresolved(reason: str) -> str:
    return f"{UNRESOLVED}: {reason}"


def quote(value: str, mark: str = "'") -> str:
    """String literal with only the escapes the target syntax needs."""
    if mark == "'" and "'" in value and '"' not in value:
        mark = '"'
    escaped = value.replace("\\", "\\\\").replace(mark, "\\" + mark).replace("\n", "\\n")
    return f"{mark}{escaped}{mark}"


def css_string(value: str) -> str:
    """Double-quoted string for CSS attribute values and Playwright/jQuery text pseudo-classes."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def xpath_literal(value: str) -> str:
    # XPath 1.0 has no escapes; a value holding both quote kinds goes through concat()
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{part}'" for part in parts) + ")"


def _missing(locator: Locator) -> Optional[str]:
    if locator.type == "role":
        if not locator.role:
            return unresolved("role locator requires a role")
        if not locator.name:
            return unresolved(f"role={locator.role} locator requires a name")
        return None
    if not locator.value:
        return unresolved(f"{locator.type} locator requires a value")
    return None


def playwright_selector(locator: Locator) -> str:
    missing = _missing(locator)
    if missing:
        return missing
    v = locator.value
    if locator.type == "label":
        return f"label:has-text({css_string(v)})"
    if locator.type == "id":
        return f"#{v}"
    if locator.type == "role":
        return f"role={locator.role}[name={css_string(locator.name)}]"
    if locator.type == "text":
        return f"text={v}"
    if locator.type == "css":
        return v
    if locator.type == "xpath":
        return f"xpath={v}"
    return unresolved(f"unknown locator type '{locator.type}'")


def _selenium_xpath(locator: Locator) -> Optional[str]:
    # label and role have no native By strategy; both fall back to XPath
    if locator.type == "label":
        return f"//label[normalize-space()={xpath_literal(locator.value)}]/following::input[1]"
    if locator.type == "role":
        return f"//*[(self::{locator.role} or @role='{locator.role}') and normalize-space()={xpath_literal(locator.name)}]"
    if locator.type == "text":
        return f"//*[contains(text(), {xpath_literal(locator.value)})]"
    if locator.type == "xpath":
        return locator.value
    return None


def selenium_by(locator: Locator, language: str = "java") -> str:
    python = language == "python"
    missing = _missing(locator)
    if missing is None and locator.type not in ("id", "css") and _selenium_xpath(locator) is None:
        missing = unresolved(f"unknown locator type '{locator.type}'")
    if missing:
        how, what = "css", missing
    elif locator.type in ("id", "css"):
        how, what = locator.type, locator.value
    else:
        how, what = "xpath", _selenium_xpath(locator)

    literal = quote(what, '"')
    if python:
        return {"id": "By.ID", "css": "By.CSS_SELECTOR", "xpath": "By.XPATH"}[how] + f", {literal}"
    return {"id": "By.id", "css": "By.cssSelector", "xpath": "By.xpath"}[how] + f"({literal})"


def cypress_selector(locator: Locator) -> str:
    missing = _missing(locator)
    if missing:
        return missing
    v = locator.value
    if locator.type == "label":
        return f"label:contains({css_string(v)}) + input"
    if locator.type == "id":
        return f"#{v}"
    if locator.type == "role":
        name = css_string(locator.name)
        return f'{locator.role}:contains({name}), [role="{locator.role}"]:contains({name})'
    if locator.type == "text":
        return f"[data-cy={css_string(v)}]"
    if locator.type == "css":
        return v
    if locator.type == "xpath":
        return unresolved("xpath locators need the cypress-xpath plugin")
    return unresolved(f"unknown locator type '{locator.type}'")


def to_selector(locator: Locator, framework: str, language: Optional[str] = None) -> str:
    if framework == "playwright":
        return playwright_selector(locator)
    if framework == "selenium":
        return selenium_by(locator, language or "java")
    if framework == "cypress":
        return cypress_selector(locator)
    raise UnsupportedFrameworkError(f"Unsupported framework: {framework}")


CSS_STRING = r'"((?:[^"\\]|\\.)+)"'


def _unescape(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value)


def parse_selector(selector: str) -> Locator:
    """Best-effort inverse of the Playwright selector syntax."""
    selector = selector.strip()
    match = re.fullmatch(rf'role=(\w+)\[name={CSS_STRING}\]', selector)
    if match:
        return Locator.by_role(match.group(1), _unescape(match.group(2)))
    match = re.fullmatch(rf'label:has-text\({CSS_STRING}\)', selector)
    if match:
        return Locator.label(_unescape(match.group(1)))
    if re.fullmatch(r"#[\w-]+", selector):
        return Locator(type="id", value=selector[1:])
    if selector.startswith("text="):
        return Locator(type="text", value=selector[len("text="):])
    if selector.startswith("xpath="):
        return Locator(type="xpath", value=selector[len("xpath="):])
    if selector.startswith("//"):
        return Locator(type="xpath", value=selector)
    return Locator.css(selector)
