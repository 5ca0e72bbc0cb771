import re
from enum import Enum
from typing import List, Optional, Dict

from pydantic import BaseModel, ConfigDict, Field, model_validator

ACTIONS = ("goto", "fill", "click", "assert")
ASSERTION_TYPES = (
    "containsText",
    "exactText",
    "visible",
    "urlContains",
    "hasValue",
    "isEnabled",
    "isDisabled",
)
LOCATOR_TYPES = ("label", "id", "role", "text", "css", "xpath")

# Inline marker for a value the instruction never supplied.
UNSPECIFIED_PATTERN = re.compile(r"TODO: [\w ]+ not specified")


def not_specified(field: str) -> str:
    return f"TODO: {field} not specified"


class Locator(BaseModel):
    type: str = Field(..., description="One of label, id, role, text, css, xpath")
    value: Optional[str] = Field(None, description="Label text, id, visible text, css or xpath")
    role: Optional[str] = Field(None, description="ARIA role (role locators only)")
    name: Optional[str] = Field(None, description="Accessible name (role locators only)")

    @model_validator(mode="after")
    def _one_variant(self):
        if self.type == "role":
            if self.value is not None:
                raise ValueError("role locator carries role/name, not value")
        elif self.role is not None or self.name is not None:
            raise ValueError(f"{self.type} locator cannot carry role/name")
        return self

    @classmethod
    def label(cls, value: str) -> "Locator":
        return cls(type="label", value=value)

    @classmethod
    def by_role(cls, role: str, name: Optional[str] = None) -> "Locator":
        return cls(type="role", role=role, name=name)

    @classmethod
    def css(cls, value: str) -> "Locator":
        return cls(type="css", value=value)

    def describe(self) -> str:
        if self.type == "role":
            return f"{self.name or '?'} {self.role or 'element'}"
        return f"{self.value or '?'}"


class Assertion(BaseModel):
    type: str = Field(..., description="Assertion kind, e.g. 'containsText', 'urlContains'")
    locator: Optional[Locator] = None
    value: Optional[str] = Field(None, description="Expected text, URL fragment or input value")


class TestStep(BaseModel):
    action: str = Field(..., description="Action to perform: 'goto', 'fill', 'click' or 'assert'")
    path: Optional[str] = Field(None, description="Target path or URL for 'goto'")
    locator: Optional[Locator] = Field(None, description="Target element for 'fill' and 'click'")
    text: Optional[str] = Field(None, description="Literal text to enter for 'fill'")
    assertion: Optional[Assertion] = None

    __test__ = False

    @classmethod
    def goto(cls, path: str) -> "TestStep":
        return cls(action="goto", path=path)

    @classmethod
    def fill(cls, locator: Locator, text: str) -> "TestStep":
        return cls(action="fill", locator=locator, text=text)

    @classmethod
    def click(cls, locator: Locator) -> "TestStep":
        return cls(action="click", locator=locator)

    @classmethod
    def check(cls, assertion: Assertion) -> "TestStep":
        return cls(action="assert", assertion=assertion)


class TestMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    base_url: str = Field("", alias="baseUrl")
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    __test__ = False


class TestCase(BaseModel):
    """The JSON DSL document: metadata plus the ordered list of steps."""

    meta: TestMeta
    steps: List[TestStep] = Field(default_factory=list)

    __test__ = False

    def to_dsl(self) -> Dict:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json(self, indent: int = 2) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)


class ExtractedValues(BaseModel):
    """Semantic fields pulled verbatim out of an instruction. Read-only."""

    model_config = ConfigDict(frozen=True)

    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None
    url: Optional[str] = None
    button: Optional[str] = None
    expected: Optional[str] = None
    expected_url: Optional[str] = None

    def as_dict(self) -> Dict[str, str]:
        return {k: v for k, v in self.model_dump().items() if v}


class LockType(str, Enum):
    URL = "URL"
    SELECTOR = "SELECTOR"
    VALUE = "VALUE"
    ASSERTION_TEXT = "ASSERTION_TEXT"
    ASSERTION_TYPE = "ASSERTION_TYPE"


class LockedValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: LockType
    key: str
    value: str
    is_locked: bool = True


def derive_name(description: str) -> str:
    """snake_case test name: lowercase, non-alphanumerics dropped, spaces to underscores."""
    name = re.sub(r"[^a-z0-9\s]", "", description.lower()).strip()
    name = re.sub(r"\s+", "_", name)
    return name or "untitled_test"
