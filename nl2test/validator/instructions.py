import re
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from nl2test.extractor.extractor import extract

NAVIGATE = re.compile(r"(?:go to|navigate to|visit|open)\s+(.+?)(?:\s+and|\s+then|$)", re.IGNORECASE)
LOGIN = re.compile(
    r"(?:try\s+to\s+)?(?:login|signin|log\s+in)\s+with\s+username\s+([A-Za-z0-9_@.-]+)"
    r"(?:\s+and\s+password\s+([A-Za-z0-9_@.-]+))?",
    re.IGNORECASE,
)
CLICK = re.compile(r"(?:click|press|tap)\s+(?:on\s+)?(?:the\s+)?(.+?)(?:\s+and|\s+then|$)", re.IGNORECASE)
EXPECT = re.compile(r"(?:expect|should\s+see|shows?|displays?)\s+(.+?)(?:\s+and|\s+then|$)", re.IGNORECASE)

# Markers of each step kind across the three frameworks
NAVIGATION_CALLS = ("page.goto", "cy.visit", "driver.get")
FILL_CALLS = (".fill(", ".type(", "send_keys", "sendKeys")
CLICK_CALLS = ("click",)
ASSERT_CALLS = ("expect", "assert", ".should(")


class Instruction(BaseModel):
    action: str
    target: Optional[str] = None
    value: Optional[str] = None
    assertion: Optional[str] = None


class ComplianceResult(BaseModel):
    is_valid: bool
    deviations: List[str] = Field(default_factory=list)
    extracted_values: Dict[str, str] = Field(default_factory=dict)
    missing_requirements: List[str] = Field(default_factory=list)


def parse_instructions(description: str) -> List[Instruction]:
    """Split an instruction into the coarse actions it asks for."""
    found = []
    match = NAVIGATE.search(description)
    if match:
        found.append(Instruction(action="navigate", target=match.group(1).strip()))
    match = LOGIN.search(description)
    if match:
        value = f"username: {match.group(1)}"
        if match.group(2):
            value += f", password: {match.group(2)}"
        found.append(Instruction(action="login", value=value))
    match = CLICK.search(description)
    if match:
        found.append(Instruction(action="click", target=match.group(1).strip()))
    match = EXPECT.search(description)
    if match:
        found.append(Instruction(action="assert", assertion=match.group(1).strip()))
    return found


def _any(code: str, needles) -> bool:
    return any(needle in code for needle in needles)


def validate_instruction_compliance(description: str, code: str) -> ComplianceResult:
    values = extract(description)
    credentials = {k: v for k, v in (("username", values.username), ("password", values.password)) if v}
    deviations = []
    missing = []

    for instruction in parse_instructions(description):
        if instruction.action == "navigate" and not _any(code, NAVIGATION_CALLS):
            missing.append("Missing navigation step")
        elif instruction.action == "login":
            for field, value in credentials.items():
                if value not in code:
                    deviations.append(f'{field.capitalize()} "{value}" not found in generated code')
            if not _any(code, FILL_CALLS):
                missing.append("Missing form filling steps")
        elif instruction.action == "click" and not _any(code, CLICK_CALLS):
            missing.append("Missing click action")
        elif instruction.action == "assert" and not _any(code, ASSERT_CALLS):
            missing.append("Missing assertion step")

    return ComplianceResult(
        is_valid=not deviations and not missing,
        deviations=deviations,
        extracted_values=credentials,
        missing_requirements=missing,
    )
