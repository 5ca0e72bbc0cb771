import logging
from typing import Iterable, List, Mapping, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from nl2test.compiler.compiler import camel, one_line
from nl2test.compiler.locators import UNRESOLVED, quote
from nl2test.extractor.extractor import strip_locks
from nl2test.models.dsl import UNSPECIFIED_PATTERN, ExtractedValues, LockedValue, LockType, derive_name

LOGGER = logging.getLogger(__name__)

FORBIDDEN = (
    "waitForTimeout",
    "waitForSelector",
    "wait_for_timeout",
    "wait_for_selector",
    "retry",
    "try {",
    "catch (",
    "try:",
    "except ",
    ".reload()",
    ".goBack()",
    ".goForward()",
    ".go_back()",
    ".go_forward()",
    ".refresh()",
)
PLACEHOLDERS = ("testuser", "password123")

Values = Union[ExtractedValues, Mapping[str, str], Iterable[LockedValue]]


class ValidationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(..., alias="isValid")
    errors: List[str] = Field(default_factory=list)
    deviations: List[str] = Field(default_factory=list)

    @classmethod
    def of(cls, errors: List[str], deviations: List[str]) -> "ValidationResult":
        return cls(is_valid=not errors and not deviations, errors=errors, deviations=deviations)

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        return ValidationResult.of(self.errors + other.errors, self.deviations + other.deviations)


def _pairs(values: Values) -> List[Tuple[str, str]]:
    """(label, literal) pairs for every non-empty value that must appear verbatim."""
    if isinstance(values, ExtractedValues):
        values = values.as_dict()
    if isinstance(values, Mapping):
        return [(str(k), str(v)) for k, v in values.items() if v]
    pairs = []
    for lock in values:
        # an assertion type picks a matcher, it is never a literal in the code
        if lock.is_locked and lock.value and lock.type is not LockType.ASSERTION_TYPE:
            pairs.append((f"locked {lock.type.value}", lock.value))
    return pairs


def _masked(code: str, protected: Iterable[str]) -> str:
    for literal in sorted(set(p for p in protected if p), key=len, reverse=True):
        code = code.replace(literal, " " * len(literal))
    return code


def _statements(code: str) -> str:
    # header comments quote the instruction verbatim
    return "\n".join(line for line in code.splitlines() if not line.lstrip().startswith(("//", "#")))


def _titles(original_text: str) -> List[str]:
    """Literals a renderer derives from the instruction: test names and titles."""
    sources = [one_line(original_text)]
    for text in (original_text, strip_locks(original_text)):
        name = derive_name(text)
        sources.extend([name, camel(name)])
    literals = []
    for source in sources:
        literals.extend([source, quote(source), quote(source, '"')])
    return literals


def validate(original_text: str, code: str, values: Values, context: Iterable[str] = ()) -> ValidationResult:
    """Scan rendered code for every known value and for constructs strict mode forbids.

    Pure text scanning over the code's statements, with comment lines and the
    test names and titles taken from the instruction left out. A value counts as
    present when it occurs verbatim there. A forbidden token counts only outside
    known values and `context` (base URL, navigation paths).
    """
    errors: List[str] = []
    deviations: List[str] = []
    pairs = _pairs(values)
    known = [value for _, value in pairs]
    body = _masked(_statements(code), _titles(original_text))

    for label, value in pairs:
        if value not in body:
            deviations.append(f'DEVIATION DETECTED: {label} "{value}" not found in generated code')

    scanned = _masked(body, known + list(context))
    for token in FORBIDDEN:
        if token in scanned:
            deviations.append(f'DEVIATION DETECTED: Unauthorized addition "{token}" found in code')
    for placeholder in PLACEHOLDERS:
        if placeholder in scanned:
            deviations.append(f'DEVIATION DETECTED: Value replaced with placeholder "{placeholder}"')

    for marker in sorted(set(UNSPECIFIED_PATTERN.findall(code))):
        errors.append(f"INCOMPLETE: {marker}")
    if UNRESOLVED in code:
        errors.append(f"INCOMPLETE: {UNRESOLVED} found in generated code")

    result = ValidationResult.of(errors, deviations)
    if not result.is_valid:
        LOGGER.info("Strict validation failed: %d errors, %d deviations", len(errors), len(deviations))
    return result


def validate_strict_mode(
    locks: List[LockedValue], code: str, original_text: str = "", context: Iterable[str] = ()
) -> ValidationResult:
    """Lock-by-lock check plus the generic replacements each lock type is prone to."""
    deviations = list(validate(original_text, code, locks, context).deviations)
    for lock in locks:
        if not lock.is_locked or not lock.value:
            continue
        if lock.type is LockType.URL and "localhost" in code and "localhost" not in lock.value:
            deviations.append("DEVIATION DETECTED: URL replaced with localhost")
        elif lock.type is LockType.SELECTOR:
            if "#error" in code and lock.value != "#error":
                deviations.append("DEVIATION DETECTED: Selector replaced with generic #error")
            if 'input[type="text"]' in code and 'input[type="text"]' not in lock.value:
                deviations.append("DEVIATION DETECTED: Selector replaced with generic input selector")
    return ValidationResult.of([], deviations)


def validate_input_completeness(locks: List[LockedValue]) -> ValidationResult:
    errors = []
    for lock in locks:
        if lock.is_locked and (not lock.value or "<" in lock.value or "TODO" in lock.value):
            errors.append(f'INCOMPLETE: {lock.type.value} "{lock.key}" is not properly specified')
    return ValidationResult.of(errors, [])


def perform_final_validation(
    original_text: str, code: str, locks: List[LockedValue], context: Iterable[str] = ()
) -> ValidationResult:
    return validate_input_completeness(locks).merge(validate_strict_mode(locks, code, original_text, context))
