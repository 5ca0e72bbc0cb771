import logging
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from nl2test.compiler.compiler import RenderOptions, render
from nl2test.compiler.locators import UnsupportedFrameworkError
from nl2test.data.manager import TestDataManager
from nl2test.extractor.extractor import extract, extract_locked_values
from nl2test.models.dsl import TestCase
from nl2test.resolver.resolver import StepResolver, Strictness, describe_steps
from nl2test.validator.strict import validate, validate_input_completeness, validate_strict_mode

LOGGER = logging.getLogger(__name__)


class GenerationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    resolved_steps: List[str] = Field(default_factory=list, alias="resolvedSteps")
    extracted_values: Dict[str, str] = Field(default_factory=dict, alias="extractedValues")
    code: str = ""
    framework: str = "playwright"
    language: str = "typescript"
    errors: List[str] = Field(default_factory=list)
    test_case: Optional[TestCase] = Field(None, alias="testCase")

    @property
    def ok(self) -> bool:
        return not self.errors


class UniversalStrictResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    resolved_steps: List[str] = Field(default_factory=list, alias="resolvedSteps")
    extracted_values: Dict[str, str] = Field(default_factory=dict, alias="extractedValues")
    playwright_code: str = Field("", alias="playwrightCode")
    errors: List[str] = Field(default_factory=list)


class Generator:
    """Text in, framework code out: extract, resolve, render, then check in strict mode."""

    def __init__(self, resolver: Optional[StepResolver] = None, data_manager: Optional[TestDataManager] = None):
        self.resolver = resolver or StepResolver()
        self.data_manager = data_manager

    @property
    def strict(self) -> bool:
        return self.resolver.strictness is Strictness.STRICT

    def generate(self, text: str, base_url: str = "", options: Optional[RenderOptions] = None) -> GenerationResult:
        options = options or RenderOptions()
        result = GenerationResult(framework=options.framework, language=options.language)
        errors: List[str] = []

        if self.data_manager:
            text = self.data_manager.replace_placeholders(text)
            missing = self.data_manager.validate_test_data(text).missing_fields
            errors.extend(f"INCOMPLETE: no test data for {{{{{name}}}}}" for name in missing)

        locks = extract_locked_values(text)
        if self.strict:
            errors.extend(validate_input_completeness(locks).errors)
        if errors and self.strict:
            return self._failed(result, "DEVIATION DETECTED", errors)
        for error in errors:
            LOGGER.warning("Legacy mode: %s", error)

        values = extract(text)
        result.extracted_values = values.as_dict()
        test_case = self.resolver.resolve(text, values, base_url, locks)
        result.test_case = test_case
        result.resolved_steps = describe_steps(test_case)

        try:
            generated = render(test_case, options)
        except UnsupportedFrameworkError as e:
            LOGGER.error("Generation failed: %s", e)
            return self._failed(result, None, [str(e)])
        result.code = generated.code

        if not self.strict:
            LOGGER.warning("Legacy mode: strict validation skipped for '%s'", test_case.meta.name)
            return result

        context = [test_case.meta.base_url] + [step.path or "" for step in test_case.steps if step.action == "goto"]
        check = validate(text, generated.code, values, context)
        if locks:
            check = check.merge(validate_strict_mode(locks, generated.code, text, context))
        problems = list(dict.fromkeys(check.errors + check.deviations))
        if problems:
            return self._failed(result, "DEVIATION DETECTED", problems)
        return result

    @staticmethod
    def _failed(result: GenerationResult, headline: Optional[str], problems: List[str]) -> GenerationResult:
        result.errors = problems
        if headline:
            result.code = f"ERROR: {headline}\n" + "\n".join(problems)
        else:
            result.code = "ERROR: " + "\n".join(problems)
        return result


def generate(
    text: str,
    base_url: str = "",
    options: Optional[RenderOptions] = None,
    resolver: Optional[StepResolver] = None,
    data_manager: Optional[TestDataManager] = None,
) -> GenerationResult:
    return Generator(resolver, data_manager).generate(text, base_url, options)


def generate_from_plain_english(text: str, base_url: str = "") -> UniversalStrictResult:
    """Strict Playwright/TypeScript generation with the plain result shape."""
    result = generate(text, base_url, RenderOptions(framework="playwright", language="typescript"))
    return UniversalStrictResult(
        resolved_steps=result.resolved_steps,
        extracted_values=result.extracted_values,
        playwright_code=result.code,
        errors=result.errors,
    )
