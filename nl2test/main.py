import argparse
import json
import logging
import os
import sys
from typing import Dict, List, Optional

import yaml

from nl2test import config
from nl2test.crawler.analyzer import analyze_urls
from nl2test.data.manager import TestDataManager, create_test_data_template, dump_template
from nl2test.executor.executor import PlaywrightExecutor, TestResult
from nl2test.executor.report import generate_report
from nl2test.extractor.extractor import extract, extract_locked_values
from nl2test.models.dsl import TestCase
from nl2test.pipeline import GenerationResult, Generator
from nl2test.providers.api import APIProvider
from nl2test.providers.base import CLIProvider
from nl2test.providers.file import FileProvider
from nl2test.validator.instructions import validate_instruction_compliance
from nl2test.validator.strict import validate, validate_strict_mode

LOGGER = logging.getLogger("nl2test")

EXTENSIONS = {
    ("playwright", "typescript"): ".spec.ts",
    ("playwright", "javascript"): ".spec.js",
    ("playwright", "python"): ".py",
    ("selenium", "python"): ".py",
    ("selenium", "java"): ".java",
    ("cypress", "typescript"): ".cy.ts",
    ("cypress", "javascript"): ".cy.js",
}


def output_filename(result: GenerationResult) -> str:
    name = result.test_case.meta.name if result.test_case else "generated"
    ext = EXTENSIONS.get((result.framework, result.language), ".txt")
    if ext == ".py":
        return f"test_{name}.py"
    if ext == ".java":
        return "".join(part.capitalize() for part in name.split("_")) + "Test.java"
    return name + ext


def _data_manager(args) -> Optional[TestDataManager]:
    if not getattr(args, "data", None):
        return None
    return TestDataManager.from_yaml(args.data)


def _generator(args) -> Generator:
    data_manager = _data_manager(args)
    resolver = config.build_resolver(
        strictness="legacy" if args.legacy else None,
        tables_path=args.tables,
        data_manager=data_manager,
        pages_dir=args.pages_dir,
    )
    return Generator(resolver, data_manager)


def _cases(args) -> List[Dict[str, str]]:
    if args.source == "cli":
        if not args.prompt:
            raise ValueError("a prompt is required when source is 'cli'")
        return CLIProvider(args.prompt, args.base_url).get_cases()
    if args.source == "api":
        if not args.api_url:
            raise ValueError("--api-url is required when source is 'api'")
        return APIProvider(args.api_url).get_cases()
    if not args.file:
        raise ValueError("--file is required when source is 'file'")
    return FileProvider(args.file).get_cases()


def process_generate(args) -> int:
    """Handler for generate command"""
    cases = _cases(args)
    if not cases:
        print("No cases found.")
        return 1

    generator = _generator(args)
    options = config.render_options(
        args.framework,
        args.language,
        timeout=args.timeout,
        include_comments=not args.no_comments,
        include_screenshots=args.screenshots,
    )
    failed = 0
    for index, case in enumerate(cases, start=1):
        prompt = case["prompt"]
        base_url = case.get("base_url") or args.base_url or config.BASE_URL
        LOGGER.info("[%d/%d] Processing: %s", index, len(cases), prompt)
        result = generator.generate(prompt, base_url, options)

        if args.json:
            print(result.model_dump_json(by_alias=True, exclude={"test_case"}, indent=2))
        elif args.output_dir and result.ok:
            os.makedirs(args.output_dir, exist_ok=True)
            path = os.path.join(args.output_dir, output_filename(result))
            with open(path, "w", encoding="utf-8") as f:
                f.write(result.code)
            print(f"Saved to {path}")
        else:
            print(result.code)

        if not result.ok:
            failed += 1
            LOGGER.error("Case %s failed: %s", case.get("id", index), "; ".join(result.errors))
    return 1 if failed else 0


def process_dsl(args) -> int:
    """Handler for dsl command: print the resolved TestCase as JSON."""
    data_manager = _data_manager(args)
    resolver = config.build_resolver(
        strictness="legacy" if args.legacy else None,
        tables_path=args.tables,
        data_manager=data_manager,
        pages_dir=args.pages_dir,
    )
    text = data_manager.replace_placeholders(args.prompt) if data_manager else args.prompt
    test_case = resolver.resolve(text, extract(text), args.base_url or config.BASE_URL, extract_locked_values(text))
    print(test_case.to_json())
    return 0


def process_validate(args) -> int:
    """Handler for validate command: check existing code against an instruction."""
    with open(args.code_file, "r", encoding="utf-8") as f:
        code = f.read()
    text = args.prompt
    result = validate(text, code, extract(text))
    locks = extract_locked_values(text)
    if locks:
        result = result.merge(validate_strict_mode(locks, code, text))
    compliance = validate_instruction_compliance(text, code)

    print(json.dumps({
        "strict": result.model_dump(by_alias=True),
        "compliance": compliance.model_dump(),
    }, indent=2))
    return 0 if result.is_valid and compliance.is_valid else 1


def _load_case(args) -> TestCase:
    if args.dsl_file:
        with open(args.dsl_file, "r", encoding="utf-8") as f:
            return TestCase.model_validate_json(f.read())
    if not args.prompt:
        raise ValueError("either a prompt or --dsl-file is required")
    data_manager = _data_manager(args)
    text = data_manager.replace_placeholders(args.prompt) if data_manager else args.prompt
    resolver = config.build_resolver(tables_path=args.tables, data_manager=data_manager)
    return resolver.resolve(text, extract(text), args.base_url or config.BASE_URL, extract_locked_values(text))


def process_execute(args) -> int:
    """Handler for execute command: run a TestCase in a real browser."""
    test_case = _load_case(args)
    if args.base_url:
        test_case.meta.base_url = args.base_url
    executor = PlaywrightExecutor(config.execution_options(
        timeout=args.timeout or config.TIMEOUT,
        headless=not args.headed,
        capture_screenshots=args.screenshots,
        screenshot_dir=args.screenshot_dir,
    ))
    result: TestResult = executor.execute(test_case)
    print(generate_report([result], args.report))
    return 0 if result.status == "passed" else 1


def process_analyze(args) -> int:
    """Handler for analyze command: record page elements for locator refinement."""
    urls: List = []
    if args.urls:
        urls = [url.strip() for url in args.urls.split(",") if url.strip()]
    elif args.url_file:
        if os.path.splitext(args.url_file)[1].lower() in (".yaml", ".yml"):
            with open(args.url_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
            if not isinstance(data, list):
                print("Error: YAML file must contain a list of entries.")
                return 1
            urls = data
        else:
            with open(args.url_file, "r", encoding="utf-8") as f:
                urls = [line.strip() for line in f if line.strip()]
    if not urls:
        print("Error: No URLs provided.")
        return 1

    written = analyze_urls(urls, output_dir=args.output_dir, headless=not args.headed, timeout=config.TIMEOUT)
    for path in written:
        print(f"Saved to {path}")
    return 0 if len(written) == len(urls) else 1


def process_data_template(args) -> int:
    print(dump_template(create_test_data_template(args.fields)), end="")
    return 0


def _add_resolver_args(parser):
    parser.add_argument("--base-url", help="Base URL of the application under test")
    parser.add_argument("--legacy", action="store_true", help="Fill missing credentials with canned demo values")
    parser.add_argument("--tables", help="YAML file overriding the keyword tables")
    parser.add_argument("--data", help="YAML test data file ({{KEY}} placeholders)")
    parser.add_argument("--pages-dir", help="Directory of analyzed page JSON for locator refinement")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Plain-English to browser test generator")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More log output")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_gen = subparsers.add_parser("generate", help="Generate test code")
    parser_gen.add_argument("prompt", nargs="?", help="Plain-English test case (for cli mode)")
    parser_gen.add_argument("--source", choices=["cli", "api", "file"], default="cli", help="Source of test cases")
    parser_gen.add_argument("--api-url", help="API URL for fetching cases")
    parser_gen.add_argument("--file", help="File containing cases (txt or yaml)")
    parser_gen.add_argument("--framework", choices=["playwright", "selenium", "cypress"])
    parser_gen.add_argument("--language", choices=["typescript", "javascript", "python", "java"])
    parser_gen.add_argument("--timeout", type=int, help="Test timeout in milliseconds")
    parser_gen.add_argument("--no-comments", action="store_true", help="Omit step comments")
    parser_gen.add_argument("--screenshots", action="store_true", help="Screenshot after each step")
    parser_gen.add_argument("--output-dir", help="Write each test to a file in this directory")
    parser_gen.add_argument("--json", action="store_true", help="Print the full generation result as JSON")
    _add_resolver_args(parser_gen)

    parser_dsl = subparsers.add_parser("dsl", help="Print the JSON step representation")
    parser_dsl.add_argument("prompt", help="Plain-English test case")
    _add_resolver_args(parser_dsl)

    parser_val = subparsers.add_parser("validate", help="Strict-mode check of existing test code")
    parser_val.add_argument("prompt", help="The instruction the code was generated from")
    parser_val.add_argument("--code-file", required=True, help="Generated test file")

    parser_exec = subparsers.add_parser("execute", help="Run a test case in a real browser")
    parser_exec.add_argument("prompt", nargs="?", help="Plain-English test case")
    parser_exec.add_argument("--dsl-file", help="TestCase JSON file instead of a prompt")
    parser_exec.add_argument("--base-url", help="Base URL of the application under test")
    parser_exec.add_argument("--tables", help="YAML file overriding the keyword tables")
    parser_exec.add_argument("--data", help="YAML test data file")
    parser_exec.add_argument("--timeout", type=int, help="Action timeout in milliseconds")
    parser_exec.add_argument("--headed", action="store_true", help="Show the browser window")
    parser_exec.add_argument("--screenshots", action="store_true", help="Screenshot after each step")
    parser_exec.add_argument("--screenshot-dir", default="screenshots")
    parser_exec.add_argument("--report", choices=["json", "text", "html"], default="text")

    parser_an = subparsers.add_parser("analyze", help="Record interactive elements of live pages")
    parser_an.add_argument("--urls", help="Comma-separated list of URLs")
    parser_an.add_argument("--url-file", help="File containing list of URLs (txt or yaml)")
    parser_an.add_argument("--output-dir", default=config.PAGES_DIR, help="Output directory for json files")
    parser_an.add_argument("--headed", action="store_true", help="Show the browser window")

    parser_tpl = subparsers.add_parser("data-template", help="Print a YAML test data template")
    parser_tpl.add_argument("fields", nargs="+", help="Field names, e.g. username password")
    return parser


HANDLERS = {
    "generate": process_generate,
    "dsl": process_dsl,
    "validate": process_validate,
    "execute": process_execute,
    "analyze": process_analyze,
    "data-template": process_data_template,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    log_level = logging.WARNING
    if args.verbose >= 2:
        log_level = logging.DEBUG
    elif args.verbose >= 1:
        log_level = logging.INFO
    logging.basicConfig(level=log_level, format="%(levelname)s %(message)s")

    handler = HANDLERS.get(args.command)
    if handler is None:
        parser.print_help()
        return 2
    try:
        return handler(args)
    except KeyboardInterrupt:
        LOGGER.warning("Interrupted by user.")
        return 130
    except (OSError, ValueError) as exc:
        LOGGER.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
