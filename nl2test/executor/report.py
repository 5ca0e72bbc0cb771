import html
import json
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from nl2test.executor.executor import TestResult


class TestStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int
    passed: int
    failed: int
    skipped: int
    pass_rate: float = Field(..., alias="passRate")
    total_duration: int = Field(..., alias="totalDuration")
    avg_duration: float = Field(..., alias="avgDuration")

    __test__ = False


def generate_stats(results: List[TestResult]) -> TestStats:
    total = len(results)
    passed = sum(1 for r in results if r.status == "passed")
    total_duration = sum(r.duration or 0 for r in results)
    return TestStats(
        total=total,
        passed=passed,
        failed=sum(1 for r in results if r.status == "failed"),
        skipped=sum(1 for r in results if r.status == "skipped"),
        pass_rate=passed / total * 100 if total else 0.0,
        total_duration=total_duration,
        avg_duration=total_duration / total if total else 0.0,
    )


def format_duration(ms: int) -> str:
    if ms < 1000:
        return f"{ms}ms"
    if ms < 60000:
        return f"{ms / 1000:.1f}s"
    return f"{ms / 60000:.1f}m"


def _text_report(stats: TestStats, results: List[TestResult]) -> str:
    lines = [
        "Test Execution Report",
        "=" * 50,
        "",
        "Summary:",
        f"  Total: {stats.total}",
        f"  Passed: {stats.passed}",
        f"  Failed: {stats.failed}",
        f"  Skipped: {stats.skipped}",
        f"  Pass Rate: {stats.pass_rate:.1f}%",
        f"  Total Duration: {format_duration(stats.total_duration)}",
        "",
        "Results:",
        "-" * 30,
    ]
    for index, result in enumerate(results, start=1):
        lines.append(f"{index}. {result.status.upper()}")
        lines.append(f"   Message: {result.message}")
        if result.duration:
            lines.append(f"   Duration: {format_duration(result.duration)}")
        if result.error:
            lines.append(f"   Error: {result.error}")
        lines.append("")
    return "\n".join(lines) + "\n"


HTML_HEAD = """<!DOCTYPE html>
<html>
<head>
    <title>Test Report</title>
    <style>
        body { font-family: Arial, sans-serif; margin: 20px; }
        .stats { background: #f5f5f5; padding: 20px; border-radius: 5px; margin-bottom: 20px; }
        .test-result { border: 1px solid #ddd; margin: 10px 0; padding: 15px; border-radius: 5px; }
        .passed { border-left: 5px solid #4CAF50; }
        .failed { border-left: 5px solid #f44336; }
        .skipped { border-left: 5px solid #ff9800; }
    </style>
</head>
<body>
    <h1>Test Execution Report</h1>
"""


def _html_report(stats: TestStats, results: List[TestResult]) -> str:
    parts = [
        HTML_HEAD,
        '    <div class="stats">',
        "        <h2>Summary</h2>",
        f"        <p>Total: {stats.total} | Passed: {stats.passed} | Failed: {stats.failed} | Skipped: {stats.skipped}</p>",
        f"        <p>Pass Rate: {stats.pass_rate:.1f}% | Total Duration: {format_duration(stats.total_duration)}</p>",
        "    </div>",
    ]
    for result in results:
        parts.append(f'    <div class="test-result {html.escape(result.status)}">')
        parts.append(f"        <h3>{html.escape(result.status.upper())}</h3>")
        parts.append(f"        <p><strong>Message:</strong> {html.escape(result.message)}</p>")
        if result.duration:
            parts.append(f"        <p><strong>Duration:</strong> {format_duration(result.duration)}</p>")
        if result.error:
            parts.append(f"        <p><strong>Error:</strong> {html.escape(result.error)}</p>")
        parts.append("    </div>")
    parts.extend(["</body>", "</html>"])
    return "\n".join(parts) + "\n"


def generate_report(results: List[TestResult], fmt: str = "json") -> str:
    stats = generate_stats(results)
    if fmt == "text":
        return _text_report(stats, results)
    if fmt == "html":
        return _html_report(stats, results)
    return json.dumps(
        {
            "stats": stats.model_dump(by_alias=True),
            "results": [r.model_dump(by_alias=True, exclude_none=True) for r in results],
        },
        indent=2,
    )
