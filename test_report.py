import json

import pytest

from nl2test.executor.executor import StepResult, TestResult
from nl2test.executor.report import format_duration, generate_report, generate_stats


@pytest.fixture
def results():
    return [
        TestResult(status="passed", message="Test 'login' completed successfully", duration=1200),
        TestResult(
            status="failed",
            message="Test failed at step 3: fill",
            duration=800,
            error="Element not found: <#pwd>",
            step_results=[StepResult(step_index=0, action="goto", status="passed")],
        ),
        TestResult(status="skipped", message="not run"),
    ]


def test_stats(results):
    stats = generate_stats(results)
    assert (stats.total, stats.passed, stats.failed, stats.skipped) == (3, 1, 1, 1)
    assert stats.total_duration == 2000
    assert round(stats.pass_rate, 1) == 33.3


def test_empty_stats():
    stats = generate_stats([])
    assert stats.pass_rate == 0.0
    assert stats.avg_duration == 0.0


@pytest.mark.parametrize("ms, expected", [(450, "450ms"), (1500, "1.5s"), (90000, "1.5m")])
def test_format_duration(ms, expected):
    assert format_duration(ms) == expected


def test_text_report(results):
    report = generate_report(results, "text")
    assert "Pass Rate: 33.3%" in report
    assert "Total Duration: 2.0s" in report
    assert "2. FAILED" in report
    assert "   Error: Element not found: <#pwd>" in report


def test_json_report(results):
    data = json.loads(generate_report(results))
    assert data["stats"]["failed"] == 1
    assert data["stats"]["totalDuration"] == 2000
    assert data["results"][1]["stepResults"][0] == {"stepIndex": 0, "action": "goto", "status": "passed"}
    assert "error" not in data["results"][0]


def test_results_read_back_from_camel_case_json(results):
    data = json.loads(generate_report(results))
    restored = TestResult.model_validate(data["results"][1])
    assert restored.step_results[0].step_index == 0
    assert restored.error == "Element not found: <#pwd>"


def test_html_report_escapes(results):
    report = generate_report(results, "html")
    assert '<div class="test-result failed">' in report
    assert "Element not found: &lt;#pwd&gt;" in report
