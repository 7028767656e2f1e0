"""
Pluggable report formats.

Each format turns a list of results into the text of one report file.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, Template, TemplateNotFound

from ..execution.models import TestResult
from .models import ExecutionSummary, format_duration


class ReportFormatter:
    """Base class for report formats."""

    name = ""
    extension = ""

    def generate_report(self, results: Sequence[TestResult]) -> str:
        raise NotImplementedError


class HtmlReportFormat(ReportFormatter):
    """
    Standalone HTML page with a summary block and a results table.

    A ``report.html`` file in ``template_dir`` replaces the built-in template.
    """

    name = "html"
    extension = "html"

    def __init__(self, template_dir: Optional[Path] = None):
        self.template_dir = Path(template_dir) if template_dir else None
        loader = FileSystemLoader(str(self.template_dir)) if self.template_dir else None
        self.jinja_env = Environment(loader=loader, autoescape=True)
        self.jinja_env.filters["duration"] = format_duration

    def _template(self) -> Template:
        if self.template_dir is not None:
            try:
                return self.jinja_env.get_template("report.html")
            except TemplateNotFound:
                pass
        return self.jinja_env.from_string(DEFAULT_HTML_TEMPLATE)

    def generate_report(self, results: Sequence[TestResult]) -> str:
        summary = ExecutionSummary.from_results(results)
        return self._template().render(
            summary=summary,
            results=list(results),
            success_rate=round(summary.success_percent),
            generated_at=datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S UTC"),
        )


class JsonReportFormat(ReportFormatter):
    """Machine-readable report with a ``summary`` object and a ``results`` list."""

    name = "json"
    extension = "json"

    def generate_report(self, results: Sequence[TestResult]) -> str:
        summary = ExecutionSummary.from_results(results)
        payload = {
            "summary": {
                "totalTests": summary.total_tests,
                "passed": summary.passed,
                "failed": summary.failed,
                "skipped": summary.skipped,
                "error": summary.errors,
                "pending": summary.pending,
                "duration": summary.duration_ms,
                "successRate": round(summary.success_percent, 2),
                "success": summary.success,
                "timestamp": datetime.utcnow().isoformat() + "Z",
            },
            "results": [result.to_report_dict() for result in results],
        }
        return json.dumps(payload, indent=2)


class JunitReportFormat(ReportFormatter):
    """JUnit XML for CI test-result widgets."""

    name = "junit"
    extension = "xml"

    def __init__(self):
        self.jinja_env = Environment(autoescape=True)

    def generate_report(self, results: Sequence[TestResult]) -> str:
        summary = ExecutionSummary.from_results(results)
        return self.jinja_env.from_string(DEFAULT_JUNIT_TEMPLATE).render(
            summary=summary,
            results=list(results),
        )


def builtin_formats(template_dir: Optional[Path] = None) -> List[ReportFormatter]:
    return [HtmlReportFormat(template_dir), JsonReportFormat(), JunitReportFormat()]


DEFAULT_HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Test Execution Report</title>
    <style>
        body { font-family: Arial, sans-serif; margin: 20px; }
        .header { background: #f5f5f5; padding: 20px; border-radius: 5px; }
        .summary { margin: 20px 0; }
        .passed { color: green; }
        .failed { color: red; }
        .error { color: darkred; }
        .skipped { color: orange; }
        .pending { color: gray; }
        table { border-collapse: collapse; width: 100%; }
        th, td { border: 1px solid #ddd; padding: 8px; text-align: left; vertical-align: top; }
        th { background-color: #f2f2f2; }
        pre { white-space: pre-wrap; margin: 0; }
    </style>
</head>
<body>
    <div class="header">
        <h1>Test Execution Report</h1>
        <p><strong>Generated:</strong> {{ generated_at }}</p>
    </div>

    <div class="summary">
        <h2>Summary</h2>
        <p><strong>Total Tests:</strong> {{ summary.total_tests }}</p>
        <p><strong>Passed:</strong> <span class="passed">{{ summary.passed }}</span></p>
        <p><strong>Failed:</strong> <span class="failed">{{ summary.failed }}</span></p>
        <p><strong>Errors:</strong> <span class="error">{{ summary.errors }}</span></p>
        <p><strong>Skipped:</strong> <span class="skipped">{{ summary.skipped }}</span></p>
        <p><strong>Pending:</strong> <span class="pending">{{ summary.pending }}</span></p>
        <p><strong>Success Rate:</strong> {{ success_rate }}%</p>
        <p><strong>Total Duration:</strong> {{ summary.duration_ms | duration }}</p>
    </div>

    <h2>Test Results</h2>
    <table>
        <tr>
            <th>Test</th>
            <th>Status</th>
            <th>Duration</th>
            <th>Environment</th>
            <th>Details</th>
        </tr>
        {% for result in results %}
        <tr>
            <td>{{ result.name }}</td>
            <td class="{{ result.status.value }}">{{ result.status.value.upper() }}</td>
            <td>{{ (result.duration_ms or 0) | duration }}</td>
            <td>{{ result.environment_id }}</td>
            <td>{% if result.error_message %}<pre>{{ result.error_message }}</pre>{% endif %}</td>
        </tr>
        {% endfor %}
    </table>
</body>
</html>
"""

DEFAULT_JUNIT_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<testsuites name="featurerun"
            tests="{{ summary.total_tests }}"
            failures="{{ summary.failed }}"
            errors="{{ summary.errors }}"
            skipped="{{ summary.skipped + summary.pending }}"
            time="{{ summary.duration_ms / 1000 }}">
    <testsuite name="featurerun"
               tests="{{ summary.total_tests }}"
               failures="{{ summary.failed }}"
               errors="{{ summary.errors }}"
               skipped="{{ summary.skipped + summary.pending }}"
               time="{{ summary.duration_ms / 1000 }}">
        {% for result in results %}
        <testcase name="{{ result.name }}"
                  classname="{{ result.feature_name or result.artifact_id }}"
                  time="{{ result.duration_seconds }}">
            {% if result.status.value == "failed" %}
            <failure message="{{ result.error_message or 'Test failed' }}">{{ result.output }}</failure>
            {% elif result.status.value == "error" %}
            <error message="{{ result.error_message or 'Test error' }}">{{ result.stack_trace or result.output }}</error>
            {% elif result.status.value in ("skipped", "pending") %}
            <skipped message="{{ result.status.value }}" />
            {% endif %}
        </testcase>
        {% endfor %}
    </testsuite>
</testsuites>
"""
