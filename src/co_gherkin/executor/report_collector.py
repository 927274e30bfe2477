import json
from pathlib import Path
from datetime import datetime
from typing import Dict, Any
import logging
from jinja2 import Template

logger = logging.getLogger(__name__)

REPORT_FORMATS = ('html', 'json', 'junit')

HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>Feature Run Report - {{ timestamp }}</title>
    <style>
        body { font-family: Arial, sans-serif; margin: 20px; background-color: #f5f5f5; }
        .header { background-color: #333; color: white; padding: 20px; border-radius: 5px; margin-bottom: 20px; }
        .summary { display: flex; gap: 20px; margin-bottom: 30px; }
        .summary-card { background: white; padding: 20px; border-radius: 5px; flex: 1; text-align: center; }
        .summary-card .number { font-size: 36px; font-weight: bold; }
        .passed { color: #28a745; }
        .failed { color: #dc3545; }
        .skipped, .undefined { color: #b8860b; }
        .feature { background: white; margin-bottom: 20px; border-radius: 5px; overflow: hidden; }
        .feature-header { background: #f8f9fa; padding: 15px 20px; border-bottom: 1px solid #dee2e6; }
        .feature-header.passed { border-left: 5px solid #28a745; }
        .feature-header.failed { border-left: 5px solid #dc3545; }
        .scenario { padding: 15px 20px; border-bottom: 1px solid #eee; }
        .scenario-name { font-weight: bold; }
        .step { margin-left: 20px; padding: 5px 0; font-family: monospace; font-size: 14px; }
        .error { background-color: #f8d7da; color: #721c24; padding: 10px; margin: 10px 0 10px 20px;
                 border-radius: 3px; font-size: 12px; white-space: pre-wrap; }
        .tag { background-color: #e9ecef; padding: 2px 6px; border-radius: 3px; font-size: 11px; }
    </style>
</head>
<body>
    <div class="header">
        <h1>Feature Run Report</h1>
        <p>Generated: {{ timestamp }}</p>
        <p>Duration: {{ duration }}</p>
    </div>

    <div class="summary">
        <div class="summary-card"><h3>Scenarios</h3><div class="number">{{ summary.total }}</div></div>
        <div class="summary-card"><h3>Passed</h3><div class="number passed">{{ summary.passed }}</div></div>
        <div class="summary-card"><h3>Failed</h3><div class="number failed">{{ summary.failed }}</div></div>
        <div class="summary-card"><h3>Skipped</h3><div class="number skipped">{{ summary.skipped }}</div></div>
        <div class="summary-card"><h3>Pass Rate</h3><div class="number">{{ pass_rate }}%</div></div>
    </div>

    {% for feature in features %}
    <div class="feature">
        <div class="feature-header {{ feature.status }}">
            <h2>{{ feature.feature }}</h2>
            <div>{{ feature.file or '' }}</div>
            {% if feature.error %}<div class="error">{{ feature.error }}</div>{% endif %}
        </div>
        {% for scenario in feature.scenarios %}
        <div class="scenario">
            <span class="scenario-name">{{ scenario.name }}</span>
            <span class="{{ scenario.status }}">{{ scenario.status|upper }}</span>
            {% for tag in scenario.tags %}<span class="tag">@{{ tag }}</span>{% endfor %}
            {% for step in scenario.steps %}
            <div class="step {{ step.status }}">{{ step.keyword }} {{ step.name }}</div>
            {% if step.error %}<div class="error">{{ step.error }}</div>{% endif %}
            {% endfor %}
        </div>
        {% endfor %}
    </div>
    {% endfor %}
</body>
</html>
"""

JUNIT_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<testsuites name="co-gherkin" time="{{ duration }}" tests="{{ total_tests }}" failures="{{ failures }}" skipped="{{ skipped }}">
{% for feature in features %}
    <testsuite name="{{ feature.feature }}" tests="{{ feature.scenarios|length }}" failures="{{ feature.failures }}" time="{{ feature.duration }}">
    {% for scenario in feature.scenarios %}
        <testcase classname="{{ feature.feature|replace(' ', '_') }}" name="{{ scenario.name }}" time="{{ scenario.duration or 0 }}">
        {% if scenario.status == 'failed' %}
            <failure message="{{ scenario.error|default('Scenario failed', true) }}">{% for step in scenario.steps %}{% if step.status in ('failed', 'undefined') %}{{ step.keyword }} {{ step.name }}
{{ step.error }}
{% endif %}{% endfor %}</failure>
        {% elif scenario.status == 'skipped' %}
            <skipped/>
        {% endif %}
        </testcase>
    {% endfor %}
    </testsuite>
{% endfor %}
</testsuites>
"""


def _seconds_between(start: str, end: str) -> float:
    if not start or not end:
        return 0.0
    return (datetime.fromisoformat(end) - datetime.fromisoformat(start)).total_seconds()


class ReportCollector:
    """Writes run results as HTML, JSON or JUnit XML reports"""

    def __init__(self, output_dir: str = "test-results"):
        self.output_dir = Path(output_dir)

    def generate_report(self, results: Dict[str, Any], format: str = "html") -> str:
        """
        Generate report in specified format

        Args:
            results: Results from FeatureRunner.execute_features
            format: Report format (html, json, junit)

        Returns:
            Path to generated report
        """
        if format not in REPORT_FORMATS:
            raise ValueError(f"Unsupported report format: {format}")

        self.output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')

        if format == "html":
            return self._generate_html_report(results, timestamp)
        elif format == "json":
            return self._generate_json_report(results, timestamp)
        return self._generate_junit_report(results, timestamp)

    def _generate_html_report(self, results: Dict[str, Any], timestamp: str) -> str:
        """Generate HTML report"""
        summary = results.get('summary', {})
        total = summary.get('total', 0)
        passed = summary.get('passed', 0)
        pass_rate = round((passed / total * 100) if total > 0 else 0, 1)

        template = Template(HTML_TEMPLATE, autoescape=True)
        html_content = template.render(
            timestamp=timestamp,
            duration=_seconds_between(results.get('start_time'), results.get('end_time')),
            summary=summary,
            pass_rate=pass_rate,
            features=results.get('features', []),
        )

        report_path = self.output_dir / f"report_{timestamp}.html"
        report_path.write_text(html_content, encoding='utf-8')

        logger.info(f"HTML report generated: {report_path}")
        return str(report_path)

    def _generate_json_report(self, results: Dict[str, Any], timestamp: str) -> str:
        """Generate JSON report"""
        report_path = self.output_dir / f"report_{timestamp}.json"

        with open(report_path, 'w', encoding='utf-8') as f:
            json.dump(results, f, indent=2, default=str)

        logger.info(f"JSON report generated: {report_path}")
        return str(report_path)

    def _generate_junit_report(self, results: Dict[str, Any], timestamp: str) -> str:
        """Generate JUnit XML report"""
        features = []
        for feature in results.get('features', []):
            features.append({
                **feature,
                'failures': sum(1 for s in feature.get('scenarios', []) if s.get('status') == 'failed'),
                'duration': _seconds_between(feature.get('start_time'), feature.get('end_time')),
            })

        scenarios = [s for f in features for s in f.get('scenarios', [])]

        template = Template(JUNIT_TEMPLATE, autoescape=True)
        junit_content = template.render(
            duration=_seconds_between(results.get('start_time'), results.get('end_time')),
            total_tests=len(scenarios),
            failures=sum(1 for s in scenarios if s.get('status') == 'failed'),
            skipped=sum(1 for s in scenarios if s.get('status') == 'skipped'),
            features=features,
        )

        report_path = self.output_dir / f"report_{timestamp}.xml"
        report_path.write_text(junit_content, encoding='utf-8')

        logger.info(f"JUnit report generated: {report_path}")
        return str(report_path)
