import json
import xml.etree.ElementTree as ET

import pytest
from co_gherkin.executor import ReportCollector


@pytest.fixture
def results():
    return {
        'features': [{
            'feature': 'Checkout <beta>',
            'file': '/tmp/checkout.feature',
            'tags': [],
            'status': 'failed',
            'start_time': '2024-01-01T10:00:00',
            'end_time': '2024-01-01T10:00:02',
            'scenarios': [
                {
                    'name': 'Pay',
                    'tags': ['smoke'],
                    'status': 'passed',
                    'duration': 1.0,
                    'steps': [{'keyword': 'Given', 'name': 'a cart', 'line': 3, 'status': 'passed'}],
                },
                {
                    'name': 'Refund',
                    'tags': [],
                    'status': 'failed',
                    'duration': 0.5,
                    'error': 'Step failed: "Then money & goods"',
                    'steps': [{'keyword': 'Then', 'name': 'money & goods', 'line': 7,
                               'status': 'failed', 'error': 'AssertionError'}],
                },
                {
                    'name': 'Later',
                    'tags': [],
                    'status': 'skipped',
                    'duration': 0.0,
                    'steps': [],
                },
            ],
        }],
        'summary': {'features': 1, 'total': 3, 'passed': 1, 'failed': 1, 'skipped': 1},
        'start_time': '2024-01-01T10:00:00',
        'end_time': '2024-01-01T10:00:03',
        'status': 'failed',
    }


class TestReportCollector:
    """Test report generation"""

    @pytest.fixture
    def collector(self, tmp_path):
        return ReportCollector(str(tmp_path / "reports"))

    def test_json_report(self, collector, results):
        """Test JSON report contains the raw results"""
        path = collector.generate_report(results, "json")

        assert path.endswith(".json")
        with open(path) as f:
            assert json.load(f)['summary']['failed'] == 1

    def test_junit_report(self, collector, results):
        """Test JUnit XML is well-formed with one testcase per scenario"""
        path = collector.generate_report(results, "junit")

        root = ET.parse(path).getroot()
        assert root.tag == "testsuites"
        assert root.get("tests") == "3"
        assert root.get("failures") == "1"
        suite = root.find("testsuite")
        assert suite.get("name") == "Checkout <beta>"
        cases = suite.findall("testcase")
        assert [case.get("name") for case in cases] == ["Pay", "Refund", "Later"]
        assert cases[1].find("failure") is not None
        assert cases[2].find("skipped") is not None

    def test_html_report(self, collector, results):
        """Test HTML report escapes content"""
        path = collector.generate_report(results, "html")

        with open(path, encoding="utf-8") as f:
            html = f.read()
        assert "Checkout &lt;beta&gt;" in html
        assert "money &amp; goods" in html
        assert "33.3%" in html

    def test_unknown_format(self, collector, results):
        """Test unsupported formats raise"""
        with pytest.raises(ValueError):
            collector.generate_report(results, "pdf")
