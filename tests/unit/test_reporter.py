"""Tests for run report output."""

import json
from pathlib import Path
from xml.etree import ElementTree as ET

import pytest

from cfpflow.reporter import Reporter
from cfpflow.types import (
    FlowState,
    GroupReport,
    RunReport,
    StepRecord,
    StepResult,
    StepStatus,
)


@pytest.fixture
def run_report():
    signin_like = StepResult(
        method="GET",
        path="/user/protectedRoute",
        status_code=200,
        headers={"set-cookie": "token=secret", "content-type": "application/json"},
        body={"success": True},
        elapsed_ms=42,
    )
    group = GroupReport(
        name="categories",
        steps=[
            StepRecord("list categories", StepStatus.PASS, signin_like),
            StepRecord("add category", StepStatus.FAIL, signin_like, "[status] status 200 != 201"),
            StepRecord("delete category", StepStatus.SKIPPED, detail="precondition not met"),
            StepRecord("slow listing", StepStatus.SLOW, signin_like, "[latency] slow response"),
            StepRecord("unreachable", StepStatus.ERROR, detail="[transport] ConnectError"),
            StepRecord("delete goal", StepStatus.KNOWN_DEFECT, signin_like),
        ],
    )
    return RunReport(
        run_id="run_test_001",
        base_url="http://cfp.test",
        user_email="maria.teste@example.com",
        state=FlowState.TORN_DOWN,
        groups=[group],
    )


class TestReporter:

    def test_create_reports_writes_all_formats(self, temp_dir, run_report):
        paths = Reporter(temp_dir / "out").create_reports(run_report)
        assert set(paths) == {"json", "junit", "html"}
        for path in paths.values():
            assert Path(path).exists()
        assert not list((temp_dir / "out").glob("*.tmp"))

    def test_json_redacts_credentials(self, temp_dir, run_report):
        paths = Reporter(temp_dir).create_reports(run_report)
        data = json.loads((temp_dir / "run_test_001.json").read_text(encoding="utf-8"))
        assert data["succeeded"] is False
        assert data["totals"]["known_defects"] == 1
        headers = data["groups"][0]["steps"][0]["result"]["headers"]
        assert headers["set-cookie"] == "[REDACTED]"
        assert "secret" not in (temp_dir / "run_test_001.json").read_text(encoding="utf-8")
        assert paths["json"].endswith("run_test_001.json")

    def test_junit_counts(self, run_report):
        root = ET.fromstring(Reporter.junit_xml(run_report))
        suite = root.find("testsuite")
        assert suite.get("name") == "categories"
        assert suite.get("tests") == "6"
        assert suite.get("failures") == "2"
        assert suite.get("errors") == "1"
        assert suite.get("skipped") == "2"
        cases = {c.get("name"): c for c in suite.findall("testcase")}
        assert cases["add category"].find("failure").text == "[status] status 200 != 201"
        assert cases["slow listing"].find("failure").get("type") == "SLOW"
        assert cases["delete goal"].find("skipped").get("message") == "known defect reproduced"

    def test_junit_aborted_setup(self):
        report = RunReport(run_id="r", base_url="http://cfp.test", aborted=True, abort_reason="no token")
        root = ET.fromstring(Reporter.junit_xml(report))
        err = root.find("testsuite/testcase/error")
        assert err.text == "no token"

    def test_html_escapes_content(self, run_report):
        run_report.groups[0].steps[1].detail = "<script>alert(1)</script>"
        html = Reporter.html(run_report)
        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html
        assert "FAILED" in html
