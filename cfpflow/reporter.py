# cfpflow/reporter.py
"""
Reporter

Writes one run to disk:
✅ JSON (full RunReport, sensitive headers redacted)
✅ JUnit XML for CI (one testsuite per group)
✅ HTML summary (Jinja2)
✅ Atomic writes (tmp file + replace)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Union
from xml.etree import ElementTree as ET

from jinja2 import BaseLoader, Environment, select_autoescape

from cfpflow.types import RunReport, StepStatus

logger = logging.getLogger(__name__)

_HTML_TEMPLATE = """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>CFP flow: {{ r.run_id }}</title>
<style>
  body { font-family: Inter, 'Segoe UI', Roboto, sans-serif; background:#f7fafc; color:#111; margin:0; padding:20px; }
  .wrap { max-width: 1100px; margin: 0 auto; }
  .card { background:#fff; border-radius:12px; box-shadow:0 4px 12px rgba(0,0,0,0.08); padding:20px; margin-bottom:16px; }
  .muted { color:#666; font-size:13px; }
  .badge { display:inline-block; padding:4px 12px; border-radius:6px; font-size:12px; font-weight:600; color:#fff; }
  .PASS { background:#1a7f37; } .FAIL, .ERROR { background:#d00000; } .SLOW { background:#f59e0b; }
  .SKIPPED { background:#888; } .KNOWN_DEFECT { background:#7c3aed; }
  table { width:100%; border-collapse:collapse; font-size:14px; }
  th, td { padding:8px; border-bottom:1px solid #eee; text-align:left; vertical-align:top; }
  th { background:#eef4ff; }
  code { font-size:12px; }
</style>
</head>
<body>
<div class="wrap">
  <div class="card">
    <h1>CFP API flow</h1>
    <div class="muted"><strong>{{ r.run_id }}</strong> • {{ now }} UTC • {{ r.base_url }}</div>
    <p>
      <span class="badge {{ 'PASS' if r.succeeded else 'FAIL' }}">{{ 'PASSED' if r.succeeded else 'FAILED' }}</span>
      {% for k, v in totals.items() %}<span class="muted">{{ k }}={{ v }}</span> {% endfor %}
    </p>
    {% if r.aborted %}<p><strong>Aborted:</strong> {{ r.abort_reason }}</p>{% endif %}
    {% if r.teardown_error %}<p class="muted">Sign-out: {{ r.teardown_error }}</p>{% endif %}
  </div>

  {% for g in r.groups %}
  <div class="card">
    <h3>{{ g.name }}</h3>
    <table>
      <thead><tr><th>Step</th><th>Status</th><th>Request</th><th>ms</th><th>Detail</th></tr></thead>
      <tbody>
      {% for s in g.steps %}
        <tr>
          <td>{{ s.name }}</td>
          <td><span class="badge {{ s.status.value }}">{{ s.status.value }}</span></td>
          <td>{% if s.result %}<code>{{ s.result.method }} {{ s.result.path }} → {{ s.result.status_code }}</code>{% endif %}</td>
          <td>{{ s.result.elapsed_ms if s.result else '' }}</td>
          <td>{{ s.detail or '' }}</td>
        </tr>
      {% endfor %}
      </tbody>
    </table>
  </div>
  {% endfor %}
</div>
</body>
</html>
"""

_env = Environment(
    loader=BaseLoader(),
    autoescape=select_autoescape(enabled_extensions=("html", "xml"), default_for_string=True),
)


class Reporter:
    """Persist a RunReport as JSON, JUnit XML and HTML."""

    def __init__(self, reports_dir: Union[str, Path] = "reports"):
        self.reports_dir = Path(reports_dir)

    def create_reports(self, report: RunReport) -> Dict[str, str]:
        """
        Generate all report formats.

        Returns:
            Dict with paths: {"json", "junit", "html"}
        """
        self.reports_dir.mkdir(parents=True, exist_ok=True)
        eid = report.run_id

        json_path = self.reports_dir / f"{eid}.json"
        junit_path = self.reports_dir / f"{eid}.junit.xml"
        html_path = self.reports_dir / f"{eid}.html"

        self._atomic_json_dump(json_path, report.to_dict())
        logger.info(f"✅ JSON report → {json_path}")

        self._atomic_text_write(junit_path, self.junit_xml(report))
        logger.info(f"✅ JUnit XML → {junit_path}")

        self._atomic_text_write(html_path, self.html(report))
        logger.info(f"✅ HTML report → {html_path}")

        return {"json": str(json_path), "junit": str(junit_path), "html": str(html_path)}

    # ==================== Formats ====================

    @staticmethod
    def junit_xml(report: RunReport) -> str:
        """One testsuite per group; skipped and known-defect steps are <skipped>."""
        root = ET.Element("testsuites", name=report.run_id)

        if report.aborted:
            suite = ET.SubElement(root, "testsuite", name="setup", tests="1", failures="0", errors="1", skipped="0")
            case = ET.SubElement(suite, "testcase", name="authenticate", classname="setup")
            err = ET.SubElement(case, "error", message="setup aborted")
            err.text = report.abort_reason or ""

        for group in report.groups:
            suite = ET.SubElement(
                root,
                "testsuite",
                name=group.name,
                tests=str(len(group.steps)),
                failures=str(group.count(StepStatus.FAIL) + group.count(StepStatus.SLOW)),
                errors=str(group.count(StepStatus.ERROR)),
                skipped=str(group.count(StepStatus.SKIPPED) + group.count(StepStatus.KNOWN_DEFECT)),
            )
            for step in group.steps:
                attrs: Dict[str, Any] = {"name": step.name, "classname": group.name}
                if step.result and step.result.elapsed_ms is not None:
                    attrs["time"] = f"{step.result.elapsed_ms / 1000:.3f}"
                case = ET.SubElement(suite, "testcase", **attrs)

                if step.status in (StepStatus.FAIL, StepStatus.SLOW):
                    kind = "latency" if step.status is StepStatus.SLOW else "assertion"
                    node = ET.SubElement(case, "failure", message=f"{kind} failure", type=step.status.value)
                    node.text = step.detail or ""
                elif step.status is StepStatus.ERROR:
                    node = ET.SubElement(case, "error", message="transport error")
                    node.text = step.detail or ""
                elif step.status is StepStatus.SKIPPED:
                    ET.SubElement(case, "skipped", message=step.detail or "skipped")
                elif step.status is StepStatus.KNOWN_DEFECT:
                    ET.SubElement(case, "skipped", message="known defect reproduced")

        return ET.tostring(root, encoding="unicode", method="xml")

    @staticmethod
    def html(report: RunReport) -> str:
        return _env.from_string(_HTML_TEMPLATE).render(
            r=report,
            totals=report.totals(),
            now=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
        )

    # ==================== Helpers ====================

    @staticmethod
    def _atomic_text_write(path: Path, text: str) -> None:
        """Atomic file write"""
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(text, encoding="utf-8")
        tmp.replace(path)

    @staticmethod
    def _atomic_json_dump(path: Path, data: Any) -> None:
        """Atomic JSON write"""
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(path)
