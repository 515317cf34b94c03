"""
报告模块：把一次运行的 UXReport 写成 HTML + JSON，并在控制台打印摘要。

ReportGenerator 只消费已完成的报告，不修改运行状态；
写文件失败时异常直接向上抛出。
"""

import html
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import DEFAULT_OUTPUT_DIR
from .models import ApiTestSuite, TestStep, UXIssue, UXReport

logger = logging.getLogger(__name__)


MAX_RECOMMENDATIONS = 10

SEVERITY_ORDER = {"critical": 0, "major": 1, "minor": 2, "suggestion": 3}

# 类别 → 固定建议，按此顺序输出
CATEGORY_ADVICE = [
    ("functionality", "Address functionality issues first as they may block user flows."),
    ("error_handling", "Improve error handling and user feedback for edge cases."),
    ("accessibility", "Run accessibility audit (WCAG compliance check)."),
    ("usability", "Consider user testing to validate UX improvements."),
    ("visual", "Review visual design for consistency across the app."),
]

SEVERITY_STYLES = {"critical": "bold red", "major": "red", "minor": "yellow", "suggestion": "dim"}
STATUS_STYLES = {"passed": "green", "failed": "red", "partial": "yellow"}


# ──────────────────────────────────────────────
# 摘要与建议
# ──────────────────────────────────────────────

def sort_issues(issues: List[UXIssue]) -> List[UXIssue]:
    """按严重程度排序；同级保持发现顺序"""
    return sorted(issues, key=lambda i: SEVERITY_ORDER.get(i.severity, len(SEVERITY_ORDER)))


def build_recommendations(issues: List[UXIssue]) -> List[str]:
    categories = {i.category for i in issues}
    recommendations = [advice for category, advice in CATEGORY_ADVICE if category in categories]

    for issue in issues:
        if issue.suggestion and issue.suggestion not in recommendations:
            recommendations.append(issue.suggestion)

    return recommendations[:MAX_RECOMMENDATIONS]


def build_summary(
    steps_taken: int,
    completed: bool,
    exhausted: bool,
    issues: List[UXIssue],
    steps: List[TestStep],
    stop_reason: Optional[str] = None,
) -> str:
    parts = [f"Completed {steps_taken} steps."]

    if completed:
        parts.append("The scenario goal appears to be achieved.")
    elif exhausted:
        if stop_reason and "timeout" in stop_reason:
            parts.append("Exceeded the run timeout before completing the goal.")
        else:
            parts.append("Reached maximum step limit before completing the goal.")
    elif stop_reason:
        parts.append(f"Stopped early: {stop_reason}.")

    if issues:
        critical = sum(1 for i in issues if i.severity == "critical")
        major = sum(1 for i in issues if i.severity == "major")
        minor = len(issues) - critical - major
        parts.append(
            f"Found {len(issues)} issues: {critical} critical, {major} major, {minor} minor/suggestions."
        )
    else:
        parts.append("No UX issues were detected during testing.")

    failures = sum(1 for s in steps if s.result == "failure")
    if failures:
        parts.append(f"{failures} actions failed during execution.")

    return " ".join(parts)


# ──────────────────────────────────────────────
# 文件输出
# ──────────────────────────────────────────────

class ReportGenerator:
    """生成 HTML / JSON 报告"""

    def __init__(self, output_dir=DEFAULT_OUTPUT_DIR):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def generate_report(self, report: UXReport) -> Path:
        """写出两份报告，返回 HTML 文件路径"""
        filename = self.report_filename()
        html_path = self.generate_html_report(report, filename)
        json_path = self.generate_json_report(report, filename)
        logger.info(f"报告已写入 {html_path} / {json_path.name}")
        return html_path

    @staticmethod
    def report_filename(now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        stamp = now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
        return "ux-report-" + stamp.replace(":", "-").replace(".", "-")

    def generate_json_report(self, report: UXReport, filename: str) -> Path:
        path = self.output_dir / f"{filename}.json"
        path.write_text(json.dumps(report.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        return path

    def generate_html_report(self, report: UXReport, filename: str) -> Path:
        path = self.output_dir / f"{filename}.html"
        path.write_text(self.render_html(report), encoding="utf-8")
        return path

    def render_html(self, report: UXReport) -> str:
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>UX Test Report - {self._escape_html(report.scenario)}</title>
  <style>{REPORT_CSS}</style>
</head>
<body>
  <div class="container">
    <h1>UX Test Report</h1>

    <div class="summary">
      {self._summary_tile("Scenario", self._escape_html(report.scenario))}
      {self._summary_tile("Status", report.status.upper(), f"status-{report.status}")}
      {self._summary_tile("Duration", f"{report.duration / 1000:.1f}s")}
      {self._summary_tile("Steps", str(len(report.steps)))}
      {self._summary_tile("Issues Found", str(len(report.issues)))}
    </div>

    <h2>Summary</h2>
    <p class="summary-text">{self._escape_html(report.summary)}</p>
    <p class="meta">Started {report.start_time.isoformat()} &middot; Finished {report.end_time.isoformat()}</p>

    {self._html_issues(report.issues)}

    {self._html_steps(report.steps)}

    {self._html_recommendations(report.recommendations)}
  </div>
</body>
</html>
"""

    def _summary_tile(self, label: str, value: str, css_class: str = "") -> str:
        return (
            f'<div class="summary-item"><div class="summary-label">{label}</div>'
            f'<div class="summary-value {css_class}">{value}</div></div>'
        )

    def _html_issues(self, issues: List[UXIssue]) -> str:
        if not issues:
            return '<h2>Issues</h2><p class="no-issues">No issues found!</p>'

        cards = []
        for issue in sort_issues(issues):
            suggestion = (
                f'<p class="issue-fix">Suggestion: {self._escape_html(issue.suggestion)}</p>'
                if issue.suggestion else ""
            )
            location = (
                f'<p class="issue-meta">Location: {self._escape_html(issue.location)}</p>'
                if issue.location else ""
            )
            screenshot = (
                f'<img src="{self._escape_html(issue.screenshot)}" class="screenshot" alt="Issue screenshot">'
                if issue.screenshot else ""
            )
            cards.append(f"""
      <div class="issue issue-{issue.severity}">
        <div class="issue-header">
          <span class="issue-title">{self._escape_html(issue.title)}</span>
          <span class="issue-badge badge-{issue.severity}">{issue.severity}</span>
        </div>
        <p class="issue-meta">Category: {issue.category}</p>
        {location}
        <p>{self._escape_html(issue.description)}</p>
        {suggestion}
        {screenshot}
      </div>""")

        return f'<h2>Issues ({len(issues)})</h2><div class="issues">{"".join(cards)}</div>'

    def _html_steps(self, steps: List[TestStep]) -> str:
        rows = []
        for step in steps:
            notes = f'<p class="step-notes">{self._escape_html(step.notes)}</p>' if step.notes else ""
            rows.append(f"""
      <div class="step step-{step.result}">
        <div class="step-number">{step.step_number}</div>
        <div class="step-content">
          <strong>{step.action.type}</strong>: {self._escape_html(step.action.description or "")}
          {notes}
        </div>
        <div class="step-duration">{step.duration}ms</div>
      </div>""")

        return f'<h2>Test Steps</h2><div class="steps">{"".join(rows)}</div>'

    def _html_recommendations(self, recommendations: List[str]) -> str:
        if not recommendations:
            return ""
        items = "".join(f"<li>{self._escape_html(r)}</li>" for r in recommendations)
        return f'<h2>Recommendations</h2><div class="recommendations"><ul>{items}</ul></div>'

    @staticmethod
    def _escape_html(text: Optional[str]) -> str:
        return html.escape(text or "", quote=True)


# ──────────────────────────────────────────────
# 控制台摘要
# ──────────────────────────────────────────────

def print_report_summary(report: UXReport, console: Optional[Console] = None):
    """在控制台打印精简的报告摘要"""
    console = console or Console()
    status_style = STATUS_STYLES.get(report.status, "white")

    header = Table.grid(padding=(0, 2))
    header.add_column(style="bold")
    header.add_column()
    header.add_row("Scenario", Text(report.scenario))
    header.add_row("Status", f"[{status_style}]{report.status.upper()}[/{status_style}]")
    header.add_row("Duration", f"{report.duration / 1000:.1f}s")
    header.add_row("Steps", str(len(report.steps)))
    header.add_row("Issues", str(len(report.issues)))
    console.print(Panel(header, title="UX TEST REPORT", expand=False))

    if report.issues:
        table = Table(title="Issues", show_lines=False)
        table.add_column("Severity")
        table.add_column("Title")
        table.add_column("Description")
        table.add_column("Suggestion")
        for issue in report.issues:
            style = SEVERITY_STYLES.get(issue.severity, "")
            table.add_row(
                Text(issue.severity.upper(), style=style),
                Text(issue.title),
                Text(issue.description),
                Text(issue.suggestion or ""),
            )
        console.print(table)

    console.print(Text.assemble(("Summary: ", "bold"), report.summary))

    if report.recommendations:
        console.print("[bold]Recommendations:[/bold]")
        for rec in report.recommendations:
            console.print(f"  - {rec}", markup=False)


def print_api_results(suites: List[ApiTestSuite], console: Optional[Console] = None):
    """打印 API 契约检查结果，每个套件一张表，最后一行汇总"""
    console = console or Console()
    console.print(Panel("API TEST RESULTS", expand=False))

    for suite in suites:
        total = suite.passed + suite.failed
        table = Table(title=Text(f"{suite.name}  Passed: {suite.passed}/{total}  ({suite.duration}ms)"))
        table.add_column("Result")
        table.add_column("Method")
        table.add_column("Endpoint")
        table.add_column("Status", justify="right")
        table.add_column("Time", justify="right")
        table.add_column("Error")
        for result in suite.results:
            mark = Text("PASS", style="green") if result.success else Text("FAIL", style="red")
            table.add_row(
                mark,
                result.method,
                Text(result.endpoint),
                str(result.status),
                f"{result.response_time}ms",
                Text(result.error or ""),
            )
        console.print(table)

    passed = sum(s.passed for s in suites)
    failed = sum(s.failed for s in suites)
    style = "red" if failed else "green"
    console.print(f"[{style}]TOTAL: {passed} passed, {failed} failed[/{style}]")


REPORT_CSS = """
    :root {
      --bg-primary: #1a1a1a;
      --bg-secondary: #2d2d2d;
      --text-primary: #ffffff;
      --text-secondary: #a0a0a0;
      --accent: #ff7b00;
      --success: #22c55e;
      --warning: #f59e0b;
      --error: #ef4444;
      --critical: #dc2626;
    }
    * { box-sizing: border-box; margin: 0; padding: 0; }
    body {
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      background: var(--bg-primary);
      color: var(--text-primary);
      line-height: 1.6;
      padding: 2rem;
    }
    .container { max-width: 1200px; margin: 0 auto; }
    h1, h2, h3 { margin-bottom: 1rem; }
    h1 { color: var(--accent); border-bottom: 2px solid var(--accent); padding-bottom: 0.5rem; }
    .summary {
      background: var(--bg-secondary);
      padding: 1.5rem;
      border-radius: 8px;
      margin-bottom: 2rem;
      display: grid;
      grid-template-columns: repeat(auto-fit, minmax(200px, 1fr));
      gap: 1rem;
    }
    .summary-item { text-align: center; }
    .summary-label { color: var(--text-secondary); font-size: 0.875rem; }
    .summary-value { font-size: 1.5rem; font-weight: bold; }
    .summary-text { margin-bottom: 0.5rem; }
    .meta { color: var(--text-secondary); font-size: 0.875rem; margin-bottom: 2rem; }
    .status-passed { color: var(--success); }
    .status-failed { color: var(--error); }
    .status-partial { color: var(--warning); }
    .no-issues { margin-bottom: 2rem; color: var(--success); }
    .issues { margin-bottom: 2rem; }
    .issue {
      background: var(--bg-secondary);
      padding: 1rem;
      border-radius: 8px;
      margin-bottom: 1rem;
      border-left: 4px solid;
    }
    .issue-critical { border-color: var(--critical); }
    .issue-major { border-color: var(--error); }
    .issue-minor { border-color: var(--warning); }
    .issue-suggestion { border-color: var(--text-secondary); }
    .issue-header { display: flex; justify-content: space-between; align-items: center; margin-bottom: 0.5rem; }
    .issue-title { font-weight: bold; }
    .issue-meta { color: var(--text-secondary); margin-bottom: 0.5rem; }
    .issue-fix { margin-top: 0.5rem; color: var(--accent); }
    .issue-badge { padding: 0.25rem 0.5rem; border-radius: 4px; font-size: 0.75rem; text-transform: uppercase; }
    .badge-critical { background: var(--critical); }
    .badge-major { background: var(--error); }
    .badge-minor { background: var(--warning); color: #000; }
    .badge-suggestion { background: var(--text-secondary); }
    .steps { margin-bottom: 2rem; }
    .step {
      background: var(--bg-secondary);
      padding: 1rem;
      border-radius: 8px;
      margin-bottom: 0.5rem;
      display: flex;
      align-items: center;
      gap: 1rem;
    }
    .step-number {
      width: 2rem;
      height: 2rem;
      background: var(--accent);
      color: #000;
      border-radius: 50%;
      display: flex;
      align-items: center;
      justify-content: center;
      font-weight: bold;
    }
    .step-success .step-number { background: var(--success); }
    .step-failure .step-number { background: var(--error); }
    .step-warning .step-number { background: var(--warning); }
    .step-content { flex: 1; }
    .step-notes { color: var(--text-secondary); margin-top: 0.25rem; }
    .step-duration { color: var(--text-secondary); font-size: 0.875rem; }
    .screenshot { max-width: 100%; border-radius: 4px; margin-top: 0.5rem; }
    .recommendations { background: var(--bg-secondary); padding: 1.5rem; border-radius: 8px; }
    .recommendations ul { padding-left: 1.5rem; }
    .recommendations li { margin-bottom: 0.5rem; }
"""
