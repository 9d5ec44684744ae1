"""
Markdown rendering for fitness runs
"""

from typing import List

from agent_contract.fitness.models import Issue, RunSummary, SuiteResult


def _flag(value: bool) -> str:
    return "true" if value else "false"


def build_markdown_report(summary: RunSummary, suites: List[SuiteResult], issues: List[Issue]) -> str:
    """Deterministic report: metadata, totals, one row per suite, flat issue list"""
    totals = summary.totals
    lines = [
        "# Agent Fitness Report",
        "",
        f"- Run ID: `{summary.run_id}`",
        f"- Started: `{summary.started_at}`",
        f"- Ended: `{summary.ended_at}`",
        f"- Duration: `{summary.duration_ms}ms`",
        f"- Success: `{_flag(summary.success)}`",
        "",
        "## Totals",
        "",
        f"- Suites: {totals.suites} ({totals.suites_passed} passed, {totals.suites_failed} failed)",
        f"- Checks: {totals.checks} ({totals.checks_passed} passed, {totals.checks_failed} failed)",
        "",
        "## Suite Results",
        "",
        "| Suite | Kind | Passed | Failed | Duration (ms) | Success |",
        "|---|---|---:|---:|---:|---|",
    ]

    for suite in suites:
        lines.append(
            f"| {suite.name} | {suite.kind} | {suite.passed}/{suite.total} | {suite.failed} "
            f"| {suite.duration_ms} | {'yes' if suite.success else 'no'} |"
        )

    lines.extend(["", "## Issues", ""])
    if not issues:
        lines.append("- No issues detected.")
    for issue in issues:
        lines.append(f"- [{issue.classification}] {issue.suite_name}: {issue.message}")

    return "\n".join(lines) + "\n"
