"""
ASCII terminal formatters for CLI commands.

All formatters accept engine result models and return plain multi-line
strings suitable for ``typer.echo()``.

No third-party dependencies (no ``rich``, no ``colorama``).

Severity / priority tags
------------------------
Rows are prefixed with a fixed-width tag so high-urgency items stand out
when scanning a long list::

  [HIGH] [MED ] [LOW ]
"""

from __future__ import annotations

from typing import Optional, Sequence

from asset_insight.models.finding import AnomalyFinding, AnomalySummary
from asset_insight.models.prediction import DemandForecast, ForecastSummary
from asset_insight.models.recommendation import Recommendation, RecommendationMetrics
from asset_insight.models.workflow import WorkflowDefinition, WorkflowExecution

_TAGS = {"high": "[HIGH]", "medium": "[MED ]", "low": "[LOW ]"}

_RULE = "-" * 78


def _tag(level: str) -> str:
    return _TAGS.get(level, f"[{level[:4].upper():<4}]")


def _trunc(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


# ── Anomalies ─────────────────────────────────────────────────────────────────


def format_findings_table(
    findings: Sequence[AnomalyFinding],
    summary: Optional[AnomalySummary] = None,
) -> str:
    """One row per finding, followed by counts by severity and type."""
    lines = ["Anomaly findings", _RULE]
    if not findings:
        lines.append("  No anomalies detected.")
    for f in findings:
        subject = f.subject_id or "company"
        lines.append(
            f"  {_tag(f.severity.value)} {f.type.value:<24} {subject:<12} "
            f"conf={f.confidence:.2f}  {_trunc(f.message, 40)}"
        )
        lines.append(f"         -> {f.recommendation}")

    if summary is not None:
        lines.append(_RULE)
        sev = summary.by_severity
        lines.append(
            f"  Total: {summary.total}  "
            f"(high={sev.get('high', 0)}, medium={sev.get('medium', 0)}, low={sev.get('low', 0)})"
        )
        for type_name, count in sorted(summary.by_type.items()):
            lines.append(f"    {type_name:<28} {count}")
    return "\n".join(lines)


# ── Recommendations ───────────────────────────────────────────────────────────


def format_recommendations(
    recommendations: Sequence[Recommendation],
    show_reasoning: bool = True,
) -> str:
    """Recommendations in input order, each with its reasoning lines."""
    lines = ["Recommendations", _RULE]
    if not recommendations:
        lines.append("  No recommendations.")
    for rec in recommendations:
        lines.append(
            f"  {_tag(rec.priority.value)} {rec.title}  "
            f"({rec.id}, conf={rec.confidence:.2f})"
        )
        lines.append(f"         {rec.description}")
        if show_reasoning:
            for reason in rec.reasoning:
                lines.append(f"           - {reason}")
        if rec.actions:
            labels = ", ".join(a.label for a in rec.actions)
            lines.append(f"         Actions: {labels}")
    return "\n".join(lines)


def format_metrics(metrics: RecommendationMetrics) -> str:
    return "\n".join([
        "Recommendation feedback",
        _RULE,
        f"  Logged reactions:  {metrics.total_recommendations}",
        f"  Accepted:          {metrics.accepted_recommendations}",
        f"  Acceptance rate:   {metrics.acceptance_rate * 100:.1f}%",
        f"  Data points:       {metrics.learning_data_points}",
        f"  Users:             {metrics.users}",
    ])


# ── Forecasts ─────────────────────────────────────────────────────────────────


def format_forecast_table(
    forecast: DemandForecast,
    summary: Optional[ForecastSummary] = None,
) -> str:
    """Month-by-month cost table for one forecast, plus planning advice."""
    lines = [
        f"{forecast.kind.capitalize()} demand forecast "
        f"({forecast.horizon_months} months, confidence {forecast.confidence:.2f})",
        _RULE,
    ]
    for bucket in forecast.buckets:
        row = f"  Month {bucket.month:>2}  cost ${bucket.estimated_cost:>10,.2f}"
        priority = getattr(bucket, "priority", None)
        if priority is not None:
            row += f"  {_tag(priority.value)}"
        if getattr(bucket, "budget_constrained", False):
            row += f"  capped (was ${bucket.original_cost:,.2f})"
        lines.append(row)

    if summary is not None:
        lines.append(_RULE)
        lines.append(f"  Total cost:            ${summary.total_cost:,.2f}")
        lines.append(f"  Average monthly cost:  ${summary.average_monthly_cost:,.2f}")
        lines.append(f"  High-priority months:  {summary.high_priority_months}")
        lines.append(f"  Suggested budget/mo:   ${summary.budget_recommendation:,.2f}")

    if forecast.recommendations:
        lines.append(_RULE)
        for rec in forecast.recommendations:
            lines.append(f"  {_tag(rec.priority.value)} {rec.title}: {rec.message}")
    return "\n".join(lines)


# ── Workflows ─────────────────────────────────────────────────────────────────


def format_workflow_list(definitions: Sequence[WorkflowDefinition]) -> str:
    lines = ["Registered workflows", _RULE]
    if not definitions:
        lines.append("  No workflows registered.")
    for d in definitions:
        state = "active  " if d.is_active else "inactive"
        lines.append(
            f"  {d.id:<24} {state}  steps={len(d.steps)} final={len(d.actions)}  {d.name}"
        )
    return "\n".join(lines)


def format_execution(execution: WorkflowExecution) -> str:
    """Execution status, each logged step, and the error if any."""
    lines = [
        f"Execution {execution.id}",
        _RULE,
        f"  Workflow: {execution.workflow_id}",
        f"  Status:   {execution.status.value}",
        f"  Steps run: {len(execution.results)}",
    ]
    for r in execution.results:
        lines.append(f"    step {r.step}: {r.action} -> {r.result}")
    if execution.error:
        lines.append(f"  Error:    {execution.error}")
    return "\n".join(lines)
