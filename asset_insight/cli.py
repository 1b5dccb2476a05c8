"""
Command-line entry point for ``asset-insight``.

Each command:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging (stderr, so ``--json`` output on stdout stays clean).
  3. Load and validate the JSON snapshot / context input.
  4. Run the engine(s).
  5. Print an ASCII report, or JSON with ``--json``.

Install and run::

    pip install -e .
    asset-insight --help
    asset-insight validate-config
    asset-insight detect-anomalies --snapshot data/snapshot.json
    asset-insight recommend --snapshot data/snapshot.json
    asset-insight predict-demand --snapshot data/snapshot.json --kind equipment
    asset-insight analyze --snapshot data/snapshot.json --json
    asset-insight list-workflows
    asset-insight run-workflow --workflow maintenance_required --context ctx.json --activate
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import typer

app = typer.Typer(
    name="asset-insight",
    help="Asset Insight: anomaly detection, recommendations, demand forecasts and workflows.",
    add_completion=False,
)

_FORECAST_KINDS = ("equipment", "software", "maintenance")


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """``load_config()``, turning any failure into exit code 1 with a message."""
    from asset_insight.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Kept separate so tests can stub it out."""
    from asset_insight.utils.logging import configure_logging
    configure_logging(config.logging)


def _load_snapshot_or_exit(snapshot_path: str):
    """Load a CompanySnapshot JSON file, exiting with code 1 on any problem."""
    from pydantic import ValidationError

    from asset_insight.pipeline.insights import load_snapshot

    path = Path(snapshot_path)
    if not path.exists():
        typer.echo(f"[ERROR] Snapshot file not found: {path}", err=True)
        raise typer.Exit(code=1)
    try:
        return load_snapshot(path)
    except json.JSONDecodeError as exc:
        typer.echo(f"[ERROR] Snapshot is not valid JSON: {exc}", err=True)
        raise typer.Exit(code=1)
    except ValidationError as exc:
        typer.echo(f"[ERROR] Snapshot failed validation:\n{exc}", err=True)
        raise typer.Exit(code=1)


def _load_json_or_exit(file_path: str, label: str) -> Any:
    path = Path(file_path)
    if not path.exists():
        typer.echo(f"[ERROR] {label} file not found: {path}", err=True)
        raise typer.Exit(code=1)
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        typer.echo(f"[ERROR] {label} file is not valid JSON: {exc}", err=True)
        raise typer.Exit(code=1)


def _json_text(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=str)


def _echo_json(payload: Any) -> None:
    typer.echo(_json_text(payload))


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file."
    ),
    show_full: bool = typer.Option(
        False, "--show-full", help="Print the full merged config as JSON."
    ),
) -> None:
    """Load and validate the configuration, then print key settings."""
    config = _load_config_or_exit(config_path)

    typer.echo("Engine settings:")
    typer.echo("")
    typer.echo(f"  Forecast horizon:   {config.demand.horizon_months} months")
    typer.echo(f"  Max executions:     {config.workflow.max_executions}")
    typer.echo(f"  Execution max age:  {config.workflow.execution_max_age_hours}h")
    typer.echo(f"  Presets active:     {config.workflow.activate_presets}")
    typer.echo(f"  Log level:          {config.logging.level}")
    typer.echo(f"  Debug mode:         {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Merged config:")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("detect-anomalies")
def detect_anomalies(
    snapshot_path: str = typer.Option(..., "--snapshot", "-s", help="Snapshot JSON file."),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Run every anomaly detector over a snapshot."""
    from asset_insight.analysis.anomaly import AnomalyDetector
    from asset_insight.reporting.formatters import format_findings_table

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    snapshot = _load_snapshot_or_exit(snapshot_path)

    detector = AnomalyDetector(config.anomaly)
    findings = detector.detect_all(snapshot)
    summary = detector.summarize(findings)

    if as_json:
        _echo_json({
            "summary": summary.model_dump(mode="json"),
            "findings": [f.model_dump(mode="json") for f in findings],
        })
        return
    typer.echo(format_findings_table(findings, summary))


@app.command("recommend")
def recommend(
    snapshot_path: str = typer.Option(..., "--snapshot", "-s", help="Snapshot JSON file."),
    brief: bool = typer.Option(False, "--brief", help="Omit reasoning lines."),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Generate equipment, software and company recommendations."""
    from asset_insight.recommendations.engine import RecommendationEngine
    from asset_insight.reporting.formatters import format_recommendations

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    snapshot = _load_snapshot_or_exit(snapshot_path)

    recs = RecommendationEngine(config.recommendations).generate_all(snapshot)

    if as_json:
        _echo_json([r.model_dump(mode="json") for r in recs])
        return
    typer.echo(format_recommendations(recs, show_reasoning=not brief))


@app.command("predict-demand")
def predict_demand(
    snapshot_path: str = typer.Option(..., "--snapshot", "-s", help="Snapshot JSON file."),
    kind: str = typer.Option(
        "all", "--kind", help="equipment, software, maintenance, or all."
    ),
    horizon: Optional[int] = typer.Option(
        None, "--horizon", help="Months to forecast (default: config demand.horizon_months)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Forecast monthly equipment, software and maintenance demand."""
    from asset_insight.forecasting.demand import DemandPredictionEngine
    from asset_insight.reporting.formatters import format_forecast_table

    if kind != "all" and kind not in _FORECAST_KINDS:
        typer.echo(
            f"[ERROR] --kind must be one of {', '.join(_FORECAST_KINDS)} or all, got '{kind}'.",
            err=True,
        )
        raise typer.Exit(code=1)
    if horizon is not None and horizon < 1:
        typer.echo("[ERROR] --horizon must be >= 1.", err=True)
        raise typer.Exit(code=1)

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    snapshot = _load_snapshot_or_exit(snapshot_path)

    engine = DemandPredictionEngine(config.demand)
    predictors = {
        "equipment": engine.predict_equipment_demand,
        "software": engine.predict_software_demand,
        "maintenance": engine.predict_maintenance_demand,
    }
    kinds = _FORECAST_KINDS if kind == "all" else (kind,)

    output: dict[str, Any] = {}
    blocks: list[str] = []
    for k in kinds:
        forecast = predictors[k](snapshot, horizon)
        summary = engine.summarize_forecast(forecast.buckets)
        output[k] = {
            "forecast": forecast.model_dump(mode="json"),
            "summary": summary.model_dump(mode="json"),
        }
        blocks.append(format_forecast_table(forecast, summary))

    if as_json:
        _echo_json(output)
        return
    typer.echo("\n\n".join(blocks))


@app.command("analyze")
def analyze(
    snapshot_path: str = typer.Option(..., "--snapshot", "-s", help="Snapshot JSON file."),
    horizon: Optional[int] = typer.Option(None, "--horizon", help="Forecast months."),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of tables."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Run anomalies, recommendations and all three forecasts in one pass."""
    from asset_insight.pipeline.insights import InsightsRunner
    from asset_insight.reporting.formatters import (
        format_findings_table,
        format_forecast_table,
        format_recommendations,
    )

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    snapshot = _load_snapshot_or_exit(snapshot_path)

    result = InsightsRunner(config).run(snapshot, horizon)

    if as_json:
        _echo_json(result.to_dict())
    else:
        typer.echo(f"Analysis as of {result.as_of.isoformat()} | run_id={result.run_id}")
        typer.echo("")
        typer.echo(format_findings_table(result.findings, result.anomaly_summary))
        typer.echo("")
        typer.echo(format_recommendations(result.recommendations, show_reasoning=False))
        for kind, forecast in result.forecasts.items():
            typer.echo("")
            typer.echo(format_forecast_table(forecast, result.forecast_summaries.get(kind)))
        typer.echo("")
        if result.status == "success":
            typer.echo("[OK] Analysis complete.")
        else:
            typer.echo(f"[{result.status.upper()}] Analysis finished with errors:", err=True)
            for err in result.errors:
                typer.echo(f"  {err}", err=True)

    if result.status == "failed":
        raise typer.Exit(code=1)


def _build_workflow_engine(config, definitions_path: Optional[str]):
    from pydantic import ValidationError

    from asset_insight.workflow.engine import WorkflowEngine
    from asset_insight.workflow.store import LoggingEventSink

    engine = WorkflowEngine(config=config.workflow, sink=LoggingEventSink())
    if definitions_path:
        raw = _load_json_or_exit(definitions_path, "Definitions")
        if not isinstance(raw, list):
            typer.echo("[ERROR] Definitions file must contain an array.", err=True)
            raise typer.Exit(code=1)
        for idx, item in enumerate(raw):
            if not isinstance(item, dict) or "id" not in item:
                typer.echo(f"[ERROR] Definition #{idx} has no 'id'.", err=True)
                raise typer.Exit(code=1)
            try:
                engine.register_workflow(item["id"], item)
            except ValidationError as exc:
                typer.echo(f"[ERROR] Definition #{idx} failed validation:\n{exc}", err=True)
                raise typer.Exit(code=1)
    return engine


@app.command("list-workflows")
def list_workflows(
    definitions_path: Optional[str] = typer.Option(
        None, "--definitions", help="JSON array of extra workflow definitions to register."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """List registered workflows (presets plus any from --definitions)."""
    from asset_insight.reporting.formatters import format_workflow_list

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    engine = _build_workflow_engine(config, definitions_path)
    definitions = engine.store.definitions()

    if as_json:
        _echo_json([d.model_dump(mode="json") for d in definitions])
        return
    typer.echo(format_workflow_list(definitions))


@app.command("run-workflow")
def run_workflow(
    workflow_id: str = typer.Option(..., "--workflow", "-w", help="Workflow id to execute."),
    context_path: Optional[str] = typer.Option(
        None, "--context", help="JSON object used as the execution context."
    ),
    definitions_path: Optional[str] = typer.Option(
        None, "--definitions", help="JSON array of extra workflow definitions to register."
    ),
    activate: bool = typer.Option(
        False, "--activate", help="Activate the workflow before running it."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of text."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Execute one workflow against a context and print the execution record."""
    from asset_insight.errors import WorkflowNotFoundError
    from asset_insight.reporting.formatters import format_execution

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    engine = _build_workflow_engine(config, definitions_path)

    context: dict[str, Any] = {}
    if context_path:
        context = _load_json_or_exit(context_path, "Context")
        if not isinstance(context, dict):
            typer.echo("[ERROR] Context file must contain an object.", err=True)
            raise typer.Exit(code=1)

    if activate:
        engine.toggle_workflow(workflow_id, True)

    try:
        execution = asyncio.run(engine.execute_workflow(workflow_id, context))
    except WorkflowNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        executions = engine.get_executions()
        if executions:
            failed = executions[-1]
            typer.echo(
                _json_text(failed.model_dump(mode="json")) if as_json
                else format_execution(failed)
            )
        typer.echo(f"[ERROR] Workflow failed: {exc}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        _echo_json(execution.model_dump(mode="json"))
        return
    typer.echo(format_execution(execution))
    typer.echo("")
    typer.echo("[OK] Workflow completed.")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
