"""
Command Line Interface for AquaWatch
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from aquawatch.config.manager import ConfigurationManager
from aquawatch.config.settings import AVAILABLE_STRATEGIES, AquaWatchSettings, LoggingSettings
from aquawatch.core.domain.models import Priority, Severity
from aquawatch.core.exceptions import AquaWatchError
from aquawatch.utils.logger import setup_logging as configure_package_logging

# Create the main app
app = typer.Typer(
    name="aquawatch",
    help="Anomaly detection and maintenance prediction for water purification units",
    add_completion=False
)

# Rich console for better output
console = Console()

config_app = typer.Typer(help="Configuration commands")
app.add_typer(config_app, name="config")

SEVERITY_STYLES = {
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "green",
}
PRIORITY_STYLES = {
    Priority.HIGH: "red",
    Priority.MEDIUM: "yellow",
    Priority.LOW: "green",
}


def setup_logging(
    verbose: bool = False,
    log_file: Optional[str] = None,
    settings: Optional[LoggingSettings] = None,
):
    """Setup logging from the [LOGGING] settings, with rich console output"""
    settings = settings or LoggingSettings()
    rich_handler = RichHandler(console=console, rich_tracebacks=True)
    rich_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    handlers: List[logging.Handler] = [rich_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        formatter = logging.Formatter(settings.format)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    # RichHandler replaces the plain console handler
    overrides = {"console_enabled": False}
    if verbose:
        overrides["level"] = "DEBUG"
    configure_package_logging(settings.model_copy(update=overrides), extra_handlers=handlers)


def _settings(ctx: typer.Context) -> AquaWatchSettings:
    """Return the validated settings loaded by the main callback, or exit"""
    state = ctx.find_root().obj
    if state["settings"] is None:
        console.print(f"[red]Invalid configuration: {escape(state['config_error'].message)}[/red]")
        raise typer.Exit(1)
    return state["settings"]


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Log file path"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration INI file (default: config/config.ini)"
    ),
):
    """AquaWatch - water purification unit monitoring"""
    manager: Optional[ConfigurationManager] = None
    settings: Optional[AquaWatchSettings] = None
    config_error: Optional[AquaWatchError] = None
    try:
        manager = ConfigurationManager(config)
        settings = manager.to_settings()
    except AquaWatchError as e:
        config_error = e

    setup_logging(
        verbose or (settings is not None and settings.debug),
        log_file,
        settings.logging if settings else None,
    )
    ctx.obj = {"manager": manager, "settings": settings, "config_error": config_error}


@app.command("analyze")
def analyze(
    ctx: typer.Context,
    unit_ids: List[str] = typer.Argument(..., help="Unit ids to analyse"),
    measurements: Optional[Path] = typer.Option(
        None, "--measurements", "-m", help="Measurements CSV file (default: storage.measurements_file)"
    ),
    units: Optional[Path] = typer.Option(
        None, "--units", "-u", help="Unit registry JSON file (default: storage.units_file)"
    ),
    strategy: Optional[str] = typer.Option(
        None, "--strategy", "-s",
        help=f"Detection strategy ({'/'.join(AVAILABLE_STRATEGIES)}); defaults to detection.strategy"
    ),
    alerts: Optional[Path] = typer.Option(None, "--alerts", help="Alerts CSV output file"),
    predictions: Optional[Path] = typer.Option(None, "--predictions", help="Predictions CSV output file"),
):
    """Run anomaly detection and maintenance prediction once over file-based stores"""
    from aquawatch.application.services.orchestration import OrchestrationService
    from aquawatch.application.use_cases.anomaly_detection import AnomalyDetectionUseCase, build_strategy
    from aquawatch.application.use_cases.maintenance_prediction import MaintenancePredictionUseCase
    from aquawatch.infrastructure.storage import (
        CsvAlertSink,
        CsvMeasurementStore,
        CsvPredictionStore,
        JsonUnitRegistry,
    )

    settings = _settings(ctx)
    strategy_name = strategy or settings.detection.strategy

    try:
        detector = AnomalyDetectionUseCase(build_strategy(
            strategy_name,
            detection_config=settings.detection.to_config(),
            raw_config=settings.raw_detection.to_config(),
        ))
    except AquaWatchError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    measurements_path = measurements or settings.get_data_path(settings.storage.measurements_file)
    units_path = units or settings.get_data_path(settings.storage.units_file)
    alerts_path = alerts or settings.get_data_path(settings.storage.alerts_file)
    predictions_path = predictions or settings.get_data_path(settings.storage.predictions_file)

    service = OrchestrationService(
        measurement_store=CsvMeasurementStore(str(measurements_path)),
        unit_registry=JsonUnitRegistry(str(units_path)),
        alert_sink=CsvAlertSink(str(alerts_path)),
        prediction_store=CsvPredictionStore(str(predictions_path)),
        detector=detector,
        predictor=MaintenancePredictionUseCase(settings.prediction.to_config()),
        settings=settings.orchestration,
    )

    console.print(f"[bold green]Analysing {len(unit_ids)} unit(s)[/bold green] using '{detector.strategy_name}'")
    report = asyncio.run(service.run_batch(unit_ids))

    _print_findings(report)
    _print_predictions(report)
    _print_summary(report)

    for unit in report.units:
        if not unit.ok:
            console.print(f"[red]{unit.unit_id}: {unit.error}[/red]")

    if report.units and not any(unit.ok for unit in report.units):
        raise typer.Exit(1)


def _print_findings(report) -> None:
    findings = [f for unit in report.units for f in unit.findings]
    if not findings:
        console.print("[green]No anomalies detected[/green]")
        return

    table = Table(title="Anomalies", show_header=True, header_style="bold magenta")
    table.add_column("Unit")
    table.add_column("Metric")
    table.add_column("Severity")
    table.add_column("Observed", justify="right")
    table.add_column("Expected", justify="right")
    table.add_column("Deviation %", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Measured at")

    for finding in findings:
        style = SEVERITY_STYLES[finding.severity]
        measured_at = finding.measurement_timestamp.isoformat() if finding.measurement_timestamp else "-"
        table.add_row(
            finding.unit_name or finding.unit_id,
            finding.metric.value,
            f"[{style}]{finding.severity.value}[/{style}]",
            f"{finding.observed_value:.2f}",
            f"{finding.expected_value:.2f}",
            f"{finding.deviation_percent:.1f}",
            f"{finding.confidence:.0f}",
            measured_at,
        )
    console.print(table)


def _print_predictions(report) -> None:
    predictions = [p for unit in report.units for p in unit.predictions]
    if not predictions:
        console.print("[green]No maintenance predicted within the horizon[/green]")
        return

    table = Table(title="Maintenance", show_header=True, header_style="bold magenta")
    table.add_column("Unit")
    table.add_column("Type")
    table.add_column("Due")
    table.add_column("Days", justify="right")
    table.add_column("Priority")
    table.add_column("Confidence", justify="right")

    for prediction in sorted(predictions, key=lambda p: p.estimated_days_remaining):
        style = PRIORITY_STYLES[prediction.priority]
        table.add_row(
            prediction.unit_name or prediction.unit_id,
            prediction.maintenance_type.value,
            prediction.predicted_date.date().isoformat(),
            str(prediction.estimated_days_remaining),
            f"[{style}]{prediction.priority.value}[/{style}]",
            f"{prediction.confidence:.2f}",
        )
    console.print(table)


def _print_summary(report) -> None:
    stats = report.stats()

    table = Table(title="Summary", show_header=True, header_style="bold magenta")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("Strategy", report.strategy)
    table.add_row("Monitored Units", str(stats["monitored_units"]))
    table.add_row("Failed Units", str(stats["failed_units"]))
    table.add_row("Total Anomalies", str(stats["total_anomalies"]))
    table.add_row("High Severity Anomalies", str(stats["high_severity_anomalies"]))
    table.add_row("Predicted Maintenance Tasks", str(stats["predicted_maintenance_tasks"]))
    table.add_row(
        f"Upcoming (<= {report.upcoming_window_days} days)",
        str(stats["upcoming_maintenance_tasks"]),
    )
    table.add_row("Alerts Created", str(stats["alerts_created"]))
    table.add_row("Write Failures", str(stats["write_failures"]))
    console.print(table)

    risk_table = Table(title="Risk", show_header=True, header_style="bold magenta")
    risk_table.add_column("Unit")
    risk_table.add_column("Score", justify="right")
    risk_table.add_column("Level")
    for unit in report.units:
        if not unit.ok:
            continue
        style = SEVERITY_STYLES[unit.risk.level]
        risk_table.add_row(
            unit.unit_name or unit.unit_id,
            str(unit.risk.score),
            f"[{style}]{unit.risk.level.value}[/{style}]",
        )
    console.print(risk_table)


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    section: Optional[str] = typer.Option(None, "--section", help="Only show one section (e.g. detection)"),
):
    """Show the effective configuration"""
    state = ctx.find_root().obj
    manager: Optional[ConfigurationManager] = state["manager"]
    if manager is None:
        console.print(f"[red]{escape(state['config_error'].message)}[/red]")
        raise typer.Exit(1)

    if section:
        values = manager.get_section(section.lower())
        if not values:
            console.print(f"[red]Unknown configuration section: {section}[/red]")
            raise typer.Exit(1)
        sections = {section.lower(): values}
    else:
        sections = manager.to_dict()

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Setting")
    table.add_column("Value")
    for name, values in sections.items():
        for key, value in values.items():
            table.add_row(f"{name}.{key}", str(value))
    console.print(table)

    if state["config_error"] is not None:
        console.print(f"[red]{escape(state['config_error'].message)}[/red]")
        raise typer.Exit(1)
    console.print("[green]Configuration is valid[/green]")


@config_app.command("init")
def config_init(
    path: Path = typer.Argument(Path("config/config.ini"), help="Where to write the configuration"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
):
    """Write a configuration file with the default settings"""
    if path.exists():
        if not force:
            console.print(f"[yellow]{path} already exists (use --force to overwrite)[/yellow]")
            raise typer.Exit(1)
        path.unlink()

    try:
        saved = ConfigurationManager(path).save_configuration()
    except AquaWatchError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Configuration written to {saved}[/green]")


@app.command()
def version():
    """Show version information"""
    from aquawatch import __version__
    console.print(f"AquaWatch v{__version__}")


if __name__ == "__main__":
    app()
