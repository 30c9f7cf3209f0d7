"""Typer CLI entry point."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import orjson
import typer

from unitydesk.complaints.reference_id import (
    format_reference_id,
    generate_reference_id,
    is_valid_reference_id,
    normalize_reference_id,
)
from unitydesk.complaints.report import ReportRequest, build_report_pdf, report_file_name
from unitydesk.complaints.service import build_services
from unitydesk.complaints.status import apply_status_change
from unitydesk.config import Settings
from unitydesk.db.client import db_cursor
from unitydesk.db.store import PostgresComplaintStore
from unitydesk.errors import NotFoundError, UnityDeskError, WorkflowError
from unitydesk.intake.normalize import normalize_input
from unitydesk.models import (
    ComplaintStatus,
    ImagePayload,
    LocationData,
    RawSubmission,
    VoicePayload,
)
from unitydesk.pipeline.llm.azure_openai import AzureOpenAIClient
from unitydesk.pipeline.llm.speech import AzureSpeechClient
from unitydesk.pipeline.orchestrator import process_complaint
from unitydesk.utils.logging import configure_logging, get_logger
from unitydesk.workflow.machine import EDITABLE_FIELDS, Step, Variant, step_number
from unitydesk.workflow.runner import WorkflowRunner


app = typer.Typer(help="UnityDesk citizen grievance CLI")
db_app = typer.Typer(help="Database utilities")
ref_app = typer.Typer(help="Reference ID utilities")
pipeline_app = typer.Typer(help="AI pipeline commands")
officer_app = typer.Typer(help="Officer triage commands")

app.add_typer(db_app, name="db")
app.add_typer(ref_app, name="ref")
app.add_typer(pipeline_app, name="pipeline")
app.add_typer(officer_app, name="officer")

logger = get_logger(__name__)

SCHEMA_FILE = Path(__file__).resolve().parents[3] / "sql" / "001_complaints.sql"


def _echo_json(data: object) -> None:
    typer.echo(orjson.dumps(data, option=orjson.OPT_INDENT_2, default=str).decode("utf-8"))


@app.callback()
def main() -> None:
    """Initialize logging for all commands."""
    settings = Settings()
    configure_logging(settings.log_level)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("unitydesk.api.app:create_app", factory=True, host=host, port=port, reload=reload)


@db_app.command("check")
def db_check() -> None:
    """Check database connectivity."""
    try:
        with db_cursor() as cursor:
            cursor.execute("select 1")
            logger.info("db.check.ok")
    except Exception as exc:
        logger.error("db.check.failed: %s", exc)
        typer.echo(f"Database check failed: {exc}", err=True)
        raise typer.Exit(1)


@db_app.command("init")
def db_init(
    schema: Path = typer.Option(SCHEMA_FILE, help="SQL file to apply"),
) -> None:
    """Create the complaints and profiles tables."""
    if not schema.is_file():
        typer.echo(f"Schema file not found: {schema}", err=True)
        raise typer.Exit(1)
    try:
        with db_cursor() as cursor:
            cursor.execute(schema.read_text(encoding="utf-8"))
    except Exception as exc:
        logger.error("db.init.failed: %s", exc)
        typer.echo(f"Database init failed: {exc}", err=True)
        raise typer.Exit(1)
    logger.info("db.init.ok schema=%s", schema)
    typer.echo("Schema applied")


@ref_app.command("generate")
def ref_generate(
    department: str = typer.Argument(..., help="Department name"),
    count: int = typer.Option(1, min=1, help="How many codes to print"),
) -> None:
    """Print new reference IDs for a department."""
    issued: List[str] = []
    for _ in range(count):
        issued.append(generate_reference_id(department, issued))
    for reference_id in issued:
        typer.echo(format_reference_id(reference_id))


@ref_app.command("validate")
def ref_validate(reference_id: str = typer.Argument(...)) -> None:
    """Exit non-zero when a reference ID is malformed."""
    if not is_valid_reference_id(normalize_reference_id(reference_id)):
        typer.echo(f"Invalid reference ID: {reference_id}", err=True)
        raise typer.Exit(1)
    typer.echo("valid")


@ref_app.command("format")
def ref_format(reference_id: str = typer.Argument(...)) -> None:
    """Print a reference ID in display form."""
    typer.echo(format_reference_id(normalize_reference_id(reference_id)))


async def _run_pipeline(raw: RawSubmission, settings: Settings) -> dict:
    llm = AzureOpenAIClient(settings)
    speech = AzureSpeechClient(settings) if settings.has_speech() else None
    normalized = await normalize_input(raw, llm, speech)
    result = await process_complaint(llm, normalized, settings.prompt_version)
    return {
        "normalized": normalized.model_dump(),
        "result": result.model_dump(by_alias=True),
    }


@pipeline_app.command("run")
def pipeline_run(
    text: Optional[str] = typer.Option(None, help="Complaint text"),
    image: Optional[List[Path]] = typer.Option(None, help="Photo file (repeatable)"),
    voice: Optional[Path] = typer.Option(None, help="Voice recording"),
    address: Optional[str] = typer.Option(None, help="Location description"),
    ward: Optional[str] = typer.Option(None, help="Ward name or number"),
) -> None:
    """Run one complaint through the AI pipeline and print the result as JSON."""
    settings = Settings()
    raw = RawSubmission(
        text=text,
        images=[ImagePayload(data=path.read_bytes(), filename=path.name) for path in image or []],
        voice=VoicePayload(data=voice.read_bytes(), filename=voice.name) if voice else None,
        manual_location=address,
        ward=ward,
    )
    try:
        output = asyncio.run(_run_pipeline(raw, settings))
    except UnityDeskError as exc:
        logger.error("pipeline.run.failed: %s", exc)
        typer.echo(f"Pipeline failed: {exc}", err=True)
        raise typer.Exit(1)
    _echo_json(output)


def _prompt_location() -> Optional[LocationData]:
    address = typer.prompt("Address or landmark (blank to skip)", default="", show_default=False)
    if not address.strip():
        return None
    latitude = typer.prompt("Latitude", type=float)
    longitude = typer.prompt("Longitude", type=float)
    return LocationData(
        latitude=latitude, longitude=longitude, address=address.strip(), pinned_manually=True
    )


async def _interactive_report(
    runner: WorkflowRunner, pdf_dir: Optional[Path], app_url: str
) -> None:
    while runner.state.step is Step.CAPTURE:
        await runner.enter_text(typer.prompt("Describe the issue"))
        try:
            state = await runner.advance()
        except WorkflowError as exc:
            typer.echo(str(exc), err=True)
            continue
        if state.step is Step.CAPTURE:
            typer.echo(f"Analysis failed: {state.error}. Please try again.", err=True)

    typer.echo(f"Step {step_number(runner.state)}: location")
    await runner.set_location(_prompt_location())
    await runner.continue_to_edit()

    while runner.state.step is not Step.COMPLETE:
        if runner.state.step is Step.EDIT:
            complaint = runner.state.complaint
            _echo_json(complaint.model_dump() if complaint else {})
            change = typer.prompt(
                "Edit as field=value (blank to continue)", default="", show_default=False
            )
            if change.strip():
                name, _, value = change.partition("=")
                if name.strip() not in EDITABLE_FIELDS:
                    typer.echo(f"Editable fields: {', '.join(sorted(EDITABLE_FIELDS))}", err=True)
                    continue
                try:
                    await runner.edit(name.strip(), value.strip())
                except WorkflowError as exc:
                    typer.echo(str(exc), err=True)
                continue
            try:
                await runner.continue_to_preview()
            except WorkflowError as exc:
                typer.echo(str(exc), err=True)
            continue

        if not typer.confirm("Submit this complaint?", default=True):
            await runner.back_to_edit()
            continue
        state = await runner.submit()
        if state.step is not Step.COMPLETE:
            typer.echo(f"Submission failed: {state.error}", err=True)
            if not typer.confirm("Try again?", default=True):
                raise typer.Exit(1)

    result = runner.state.result or {}
    reference_id = result.get("referenceId", "")
    typer.echo(f"Submitted. Reference ID: {format_reference_id(reference_id)}")
    if pdf_dir is not None:
        pdf = build_report_pdf(
            ReportRequest(
                reference_id=reference_id,
                summary=result.get("summary", ""),
                department=result.get("department", ""),
                priority=result.get("priority", "medium"),
                severity=result.get("severity"),
                estimated_resolution=result.get("estimatedResolution"),
            ),
            app_url,
        )
        path = pdf_dir / report_file_name(reference_id)
        path.write_bytes(pdf)
        typer.echo(f"Receipt written to {path}")


@app.command("report")
def report(
    pdf_dir: Optional[Path] = typer.Option(None, help="Write the PDF receipt here"),
) -> None:
    """Submit a complaint step by step from the terminal."""
    settings = Settings()
    try:
        services = build_services(settings)
    except UnityDeskError as exc:
        typer.echo(f"Cannot start: {exc}", err=True)
        raise typer.Exit(1)
    runner = WorkflowRunner.from_services(services, Variant.TEXT)
    asyncio.run(_interactive_report(runner, pdf_dir, settings.app_url))


async def _set_status(
    settings: Settings, complaint_id: str, status: ComplaintStatus, reason: Optional[str]
) -> None:
    store = PostgresComplaintStore(settings)
    complaint = await store.get_by_id(complaint_id)
    if complaint is None:
        raise NotFoundError(f"Complaint not found: {complaint_id}")
    change = apply_status_change(complaint.status, status, reason)
    await store.update_status(complaint_id, change)


@officer_app.command("set-status")
def officer_set_status(
    complaint_id: str = typer.Argument(..., help="Complaint UUID"),
    status: ComplaintStatus = typer.Option(..., help="New status"),
    reason: Optional[str] = typer.Option(None, help="Rejection reason"),
) -> None:
    """Move a complaint along its lifecycle."""
    try:
        asyncio.run(_set_status(Settings(), complaint_id, status, reason))
    except UnityDeskError as exc:
        logger.error("officer.set_status.failed: %s", exc)
        typer.echo(f"Status change failed: {exc}", err=True)
        raise typer.Exit(1)
    typer.echo(f"{complaint_id} -> {status.value}")


if __name__ == "__main__":
    app()
