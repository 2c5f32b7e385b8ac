"""Maintenance commands for the exhibits trash."""

# purpose: let administrators inspect and empty the trash outside the dashboard
# status: active
# depends_on: exhibits_cms.trash, exhibits_cms.config

from __future__ import annotations

import json
from typing import Optional

import typer
from sqlalchemy.orm import Session

from ..config import Settings
from ..database import build_engine, build_session_factory
from ..errors import ExhibitsError
from ..logging_utils import configure_logging
from ..repository import RecordScope
from ..trash import LISTING_KEYS, TrashManager

app = typer.Typer(help="Exhibits CMS maintenance commands")
trash_app = typer.Typer(help="Inspect, restore and purge trashed records")
app.add_typer(trash_app, name="trash")


def _open_session(settings: Settings) -> Session:
    configure_logging(settings.log_level)
    return build_session_factory(build_engine(settings))()


def list_trash(settings: Settings) -> dict[str, list[dict[str, str]]]:
    """Summarize trashed records per kind."""

    session = _open_session(settings)
    try:
        listing = TrashManager(session).list_trashed()
        summary: dict[str, list[dict[str, str]]] = {}
        for key in LISTING_KEYS.values():
            if key not in listing:
                continue
            summary[key] = [
                {
                    "uuid": record.uuid,
                    "is_member_of_exhibit": getattr(record, "is_member_of_exhibit", record.uuid),
                    "title": getattr(record, "title", None) or getattr(record, "text", None) or "",
                }
                for record in listing[key]
            ]
        return summary
    finally:
        session.close()


def purge_trash(settings: Settings) -> dict[str, object]:
    session = _open_session(settings)
    try:
        report = TrashManager(session).purge_all()
        return {"removed": report.removed, "failed": report.failed}
    finally:
        session.close()


@trash_app.command("list")
def list_command() -> None:
    """Print trashed records as JSON."""

    typer.echo(json.dumps(list_trash(Settings.from_env()), indent=2))


@trash_app.command("purge")
def purge_command(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Permanently delete every trashed exhibit, heading and item."""

    if not yes:
        typer.confirm("Permanently delete all trashed records?", abort=True)
    summary = purge_trash(Settings.from_env())
    typer.echo(json.dumps(summary))
    if summary["failed"]:
        raise typer.Exit(code=1)


@trash_app.command("restore")
def restore_command(
    record_type: str = typer.Argument(..., help="exhibit, heading or item"),
    uuid: str = typer.Argument(..., help="Record uuid"),
    exhibit: Optional[str] = typer.Option(None, help="Owning exhibit uuid; omit to look the record up by uuid alone"),
) -> None:
    """Bring one record back from the trash."""

    settings = Settings.from_env()
    session = _open_session(settings)
    try:
        restored = TrashManager(session).restore(RecordScope(exhibit_id=exhibit), uuid, record_type)
    except ExhibitsError as exc:
        typer.echo(json.dumps(exc.envelope()), err=True)
        raise typer.Exit(code=1) from exc
    finally:
        session.close()
    if not restored:
        typer.echo(json.dumps({"status": 404, "message": "Record not found"}), err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps({"status": 200, "message": "Record restored", "data": {"uuid": uuid}}))


if __name__ == "__main__":  # pragma: no cover
    app()
