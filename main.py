from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Optional, Sequence

import click
from google.oauth2.credentials import Credentials
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from api.http_app import create_app
from services.auth_service import AuthService
from services.errors import ResponderError
from services.gmail_service import GmailService
from services.persistence_service import RepliedStore
from services.responder_service import BatchResult, FailurePolicy, Responder
from services.scheduler import PollingDriver
from services.smtp_service import SmtpBlaster
from services.statistics_service import COUNTERS, StatisticsService
from utils.config import AppConfig, load_config
from utils.logger import configure_logging


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AppContext:
    config: AppConfig
    auth: AuthService
    stats: StatisticsService
    replied_store: RepliedStore
    console: Console
    credentials: Optional[Credentials] = field(default=None)

    def authenticate(self, interactive: bool = True) -> Credentials:
        if self.credentials is None:
            self.credentials = self.auth.authenticate(interactive=interactive)
        return self.credentials

    def gmail(self) -> GmailService:
        return GmailService.from_credentials(self.authenticate(), self.config.account.user_id)

    def responder(self) -> Responder:
        return Responder(
            self.gmail(),
            label_name=self.config.label_name,
            reply_body=self.config.reply_body,
            replied_store=self.replied_store,
            policy=FailurePolicy(self.config.failure_policy),
            sender=self.config.reply_from,
        )

    def record(self, result: BatchResult) -> None:
        self.stats.record_poll(result.seen, len(result.replied), len(result.labeled), len(result.failures))


def build_context(env_file: str) -> AppContext:
    config = load_config(env_file)
    configure_logging(config.log_dir, config.log_level)
    return AppContext(
        config=config,
        auth=AuthService(config.account),
        stats=StatisticsService(config.stats_file),
        replied_store=RepliedStore(config.db_path, account=config.account.name),
        console=Console(),
    )


@click.group()
@click.option("--env-file", default=".env", show_default=True, help="Path to the .env file")
@click.pass_context
def cli(ctx: click.Context, env_file: str) -> None:
    """Gmail auto-responder, notification endpoint, and SMTP blast."""

    try:
        ctx.obj = build_context(env_file)
    except ValueError as exc:
        raise click.UsageError(f"Invalid configuration: {exc}") from exc


@cli.command("authorize")
@click.pass_obj
def authorize(app: AppContext) -> None:
    """Run the OAuth flow (or refresh the saved token) and persist it."""

    _guard(app.authenticate)
    app.console.print(f"[bold green]Authorized.[/bold green] Token stored in {app.auth.token_file}")


@cli.command("ensure-label")
@click.argument("label_name", required=False)
@click.pass_obj
def ensure_label(app: AppContext, label_name: Optional[str]) -> None:
    """Create the processed label if it does not exist and print its id."""

    name = label_name or app.config.label_name
    label_id = _guard(lambda: app.gmail().ensure_label(name))
    app.console.print(f"Label {name} is ready (id: {label_id}).")


@cli.command("poll")
@click.pass_obj
def poll(app: AppContext) -> None:
    """Reply to unreplied messages once and exit."""

    responder = _guard(app.responder)
    result = _guard(responder.process_batch)
    app.record(result)
    app.console.print(_build_result_table(result))


@cli.command("run")
@click.option("--min-interval", type=int, default=None, help="Shortest delay between polls, in seconds")
@click.option("--max-interval", type=int, default=None, help="Longest delay between polls, in seconds")
@click.pass_obj
def run(app: AppContext, min_interval: Optional[int], max_interval: Optional[int]) -> None:
    """Poll forever with a randomized delay between runs."""

    driver = _build_driver(app, min_interval, max_interval)
    window = f"{min_interval or app.config.poll_min_seconds}-{max_interval or app.config.poll_max_seconds}"
    app.console.print(
        f"Polling every {window} seconds for {app.config.account.name}. Press Ctrl+C to stop."
    )
    try:
        driver.run_forever()
    except KeyboardInterrupt:
        app.console.print("Scheduler stopped.")


@cli.command("serve")
@click.option("--host", default=None, help="Interface to bind (defaults to HTTP_HOST)")
@click.option("--port", type=int, default=None, help="Port to bind (defaults to HTTP_PORT)")
@click.option("--poll/--no-poll", default=True, show_default=True, help="Run the responder loop in the background")
@click.pass_obj
def serve(app: AppContext, host: Optional[str], port: Optional[int], poll: bool) -> None:
    """Serve the HTTP endpoints, optionally alongside the polling loop."""

    if poll:
        driver = _build_driver(app, None, None)
        threading.Thread(target=driver.run_forever, name="poller", daemon=True).start()

    def mailer() -> GmailService:
        # Each request gets its own client; only the credential is shared.
        return GmailService.from_credentials(app.authenticate(interactive=False), app.config.account.user_id)

    flask_app = create_app(mailer, app.config.notification)
    host = host or app.config.http_host
    port = port or app.config.http_port
    LOGGER.info("Listening at: http://%s:%s", host, port)
    flask_app.run(host=host, port=port)


@cli.command("send")
@click.option("--to", "to", default=None, help="Recipient (defaults to NOTIFY_TO)")
@click.option("--subject", default=None, help="Subject (defaults to NOTIFY_SUBJECT)")
@click.option("--body", default=None, help="Body text (defaults to NOTIFY_BODY)")
@click.pass_obj
def send(app: AppContext, to: Optional[str], subject: Optional[str], body: Optional[str]) -> None:
    """Send a single email through the Gmail API."""

    notification = app.config.notification
    recipient = to or notification.to
    _guard(lambda: app.gmail().send_email(recipient, subject or notification.subject, body or notification.body))
    app.console.print(f"Email sent successfully to: {recipient}")


@cli.command("blast")
@click.argument("recipients", nargs=-1)
@click.option("--spacing", type=float, default=None, help="Seconds between messages (defaults to BLAST_SPACING)")
@click.pass_obj
def blast(app: AppContext, recipients: Sequence[str], spacing: Optional[float]) -> None:
    """Send the templated blast message to each recipient over SMTP."""

    settings = app.config.blast
    targets = list(recipients) or settings.recipients
    if not targets:
        raise click.UsageError("No recipients given and BLAST_RECIPIENTS is empty")
    blaster = SmtpBlaster(
        app.config.smtp,
        subject=settings.subject,
        body=settings.body,
        spacing=settings.spacing if spacing is None else spacing,
    )
    result = _guard(lambda: blaster.blast(targets))
    app.stats.record_blast(len(result.sent), len(result.failed))

    table = Table(title="SMTP blast")
    table.add_column("Recipient")
    table.add_column("Status")
    for recipient in targets:
        error = result.failed.get(recipient)
        table.add_row(recipient, f"[red]{escape(str(error))}[/red]" if error else "[green]sent[/green]")
    app.console.print(table)


@cli.command("stats")
@click.pass_obj
def stats(app: AppContext) -> None:
    """Display local activity statistics."""

    snapshot = app.stats.snapshot()
    if not snapshot:
        app.console.print("No stats recorded yet.")
        return

    table = Table(title="Activity")
    table.add_column("Metric")
    table.add_column("Value")
    for key in COUNTERS:
        table.add_row(key.replace("_", " ").capitalize(), str(snapshot.get(key, 0)))
    app.console.print(table)

    recent = app.replied_store.recent_entries(5)
    if recent:
        app.console.print("Recent replies: " + ", ".join(record.message_id for record in recent))


def main() -> None:
    cli(standalone_mode=True)


def _build_driver(app: AppContext, min_interval: Optional[int], max_interval: Optional[int]) -> PollingDriver:
    responder = _guard(app.responder)
    # Resolve the label up front so a fatal label error stops startup.
    _guard(lambda: responder.label_id)

    def report(result: BatchResult) -> None:
        app.record(result)
        LOGGER.info(
            "Poll done: %s seen, %s replied, %s labeled, %s failed",
            result.seen,
            len(result.replied),
            len(result.labeled),
            len(result.failures),
        )

    try:
        return PollingDriver(
            responder.process_batch,
            min_seconds=min_interval or app.config.poll_min_seconds,
            max_seconds=max_interval or app.config.poll_max_seconds,
            sleep=time.sleep,
            on_result=report,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--min-interval/--max-interval") from exc


def _guard(action):
    try:
        return action()
    except ResponderError as exc:
        raise click.ClickException(str(exc)) from exc


def _build_result_table(result: BatchResult) -> Table:
    table = Table(title="Poll result")
    table.add_column("Message")
    table.add_column("Replied")
    table.add_column("Labeled")
    table.add_column("Error")

    failures = {failure.message_id: failure.error for failure in result.failures}
    message_ids = list(dict.fromkeys(result.labeled + result.replied + list(failures)))
    for message_id in message_ids:
        error = failures.get(message_id)
        table.add_row(
            message_id,
            "yes" if message_id in result.replied else "no",
            "yes" if message_id in result.labeled else "no",
            f"[red]{escape(str(error))}[/red]" if error else "",
        )
    if not message_ids:
        table.caption = "No unreplied messages."
    elif result.aborted:
        table.caption = "Batch aborted after the first failure."
    return table


if __name__ == "__main__":
    main()
