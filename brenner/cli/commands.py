"""brenner CLI: inspect Agent Mail threads and start sessions."""

import logging
from typing import Annotated

import typer

from brenner.core.models import Phase, Role
from brenner.dispatch.kickoff import KickoffConfig, send_kickoff
from brenner.lib import config
from brenner.mail import MailClient
from brenner.protocol import compute_status_for_thread, format_status, parse_subject
from brenner.session import ALLOWED_JUMPS, phase_name, phase_symbol, simplified_phase

from . import output
from .errors import error_feedback

app = typer.Typer(invoke_without_command=True, add_completion=False)

ProjectOption = Annotated[
    str | None,
    typer.Option("--project", "-p", help="Agent Mail project key (defaults.project_key)."),
]


def make_client() -> MailClient:
    return MailClient()


def configure_logging() -> None:
    level = getattr(logging, config.logging_level(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _project(project: str | None) -> str:
    resolved = project or config.default_project()
    if not resolved:
        raise ValueError("no project key; pass --project or set defaults.project_key")
    return resolved


def _sender(sender: str | None) -> str:
    resolved = sender or config.default_sender()
    if not resolved:
        raise ValueError("no sender; pass --sender or set defaults.sender")
    return resolved


def parse_role_assignments(assignments: list[str] | None) -> dict[str, str] | None:
    """Turn `NAME=ROLE` pairs into a roster mapping."""
    if not assignments:
        return None
    roster = {}
    for item in assignments:
        name, sep, role = item.partition("=")
        if not sep or not name.strip() or not role.strip():
            raise ValueError(f"expected NAME=ROLE, got '{item}'")
        roster[name.strip()] = Role(role.strip()).value
    return roster


@app.callback(context_settings={"help_option_names": ["-h", "--help"]})
def main_callback(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", "-j", help="Output in JSON format."),
    quiet_output: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
):
    """Brenner protocol tools: thread status, kickoff and session phases."""
    output.init_context(ctx, json_output, quiet_output)
    configure_logging()
    if ctx.resilient_parsing:
        return
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@app.command()
@error_feedback
def status(
    ctx: typer.Context,
    thread_id: str = typer.Argument(..., help="Thread to summarize."),
    project: ProjectOption = None,
):
    """Reconstruct a thread's protocol status from its messages."""
    with make_client() as client:
        fetched = client.read_thread(_project(project), thread_id)
    result = compute_status_for_thread(fetched)
    if output.echo_json(result.to_dict(), ctx):
        return
    output.echo_text(format_status(result), ctx)


@app.command()
@error_feedback
def thread(
    ctx: typer.Context,
    thread_id: str = typer.Argument(..., help="Thread to list."),
    project: ProjectOption = None,
    bodies: bool = typer.Option(False, "--bodies", help="Include message bodies."),
):
    """List a thread's messages with their protocol type."""
    with make_client() as client:
        fetched = client.read_thread(_project(project), thread_id, include_bodies=bodies)
    messages = sorted(fetched.messages, key=lambda m: (m.timestamp, m.id))
    rows = []
    for message in messages:
        parsed = parse_subject(message.subject)
        row = message.to_dict()
        row["type"] = parsed.type.value
        row["role"] = parsed.role.value if parsed.role else None
        rows.append(row)
    if output.echo_json(rows, ctx):
        return
    if not rows:
        output.echo_text(f"No messages in {thread_id}", ctx)
        return
    for row in rows:
        output.echo_text(
            f"{row['created_ts']}  #{row['id']:<5} {row['type']:<9} {row['from'] or '?'}: "
            f"{row['subject']}",
            ctx,
        )
        if bodies and row["body_md"]:
            output.echo_text(f"    {row['body_md']}", ctx)


@app.command()
@error_feedback
def inbox(
    ctx: typer.Context,
    agent: str = typer.Argument(..., help="Agent whose inbox to read."),
    project: ProjectOption = None,
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum messages."),
    since: Annotated[str | None, typer.Option("--since", help="Only after this ISO time.")] = None,
    urgent: bool = typer.Option(False, "--urgent", help="Urgent messages only."),
):
    """Show an agent's inbox."""
    with make_client() as client:
        result = client.read_inbox(
            _project(project), agent, limit=limit, urgent_only=urgent, since_ts=since
        )
    if output.echo_json([m.to_dict() for m in result.messages], ctx):
        return
    if not result.messages:
        output.echo_text(f"Inbox empty for {agent}", ctx)
        return
    for message in result.messages:
        flag = " [ack]" if message.ack_required else ""
        output.echo_text(
            f"{message.created_ts}  #{message.id:<5} {message.sender or '?'}: "
            f"{message.subject}{flag}",
            ctx,
        )


@app.command()
@error_feedback
def kickoff(
    ctx: typer.Context,
    thread_id: str = typer.Argument(..., help="Thread id for the new session."),
    question: str = typer.Option(..., "--question", "-Q", help="Research question."),
    context: str = typer.Option(..., "--context", help="Essential background."),
    excerpt: str = typer.Option(..., "--excerpt", help="Transcript excerpt(s)."),
    to: Annotated[list[str] | None, typer.Option("--to", help="Recipient (repeatable).")] = None,
    role: Annotated[
        list[str] | None, typer.Option("--role", help="Explicit NAME=ROLE (repeatable).")
    ] = None,
    constraints: Annotated[str | None, typer.Option("--constraints")] = None,
    hypotheses: Annotated[str | None, typer.Option("--hypotheses", help="Seed hypotheses.")] = None,
    sender: Annotated[str | None, typer.Option("--sender", help="Sending agent name.")] = None,
    project: ProjectOption = None,
):
    """Send role-specific KICKOFF messages that require acknowledgement."""
    if not to:
        raise ValueError("at least one --to recipient is required")
    kickoff_config = KickoffConfig(
        thread_id=thread_id,
        research_question=question,
        context=context,
        excerpt=excerpt,
        recipients=list(to),
        recipient_roles=parse_role_assignments(role),
        initial_hypotheses=hypotheses,
        constraints=constraints,
    )
    project_key = _project(project)
    sender_name = _sender(sender)
    with make_client() as client:
        result = send_kickoff(client, kickoff_config, project_key, sender_name)

    rows = [
        {
            "to": message.to,
            "role": message.role.value,
            "label": message.role_label,
            "message_id": result.message_ids.get(message.to),
        }
        for message in result.messages
    ]
    if output.echo_json({"thread_id": thread_id, "sent": rows}, ctx):
        return
    for row in rows:
        output.echo_text(f"Kickoff -> {row['to']} ({row['label']}) #{row['message_id']}", ctx)


@app.command()
@error_feedback
def phases(ctx: typer.Context):
    """Show the session phases and where each may jump."""
    rows = [
        {
            "phase": phase.value,
            "name": phase_name(phase),
            "symbol": phase_symbol(phase),
            "stage": simplified_phase(phase),
            "jumps": [target.value for target in ALLOWED_JUMPS[phase]],
        }
        for phase in Phase
    ]
    if output.echo_json(rows, ctx):
        return
    for row in rows:
        jumps = ", ".join(row["jumps"]) or "(final)"
        output.echo_text(
            f"{row['symbol'] or ' '} {row['phase']:<19} {row['name']:<22} -> {jumps}", ctx
        )


def main() -> None:
    """Entry point for the brenner command."""
    try:
        app()
    except SystemExit:
        raise
    except BaseException as e:
        raise SystemExit(1) from e
