"""CLI interface for golem."""

import json
import logging
import sys
from functools import wraps
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from golem import __version__
from golem.core.config import GolemContext, SyncConfig, default_repo
from golem.core.freshservice import FreshserviceClient
from golem.core.gitea import GiteaClient
from golem.core.models import COMMIT_TYPES, TICKET_STATUSES, TicketState
from golem.core.sync import TicketSync
from golem.core.ticket_store import TicketStore
from golem.core.worktree import WorktreeManager

STATUS_COLORS = {
    "done": "green",
    "in-progress": "yellow",
    "blocked": "red",
}


def build_store() -> TicketStore:
    return TicketStore.for_directory(GolemContext.from_cwd().tickets_dir)


def build_sync(repo: Optional[str]) -> TicketSync:
    """Create the sync engine from the environment; fails before any network call."""
    resolved_repo = default_repo(repo)
    return TicketSync(
        fresh=FreshserviceClient.from_env(),
        gitea=GiteaClient.from_env(),
        store=build_store(),
        repo=resolved_repo,
        config=SyncConfig.from_env(),
    )


def build_worktree_manager() -> WorktreeManager:
    return WorktreeManager()


def _error(message: str) -> None:
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


def _dim(message: str) -> None:
    click.echo(click.style(message, dim=True))


def _success(message: str) -> None:
    click.echo(click.style(f"✓ {message}", fg="green"))


def _warn(warnings) -> None:
    for warning in warnings:
        click.echo(click.style(f"Warning: {warning}", fg="yellow"), err=True)


def handle_errors(func):
    """Report any failure as `Error: ...` and exit 1."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except click.ClickException:
            raise
        except KeyboardInterrupt:
            click.echo("\n\nInterrupted by user", err=True)
            sys.exit(130)
        except Exception as e:
            logging.getLogger(__name__).debug("Command failed", exc_info=True)
            _error(str(e))
    return wrapper


def _load_ticket(ticket_id: str) -> TicketState:
    ticket = build_store().load(ticket_id)
    if ticket is None:
        _error(f"Ticket {ticket_id} not found")
    return ticket


def _print_ticket_summary(verb: str, ticket: TicketState) -> None:
    _success(f"{verb} ticket {ticket.id}")
    _dim(f"  Fresh: {ticket.fresh.url if ticket.fresh else '-'}")
    _dim(f"  Gitea: {ticket.gitea.url if ticket.gitea else '-'}")
    _dim(f"  Branch: {ticket.git.branch}")
    # Last line is machine-readable for calling scripts
    click.echo(json.dumps(ticket.to_dict()))


@click.group(name="golem-api")
@click.version_option(__version__)
@click.option("--verbose", is_flag=True, help="Enable verbose output")
def cli(verbose: bool) -> None:
    """
    Golem API helper for Freshservice/Gitea integration.

    Keeps .golem/tickets records in step with Freshservice tickets and
    Gitea issues, and manages one git worktree per ticket.
    """
    load_dotenv(Path.cwd() / ".env")
    load_dotenv(Path.home() / ".golem" / ".env")

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# Ticket commands

@cli.command("ticket:new")
@click.option("-s", "--subject", required=True, help="Ticket subject")
@click.option("-d", "--description", required=True, help="Ticket description")
@click.option("-t", "--type", "commit_type", required=True, type=click.Choice(COMMIT_TYPES), help="Commit type")
@click.option("--slug", required=True, help="Human-readable slug for branch name")
@click.option("-p", "--priority", type=click.IntRange(1, 4), default=3, show_default=True, help="Priority (1-4)")
@click.option("-r", "--repo", default=None, help="Gitea repo (default from GITEA_REPO env)")
@handle_errors
def ticket_new(subject: str, description: str, commit_type: str, slug: str, priority: int, repo: Optional[str]) -> None:
    """Create a new linked ticket in Freshservice + Gitea."""
    outcome = build_sync(repo).create_linked(
        subject=subject,
        description=description,
        commit_type=commit_type,
        slug=slug,
        priority=priority,
    )
    _warn(outcome.warnings)
    _print_ticket_summary("Created", outcome.ticket)


@cli.command("ticket:import")
@click.argument("fresh_id")
@click.option("-t", "--type", "commit_type", required=True, type=click.Choice(COMMIT_TYPES), help="Commit type")
@click.option("--slug", required=True, help="Human-readable slug for branch name")
@click.option("-r", "--repo", default=None, help="Gitea repo (default from GITEA_REPO env)")
@handle_errors
def ticket_import(fresh_id: str, commit_type: str, slug: str, repo: Optional[str]) -> None:
    """Import existing Freshservice ticket FRESH_ID and link a Gitea issue."""
    outcome = build_sync(repo).import_existing(fresh_id, commit_type=commit_type, slug=slug)
    _warn(outcome.warnings)
    _print_ticket_summary("Imported", outcome.ticket)


@cli.command("ticket:link")
@click.argument("ticket_id")
@click.option("-r", "--repo", default=None, help="Gitea repo (default from GITEA_REPO env)")
@handle_errors
def ticket_link(ticket_id: str, repo: Optional[str]) -> None:
    """Retry linking a pending ticket's Gitea issue on Freshservice."""
    outcome = build_sync(repo).relink(ticket_id)
    if outcome.warnings:
        _warn(outcome.warnings)
        sys.exit(1)
    _success(f"{ticket_id} is linked")


@cli.command("ticket:status")
@click.argument("ticket_id")
@click.argument("status", type=click.Choice(TICKET_STATUSES))
@click.option("-n", "--note", default=None, help="Status note")
@click.option("-r", "--repo", default=None, help="Gitea repo (default from GITEA_REPO env)")
@handle_errors
def ticket_status(ticket_id: str, status: str, note: Optional[str], repo: Optional[str]) -> None:
    """Update ticket status and sync to Freshservice/Gitea."""
    result = build_sync(repo).update_status(ticket_id, status, note)
    if not result.success:
        _error(result.error)

    _success(f"Updated {ticket_id} to {status}")
    if result.fresh_updated:
        _dim("  Fresh updated")
    if result.gitea_updated:
        _dim("  Gitea updated")
    _warn(result.warnings)


@cli.command("ticket:get")
@click.argument("ticket_id")
@handle_errors
def ticket_get(ticket_id: str) -> None:
    """Print ticket state as JSON."""
    ticket = _load_ticket(ticket_id)
    click.echo(json.dumps(ticket.to_dict(), indent=2))


@cli.command("ticket:list")
@click.option("--status", type=click.Choice(TICKET_STATUSES), default=None, help="Filter by status")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@handle_errors
def ticket_list(status: Optional[str], as_json: bool) -> None:
    """List all tickets."""
    tickets = build_store().list(status=status)

    if as_json:
        click.echo(json.dumps([t.to_dict() for t in tickets], indent=2))
        return

    if not tickets:
        _dim("No tickets found")
        return

    for ticket in tickets:
        label = click.style(f"[{ticket.status}]", fg=STATUS_COLORS.get(ticket.status), dim=ticket.status not in STATUS_COLORS)
        title = ticket.fresh.subject if ticket.fresh else ticket.slug
        click.echo(f"{click.style(ticket.id, bold=True)} {label} {title}")
        _dim(f"  {ticket.git.branch}")


# Worktree commands

@cli.command("worktree:create")
@click.argument("ticket_id")
@click.option("-b", "--base", default=None, help="Base branch (default: remote default branch)")
@handle_errors
def worktree_create(ticket_id: str, base: Optional[str]) -> None:
    """Create git worktree for a ticket."""
    ticket = _load_ticket(ticket_id)
    result = build_worktree_manager().create(ticket, base_branch=base)
    _warn(result.warnings)
    if result.created:
        _success(f"Created worktree at {result.path}")
    else:
        _success(f"Worktree already exists at {result.path}")
    click.echo(result.path)


@cli.command("worktree:list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@handle_errors
def worktree_list(as_json: bool) -> None:
    """List all worktrees."""
    worktrees = build_worktree_manager().list_worktrees()
    if as_json:
        click.echo(json.dumps([w.to_dict() for w in worktrees], indent=2))
        return

    for worktree in worktrees:
        click.echo(click.style(worktree.branch, bold=True))
        _dim(f"  {worktree.path}")


@cli.command("worktree:remove")
@click.argument("path")
@handle_errors
def worktree_remove(path: str) -> None:
    """Remove a worktree (the branch is kept)."""
    if build_worktree_manager().remove(path):
        _success("Removed worktree")
    else:
        _dim("Worktree already gone")


# Git commands

@cli.command("git:squash")
@click.argument("ticket_id")
@click.option("-m", "--message", required=True, help="Commit message")
@click.option("-b", "--base", default=None, help="Base branch")
@handle_errors
def git_squash(ticket_id: str, message: str, base: Optional[str]) -> None:
    """Squash all commits for a ticket into one."""
    ticket = _load_ticket(ticket_id)
    sha = build_worktree_manager().squash(ticket.git.worktree, message, base_branch=base)
    _success(f"Squashed to {sha[:8]}")
    click.echo(sha)


@cli.command("git:push")
@click.argument("ticket_id")
@click.option("-f", "--force", is_flag=True, help="Force push (with lease)")
@handle_errors
def git_push(ticket_id: str, force: bool) -> None:
    """Push ticket branch to remote."""
    ticket = _load_ticket(ticket_id)
    build_worktree_manager().push(ticket.git.worktree, force=force)
    _success(f"Pushed {ticket.git.branch}")


@cli.command("git:commit")
@click.argument("ticket_id")
@click.argument("sha")
@handle_errors
def git_commit(ticket_id: str, sha: str) -> None:
    """Record commit SHA against a ticket."""
    build_store().append_commit(ticket_id, sha)
    _success(f"Recorded commit {sha[:8]}")


@cli.command("git:save")
@click.argument("ticket_id")
@click.option("-m", "--message", required=True, help="Commit message")
@handle_errors
def git_save(ticket_id: str, message: str) -> None:
    """Commit all changes in a ticket's worktree and record the commit."""
    ticket = _load_ticket(ticket_id)
    sha = build_worktree_manager().create_commit(ticket.git.worktree, message)
    if not sha:
        _dim("Nothing to commit")
        return

    build_store().append_commit(ticket_id, sha)
    _success(f"Committed {sha[:8]}")
    click.echo(sha)


@cli.command("git:log")
@click.argument("ticket_id")
@click.option("-b", "--base", default=None, help="Base branch")
@handle_errors
def git_log(ticket_id: str, base: Optional[str]) -> None:
    """List commits on a ticket's branch since the base branch."""
    ticket = _load_ticket(ticket_id)
    for sha in build_worktree_manager().commits_since_base(ticket.git.worktree, base_branch=base):
        click.echo(sha)


@cli.command("git:pr")
@click.argument("ticket_id")
@click.option("-b", "--base", default=None, help="Base branch (default: remote default branch)")
@click.option("-r", "--repo", default=None, help="Gitea repo (default from GITEA_REPO env)")
@handle_errors
def git_pr(ticket_id: str, base: Optional[str], repo: Optional[str]) -> None:
    """Open a Gitea pull request for a ticket's branch."""
    ticket = _load_ticket(ticket_id)
    if ticket.gitea is None:
        _error(f"Ticket {ticket_id} has no Gitea issue")

    sync = build_sync(repo)
    base_branch = base or build_worktree_manager().default_branch()
    title = f"[{ticket.id}] {ticket.fresh.subject if ticket.fresh else ticket.slug}"
    pr = sync.gitea.create_pull_request(
        ticket.gitea.repo,
        title=title,
        body=f"Closes #{ticket.gitea.issue_number}",
        head=ticket.git.branch,
        base=base_branch,
    )
    sync.link_pull_request(ticket_id, int(pr["number"]), pr["html_url"])
    _success(f"Opened pull request #{pr['number']}")
    click.echo(pr["html_url"])


# API test commands

@cli.command("fresh:test")
@handle_errors
def fresh_test() -> None:
    """Test Freshservice API connection."""
    tickets = FreshserviceClient.from_env().get_my_tickets()
    _success("Connected to Freshservice")
    _dim(f"  Found {len(tickets)} tickets assigned to you")


@cli.command("fresh:list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@handle_errors
def fresh_list(as_json: bool) -> None:
    """List your Freshservice tickets."""
    tickets = FreshserviceClient.from_env().get_my_tickets()
    if as_json:
        click.echo(json.dumps(tickets, indent=2))
        return

    for ticket in tickets:
        display_id = FreshserviceClient.format_ticket_id(ticket["id"], ticket.get("ticket_type"))
        click.echo(f"{click.style(display_id, bold=True)} {ticket['subject']}")
        _dim(f"  Priority: {ticket.get('priority')} | Status: {ticket.get('status')}")


@cli.command("gitea:test")
@handle_errors
def gitea_test() -> None:
    """Test Gitea API connection."""
    repos = GiteaClient.from_env().list_org_repos()
    _success("Connected to Gitea")
    _dim(f"  Found {len(repos)} repos in org")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
