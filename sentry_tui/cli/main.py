"""sentry-tui CLI - terminal client for Sentry issues."""

from typing import NoReturn, Optional

import typer
from rich.table import Table

from ..utils.logging import console, err_console

app = typer.Typer(
    name="sentry-tui",
    help="Browse and monitor Sentry issues across organizations from the terminal.",
    no_args_is_help=True,
)
org_app = typer.Typer(help="Manage organizations.", no_args_is_help=True)
issue_app = typer.Typer(help="List and view issues.", no_args_is_help=True)

app.add_typer(org_app, name="org")
app.add_typer(issue_app, name="issue")


def _fail(message: str) -> NoReturn:
    err_console.print(f"[red]Error: {message}[/red]")
    raise typer.Exit(1)


def _load():
    """Load the config store and its contents, exiting on failure."""
    from ..config import get_settings
    from ..storage import ConfigError, ConfigStore

    store = ConfigStore(get_settings().config_path)
    try:
        return store, store.load()
    except ConfigError as e:
        _fail(str(e))


def _save(store, config) -> None:
    from ..storage import ConfigError

    try:
        store.save(config)
    except ConfigError as e:
        _fail(str(e))


def _resolve_org(config, org: Optional[str]):
    """Named organization, or the default one when no name is given."""
    from ..storage import OrganizationNotFoundError

    if org is None:
        default = config.get_default_org()
        if default is None:
            _fail("No organization given and no default set. Name one or use 'org add --default'.")
        return default
    try:
        return config.require_org(org)
    except OrganizationNotFoundError as e:
        _fail(str(e))


def _project_for(organization, project: Optional[str]) -> str:
    from ..config import get_settings

    return project or organization.default_project or get_settings().default_project


def _logged_in_orgs(config):
    """Every organization with a stored token, paired with the opened token."""
    from ..vault import CryptoError, TokenSession

    session = TokenSession()
    pairs = []
    for organization in config.organizations:
        if not organization.is_authenticated:
            continue
        try:
            pairs.append((organization, session.token_for(organization)))
        except CryptoError as e:
            _fail(str(e))

    if not pairs:
        _fail("No logged-in organizations. Run 'sentry-tui login <org> <token>' first.")
    return pairs


def _warn(organization, error) -> None:
    err_console.print(f"[yellow]Skipping {organization.slug}: {error}[/yellow]")


def _choose_org(organizations):
    """Ask which of several organizations to use."""
    console.print("Several organizations have this project:")
    for number, organization in enumerate(organizations, start=1):
        console.print(f"  {number}. {organization.name} ({organization.slug})")

    while True:
        choice = typer.prompt(f"Organization [1-{len(organizations)}]", type=int)
        if 1 <= choice <= len(organizations):
            return organizations[choice - 1]
        err_console.print(f"[red]Choose a number from 1 to {len(organizations)}.[/red]")


def _print_issues(org_slug: str, project: str, issues) -> None:
    from ..models import format_timestamp

    table = Table(title=f"Issues: {org_slug}/{project} ({len(issues)})")
    table.add_column("ID", style="cyan")
    table.add_column("Level")
    table.add_column("Title")
    table.add_column("Events", justify="right")
    table.add_column("Users", justify="right")
    table.add_column("Last Seen")

    for issue in issues:
        table.add_row(
            issue.short_id,
            issue.level,
            issue.title,
            str(issue.count),
            str(issue.user_count),
            format_timestamp(issue.last_seen),
        )

    console.print(table)


def _run_interactive(screen=None) -> None:
    """Hand the terminal to the interactive UI."""
    from ..storage import ConfigError
    from ..tui import RenderError, run_tui

    try:
        run_tui(screen)
    except (ConfigError, RenderError) as e:
        _fail(str(e))


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Show debug logging",
    ),
):
    """Configure logging before any command runs."""
    from ..config import SettingsError, get_settings
    from ..utils.logging import setup_logging

    try:
        settings = get_settings()
    except SettingsError as e:
        _fail(str(e))
    setup_logging("DEBUG" if verbose else settings.log_level, settings.log_file)


# Organizations


@org_app.command("list")
def org_list():
    """
    List configured organizations and whether each is logged in.
    """
    _, config = _load()

    if not config.organizations:
        console.print("No organizations configured. Add one with 'sentry-tui org add'.")
        return

    table = Table(title="Organizations")
    table.add_column("Name", style="cyan")
    table.add_column("Slug")
    table.add_column("Default Project")
    table.add_column("Status")
    table.add_column("Default", justify="center")

    for org in config.organizations:
        status = "[green]authenticated[/green]" if org.is_authenticated else "[yellow]not authenticated[/yellow]"
        table.add_row(
            org.name,
            org.slug,
            org.default_project or "-",
            status,
            "*" if org.slug == config.default_org else "",
        )

    console.print(table)


@org_app.command("add")
def org_add(
    name: str = typer.Argument(..., help="Display name"),
    slug: str = typer.Argument(..., help="Organization slug used in API paths"),
    project: Optional[str] = typer.Option(
        None,
        "--project", "-p",
        help="Project opened by default for this organization",
    ),
    default: bool = typer.Option(
        False,
        "--default",
        help="Open this organization at startup",
    ),
):
    """
    Add an organization. Log in afterwards to store its token.
    """
    from ..models import Organization
    from ..storage import DuplicateOrganizationError

    store, config = _load()
    try:
        config.add_org(Organization(name=name, slug=slug, default_project=project))
    except DuplicateOrganizationError as e:
        _fail(str(e))

    if default:
        config.set_default_org(slug)

    _save(store, config)
    console.print(f"[green]Added organization {name} ({slug})[/green]")
    console.print(f"Next: sentry-tui login {slug} <token>")


@org_app.command("remove")
def org_remove(
    org: str = typer.Argument(..., help="Organization slug or name"),
):
    """
    Remove an organization and its stored token.
    """
    from ..storage import OrganizationNotFoundError

    store, config = _load()
    try:
        removed = config.remove_org(org)
    except OrganizationNotFoundError as e:
        _fail(str(e))

    _save(store, config)
    console.print(f"[green]Removed organization {removed.name} ({removed.slug})[/green]")


@app.command()
def login(
    org: str = typer.Argument(..., help="Organization slug or name"),
    token: str = typer.Argument(..., help="Sentry auth token"),
):
    """
    Encrypt and store an auth token for an organization.

    The token is sealed with a key kept in the OS secret store; only the
    ciphertext is written to the config file.
    """
    from ..vault import CredentialVault, CryptoError

    token = token.strip()
    if not token:
        _fail("Token must not be empty.")

    store, config = _load()
    organization = _resolve_org(config, org)

    try:
        credential = CredentialVault().seal(token, organization.slug)
    except CryptoError as e:
        _fail(str(e))

    config.set_credential(organization.slug, credential)
    _save(store, config)
    console.print(f"[green]Logged in to {organization.name}[/green]")


# Issues


@issue_app.command("list")
def issue_list(
    org: Optional[str] = typer.Option(
        None,
        "--org", "-o",
        help="Organization slug or name (default: the default organization, else every logged-in one)",
    ),
    project: Optional[str] = typer.Option(
        None,
        "--project", "-p",
        help="Project slug (default: the organization's default project)",
    ),
    plain: bool = typer.Option(
        False,
        "--plain",
        help="Print a table instead of opening the interactive UI",
    ),
):
    """
    List unresolved issues for a project.

    Without --org and without a default organization, the interactive UI
    opens at the organization list and --plain lists every logged-in
    organization.
    """
    from ..tui.view_model import IssueListState

    _, config = _load()
    if org is None and config.get_default_org() is None:
        if plain:
            _list_all_orgs(config, project)
        else:
            _run_interactive()
        return

    organization = _resolve_org(config, org)
    project = _project_for(organization, project)

    if not plain:
        _run_interactive(IssueListState(organization.slug, project))
        return

    from ..client import ApiError, SentryClient
    from ..vault import CryptoError, TokenSession

    try:
        token = TokenSession().token_for(organization)
    except CryptoError as e:
        _fail(str(e))

    try:
        with SentryClient(token) as client:
            issues = client.list_issues(organization.slug, project)
    except ApiError as e:
        _fail(str(e))

    _print_issues(organization.slug, project, issues)


def _list_all_orgs(config, project: Optional[str]) -> None:
    """Print one table per logged-in organization. Fails only if none answered."""
    from ..client import ApiError, SentryClient

    pairs = _logged_in_orgs(config)
    failures = 0
    for organization, token in pairs:
        org_project = _project_for(organization, project)
        try:
            with SentryClient(token) as client:
                issues = client.list_issues(organization.slug, org_project)
        except ApiError as e:
            _warn(organization, e)
            failures += 1
            continue
        _print_issues(organization.slug, org_project, issues)

    if failures == len(pairs):
        raise typer.Exit(1)


@issue_app.command("view")
def issue_view(
    issue_id: str = typer.Argument(..., help="Issue id"),
    org: Optional[str] = typer.Option(
        None,
        "--org", "-o",
        help="Organization slug or name (default: the default organization, else search every logged-in one)",
    ),
    project: Optional[str] = typer.Option(
        None,
        "--project", "-p",
        help="Project slug (default: the organization's default project)",
    ),
):
    """
    Open the detail view of one issue.
    """
    from ..tui.view_model import IssueDetailState

    _, config = _load()
    if org is None and config.get_default_org() is None:
        organization, found_project = _find_issue(config, issue_id, project)
        _run_interactive(IssueDetailState(organization.slug, found_project, issue_id))
        return

    organization = _resolve_org(config, org)
    _run_interactive(
        IssueDetailState(organization.slug, _project_for(organization, project), issue_id)
    )


def _find_issue(config, issue_id: str, project: Optional[str]):
    """First logged-in organization that has the issue, with the issue's project."""
    from ..client import ApiError, NotFoundError, SentryClient

    for organization, token in _logged_in_orgs(config):
        org_project = _project_for(organization, project)
        try:
            with SentryClient(token) as client:
                detail = client.get_issue(organization.slug, org_project, issue_id)
        except NotFoundError:
            continue
        except ApiError as e:
            _warn(organization, e)
            continue
        return organization, project or detail.project or org_project

    _fail(f"Issue {issue_id} not found in any logged-in organization.")


@app.command()
def monitor(
    org: Optional[str] = typer.Argument(None, help="Organization slug or name"),
    project: Optional[str] = typer.Argument(None, help="Project slug"),
    search: Optional[str] = typer.Option(
        None,
        "--search", "-s",
        help="Find this project across logged-in organizations instead of naming one",
    ),
):
    """
    Open the live dashboard, refreshing every few seconds.
    """
    from ..tui.view_model import DashboardState

    _, config = _load()
    if search is not None:
        if org is not None:
            _fail("Give either an organization or --search, not both.")
        organization = _find_project(config, search)
        console.print(f"Found project {search} in {organization.name}")
        _run_interactive(DashboardState(organization.slug, search))
        return

    organization = _resolve_org(config, org)
    _run_interactive(DashboardState(organization.slug, _project_for(organization, project)))


def _find_project(config, project: str):
    """Organization holding a project, asking when more than one does."""
    from ..client import ApiError, SentryClient

    matches = []
    for organization, token in _logged_in_orgs(config):
        if organization.default_project == project:
            matches.append(organization)
            continue
        try:
            with SentryClient(token) as client:
                slugs = client.list_projects(organization.slug)
        except ApiError as e:
            _warn(organization, e)
            continue
        if project in slugs:
            matches.append(organization)

    if not matches:
        _fail(f"Project '{project}' not found in any logged-in organization.")
    if len(matches) == 1:
        return matches[0]
    return _choose_org(matches)


@app.command()
def browse():
    """
    Open the interactive UI at the organization list (or the default organization).
    """
    _run_interactive()


@app.command()
def version():
    """Show version information."""
    from .. import __version__

    console.print(f"sentry-tui v{__version__}")
    console.print("Terminal client for Sentry issues")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
