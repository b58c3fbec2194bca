"""CLI entry point — command definitions using Click.

Commands:
    init          Generate a template config file
    health        Server status
    quality-gate  Quality gate status of a project
    issues        Open issues, with severity/type/status/... filters
    measures      Project metrics
    coverage      Per-file coverage
    duplications  Per-file duplications, optionally with blocks
    hotspots      Security hotspots
    projects      Project listing
    history       Metric history
    rules         Rule search
    source        Source code of a file
    wait          Wait for a background analysis task
"""

import functools
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

import click

from sonar_cli import __version__

logger = logging.getLogger("sonar_cli")


# ---------------------------------------------------------------------------
# Helpers shared by all data commands
# ---------------------------------------------------------------------------

class _ClickHandler(logging.Handler):
    """Log handler writing to whatever stderr click currently targets."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def _configure_logging(verbose: bool) -> None:
    handler = _ClickHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def _load_config(ctx: click.Context):
    """Load config and apply command-line overrides. Exits on error."""
    from sonar_cli.config import ConfigError, load

    obj = ctx.obj
    try:
        return load(obj["config_path"]).override(
            url=obj["url"],
            token=obj["token"],
            project=obj["project"],
            branch=obj["branch"],
            timeout=obj["timeout"],
        )
    except ConfigError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)


def _make_client(ctx: click.Context):
    """Load config and return a ready SonarClient."""
    from sonar_cli.client import SonarClient

    config = _load_config(ctx)
    logger.info("Connecting to %s", config.url)
    return config, SonarClient(url=config.url, token=config.token, timeout=config.timeout)


def _emit_json(data: Any, ctx: click.Context) -> None:
    """Write JSON to stdout or to the file specified by --output."""
    obj = ctx.obj
    indent = 2 if obj["pretty"] else None
    text = json.dumps(data, indent=indent, ensure_ascii=False)

    output_path: str | None = obj["output_path"]
    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(text)
        click.echo(f"Report written to '{output_path}'", err=True)
    else:
        click.echo(text)


def _envelope(report_type: str, project_key: str | None, branch: str | None, **body: Any) -> dict:
    report: dict[str, Any] = {"report_type": report_type}
    if project_key:
        report["project_key"] = project_key
    if branch:
        report["branch"] = branch
    report["generated_at"] = datetime.now(timezone.utc).isoformat()
    report.update(body)
    return report


def _handle_client_errors(func):
    """Decorator that catches client and config exceptions and exits cleanly."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        from sonar_cli.analysis import AnalysisFailedError, AnalysisTimeoutError
        from sonar_cli.client import (
            AuthenticationError,
            DeserializationError,
            NetworkError,
            NotFoundError,
            SonarClientError,
        )
        from sonar_cli.config import ConfigError, MissingProjectError

        try:
            return func(*args, **kwargs)
        except MissingProjectError as exc:
            click.echo(f"Project error: {exc}", err=True)
            sys.exit(1)
        except ConfigError as exc:
            click.echo(f"Configuration error: {exc}", err=True)
            sys.exit(1)
        except AuthenticationError as exc:
            click.echo(f"Authentication error: {exc}", err=True)
            sys.exit(1)
        except NotFoundError as exc:
            click.echo(f"Not found: {exc}", err=True)
            sys.exit(1)
        except NetworkError as exc:
            click.echo(f"Network error: {exc}", err=True)
            sys.exit(1)
        except DeserializationError as exc:
            click.echo(f"Unexpected response: {exc}", err=True)
            sys.exit(1)
        except AnalysisTimeoutError as exc:
            click.echo(f"Timeout: {exc}", err=True)
            sys.exit(1)
        except AnalysisFailedError as exc:
            click.echo(f"{exc}", err=True)
            sys.exit(1)
        except SonarClientError as exc:
            click.echo(f"SonarQube error: {exc}", err=True)
            sys.exit(1)

    return wrapper


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", "config_path", default=None,
              help="Path to the configuration file [default: sonar-config.yaml if present].")
@click.option("--url", default=None,
              help="SonarQube server URL (env: SONAR_HOST_URL).")
@click.option("--token", default=None,
              help="Authentication token (env: SONAR_TOKEN).")
@click.option("--project", default=None,
              help="Project key or configured alias (env: SONAR_PROJECT_KEY).")
@click.option("--branch", default=None,
              help="Branch name (env: SONAR_BRANCH).")
@click.option("--timeout", type=click.IntRange(min=1), default=None,
              help="Request timeout in seconds [default: 30].")
@click.option("--output", "output_path", default=None,
              help="Write JSON output to a file instead of stdout.")
@click.option("--pretty", is_flag=True, default=False,
              help="Pretty-print the JSON output.")
@click.option("-v", "--verbose", is_flag=True, default=False,
              help="Enable verbose logging.")
@click.version_option(__version__, prog_name="sonar-cli")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, url: str | None, token: str | None,
        project: str | None, branch: str | None, timeout: int | None,
        output_path: str | None, pretty: bool, verbose: bool) -> None:
    """Standalone CLI for SonarQube — query a server's Web API, export as JSON."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["url"] = url
    ctx.obj["token"] = token
    ctx.obj["project"] = project
    ctx.obj["branch"] = branch
    ctx.obj["timeout"] = timeout
    ctx.obj["output_path"] = output_path
    ctx.obj["pretty"] = pretty
    ctx.obj["verbose"] = verbose


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@cli.command("init")
@click.option("--output", "output_path", default="sonar-config.yaml", show_default=True,
              help="Path where the template config file will be written.")
def init_command(output_path: str) -> None:
    """Generate a template sonar-config.yaml file."""
    from sonar_cli.config import ConfigError, generate_template
    try:
        generate_template(output_path)
        click.echo(f"Template written to '{output_path}'.")
        click.echo("Edit it with your server URL, token and project key mappings.")
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------------
# health
# ---------------------------------------------------------------------------

@cli.command("health")
@click.pass_context
def health_command(ctx: click.Context) -> None:
    """Check SonarQube server health. Exits 1 unless the status is UP."""
    from sonar_cli.client import SonarClientError
    from sonar_cli.reports.status import get_server_status

    config, client = _make_client(ctx)
    try:
        status = get_server_status(client)
    except SonarClientError as exc:
        logger.warning("Failed to reach SonarQube at %s: %s", config.url, exc)
        status = "UNREACHABLE"

    _emit_json({"url": config.url, "status": status, "healthy": status == "UP"}, ctx)
    if status != "UP":
        sys.exit(1)


# ---------------------------------------------------------------------------
# quality-gate
# ---------------------------------------------------------------------------

@cli.command("quality-gate")
@click.option("--fail-on-error", is_flag=True, default=False,
              help="Exit with code 1 if the quality gate does not pass.")
@click.pass_context
@_handle_client_errors
def quality_gate_command(ctx: click.Context, fail_on_error: bool) -> None:
    """Check the quality gate status of the project."""
    from sonar_cli.reports.status import get_quality_gate

    config, client = _make_client(ctx)
    project_key = config.resolve_project()

    gate = get_quality_gate(client, project_key, config.branch)
    _emit_json(_envelope("quality_gate", project_key, config.branch, **gate.to_json()), ctx)
    if fail_on_error and not gate.passed:
        sys.exit(1)


# ---------------------------------------------------------------------------
# issues
# ---------------------------------------------------------------------------

@cli.command("issues")
@click.option("--severity", default=None,
              type=click.Choice(["INFO", "MINOR", "MAJOR", "CRITICAL", "BLOCKER"],
                                case_sensitive=False),
              help="Minimum severity.")
@click.option("--type", "issue_type", default=None,
              help="Issue types, comma-separated (BUG, VULNERABILITY, CODE_SMELL, SECURITY_HOTSPOT).")
@click.option("--status", default=None,
              help="Issue statuses, comma-separated [default: OPEN,CONFIRMED,REOPENED].")
@click.option("--resolution", default=None, help="Resolutions, comma-separated.")
@click.option("--tags", default=None, help="Tags, comma-separated.")
@click.option("--rule", default=None, help="Rule keys, comma-separated.")
@click.option("--language", default=None, help="Languages, comma-separated.")
@click.option("--author", default=None, help="SCM author.")
@click.option("--assignee", default=None, help="Assignee logins, comma-separated.")
@click.option("--created-after", default=None, help="Only issues created after this date.")
@click.option("--created-before", default=None, help="Only issues created before this date.")
@click.option("--limit", type=click.IntRange(min=1), default=None,
              help="Maximum number of issues to fetch.")
@click.pass_context
@_handle_client_errors
def issues_command(ctx: click.Context, severity: str | None, issue_type: str | None,
                   status: str | None, resolution: str | None, tags: str | None,
                   rule: str | None, language: str | None, author: str | None,
                   assignee: str | None, created_after: str | None,
                   created_before: str | None, limit: int | None) -> None:
    """List project issues."""
    from sonar_cli.reports.issues import IssueFilters, build_issue_report, search_issues

    config, client = _make_client(ctx)
    project_key = config.resolve_project()
    filters = IssueFilters(
        min_severity=severity,
        types=issue_type,
        statuses=status,
        resolutions=resolution,
        tags=tags,
        rules=rule,
        languages=language,
        author=author,
        assignees=assignee,
        created_after=created_after,
        created_before=created_before,
    )

    logger.info("Fetching issues for %s", project_key)
    issues = search_issues(client, project_key, filters, config.branch, limit)
    _emit_json(build_issue_report(project_key, issues, config.branch), ctx)


# ---------------------------------------------------------------------------
# measures
# ---------------------------------------------------------------------------

@cli.command("measures")
@click.option("--metrics", default=None,
              help="Comma-separated metric keys [default: a summary set].")
@click.pass_context
@_handle_client_errors
def measures_command(ctx: click.Context, metrics: str | None) -> None:
    """Get project metrics."""
    from sonar_cli.reports.measures import get_measures

    config, client = _make_client(ctx)
    project_key = config.resolve_project()

    measures = get_measures(client, project_key, metrics, config.branch)
    _emit_json(_envelope("measures", project_key, config.branch, metrics=measures), ctx)


# ---------------------------------------------------------------------------
# coverage
# ---------------------------------------------------------------------------

@cli.command("coverage")
@click.option("--min-coverage", type=float, default=None,
              help="Only show files below this coverage percentage.")
@click.option("--sort", "sort_by", default="coverage", show_default=True,
              type=click.Choice(["coverage", "uncovered", "file"]),
              help="Sort order.")
@click.pass_context
@_handle_client_errors
def coverage_command(ctx: click.Context, min_coverage: float | None, sort_by: str) -> None:
    """Per-file coverage breakdown."""
    from sonar_cli.reports.coverage import get_coverage

    config, client = _make_client(ctx)
    project_key = config.resolve_project()

    files = get_coverage(client, project_key, config.branch, min_coverage, sort_by)
    _emit_json(_envelope(
        "coverage", project_key, config.branch,
        total=len(files), files=[f.to_json() for f in files],
    ), ctx)


# ---------------------------------------------------------------------------
# duplications
# ---------------------------------------------------------------------------

@cli.command("duplications")
@click.option("--details", is_flag=True, default=False,
              help="Fetch and show the duplicated blocks of every file.")
@click.pass_context
@_handle_client_errors
def duplications_command(ctx: click.Context, details: bool) -> None:
    """Code duplication information."""
    from sonar_cli.reports.duplications import get_duplications

    config, client = _make_client(ctx)
    project_key = config.resolve_project()

    files = get_duplications(client, project_key, config.branch, details=details)
    _emit_json(_envelope(
        "duplications", project_key, config.branch,
        total=len(files), files=[f.to_json() for f in files],
    ), ctx)


# ---------------------------------------------------------------------------
# hotspots
# ---------------------------------------------------------------------------

@cli.command("hotspots")
@click.option("--status", default=None,
              help="Hotspot status [default: TO_REVIEW].")
@click.pass_context
@_handle_client_errors
def hotspots_command(ctx: click.Context, status: str | None) -> None:
    """Security hotspots."""
    from sonar_cli.reports.search import get_hotspots

    config, client = _make_client(ctx)
    project_key = config.resolve_project()

    hotspots = get_hotspots(client, project_key, status, config.branch)
    _emit_json(_envelope(
        "hotspots", project_key, config.branch,
        total=len(hotspots), hotspots=[h.to_json() for h in hotspots],
    ), ctx)


# ---------------------------------------------------------------------------
# projects
# ---------------------------------------------------------------------------

@cli.command("projects")
@click.option("--search", default=None, help="Free-text filter on key or name.")
@click.option("--qualifier", default=None, help="Component qualifier [default: TRK].")
@click.pass_context
@_handle_client_errors
def projects_command(ctx: click.Context, search: str | None, qualifier: str | None) -> None:
    """List projects on the server."""
    from sonar_cli.reports.search import get_projects

    _, client = _make_client(ctx)
    projects = get_projects(client, search, qualifier)
    _emit_json(_envelope(
        "projects", None, None,
        total=len(projects), projects=[p.to_json() for p in projects],
    ), ctx)


# ---------------------------------------------------------------------------
# history
# ---------------------------------------------------------------------------

@cli.command("history")
@click.option("--metrics", required=True, help="Comma-separated metric keys.")
@click.option("--from", "from_", default=None, help="Start date (YYYY-MM-DD).")
@click.option("--to", default=None, help="End date (YYYY-MM-DD).")
@click.pass_context
@_handle_client_errors
def history_command(ctx: click.Context, metrics: str, from_: str | None, to: str | None) -> None:
    """Metric history of the project."""
    from sonar_cli.reports.measures import get_history

    config, client = _make_client(ctx)
    project_key = config.resolve_project()

    history = get_history(client, project_key, metrics, config.branch, from_, to)
    _emit_json(_envelope(
        "history", project_key, config.branch,
        measures=[m.to_json() for m in history],
    ), ctx)


# ---------------------------------------------------------------------------
# rules
# ---------------------------------------------------------------------------

@cli.command("rules")
@click.option("--search", default=None, help="Free-text filter on rule name or key.")
@click.option("--language", default=None, help="Language key, e.g. py.")
@click.option("--severity", default=None, help="Rule severity.")
@click.option("--rule-type", default=None, help="Rule type (BUG, VULNERABILITY, CODE_SMELL, ...).")
@click.option("--status", default=None, help="Rule status (READY, BETA, DEPRECATED, ...).")
@click.pass_context
@_handle_client_errors
def rules_command(ctx: click.Context, search: str | None, language: str | None,
                  severity: str | None, rule_type: str | None, status: str | None) -> None:
    """Search coding rules."""
    from sonar_cli.reports.search import get_rules

    _, client = _make_client(ctx)
    rules = get_rules(client, search, language, severity, rule_type, status)
    _emit_json(_envelope(
        "rules", None, None, total=len(rules), rules=[r.to_json() for r in rules],
    ), ctx)


# ---------------------------------------------------------------------------
# source
# ---------------------------------------------------------------------------

@cli.command("source")
@click.argument("component")
@click.option("--from", "from_line", type=click.IntRange(min=1), default=None,
              help="First line to show.")
@click.option("--to", "to_line", type=click.IntRange(min=1), default=None,
              help="Last line to show.")
@click.pass_context
@_handle_client_errors
def source_command(ctx: click.Context, component: str, from_line: int | None,
                   to_line: int | None) -> None:
    """Source code of file COMPONENT (e.g. my-project:src/main.py)."""
    from sonar_cli.reports.source import get_source

    _, client = _make_client(ctx)
    lines = get_source(client, component, from_line, to_line)
    _emit_json(_envelope(
        "source", None, None, component=component, lines=[ln.to_json() for ln in lines],
    ), ctx)


# ---------------------------------------------------------------------------
# wait
# ---------------------------------------------------------------------------

@cli.command("wait")
@click.argument("task_id")
@click.option("--timeout", "wait_timeout", type=click.FloatRange(min=0), default=300,
              show_default=True, help="Maximum wait time in seconds.")
@click.option("--poll-interval", type=click.FloatRange(min=0), default=5,
              show_default=True, help="Seconds between status checks.")
@click.pass_context
@_handle_client_errors
def wait_command(ctx: click.Context, task_id: str, wait_timeout: float,
                 poll_interval: float) -> None:
    """Wait for analysis task TASK_ID to complete."""
    from sonar_cli.analysis import wait_for_analysis

    _, client = _make_client(ctx)
    logger.info("Waiting for analysis task %s", task_id)
    task = wait_for_analysis(client, task_id, wait_timeout, poll_interval)
    _emit_json(_envelope("analysis_task", None, None, task=task.to_json()), ctx)
