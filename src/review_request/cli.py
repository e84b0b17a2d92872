"""CLI entrypoint for the review request action."""

import os
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from review_request.config import ConfigError, load_config
from review_request.console import Console
from review_request.constants import DEFAULT_TEST_DIR
from review_request.phase_runner import ReviewRequestError, request_review
from review_request.project import parse_project
from review_request.state_store import ActionsStateStore
from review_request.steps import DEFAULT_STEPS_FILE, StepDefinitionError, load_definition

# Load .env file on CLI startup
load_dotenv()


@click.group()
@click.version_option(package_name="review-request-action")
def cli():
    """Review request action - verify a project build before code review."""
    pass


@cli.command()
def request():
    """Run the request phase: check the build, then request review."""
    # Workflow logs render ANSI colors even though stdout is not a tty
    console = Console(color=True if os.environ.get("GITHUB_ACTIONS") else None)

    try:
        config = load_config(require_all=True)
    except ConfigError as e:
        console.set_failed(f"Code review request failed. {e}")
        raise SystemExit(1)

    console.set_secret(config.token)

    try:
        result = request_review(config, console, ActionsStateStore(console=console))
    except StepDefinitionError as e:
        console.set_failed(f"Code review request failed. {e}")
        raise SystemExit(1)

    if not result.succeeded or console.failed:
        raise SystemExit(1)


@cli.command("parse-version")
@click.argument("ref")
@click.option("--owner", default="", help="Repository owner")
@click.option("--repo", default="", help="Repository name")
@click.option("--test-dir", default=DEFAULT_TEST_DIR, show_default=True, help="Test repository name")
def parse_version(ref: str, owner: str, repo: str, test_dir: str):
    """Parse project details from a release REF such as refs/tags/v1.2.0."""
    try:
        details = parse_project(owner, repo, ref, test_dir=test_dir)
    except ReviewRequestError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"Project version: {details.version}")
    click.echo(f"Project number:  {details.project}")
    click.echo(f"Project reviews: {details.reviews}")
    click.echo(f"Project patches: {details.patches}")
    if owner:
        click.echo(f"Main repository: {details.main_repo}")
        click.echo(f"Test repository: {details.test_repo}")


@cli.command("check-config")
def check_config():
    """Check if required environment variables are configured."""
    try:
        config = load_config(require_all=True)
    except ConfigError as e:
        click.echo(f"Configuration error:\n{e}", err=True)
        raise SystemExit(1)

    click.echo("Configuration loaded successfully!")
    click.echo("  INPUT_TOKEN: [set]")
    click.echo(f"  GITHUB_REPOSITORY: {config.repository or '[not set]'}")
    click.echo(f"  Main directory: {config.main_dir}")
    click.echo(f"  Test directory: {config.test_dir}")
    click.echo(f"  Steps file: {config.steps_file or DEFAULT_STEPS_FILE}")


@cli.command("validate-steps")
@click.argument("steps_file", required=False, type=click.Path(exists=True, dir_okay=False))
def validate_steps(steps_file: Optional[str]):
    """Validate a step definition file (default: the packaged request phase)."""
    path = Path(steps_file) if steps_file else DEFAULT_STEPS_FILE
    try:
        definition = load_definition(path)
    except StepDefinitionError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1)

    steps = sum(len(group.steps) for group in definition.groups)
    click.echo(f"✓ {path.name}: {len(definition.groups)} groups, {steps} steps, {len(definition.checks)} checks")


if __name__ == "__main__":
    cli()
