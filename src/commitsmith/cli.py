"""
Command line interface for commitsmith.

This module defines the ``main`` function which is used as the entry
point of the ``commitsmith`` command. It detects the repository, loads
the configuration, runs the batch orchestrator and reports the outcome.
Exit codes:

* 0: success (including "nothing to do")
* 1: unexpected error
* 3: not inside a Git repository
* 4: no changes detected
* 5: configuration error
* 6: Git failure
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import List, Optional

import click

from commitsmith import __version__
from commitsmith.config.loader import ConfigError, GeneratorConfig, get_config_path, load_config
from commitsmith.llm.commit_message_generator import CommitMessageGenerator
from commitsmith.llm.ollama_client import OllamaClient
from commitsmith.llm.prompt_builder import PromptBuilder
from commitsmith.models import BatchReport, BatchStatus
from commitsmith.pipeline.batch_orchestrator import BatchCommitOrchestrator
from commitsmith.vcs.git_client import GitClient, GitError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_NO_REPO = 3
EXIT_NO_CHANGES = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6


class ProgressIndicator:
    """Print a start line and an elapsed-time line around a block."""

    def __init__(self, message: str):
        self.message = message
        self.start_time = 0.0

    def __enter__(self):
        self.start_time = time.time()
        click.echo(f"→ {self.message}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            click.echo(f"  ✓ Done ({time.time() - self.start_time:.1f}s)")
        return False


def print_info(message: str, indent: int = 0):
    click.echo(f"{'  ' * indent}ℹ {message}")


def print_success(message: str, indent: int = 0):
    click.echo(f"{'  ' * indent}✓ {message}")


def print_warning(message: str, indent: int = 0):
    click.echo(f"{'  ' * indent}⚠ {message}")


def print_error(message: str, indent: int = 0):
    click.echo(f"{'  ' * indent}✗ {message}", err=True)


def print_summary_box(title: str, items: List[str]):
    """Print a formatted summary box."""
    max_width = max(len(title), max((len(item) for item in items), default=0))
    box_width = min(max_width + 4, 72)
    click.echo(f"\n┌{'─' * box_width}┐")
    click.echo(f"│ {title.ljust(box_width - 2)}│")
    click.echo(f"├{'─' * box_width}┤")
    for item in items:
        click.echo(f"│ {item[: box_width - 2].ljust(box_width - 2)}│")
    click.echo(f"└{'─' * box_width}┘")


def enable_package_logging(level: int) -> None:
    """Let the package's module loggers reach the handlers configured on root.

    Module loggers start with propagation disabled so that importing the
    library never writes to a closed stream.
    """
    for name in list(logging.root.manager.loggerDict):
        if name == "commitsmith" or name.startswith("commitsmith."):
            package_logger = logging.getLogger(name)
            package_logger.propagate = True
            package_logger.setLevel(level)


def build_generator(config: GeneratorConfig, repo_root: Path) -> CommitMessageGenerator:
    """Wire a :class:`CommitMessageGenerator` from configuration."""
    client = OllamaClient(
        base_url=config.base_url,
        port=config.port,
        model=config.model,
        request_timeout=config.request_timeout,
        max_tokens=config.max_tokens,
        api_key=config.api_key,
    )
    return CommitMessageGenerator(
        client,
        repo_root,
        prompt_builder=PromptBuilder(max_request_size=config.max_request_size),
    )


def report_privacy(report: BatchReport) -> None:
    privacy = report.privacy_report
    if privacy is None or not privacy.sanitized_files:
        return
    print_warning(
        f"Sanitized {privacy.sanitized_files} of {privacy.total_files} file(s) before sending them to the model"
    )
    for warning in dict.fromkeys(privacy.warnings):
        print_warning(warning, indent=1)
    for recommendation in privacy.recommendations:
        print_info(recommendation, indent=1)


def report_outcome(report: BatchReport) -> None:
    for path, message in report.committed:
        print_success(f"{path}: {message}", indent=1)
    for path, reason in report.failed:
        print_error(f"{path}: {reason}", indent=1)
    for item in report.skipped:
        print_warning(f"Skipped {item.path}: {item.reason}", indent=1)
    report_privacy(report)

    verb = "Planned" if report.dry_run else "Committed"
    print_summary_box(
        "Summary",
        [
            f"{verb}: {report.processed} of {report.total_files} file(s)",
            f"Failed: {len(report.failed)}",
            f"Skipped: {len(report.skipped)}",
        ],
    )


@click.command()
@click.option("--dry-run", is_flag=True, help="Show the commit messages without committing.")
@click.option("--push", "push", is_flag=True, help="Push to the remote after committing.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file (default: ~/.commitsmith/config.json).",
)
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="commitsmith")
def main(dry_run: bool, push: bool, config_path: Optional[Path], verbose: bool) -> None:
    """Commit each pending file separately with a generated message."""
    # force=True so repeated invocations in one process reconfigure handlers.
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
        force=True,
    )
    enable_package_logging(logging.DEBUG if verbose else logging.WARNING)
    ctx = click.get_current_context(silent=True)

    try:
        repo_root = GitClient.find_repo_root(Path.cwd())
        if repo_root is None:
            print_error("Current directory is not inside a Git repository.")
            raise click.exceptions.Exit(EXIT_NO_REPO)
        print_success(f"Found Git repository at: {repo_root}")

        try:
            config = load_config(config_path or get_config_path())
        except ConfigError as exc:
            print_error(f"Configuration error: {exc}")
            raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
        print_info(f"Model: {config.model} at {config.base_url}:{config.port}")

        client = GitClient(repo_root)
        orchestrator = BatchCommitOrchestrator(
            client,
            lambda: build_generator(config, repo_root),
            dry_run=dry_run,
        )

        try:
            with ProgressIndicator("Analyzing changes and generating commit messages"):
                report = orchestrator.run()
        except GitError as exc:
            print_error(f"Git error: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)

        if report.status is BatchStatus.NO_CHANGES:
            print_warning("No changes detected to commit.")
            raise click.exceptions.Exit(EXIT_NO_CHANGES)
        if report.status is BatchStatus.NOTHING_TO_DO:
            print_warning(f"All {report.total_files} changed file(s) were filtered out; nothing to do.")
            for item in report.skipped:
                print_info(f"{item.path}: {item.reason}", indent=1)
            raise click.exceptions.Exit(EXIT_SUCCESS)

        report_outcome(report)
        if report.failed and not report.committed:
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)

        if push and not dry_run and report.committed:
            try:
                with ProgressIndicator("Pushing to remote"):
                    client.push()
            except GitError as exc:
                print_error(f"Failed to push: {exc}")
                raise click.exceptions.Exit(EXIT_VCS_FAILURE)
            print_success("Pushed commits to remote")

        raise click.exceptions.Exit(EXIT_SUCCESS)

    except click.exceptions.Exit:
        raise
    except Exception as exc:
        logging.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        ctx.exit(EXIT_GENERIC_ERROR)
