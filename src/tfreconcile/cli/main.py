"""Main CLI entry point."""

import json
import sys

import click
from rich.console import Console
from rich.table import Table

from tfreconcile import __version__
from tfreconcile.config.parser import ConfigValidationError, load_config
from tfreconcile.engine.classifier import DEFAULT_LOCAL_KINDS
from tfreconcile.engine.context import RunContext
from tfreconcile.engine.pipeline import EXIT_RUN_FAILED, run_with_recovery
from tfreconcile.integrity.manager import verify_artifact
from tfreconcile.inventory.defaults import DEFAULT_VERIFIERS
from tfreconcile.report.console import print_summary
from tfreconcile.report.renderer import build_json
from tfreconcile.utils.logging import setup_logging, get_logger

console = Console()
logger = get_logger(__name__)


@click.group()
@click.option('--log-level', default='info', type=click.Choice(['debug', 'info', 'warning', 'error']))
@click.pass_context
def cli(ctx, log_level):
    """Reconcile Terraform state files against live AWS resources."""
    ctx.ensure_object(dict)
    ctx.obj['log_level'] = log_level


@cli.command()
@click.option('--state', help='Path to the Terraform state file (default terraform.tfstate)')
@click.option('--s3-state', help='S3 URI of the state file, e.g. s3://bucket/key')
@click.option('--region', help='AWS region to check resources against (default us-west-2)')
@click.option('--concurrency', type=int, help='Number of concurrent AWS API calls (default 10)')
@click.option('--should-execute', is_flag=True, help="Run the suggested 'terraform import' and 'terraform state rm' commands")
@click.option('--backups-dir', help='Directory for backups and reports (default ./backups)')
@click.option('--json', 'json_output', is_flag=True, help='Print the JSON report to stdout')
@click.option('--tf-dir', help="Directory where 'terraform' commands run (default .)")
@click.option('--profile', help='AWS profile to use')
@click.option('--config', 'config_path', help='Path to tfreconcile.yaml')
@click.option('--publish-on-attempt', is_flag=True,
              help='Upload S3 state whenever a state-altering command ran, even if unchanged')
@click.option('--mirror-backups', is_flag=True, help='Copy backups and reports to the state bucket')
@click.pass_context
def check(ctx, state, s3_state, region, concurrency, should_execute, backups_dir, json_output,
          tf_dir, profile, config_path, publish_on_attempt, mirror_backups):
    """Verify every resource in a state file against AWS."""
    # Unset flags stay None so config file values win
    overrides = {
        'state': state,
        's3_state': s3_state,
        'region': region,
        'concurrency': concurrency,
        'execute_commands': True if should_execute else None,
        'backups_dir': backups_dir,
        'json_output': True if json_output else None,
        'terraform_dir': tf_dir,
        'profile': profile,
        'publish_on_attempt': True if publish_on_attempt else None,
        'mirror_backups': True if mirror_backups else None,
    }

    try:
        cfg = load_config(config_path, overrides)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(EXIT_RUN_FAILED)
    except ConfigValidationError as e:
        console.print("[red]Configuration validation failed:[/red]\n")
        console.print(str(e), markup=False)
        sys.exit(EXIT_RUN_FAILED)

    # Keep stdout pure JSON in JSON mode
    setup_logging(ctx.obj['log_level'], stream=sys.stderr if cfg.json_output else None)

    run_ctx = RunContext(config=cfg)
    exit_code = run_with_recovery(run_ctx)
    data = run_ctx.report_data()

    if cfg.json_output:
        click.echo(json.dumps(build_json(data), indent=2))
    else:
        print_summary(data, console)

    sys.exit(exit_code)


@cli.command('verify-artifact')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
def verify_artifact_command(path):
    """Check a backup artifact against its .sha256 file."""
    try:
        matches, recorded, actual = verify_artifact(path)
    except OSError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(EXIT_RUN_FAILED)

    if matches:
        console.print(f"[green]OK[/green] {path}: {actual}")
        return

    console.print(f"[red]MISMATCH[/red] {path}")
    console.print(f"  recorded: {recorded or '(empty)'}")
    console.print(f"  actual:   {actual}")
    sys.exit(1)


@cli.command()
def kinds():
    """List resource kinds that are verified against AWS."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Resource kind", style="cyan")
    table.add_column("Handling")

    for kind in sorted(DEFAULT_VERIFIERS):
        table.add_row(kind, DEFAULT_VERIFIERS[kind].service)
    table.add_row("aws_region", "region name check")
    for kind in sorted(DEFAULT_LOCAL_KINDS):
        table.add_row(kind, "[dim]local, not verified[/dim]")

    console.print(table)


@cli.command()
def version():
    """Show version."""
    console.print(f"tfreconcile {__version__}")


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
