"""The reconciliation run, phase by phase, and its top-level recovery handler."""

import time
from typing import Optional

from tfreconcile.commands.runner import CommandRunner
from tfreconcile.engine.aggregator import aggregate
from tfreconcile.engine.classifier import DEFAULT_LOCAL_KINDS
from tfreconcile.engine.context import RunContext
from tfreconcile.engine.dispatcher import dispatch_items
from tfreconcile.integrity.manager import (
    ArtifactMirror,
    ArtifactRole,
    IntegrityManager,
    should_publish,
)
from tfreconcile.inventory.defaults import build_default_registry
from tfreconcile.report.renderer import ArtifactRef, render_json, render_text
from tfreconcile.state.decoder import decode_snapshot
from tfreconcile.state.enumerator import enumerate_work_items
from tfreconcile.state.source import open_state_source
from tfreconcile.utils.aws_client import AWSClientManager
from tfreconcile.utils.errors import ReconcileError, error_handler
from tfreconcile.utils.logging import get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_COMMANDS_FAILED = 1
EXIT_RUN_FAILED = 2


class ReconciliationRun:
    """Runs the phases of one reconciliation in order.

    decode -> enumerate -> backup original -> verify -> aggregate ->
    (execute commands) -> finalize hashes -> backup new -> publish -> reports

    Decoding and enumeration happen before anything is written, so a state
    file that cannot be decoded leaves no artifacts behind.
    """

    def __init__(self, ctx: RunContext):
        self.ctx = ctx

    def run(self) -> RunContext:
        ctx = self.ctx
        config = ctx.config

        self._open_source()
        data = ctx.source.read_bytes()
        ctx.snapshot = decode_snapshot(data)
        ctx.items = enumerate_work_items(ctx.snapshot)
        logger.info(
            f"Decoded state version {ctx.snapshot.format_version} "
            f"(terraform {ctx.snapshot.tool_version or 'unknown'}), "
            f"{ctx.snapshot.instance_count()} instances"
        )

        ctx.integrity = IntegrityManager(
            config.backups_dir,
            ctx.source.original_name,
            run_timestamp=ctx.run_timestamp,
            mirror=self._mirror(),
        )
        ctx.integrity.backup_original(data)

        registry = self._registry()

        start = time.time()
        results, mismatches = dispatch_items(
            ctx.items,
            registry,
            config.region,
            concurrency=config.concurrency,
            local_kinds=DEFAULT_LOCAL_KINDS | frozenset(config.local_kinds),
        )
        ctx.results = aggregate(results, region_mismatch_count=mismatches)
        logger.info(
            f"Verified {len(ctx.items)} instances in {time.time() - start:.2f}s: "
            + ", ".join(f"{name}={count}" for name, count in ctx.results.counts().items() if count)
        )

        if config.execute_commands:
            self._execute_commands()

        working_path = ctx.source.working_path
        ctx.integrity_report = ctx.integrity.finalize(working_path)
        if ctx.integrity_report.content_changed:
            ctx.integrity.backup_new(working_path)

        mutating = ctx.command_result is not None and ctx.command_result.state_altering_attempted
        if ctx.source.is_remote:
            if should_publish(ctx.integrity_report, mutating, config.publish_on_attempt):
                ctx.source.publish()
                ctx.published = True
            elif mutating:
                logger.info("State content unchanged, not uploading")

        write_reports(ctx)
        return ctx

    def _open_source(self) -> None:
        ctx = self.ctx
        if ctx.source is not None:
            return
        if ctx.config.is_s3_state:
            ctx.source = open_state_source(s3_uri=ctx.config.s3_state, clients=self._clients())
        else:
            ctx.source = open_state_source(state_path=ctx.config.state)

    def _clients(self):
        ctx = self.ctx
        if ctx.clients is None:
            ctx.clients = AWSClientManager(
                profile=ctx.config.profile,
                region=ctx.config.region,
                max_pool_connections=max(ctx.config.concurrency, 10),
            )
        return ctx.clients

    def _registry(self):
        ctx = self.ctx
        if ctx.registry is None:
            kinds = {item.resource_type for item in ctx.items}
            ctx.registry = build_default_registry(self._clients(), kinds=kinds)
        return ctx.registry

    def _mirror(self) -> Optional[ArtifactMirror]:
        config = self.ctx.config
        if not config.mirror_backups:
            return None
        return ArtifactMirror(self._clients().get_client('s3'), config.s3_bucket, config.backup_prefix)

    def _execute_commands(self) -> None:
        ctx = self.ctx
        if not ctx.results.commands:
            logger.info("No remediation commands to execute")
            return
        runner = CommandRunner(
            ctx.source.working_path,
            terraform_dir=ctx.config.terraform_dir,
            timeout=ctx.config.command_timeout,
        )
        ctx.command_result = runner.run(ctx.results.commands)
        ctx.results.attach_command_logs(ctx.command_result.logs)


def write_reports(ctx: RunContext) -> None:
    """Write the text report, then the JSON report that references it.

    The JSON report cannot contain its own checksum; that lives only in its
    .sha256 sibling.
    """
    manager = ctx.integrity
    text = render_text(ctx.report_data())
    manager.write_artifact(ArtifactRole.REPORT, text.encode('utf-8'), '.txt')

    data = ctx.report_data()
    data.json_report = ArtifactRef(path=str(manager.path_for(ArtifactRole.REPORT, '.json')))
    manager.write_artifact(ArtifactRole.REPORT, render_json(data).encode('utf-8'), '.json')


def exit_code_for(ctx: RunContext) -> int:
    if ctx.application_error:
        return EXIT_RUN_FAILED
    if ctx.commands_failed:
        return EXIT_COMMANDS_FAILED
    return EXIT_OK


def run_with_recovery(ctx: RunContext) -> int:
    """Run a reconciliation and convert any failure into an exit code.

    This is the single place run-level errors are handled. When a failure
    happens after the original backup exists, a best-effort report carrying
    the application error is still written.

    Returns:
        0 on success, 1 when remediation commands failed, 2 on run failure
    """
    try:
        ReconciliationRun(ctx).run()
    except ReconcileError as e:
        error_handler.log_error(e)
        ctx.application_error = e.message
        _write_recovery_report(ctx)
    except Exception as e:
        wrapped = error_handler.handle_exception(e)
        error_handler.log_error(wrapped)
        logger.debug("Unexpected failure during reconciliation", exc_info=True)
        ctx.application_error = wrapped.message
        _write_recovery_report(ctx)
    finally:
        if ctx.source is not None:
            ctx.source.cleanup()
    return exit_code_for(ctx)


def _write_recovery_report(ctx: RunContext) -> None:
    if not ctx.has_original_backup:
        return
    try:
        write_reports(ctx)
    except Exception as e:
        # Never mask the original failure
        logger.error(f"Failed to write recovery report: {e}")
