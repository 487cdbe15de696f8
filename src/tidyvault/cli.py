"""Command line interface for tidyvault."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any, NoReturn

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from tidyvault.config import ConfigError, ConfigManager, TidyVaultConfig, resolve_with_precedence
from tidyvault.context import VaultContext
from tidyvault.log_setup import LOG_FILENAME, configure_logging
from tidyvault.ocr import OcrBatchSummary, OcrError, OcrPipeline, OcrResult, request_stop
from tidyvault.organization import (
    MoveExecutor,
    MovePlan,
    MoveResult,
    OrganizerError,
    list_attachment_subfolders,
    plan_folder_move,
    plan_organization,
)
from tidyvault.unlinked import PurgeExecutor, find_unlinked_attachments
from tidyvault.vault import VaultError, VaultFile
from tidyvault.vault.paths import normalize_path
from tidyvault.watch import WatchCycleResult, WatchService

console = Console()


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> NoReturn:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    important_modes = {"summary", "warning", "error"}
    if summary_only and mode not in important_modes:
        return

    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands.

    Args:
        command: Command name to include in the summary.
        root: Vault root relevant to the command.
        metrics: Ordered mapping of metric names to values.

    Returns:
        str: Rich-formatted summary string.
    """

    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _output_modes(
    ctx: click.Context,
    config: TidyVaultConfig,
    *,
    quiet: bool,
    summary_mode: bool,
    json_output: bool = False,
) -> tuple[bool, bool]:
    """Resolve quiet/summary flags against configured CLI defaults.

    Returns:
        tuple[bool, bool]: Effective ``(quiet, summary_only)`` flags.

    Raises:
        click.ClickException: If incompatible output modes are requested.
    """

    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        return False, False

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _parse_overrides(values: tuple[str, ...]) -> dict[str, Any]:
    """Parse ``KEY=VALUE`` pairs into dotted-key overrides with YAML values."""
    overrides: dict[str, Any] = {}
    for item in values:
        key, separator, raw = item.partition("=")
        key = key.strip()
        if not separator or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got {item!r}.", param_hint="--set")
        try:
            overrides[key] = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise click.BadParameter(f"Unable to parse value for {key}: {exc}") from exc
    return overrides


def _open_context(ctx: click.Context, *, json_output: bool) -> VaultContext:
    """Build the vault context and configure logging for a command."""
    options = ctx.find_root().obj or {}
    root = Path(options.get("vault") or ".")
    try:
        context = VaultContext.open(root, cli_overrides=options.get("overrides"))
    except VaultError as exc:
        _handle_cli_error(str(exc), code="vault_error", json_output=json_output, original=exc)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    configure_logging(context.config.logging, context.state_dir)
    return context


def _config_manager(ctx: click.Context) -> ConfigManager:
    options = ctx.find_root().obj or {}
    root = Path(options.get("vault") or ".").expanduser()
    if not root.is_dir():
        raise click.ClickException(f"Vault root is not a directory: {root}")
    return ConfigManager(root.resolve())


def _plan_table(plan: MovePlan, *, title: str) -> Table:
    table = Table(title=title)
    table.add_column("From", overflow="fold")
    table.add_column("To", overflow="fold")
    table.add_column("Conflict", justify="center")
    for move in plan.moves:
        table.add_row(move.source, move.destination, "yes" if move.conflict_applied else "")
    return table


def _files_table(files: list[VaultFile], *, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Path", overflow="fold")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    for file in files:
        table.add_row(file.path, str(file.size), file.modified_at.strftime("%Y-%m-%d %H:%M"))
    return table


def _emit_move_failures(
    context: VaultContext,
    result: MoveResult,
    *,
    quiet: bool,
    summary_only: bool,
) -> None:
    if not result.failures:
        return
    _emit_message(
        f"[red]{result.errors} move(s) failed; details in {context.state_dir / LOG_FILENAME}.[/red]",
        mode="error",
        quiet=quiet,
        summary_only=summary_only,
    )
    for failure in result.failures:
        _emit_message(
            f"  - {failure.source}: {failure.message}",
            mode="error",
            quiet=quiet,
            summary_only=summary_only,
        )


def _emit_ocr_summary(
    context: VaultContext,
    summary: OcrBatchSummary,
    *,
    json_output: bool,
    quiet: bool,
    summary_only: bool,
) -> None:
    if json_output:
        console.print_json(data=summary.model_dump(mode="json"))
        return

    for result in summary.results:
        _emit_message(
            _format_ocr_result(result),
            mode="error" if result.status == "failed" else "detail",
            quiet=quiet,
            summary_only=summary_only,
        )
    if summary.cancelled:
        _emit_message(
            "[yellow]OCR was stopped before all files were processed.[/yellow]",
            mode="warning",
            quiet=quiet,
            summary_only=summary_only,
        )
    _emit_message(
        _format_summary_line(
            "OCR",
            context.vault.root,
            {
                "written": summary.count("written"),
                "skipped": summary.count("skipped"),
                "failed": summary.count("failed"),
                "cancelled": summary.count("cancelled"),
            },
        ),
        mode="summary",
        quiet=quiet,
        summary_only=summary_only,
    )


def _format_ocr_result(result: OcrResult) -> str:
    if result.status == "written":
        return f"[green]Transcribed {result.source} -> {result.output}[/green]"
    if result.status == "failed":
        return f"[red]Failed {result.source}: {result.message}[/red]"
    return f"[yellow]{result.status.capitalize()} {result.source}: {result.message}[/yellow]"


def _ocr_pipeline(context: VaultContext, *, json_output: bool) -> OcrPipeline:
    """Return a pipeline with an initialized client, surfacing missing credentials."""
    pipeline = OcrPipeline(
        context.vault,
        context.config.ocr,
        state_dir=context.state_dir,
        in_flight=context.processing,
    )
    try:
        pipeline.client
    except OcrError as exc:
        _handle_cli_error(str(exc), code="ocr_error", json_output=json_output, original=exc)
    return pipeline


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="tidyvault")
@click.option(
    "--vault",
    type=click.Path(file_okay=False, path_type=str),
    default=".",
    show_default=True,
    help="Vault root directory.",
)
@click.option(
    "--set",
    "overrides",
    multiple=True,
    metavar="KEY=VALUE",
    help="Override a configuration value for this invocation (e.g. organizer.organize_mode=date).",
)
@click.pass_context
def cli(ctx: click.Context, vault: str, overrides: tuple[str, ...]) -> None:
    """Keep the attachments of an Obsidian vault organized."""
    ctx.obj = {"vault": vault, "overrides": _parse_overrides(overrides)}


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Apply without confirmation once confirmed before.")
@click.option("--dry-run", is_flag=True, help="Preview moves without modifying files.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the moves.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def organize(
    ctx: click.Context,
    yes: bool,
    dry_run: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Move misplaced attachments into the attachment folder.

    The first run always asks for confirmation, even with ``--yes``.

    Args:
        ctx: Click context used for parameter source inspection.
        yes: Skip the confirmation prompt after the first confirmed run.
        dry_run: If True, skip making filesystem mutations.
        json_output: If True, emit JSON describing planned or applied moves.
        summary_mode: When True, limit output to summary lines and warnings.
        quiet: When True, suppress non-error CLI output entirely.
    """

    context = _open_context(ctx, json_output=json_output)
    try:
        quiet_enabled, summary_only = _output_modes(
            ctx, context.config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        settings = context.organizer_settings()
        plan = plan_organization(context.vault, settings, unlinked=context.config.unlinked)

        if not plan.moves:
            if not dry_run and not context.config.organizer.has_confirmed_first_run:
                context.update({"organizer.has_confirmed_first_run": True})
            if json_output:
                console.print_json(
                    data={"plan": plan.model_dump(mode="json"), "result": MoveResult().model_dump()}
                )
                return
            for note in plan.notes:
                _emit_message(
                    f"[green]{note}[/green]", mode="summary", quiet=quiet_enabled, summary_only=summary_only
                )
            return

        if not json_output:
            _emit_message(
                _plan_table(plan, title="Planned moves"),
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )

        if not dry_run:
            first_run = not context.config.organizer.has_confirmed_first_run
            if first_run or not yes:
                if json_output:
                    _handle_cli_error(
                        "Confirmation required; rerun with --yes"
                        + (" after confirming the first run interactively." if first_run else "."),
                        code="confirmation_required",
                        json_output=True,
                    )
                if not click.confirm(f"Move {len(plan.moves)} attachment(s)?", default=False):
                    _emit_message(
                        "[yellow]Organize cancelled; no files were moved.[/yellow]",
                        mode="warning",
                        quiet=quiet_enabled,
                        summary_only=summary_only,
                    )
                    return
                if first_run:
                    context.update({"organizer.has_confirmed_first_run": True})

        result = MoveExecutor(context.vault).apply(plan, settings.attachment_folder, dry_run=dry_run)

        if json_output:
            console.print_json(
                data={
                    "dry_run": dry_run,
                    "plan": plan.model_dump(mode="json"),
                    "result": result.model_dump(mode="json"),
                }
            )
            return

        _emit_move_failures(context, result, quiet=quiet_enabled, summary_only=summary_only)
        _emit_message(
            _format_summary_line(
                "Organize (dry run)" if dry_run else "Organize",
                context.vault.root,
                {"moved": result.moved, "skipped": result.skipped, "errors": result.errors},
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except click.ClickException as exc:
        _handle_cli_error(str(exc.message), code="cli_error", json_output=json_output, original=exc)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except VaultError as exc:
        _handle_cli_error(str(exc), code="vault_error", json_output=json_output, original=exc)
    finally:
        context.close()


@cli.group()
def unlinked() -> None:
    """Find and purge attachments no document links to."""


@unlinked.command("find")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON listing unlinked attachments.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def unlinked_find(ctx: click.Context, json_output: bool, summary_mode: bool, quiet: bool) -> None:
    """List attachments that no note or canvas references."""
    context = _open_context(ctx, json_output=json_output)
    try:
        quiet_enabled, summary_only = _output_modes(
            ctx, context.config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        files = find_unlinked_attachments(
            context.vault, context.config.organizer, context.config.unlinked
        )
        if json_output:
            console.print_json(data={"unlinked": [file.model_dump(mode="json") for file in files]})
            return
        if files:
            _emit_message(
                _files_table(files, title="Unlinked attachments"),
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        _emit_message(
            _format_summary_line("Unlinked", context.vault.root, {"unlinked": len(files)}),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except click.ClickException as exc:
        _handle_cli_error(str(exc.message), code="cli_error", json_output=json_output, original=exc)
    finally:
        context.close()


@unlinked.command("purge")
@click.option("--yes", "-y", is_flag=True, help="Delete without asking for confirmation.")
@click.option("--no-cascade", is_flag=True, help="Keep folders left empty by the purge.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the purge.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def unlinked_purge(
    ctx: click.Context,
    yes: bool,
    no_cascade: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Delete unlinked attachments and, by default, the folders they leave empty.

    Args:
        ctx: Click context used for parameter source inspection.
        yes: Skip the confirmation prompt.
        no_cascade: Keep emptied folders.
        json_output: If True, emit JSON describing the purge.
        summary_mode: When True, limit output to summary lines and warnings.
        quiet: When True, suppress non-error CLI output entirely.
    """

    context = _open_context(ctx, json_output=json_output)
    try:
        quiet_enabled, summary_only = _output_modes(
            ctx, context.config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        settings = context.config.unlinked
        files = find_unlinked_attachments(context.vault, context.config.organizer, settings)
        if not files:
            if json_output:
                console.print_json(data={"deleted": 0, "errors": 0, "deleted_folders": []})
                return
            _emit_message(
                "[green]No unlinked attachments found.[/green]",
                mode="summary",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
            return

        if not json_output:
            _emit_message(
                _files_table(files, title="Attachments to delete"),
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        if not yes:
            if json_output:
                _handle_cli_error(
                    "Confirmation required; rerun with --yes.",
                    code="confirmation_required",
                    json_output=True,
                )
            target = "trash" if settings.use_trash else "permanent deletion"
            if not click.confirm(f"Send {len(files)} attachment(s) to {target}?", default=False):
                _emit_message(
                    "[yellow]Purge cancelled; no files were deleted.[/yellow]",
                    mode="warning",
                    quiet=quiet_enabled,
                    summary_only=summary_only,
                )
                return

        cascade = settings.delete_empty_folders and not no_cascade
        result = PurgeExecutor(context.vault, use_trash=settings.use_trash).purge(files, cascade=cascade)

        if json_output:
            console.print_json(data=result.model_dump(mode="json"))
            return

        for failure in result.failures:
            _emit_message(
                f"[red]Failed to delete {failure.path}: {failure.message}[/red]",
                mode="error",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        _emit_message(
            _format_summary_line(
                "Purge",
                context.vault.root,
                {
                    "deleted": result.deleted,
                    "errors": result.errors,
                    "folders_removed": len(result.deleted_folders),
                },
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except click.ClickException as exc:
        _handle_cli_error(str(exc.message), code="cli_error", json_output=json_output, original=exc)
    finally:
        context.close()


@cli.command()
@click.argument("source")
@click.argument("target")
@click.option("--yes", "-y", is_flag=True, help="Move without asking for confirmation.")
@click.option("--dry-run", is_flag=True, help="Preview moves without modifying files.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the moves.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def move(
    ctx: click.Context,
    source: str,
    target: str,
    yes: bool,
    dry_run: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Move every file below vault folder SOURCE into vault folder TARGET."""
    context = _open_context(ctx, json_output=json_output)
    try:
        quiet_enabled, summary_only = _output_modes(
            ctx, context.config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        plan = plan_folder_move(context.vault, source, target)
        if not json_output and plan.moves:
            _emit_message(
                _plan_table(plan, title=f"Moving {source} -> {target}"),
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        if plan.moves and not dry_run and not yes:
            if json_output:
                _handle_cli_error(
                    "Confirmation required; rerun with --yes.",
                    code="confirmation_required",
                    json_output=True,
                )
            if not click.confirm(f"Move {len(plan.moves)} file(s)?", default=False):
                _emit_message(
                    "[yellow]Move cancelled; no files were moved.[/yellow]",
                    mode="warning",
                    quiet=quiet_enabled,
                    summary_only=summary_only,
                )
                return

        result = MoveExecutor(context.vault).apply(plan, normalize_path(target), dry_run=dry_run)
        if json_output:
            console.print_json(
                data={
                    "dry_run": dry_run,
                    "plan": plan.model_dump(mode="json"),
                    "result": result.model_dump(mode="json"),
                }
            )
            return

        _emit_move_failures(context, result, quiet=quiet_enabled, summary_only=summary_only)
        _emit_message(
            _format_summary_line(
                "Move (dry run)" if dry_run else "Move",
                context.vault.root,
                {"moved": result.moved, "skipped": result.skipped, "errors": result.errors},
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except OrganizerError as exc:
        _handle_cli_error(str(exc), code="invalid_move", json_output=json_output, original=exc)
    except VaultError as exc:
        _handle_cli_error(str(exc), code="vault_error", json_output=json_output, original=exc)
    except click.ClickException as exc:
        _handle_cli_error(str(exc.message), code="cli_error", json_output=json_output, original=exc)
    finally:
        context.close()


@cli.group()
def subfolders() -> None:
    """Inspect attachment subfolders and exclude them from reorganizing."""


@subfolders.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON listing the subfolders.")
@click.pass_context
def subfolders_list(ctx: click.Context, json_output: bool) -> None:
    """List subfolders of the attachment folder and whether each is ignored."""
    context = _open_context(ctx, json_output=json_output)
    try:
        settings = context.config.organizer
        folders = list_attachment_subfolders(context.vault.get_entries(), settings)
        ignored = set(settings.ignored_attachment_subfolders)
        if json_output:
            console.print_json(
                data={
                    "attachment_folder": settings.attachment_folder,
                    "ignore_all": settings.ignore_all_attachment_subfolders,
                    "subfolders": [
                        {"path": folder, "ignored": folder in ignored} for folder in folders
                    ],
                }
            )
            return
        if not folders:
            console.print(f"[yellow]No subfolders in {settings.attachment_folder}.[/yellow]")
            return
        table = Table(title=f"Subfolders of {settings.attachment_folder}")
        table.add_column("Path", overflow="fold")
        table.add_column("Ignored")
        for folder in folders:
            table.add_row(folder, "yes" if folder in ignored else "")
        console.print(table)
        if settings.ignore_all_attachment_subfolders:
            console.print(
                "[yellow]organizer.ignore_all_attachment_subfolders is enabled; "
                "every subfolder is currently left untouched.[/yellow]"
            )
    finally:
        context.close()


@subfolders.command("ignore")
@click.argument("folder", required=False)
@click.pass_context
def subfolders_ignore(ctx: click.Context, folder: str | None) -> None:
    """Add FOLDER (relative to the attachment folder) to the ignored subfolders.

    Without FOLDER, the subfolders are listed and one is chosen interactively.
    """
    context = _open_context(ctx, json_output=False)
    try:
        folders = list_attachment_subfolders(context.vault.get_entries(), context.config.organizer)
        if folder is None:
            if not folders:
                console.print(
                    f"[yellow]No subfolders in {context.config.organizer.attachment_folder}.[/yellow]"
                )
                return
            table = Table(title="Attachment subfolders")
            table.add_column("#", justify="right")
            table.add_column("Path", overflow="fold")
            for number, option in enumerate(folders, start=1):
                table.add_row(str(number), option)
            console.print(table)
            choice = click.prompt("Ignore which subfolder?", type=click.IntRange(1, len(folders)))
            folder = folders[choice - 1]

        folder = normalize_path(folder)
        if folder not in folders:
            raise click.ClickException(f"No attachment subfolder named {folder!r}.")

        stored = context.manager.load(include_env=False).organizer.ignored_attachment_subfolders
        if folder in stored:
            console.print(f"[green]{folder} is already ignored.[/green]")
            return
        context.update({"organizer.ignored_attachment_subfolders": [*stored, folder]})
        console.print(f"[green]Ignoring attachment subfolder {folder}.[/green]")
    except click.ClickException as exc:
        _handle_cli_error(str(exc.message), code="cli_error", json_output=False, original=exc)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=False, original=exc)
    finally:
        context.close()


@cli.group()
def ocr() -> None:
    """Transcribe attachments into Markdown notes."""


def _run_ocr_batch(
    ctx: click.Context,
    *,
    reprocess: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    context = _open_context(ctx, json_output=json_output)
    try:
        quiet_enabled, summary_only = _output_modes(
            ctx, context.config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        pipeline = _ocr_pipeline(context, json_output=json_output)
        try:
            summary = pipeline.run_watch_folder(reprocess=reprocess)
        except KeyboardInterrupt:
            pipeline.stop()
            raise click.Abort() from None
        finally:
            pipeline.client.close()
        _emit_ocr_summary(
            context, summary, json_output=json_output, quiet=quiet_enabled, summary_only=summary_only
        )
    except click.ClickException as exc:
        _handle_cli_error(str(exc.message), code="cli_error", json_output=json_output, original=exc)
    finally:
        context.close()


@ocr.command("run")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing OCR results.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def ocr_run(ctx: click.Context, json_output: bool, summary_mode: bool, quiet: bool) -> None:
    """Transcribe new files in the OCR watch folder."""
    _run_ocr_batch(ctx, reprocess=False, json_output=json_output, summary_mode=summary_mode, quiet=quiet)


@ocr.command("reprocess")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing OCR results.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def ocr_reprocess(ctx: click.Context, json_output: bool, summary_mode: bool, quiet: bool) -> None:
    """Transcribe every file in the OCR watch folder, overwriting existing notes."""
    _run_ocr_batch(ctx, reprocess=True, json_output=json_output, summary_mode=summary_mode, quiet=quiet)


@ocr.command("file")
@click.argument("path")
@click.option("--force", is_flag=True, help="Overwrite an existing transcription note.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the result.")
@click.pass_context
def ocr_file(ctx: click.Context, path: str, force: bool, json_output: bool) -> None:
    """Transcribe the single vault file at PATH."""
    context = _open_context(ctx, json_output=json_output)
    try:
        pipeline = _ocr_pipeline(context, json_output=json_output)
        try:
            result = pipeline.process_file(path, force=force)
        finally:
            pipeline.client.close()
        _emit_ocr_summary(
            context,
            OcrBatchSummary(results=[result]),
            json_output=json_output,
            quiet=False,
            summary_only=False,
        )
    except (OcrError, VaultError) as exc:
        _handle_cli_error(str(exc), code="ocr_error", json_output=json_output, original=exc)
    finally:
        context.close()


@ocr.command("pick")
@click.option("--force", is_flag=True, help="Overwrite an existing transcription note.")
@click.pass_context
def ocr_pick(ctx: click.Context, force: bool) -> None:
    """Choose one file from the OCR watch folder and transcribe it."""
    context = _open_context(ctx, json_output=False)
    try:
        pipeline = _ocr_pipeline(context, json_output=False)
        candidates = pipeline.list_ocr_candidates()
        if not candidates:
            console.print(
                f"[yellow]No OCR candidates in {context.config.ocr.watch_folder}.[/yellow]"
            )
            return

        table = Table(title="OCR candidates")
        table.add_column("#", justify="right")
        table.add_column("Path", overflow="fold")
        for number, file in enumerate(candidates, start=1):
            table.add_row(str(number), file.path)
        console.print(table)
        choice = click.prompt("Transcribe which file?", type=click.IntRange(1, len(candidates)))
        try:
            result = pipeline.process(candidates[choice - 1], force=force)
        finally:
            pipeline.client.close()
        _emit_ocr_summary(
            context,
            OcrBatchSummary(results=[result]),
            json_output=False,
            quiet=False,
            summary_only=False,
        )
    finally:
        context.close()


@ocr.command("stop")
@click.pass_context
def ocr_stop(ctx: click.Context) -> None:
    """Ask running OCR batches for this vault to stop after the current file."""
    context = _open_context(ctx, json_output=False)
    try:
        sentinel = request_stop(context.state_dir)
        console.print(f"[green]Stop requested ({sentinel}).[/green]")
    finally:
        context.close()


@cli.command()
@click.option("--once", is_flag=True, help="Organize (and OCR when enabled) once and exit.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing each cycle.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def watch(ctx: click.Context, once: bool, json_output: bool, summary_mode: bool, quiet: bool) -> None:
    """Keep the vault organized and transcribe files dropped in the OCR watch folder.

    Args:
        ctx: Click context used for parameter source inspection.
        once: Run a single cycle and exit.
        json_output: If True, emit JSON describing each cycle.
        summary_mode: When True, limit output to summary lines and warnings.
        quiet: When True, suppress non-error CLI output entirely.
    """

    context = _open_context(ctx, json_output=json_output)
    try:
        quiet_enabled, summary_only = _output_modes(
            ctx, context.config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        pipeline = None
        if context.config.ocr.auto_process:
            pipeline = _ocr_pipeline(context, json_output=json_output)
        service = WatchService(context, pipeline=pipeline)

        def _emit(cycle: WatchCycleResult) -> None:
            _emit_watch_cycle(
                context, cycle, json_output=json_output, quiet=quiet_enabled, summary_only=summary_only
            )

        if once:
            _emit(service.process_once())
            return

        _emit_message(
            f"[cyan]Watching {context.vault.root}. Press Ctrl+C to stop.[/cyan]",
            mode="detail",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
        try:
            service.watch(_emit)
        except KeyboardInterrupt:
            _emit_message(
                "[yellow]Watch stopped.[/yellow]",
                mode="warning",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        finally:
            service.stop()
    except click.ClickException as exc:
        _handle_cli_error(str(exc.message), code="cli_error", json_output=json_output, original=exc)
    finally:
        context.close()


def _emit_watch_cycle(
    context: VaultContext,
    cycle: WatchCycleResult,
    *,
    json_output: bool,
    quiet: bool,
    summary_only: bool,
) -> None:
    """Render output for a completed watch cycle."""

    if json_output:
        console.print_json(
            data={
                "trigger": cycle.trigger,
                "triggered_paths": cycle.triggered_paths,
                "plan": cycle.plan.model_dump(mode="json") if cycle.plan else None,
                "moves": cycle.moves.model_dump(mode="json") if cycle.moves else None,
                "ocr": [result.model_dump(mode="json") for result in cycle.ocr],
            }
        )
        return

    metrics: dict[str, Any] = {"trigger": cycle.trigger}
    if cycle.moves is not None:
        _emit_move_failures(context, cycle.moves, quiet=quiet, summary_only=summary_only)
        metrics.update(moved=cycle.moves.moved, skipped=cycle.moves.skipped, errors=cycle.moves.errors)
    for result in cycle.ocr:
        _emit_message(
            _format_ocr_result(result),
            mode="error" if result.status == "failed" else "detail",
            quiet=quiet,
            summary_only=summary_only,
        )
    if cycle.ocr:
        metrics["transcribed"] = sum(1 for result in cycle.ocr if result.status == "written")
    _emit_message(
        _format_summary_line("Watch", context.vault.root, metrics),
        mode="summary",
        quiet=quiet,
        summary_only=summary_only,
    )


@cli.group()
def config() -> None:
    """Manage the vault's tidyvault configuration."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
@click.pass_context
def config_view(ctx: click.Context, no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        ctx: Click context carrying the vault root.
        no_env: If True, ignore environment-derived overrides.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = _config_manager(ctx)
    try:
        manager.ensure_exists()
        config = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(config.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        ctx: Click context carrying the vault root.
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = _config_manager(ctx)
    manager.ensure_exists()

    before = _without_stamp(manager.read_text().splitlines())
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException(
            "KEY must specify a dotted path such as 'organizer.organize_mode'."
        )

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        manager.update({".".join(segments): parsed_value})
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    after = _without_stamp(manager.read_text().splitlines())
    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )

    if not diff:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


def _without_stamp(lines: list[str]) -> list[str]:
    return [line for line in lines if not line.startswith("# Last updated:")]


@config.command("edit")
@click.pass_context
def config_edit(ctx: click.Context) -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid or cannot be saved.
    """
    manager = _config_manager(ctx)
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return

    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=TidyVaultConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point.

    Returns:
        None: This function is invoked for its side effects.
    """
    cli()


if __name__ == "__main__":
    main()
