"""Command line interface for the Sortora project."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from sortora.cli_support import (
    Runtime,
    build_runtime,
    configure_logging,
    display_path,
    execution_payload,
    operation_payload,
    skipped_payload,
    suggestion_payload,
    undo_payload,
)
from sortora.config import ConfigError, ConfigManager, SortoraConfig, resolve_with_precedence
from sortora.ingestion import DirectoryScanner, analyze_all
from sortora.learning import FeedbackType, SuggestedRule
from sortora.organization import ExecutionState, Suggestion, SuggestionMode, SuggestOptions
from sortora.rules import (
    Rule,
    load_rules_file,
    merge_rules,
    parse_rules,
    rule_to_dict,
    validate_rules,
)
from sortora.state import Operation, StateError

console = Console()


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
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


def _handle_command_failure(exc: Exception, *, json_output: bool) -> None:
    """Map an exception raised inside a command body onto a CLI error."""
    if isinstance(exc, click.Abort):
        raise exc
    if isinstance(exc, ConfigError):
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    elif isinstance(exc, StateError):
        _handle_cli_error(str(exc), code="state_error", json_output=json_output, original=exc)
    elif isinstance(exc, click.ClickException):
        _handle_cli_error(
            exc.format_message(), code="cli_error", json_output=json_output, original=exc
        )
    else:
        _handle_cli_error(
            f"Unexpected error: {exc}",
            code="internal_error",
            json_output=json_output,
            details={"exception": type(exc).__name__},
            original=exc,
        )


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
        root: Target root path relevant to the command.
        metrics: Ordered mapping of metric names to values.

    Returns:
        str: Rich-formatted summary string.
    """

    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _resolve_output_modes(
    ctx: click.Context,
    config: SortoraConfig,
    *,
    quiet: bool,
    summary_mode: bool,
    json_output: bool,
) -> tuple[bool, bool]:
    """Combine CLI flags with configured defaults into (quiet, summary_only).

    Raises:
        click.ClickException: If the requested modes conflict.
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


def _load_config(*, quiet: bool = False) -> tuple[ConfigManager, SortoraConfig]:
    manager = ConfigManager()
    config = manager.load()
    configure_logging(config.logging, quiet=quiet)
    return manager, config


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a nested value within a dictionary for a dotted path.

    Args:
        target: Mapping to mutate in-place.
        path: Sequence of keys representing the nested location.
        value: Value to assign at the nested location.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """

    node = target
    for segment in path[:-1]:
        existing = node.get(segment)
        if existing is None:
            existing = {}
            node[segment] = existing
        elif not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = existing
    node[path[-1]] = value


def _describe_match(rule: Rule) -> str:
    return ", ".join(f"{predicate.key}={predicate.value}" for predicate in rule.match.predicates())


def _format_operation(operation: Operation) -> str:
    destination = f" -> {operation.destination}" if operation.destination else ""
    status = " (undone)" if operation.undone_at else ""
    return (
        f"[{operation.created_at.isoformat()}] #{operation.id} {operation.type.value.upper()} "
        f"{operation.source}{destination}{status}"
    )


def _prompt_for(suggestion: Suggestion, root: Path) -> bool:
    target = "trash" if suggestion.is_deletion else display_path(suggestion.destination, root)
    question = (
        f"{suggestion.action.value.capitalize()} {display_path(suggestion.file.path, root)} "
        f"-> {target} ({suggestion.confidence:.0%}, rule '{suggestion.rule_name}')?"
    )
    return click.confirm(question, default=False)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="sortora")
def cli() -> None:
    """Sortora organizes your files with rules that learn from what you do."""


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=str))
@click.option("-r", "--recursive", is_flag=True, help="Include all subdirectories.")
@click.option(
    "--global",
    "use_global",
    is_flag=True,
    help="Resolve destinations from the global destination table instead of PATH.",
)
@click.option("--dry-run", is_flag=True, help="Preview suggestions without modifying files.")
@click.option("-y", "--yes", is_flag=True, help="Apply every suggestion without prompting.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the batch.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def organize(
    ctx: click.Context,
    path: str,
    recursive: bool,
    use_global: bool,
    dry_run: bool,
    yes: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Suggest destinations for files in PATH and apply the accepted ones."""

    try:
        _, config = _load_config(quiet=quiet)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )

        root = Path(path).expanduser().resolve()
        runtime = build_runtime(config)
        scanner = DirectoryScanner(recursive=recursive)
        read_text = any(
            rule.enabled and rule.match.content_contains for rule in runtime.suggester.rules
        )
        files = list(analyze_all(scanner.scan(root), read_text=read_text))
        options = SuggestOptions(
            base_dir=root, use_global_destinations=True if use_global else None
        )
        batch = runtime.suggester.plan(files, options)

        auto_mode = config.organization.mode == "auto"
        accepted: list[Suggestion] = []
        statuses: dict[Path, str] = {}
        for suggestion in batch.suggestions:
            source = suggestion.file.path
            if dry_run:
                statuses[source] = "planned"
            elif yes or (auto_mode and suggestion.mode is SuggestionMode.AUTO):
                accepted.append(suggestion)
            elif json_output:
                runtime.feedback.record(suggestion, FeedbackType.SKIP)
                statuses[source] = "pending"
            elif _prompt_for(suggestion, root):
                accepted.append(suggestion)
            else:
                runtime.feedback.record(suggestion, FeedbackType.REJECT)
                statuses[source] = "rejected"

        report = runtime.executor.execute_many(accepted)
        results_by_source = {result.suggestion.file.path: result for result in report.results}
        for result in report.results:
            if result.operation is not None:
                runtime.feedback.record(
                    result.suggestion, FeedbackType.ACCEPT, operation=result.operation
                )
                statuses[result.suggestion.file.path] = "done"
            elif result.state is ExecutionState.FAILED and result.error is not None:
                statuses[result.suggestion.file.path] = f"failed ({result.error.reason})"

        metrics = {
            "files": len(files),
            "suggestions": len(batch.suggestions),
            "applied": report.summary.succeeded,
            "failed": report.summary.failed,
            "declined": sum(1 for value in statuses.values() if value in {"rejected", "pending"}),
            "unmatched": len(batch.skipped),
        }
        if dry_run:
            metrics["dry_run"] = True

        if json_output:
            entries = []
            for suggestion in batch.suggestions:
                entry = suggestion_payload(suggestion)
                entry["status"] = statuses.get(suggestion.file.path, "pending")
                result = results_by_source.get(suggestion.file.path)
                if result is not None:
                    entry["result"] = execution_payload(result)
                entries.append(entry)
            console.print_json(
                data={
                    "root": str(root),
                    "dry_run": dry_run,
                    "suggestions": entries,
                    "skipped": [skipped_payload(item) for item in batch.skipped],
                    "summary": metrics,
                }
            )
            return

        if batch.suggestions:
            table = Table(title=f"Suggestions for {root}")
            table.add_column("File", overflow="fold")
            table.add_column("Action")
            table.add_column("Destination", overflow="fold")
            table.add_column("Rule")
            table.add_column("Confidence", justify="right")
            table.add_column("Status")
            for suggestion in batch.suggestions:
                table.add_row(
                    display_path(suggestion.file.path, root),
                    suggestion.action.value,
                    "trash" if suggestion.is_deletion else display_path(suggestion.destination),
                    suggestion.rule_name,
                    f"{suggestion.confidence:.0%}",
                    statuses.get(suggestion.file.path, "pending"),
                )
            _emit_message(table, mode="detail", quiet=quiet_enabled, summary_only=summary_only)
        else:
            _emit_message(
                "[yellow]No suggestions for the scanned files.[/yellow]",
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )

        for failure in report.failures:
            _emit_message(
                f"[red]Failed to {failure.suggestion.action.value} "
                f"{failure.suggestion.file.path}: {failure.error}[/red]",
                mode="warning",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )

        _emit_message(
            _format_summary_line("Organize", root, metrics),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except Exception as exc:
        _handle_command_failure(exc, json_output=json_output)


@cli.command()
@click.option(
    "-n",
    "--count",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Number of recent operations to undo.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing undo results.")
def undo(count: int, json_output: bool) -> None:
    """Undo the most recent operations that are still active."""

    try:
        _, config = _load_config()
        runtime = build_runtime(config)
        results = runtime.undo.undo_last(count)
        succeeded = sum(1 for result in results if result.success)
        metrics = {"requested": count, "undone": succeeded, "failed": len(results) - succeeded}

        if json_output:
            console.print_json(
                data={"results": [undo_payload(result) for result in results], "summary": metrics}
            )
            return

        if not results:
            console.print("[yellow]Nothing to undo.[/yellow]")
            return

        for result in results:
            operation = result.operation
            label = "-"
            if operation is not None:
                label = f"#{operation.id} {operation.type.value} {operation.source}"
            if result.success:
                console.print(f"[green]Undid {label}[/green]")
            else:
                reason = result.failure.value if result.failure else "unknown"
                console.print(f"[red]Could not undo {label}: {reason} ({result.message})[/red]")
        console.print(_format_summary_line("Undo", config.storage.database_path, metrics))
    except Exception as exc:
        _handle_command_failure(exc, json_output=json_output)


@cli.command()
@click.option("--limit", type=click.IntRange(min=1), help="Number of operations to show.")
@click.option("--json", "json_output", is_flag=True, help="Emit the operation log as JSON.")
def history(limit: int | None, json_output: bool) -> None:
    """Show the operation log, newest first."""

    try:
        _, config = _load_config()
        runtime = build_runtime(config)
        operations = runtime.repository.query_recent_operations(limit or config.cli.history_limit)

        if json_output:
            console.print_json(data={"operations": [operation_payload(op) for op in operations]})
            return

        if not operations:
            console.print("[yellow]No operations recorded yet.[/yellow]")
            return
        for operation in operations:
            console.print(_format_operation(operation), highlight=False, markup=False)
    except Exception as exc:
        _handle_command_failure(exc, json_output=json_output)


@cli.group()
def rules() -> None:
    """Inspect and validate organization rules."""


@rules.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit the active rules as JSON.")
def rules_list(json_output: bool) -> None:
    """List the active rules in evaluation order."""

    try:
        _, config = _load_config()
        runtime = build_runtime(config)
        active = runtime.context.rules

        if json_output:
            console.print_json(
                data={
                    "rules": [
                        {**rule_to_dict(rule), "origin": rule.origin, "priority": rule.priority}
                        for rule in active
                    ]
                }
            )
            return

        table = Table(title="Active rules")
        table.add_column("Priority", justify="right")
        table.add_column("Name")
        table.add_column("Origin")
        table.add_column("Action")
        table.add_column("Conditions", overflow="fold")
        for rule in active:
            name = rule.name if rule.enabled else f"{rule.name} (disabled)"
            table.add_row(
                str(rule.priority),
                name,
                rule.origin,
                f"{rule.action.kind.value} {rule.action.template or ''}".strip(),
                _describe_match(rule),
            )
        console.print(table)
    except Exception as exc:
        _handle_command_failure(exc, json_output=json_output)


@rules.command("validate")
@click.argument("file", required=False, type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option("--overlaps", is_flag=True, help="Also report rules sharing extensions or filenames.")
@click.option("--json", "json_output", is_flag=True, help="Emit validation issues as JSON.")
def rules_validate(file: str | None, overlaps: bool, json_output: bool) -> None:
    """Validate FILE, or the configured rules when FILE is omitted."""

    try:
        if file:
            configure_logging(SortoraConfig().logging)
            candidates = load_rules_file(Path(file))
            source = file
        else:
            manager, config = _load_config()
            candidates = config.rules
            source = str(manager.config_path)

        issues = validate_rules(candidates, check_overlap=overlaps)
        errors = [issue for issue in issues if issue.severity == "error"]

        if json_output:
            console.print_json(
                data={
                    "source": source,
                    "rules": len(candidates),
                    "issues": [
                        {
                            "kind": issue.kind.value,
                            "rule": issue.rule_name,
                            "severity": issue.severity,
                            "message": issue.message,
                        }
                        for issue in issues
                    ],
                }
            )
            if errors:
                raise SystemExit(1)
            return

        for issue in issues:
            colour = "red" if issue.severity == "error" else "yellow"
            console.print(
                f"[{colour}]{issue.severity}: {issue.rule_name}: {issue.message}[/{colour}]"
            )
        metrics = {
            "rules": len(candidates),
            "errors": len(errors),
            "warnings": len(issues) - len(errors),
        }
        console.print(_format_summary_line("Validate", source, metrics))
        if errors:
            raise click.ClickException(f"{len(errors)} rule error(s) found.")
    except SystemExit:
        raise
    except Exception as exc:
        _handle_command_failure(exc, json_output=json_output)


def _save_rules(manager: ConfigManager, updated: list[Rule]) -> None:
    file_data = manager.load_file_overrides()
    file_data["rules"] = [rule_to_dict(rule) for rule in updated]
    resolve_with_precedence(defaults=SortoraConfig(), file_overrides=file_data)
    manager.save(file_data)


def _accept_learned_rule(
    runtime: Runtime,
    manager: ConfigManager,
    suggestion: SuggestedRule,
    merge_into: str | None,
) -> Rule:
    """Store ``suggestion`` in the configuration file and return the stored rule.

    Raises:
        click.ClickException: If the rule is invalid or the merge target is unknown.
    """
    user_rules = parse_rules(manager.load_file_overrides().get("rules") or [])
    if merge_into:
        target = next((rule for rule in runtime.context.rules if rule.name == merge_into), None)
        if target is None:
            raise click.ClickException(f"No rule named '{merge_into}' to merge into.")
        stored = runtime.rule_suggester.merge_with_existing(suggestion, target)
        if stored.origin == "preset":
            stored = stored.model_copy(update={"origin": "user"})
    else:
        validation = runtime.rule_suggester.validate_suggested_rule(suggestion)
        if not validation.valid:
            raise click.ClickException(
                f"Suggested rule '{suggestion.rule.name}' is not valid: "
                + "; ".join(validation.messages)
            )
        stored = runtime.rule_suggester.accept(suggestion)

    _save_rules(manager, merge_rules(user_rules, [stored]))
    return stored


@cli.command()
@click.option(
    "--min-confidence",
    type=click.FloatRange(0.0, 1.0),
    help="Only consider patterns at or above this confidence.",
)
@click.option("--accept", "accept_name", type=str, help="Store the suggested rule with this name.")
@click.option(
    "--merge-into",
    type=str,
    help="Merge the accepted suggestion into an existing rule instead of adding it.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit suggested rules as JSON.")
def learn(
    min_confidence: float | None,
    accept_name: str | None,
    merge_into: str | None,
    json_output: bool,
) -> None:
    """List rules learned from past moves, and optionally accept one."""

    try:
        if merge_into and not accept_name:
            raise click.ClickException("--merge-into requires --accept.")

        manager, config = _load_config()
        runtime = build_runtime(config)
        suggestions = runtime.rule_suggester.suggest_rules(min_confidence)

        if accept_name:
            chosen = next((item for item in suggestions if item.rule.name == accept_name), None)
            if chosen is None:
                raise click.ClickException(f"No suggested rule named '{accept_name}'.")
            stored = _accept_learned_rule(runtime, manager, chosen, merge_into)
            if json_output:
                console.print_json(
                    data={"accepted": rule_to_dict(stored), "merged": bool(merge_into)}
                )
            elif merge_into:
                console.print(f"[green]Merged '{accept_name}' into rule '{stored.name}'.[/green]")
            else:
                console.print(f"[green]Added learned rule '{stored.name}'.[/green]")
            return

        validations = [runtime.rule_suggester.validate_suggested_rule(item) for item in suggestions]
        if json_output:
            console.print_json(
                data={
                    "suggestions": [
                        {
                            "rule": rule_to_dict(item.rule),
                            "confidence": round(item.confidence, 4),
                            "description": item.description,
                            "valid": validation.valid,
                            "issues": validation.messages,
                        }
                        for item, validation in zip(suggestions, validations)
                    ]
                }
            )
            return

        if not suggestions:
            console.print("[yellow]No learned rules to suggest yet.[/yellow]")
            return

        table = Table(title="Suggested rules")
        table.add_column("Name")
        table.add_column("Destination", overflow="fold")
        table.add_column("Conditions", overflow="fold")
        table.add_column("Confidence", justify="right")
        table.add_column("Issues", overflow="fold")
        for item, validation in zip(suggestions, validations):
            table.add_row(
                item.rule.name,
                item.rule.action.template or "",
                _describe_match(item.rule),
                f"{item.confidence:.0%}",
                "; ".join(validation.messages) or "-",
            )
        console.print(table)
    except Exception as exc:
        _handle_command_failure(exc, json_output=json_output)


@cli.group()
def config() -> None:
    """Manage Sortora configuration values."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: If True, ignore environment-derived overrides.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    data = loaded.model_dump(mode="json", by_alias=True, exclude={"rules"})
    data["rules"] = [rule_to_dict(rule) for rule in loaded.rules]
    yaml_text = yaml.safe_dump(data, sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        before = manager.read_text().splitlines()
        file_data = manager.load_file_overrides()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException(
            "KEY must specify a dotted path such as 'organization.auto_threshold'."
        )

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=SortoraConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()

    diff = [
        line
        for line in difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
        if not line.startswith(("-# Last updated", "+# Last updated"))
    ]

    changed = [line for line in diff if not line.startswith(("+++", "---"))]
    if not any(line.startswith(("+", "-")) for line in changed):
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
