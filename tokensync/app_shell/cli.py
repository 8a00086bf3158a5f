import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from tokensync.components.filestructure import InitializeInput, run_initialize
from tokensync.components.recovery import (
    BackupConfig,
    BackupManager,
    RecoveryInput,
    run_recovery,
)
from tokensync.components.transform import (
    ConsolidateInput,
    SplitInput,
    run_consolidate,
    run_split,
)
from tokensync.components.validation import (
    RoundTripInput,
    run_report,
    run_validate_references,
    run_validate_roundtrip,
    run_validate_structure,
    run_validate_themes,
)
from tokensync.domain.issues import ValidationIssue
from tokensync.domain.policy import SetClassificationPolicy
from tokensync.rules.loader import default_rules_path, find_project_root, load_rules_or_default
from tokensync.rules.models import TokenSyncRules

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")


@dataclass(frozen=True)
class CliContext:
    rules: TokenSyncRules
    root: Path
    backups: BackupManager
    policy: SetClassificationPolicy

    @classmethod
    def create(cls, rules: TokenSyncRules, root: Path) -> "CliContext":
        backups = BackupManager(
            BackupConfig(
                backup_dir=root / rules.paths.backup_dir,
                max_backups_per_operation=rules.backups.max_backups_per_operation,
            )
        )
        policy = SetClassificationPolicy.from_rules(rules.classification)
        return cls(rules=rules, root=root, backups=backups, policy=policy)

    def tokens_dir(self, override: str | None) -> Path:
        return Path(override) if override else self.root / self.rules.paths.tokens_dir

    def source_path(self, override: str | None) -> Path:
        return Path(override) if override else self.root / self.rules.paths.source_document


def get_context(config: str | None) -> CliContext:
    rules_path = Path(config) if config else default_rules_path()
    if config and not rules_path.exists():
        logger.error(f"Config file {rules_path} not found.")
        sys.exit(1)
    try:
        rules = load_rules_or_default(rules_path)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Could not load configuration: {e}")
        sys.exit(1)
    logging.getLogger().setLevel(rules.logging.level)
    root = rules_path.parent if rules_path.exists() else find_project_root()
    return CliContext.create(rules, root)


def print_messages(errors: tuple[str, ...], warnings: tuple[str, ...]) -> None:
    for warning in warnings:
        print(f"  warning: {warning}")
    for error in errors:
        print(f"  error: {error}")


def print_suggestions(suggestions: tuple[str, ...]) -> None:
    if suggestions:
        print("Suggestions:")
        for suggestion in suggestions:
            print(f"  - {suggestion}")


def print_issues(title: str, is_valid: bool, issues: tuple[ValidationIssue, ...]) -> None:
    print(f"{title}: {'OK' if is_valid else 'FAILED'}")
    for issue in issues:
        location = ":".join(part for part in (issue.file, issue.path) if part)
        print(f"  [{issue.severity}] {issue.type} {location} {issue.message}")
        if issue.suggestion:
            print(f"      {issue.suggestion}")


def handle_init(ctx: CliContext, args: argparse.Namespace) -> None:
    result = run_initialize(InitializeInput(tokens_dir=ctx.tokens_dir(args.tokens_dir)))
    if not result.success:
        print_messages(result.errors, ())
        sys.exit(1)
    for name in result.created_files:
        print(f"Created {name}")
    for name in result.existing_files:
        print(f"Kept existing {name}")


def handle_split(ctx: CliContext, args: argparse.Namespace) -> None:
    source = ctx.source_path(args.source)
    tokens_dir = ctx.tokens_dir(args.tokens_dir)
    print(f"Splitting {source} into {tokens_dir}...")
    result = run_split(
        SplitInput(source_path=source, output_dir=tokens_dir, clean=args.clean),
        policy=ctx.policy,
        backups=ctx.backups,
    )
    print_messages(result.errors, result.warnings)
    if not result.success:
        print_suggestions(result.suggestions)
        sys.exit(1)
    print(f"Wrote {len(result.files)} files ({result.mode})")
    if result.backup_id:
        print(f"Previous files backed up as {result.backup_id}")


def handle_consolidate(ctx: CliContext, args: argparse.Namespace) -> None:
    tokens_dir = ctx.tokens_dir(args.tokens_dir)
    output = ctx.source_path(args.output)
    layout = args.layout or ctx.rules.consolidate.layout
    print(f"Consolidating {tokens_dir} into {output} ({layout})...")
    result = run_consolidate(
        ConsolidateInput(tokens_dir=tokens_dir, output_path=output, layout=layout),
        backups=ctx.backups,
    )
    print_messages(result.errors, result.warnings)
    if not result.success:
        print_suggestions(result.suggestions)
        sys.exit(1)
    print(f"Wrote {result.tokens_count} tokens")
    if result.backup_id:
        print(f"Previous document backed up as {result.backup_id}")


def handle_validate(ctx: CliContext, args: argparse.Namespace) -> None:
    tokens_dir = ctx.tokens_dir(args.tokens_dir)
    validation = ctx.rules.validation
    valid = True

    if args.check == "structure":
        structure = run_validate_structure(tokens_dir)
        print_issues("Structure", structure.is_valid, structure.issues)
        valid = structure.is_valid
    elif args.check == "references":
        references = run_validate_references(
            tokens_dir,
            suggestion_limit=validation.suggestion_limit,
            suggestion_cutoff=validation.suggestion_cutoff,
        )
        print_issues("References", references.is_valid, references.issues)
        print(f"Checked {references.total_references} references")
        valid = references.is_valid
    elif args.check == "themes":
        themes = run_validate_themes(tokens_dir)
        print_issues("Themes", themes.is_valid, themes.issues)
        valid = themes.is_valid
    elif args.check == "roundtrip":
        roundtrip = run_validate_roundtrip(
            RoundTripInput(
                source_path=ctx.source_path(args.source),
                tokens_dir=tokens_dir,
                direction=args.direction,
            ),
            policy=ctx.policy,
        )
        print_issues(f"Round trip ({roundtrip.layout})", roundtrip.is_valid, roundtrip.issues)
        valid = roundtrip.is_valid
    else:
        source = ctx.source_path(args.source)
        report = run_report(
            tokens_dir,
            source_path=source if source.exists() else None,
            suggestion_limit=validation.suggestion_limit,
            suggestion_cutoff=validation.suggestion_cutoff,
            policy=ctx.policy,
        )
        print_issues("Structure", report.structure.is_valid, report.structure.issues)
        print_issues("References", report.references.is_valid, report.references.issues)
        print_issues("Themes", report.themes.is_valid, report.themes.issues)
        if report.roundtrip is not None:
            print_issues("Round trip", report.roundtrip.is_valid, report.roundtrip.issues)
        print(f"Total issues: {report.total_issues} ({report.critical_issues} errors)")
        print_suggestions(report.recommendations)
        valid = report.is_valid

    if not valid:
        sys.exit(1)


def handle_backup(ctx: CliContext, args: argparse.Namespace) -> None:
    if args.backup_command == "create":
        result = ctx.backups.create_backup(args.operation, [Path(p) for p in args.paths])
        print_messages(result.errors, result.warnings)
        if not result.success:
            sys.exit(1)
        print(f"Backup created: {result.backup_id} ({len(result.backed_up_files)} files)")
    elif args.backup_command == "list":
        backups = ctx.backups.list_backups(args.operation)
        if not backups:
            print("No backups found.")
        for info in backups:
            print(f"{info.backup_id}  {info.timestamp}  {info.file_count} files")
    elif args.backup_command == "verify":
        verified = ctx.backups.verify_backup(args.backup_id)
        print_messages(verified.errors, ())
        if not verified.is_valid:
            sys.exit(1)
        print(f"Backup {verified.backup_id} OK ({verified.checked_files} files)")


def handle_rollback(ctx: CliContext, args: argparse.Namespace) -> None:
    result = ctx.backups.rollback(args.backup_id, dry_run=args.dry_run, force=args.force)
    print_messages(result.errors, result.warnings)
    if not result.success:
        sys.exit(1)
    if result.dry_run:
        for target in result.would_restore:
            print(f"Would restore {target}")
        return
    print(f"Restored {len(result.restored_files)} files from {result.backup_id}")
    if result.pre_rollback_backup_id:
        print(f"Previous state saved as {result.pre_rollback_backup_id}")


def handle_recover(ctx: CliContext, args: argparse.Namespace) -> None:
    tokens_dir = ctx.tokens_dir(args.tokens_dir)
    validation = ctx.rules.validation
    structure = run_validate_structure(tokens_dir)
    references = run_validate_references(
        tokens_dir,
        suggestion_limit=validation.suggestion_limit,
        suggestion_cutoff=validation.suggestion_cutoff,
    )
    # Both checks parse every set file; identical issues are repaired once
    issues = tuple(dict.fromkeys(structure.issues + references.issues))
    result = run_recovery(
        RecoveryInput(
            issues=issues,
            tokens_dir=tokens_dir,
            auto_fix=args.auto_fix,
            backup_first=not args.no_backup,
            suggestion_limit=validation.suggestion_limit,
            suggestion_cutoff=validation.suggestion_cutoff,
        ),
        backups=ctx.backups,
    )
    for action in result.actions:
        print(f"{'Applied' if action.applied else 'Would apply'}: {action.action}")
    for suggestion in result.suggestions:
        candidates = ", ".join(suggestion.candidates) or "no close matches"
        print(f"{suggestion.file}:{suggestion.path} {suggestion.reference} -> {candidates}")
    print_messages(result.errors, result.warnings)
    if not result.success:
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Design token split/consolidate toolkit")
    parser.add_argument("--config", help="Path to tokensync.yaml")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # init
    init_parser = subparsers.add_parser("init", help="Create a token directory")
    init_parser.add_argument("--tokens-dir", help="Token directory")

    # split
    split_parser = subparsers.add_parser("split", help="Split the consolidated document")
    split_parser.add_argument("--source", help="Consolidated document")
    split_parser.add_argument("--tokens-dir", help="Output token directory")
    split_parser.add_argument(
        "--clean", action="store_true", help="Remove existing token files first"
    )

    # consolidate
    consolidate_parser = subparsers.add_parser(
        "consolidate", help="Merge the token directory into one document"
    )
    consolidate_parser.add_argument("--tokens-dir", help="Token directory")
    consolidate_parser.add_argument("--output", help="Consolidated document to write")
    consolidate_parser.add_argument("--layout", choices=["merged", "sets"])

    # validate
    validate_parser = subparsers.add_parser("validate", help="Validate the token directory")
    validate_parser.add_argument(
        "check",
        nargs="?",
        default="all",
        choices=["all", "structure", "references", "themes", "roundtrip"],
    )
    validate_parser.add_argument("--tokens-dir", help="Token directory")
    validate_parser.add_argument("--source", help="Consolidated document")
    validate_parser.add_argument("--direction", choices=["split", "consolidate"], default="split")

    # backup
    backup_parser = subparsers.add_parser("backup", help="Manage backups")
    backup_sub = backup_parser.add_subparsers(dest="backup_command", required=True)
    create_parser = backup_sub.add_parser("create", help="Back up files or directories")
    create_parser.add_argument("paths", nargs="+")
    create_parser.add_argument("--operation", default="manual")
    list_parser = backup_sub.add_parser("list", help="List backups, newest first")
    list_parser.add_argument("--operation")
    verify_parser = backup_sub.add_parser("verify", help="Check a backup's checksums")
    verify_parser.add_argument("backup_id")

    # rollback
    rollback_parser = subparsers.add_parser("rollback", help="Restore a backup")
    rollback_parser.add_argument("backup_id")
    rollback_parser.add_argument("--dry-run", action="store_true")
    rollback_parser.add_argument("--force", action="store_true")

    # recover
    recover_parser = subparsers.add_parser("recover", help="Repair common defects")
    recover_parser.add_argument("--tokens-dir", help="Token directory")
    recover_parser.add_argument("--auto-fix", action="store_true", help="Apply repairs")
    recover_parser.add_argument("--no-backup", action="store_true")

    return parser


HANDLERS = {
    "init": handle_init,
    "split": handle_split,
    "consolidate": handle_consolidate,
    "validate": handle_validate,
    "backup": handle_backup,
    "rollback": handle_rollback,
    "recover": handle_recover,
}


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    ctx = get_context(args.config)
    HANDLERS[args.command](ctx, args)


if __name__ == "__main__":
    main()
