from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from mapregistry.adapters.payloads import page_to_dict, record_to_dict
from mapregistry.app import build_services, create_mappings
from mapregistry.config import configure_logging
from mapregistry.domain.errors import MappingConflictError, MappingRegistryError
from mapregistry.domain.model import KINDS, PageRequest

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from mapregistry.app import RegistryServices

log = logging.getLogger(__name__)


def _add_kind(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--kind",
        type=str,
        required=True,
        help=f"Entity kind ({', '.join(KINDS)})",
    )


def _add_key_choice(parser: argparse.ArgumentParser) -> None:
    keys = parser.add_mutually_exclusive_group(required=True)
    keys.add_argument("--primary", type=str, help="Replacement-system identifier")
    keys.add_argument(
        "--secondary",
        type=str,
        nargs="+",
        help="Legacy identifier component(s), in key order",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage identifier mappings")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("kinds", help="List the known entity kinds")

    create = subparsers.add_parser("create", help="Create mappings from a JSON file")
    _add_kind(create)
    create.add_argument(
        "--file",
        type=Path,
        required=True,
        help="JSON object, array of objects, or {\"mappings\": [...]} batch",
    )

    get = subparsers.add_parser("get", help="Look up a mapping by either key")
    _add_kind(get)
    _add_key_choice(get)

    delete = subparsers.add_parser("delete", help="Delete a mapping by either key")
    _add_kind(delete)
    _add_key_choice(delete)

    delete_all = subparsers.add_parser("delete-all", help="Delete every mapping of a kind")
    _add_kind(delete_all)
    delete_all.add_argument(
        "--only-migrated",
        action="store_true",
        help="Only delete mappings created by a migration",
    )

    migration = subparsers.add_parser("migration", help="List one page of a migration batch")
    _add_kind(migration)
    migration.add_argument("--label", type=str, required=True, help="Migration batch label")
    migration.add_argument("--page", type=int, default=0, help="Zero-based page number")
    migration.add_argument(
        "--size",
        type=int,
        default=None,
        help="Page size (defaults to config)",
    )

    latest = subparsers.add_parser("latest-migrated", help="Show the newest migrated mapping")
    _add_kind(latest)

    count = subparsers.add_parser(
        "count-by-subject",
        help="Count the subjects in a migration batch",
    )
    _add_kind(count)
    count.add_argument("--label", type=str, required=True, help="Migration batch label")
    count.add_argument(
        "--exact",
        action="store_true",
        help="Count distinct subjects instead of estimating from the average",
    )

    subject = subparsers.add_parser("subject", help="List every mapping for a subject")
    _add_kind(subject)
    subject.add_argument("subject_ref", type=str, help="Subject reference, e.g. A1234BC")

    merge = subparsers.add_parser("merge", help="Move mappings from one subject to another")
    _add_kind(merge)
    merge.add_argument("--from", dest="old_subject", type=str, required=True)
    merge.add_argument("--to", dest="new_subject", type=str, required=True)

    merge_group = subparsers.add_parser(
        "merge-group",
        help="Move one group's mappings (e.g. a booking) to another subject",
    )
    _add_kind(merge_group)
    merge_group.add_argument("--group", type=str, required=True)
    merge_group.add_argument("--to", dest="new_subject", type=str, required=True)

    return parser.parse_args(list(argv))


def _emit(payload: object, *, out: Callable[[str], object] = print) -> None:
    out(json.dumps(payload, indent=2, default=str))


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc


def _run_command(args: argparse.Namespace, services: RegistryServices) -> None:
    kind = services.kind
    command = args.command

    if command == "create":
        outcomes = create_mappings(services, _load_json(args.file))
        _emit({"outcomes": [outcome.value for outcome in outcomes]})
    elif command == "get":
        if args.primary is not None:
            record = services.registry.get_by_primary(args.primary)
        else:
            record = services.registry.get_by_secondary(*args.secondary)
        _emit(record_to_dict(kind, record))
    elif command == "delete":
        if args.primary is not None:
            services.registry.delete_by_primary(args.primary)
        else:
            services.registry.delete_by_secondary(*args.secondary)
    elif command == "delete-all":
        deleted = services.registry.delete_all(only_migrated=args.only_migrated)
        _emit({"deleted": deleted})
    elif command == "migration":
        request = PageRequest(
            page=args.page,
            size=args.size or services.config.default_page_size,
        )
        _emit(page_to_dict(kind, services.migrations.list_page(args.label, request)))
    elif command == "latest-migrated":
        _emit(record_to_dict(kind, services.migrations.latest_migrated()))
    elif command == "count-by-subject":
        if args.exact:
            total = services.migrations.count_grouped_by_subject_exact(args.label)
        else:
            total = services.migrations.count_grouped_by_subject(args.label)
        _emit(total)
    elif command == "subject":
        records = services.registry.get_all_for_subject(args.subject_ref)
        _emit({"mappings": [record_to_dict(kind, record) for record in records]})
    elif command in {"merge", "merge-group"}:
        if services.merges is None:
            raise ValueError(f"{kind.name} mappings cannot be merged")
        if command == "merge":
            count = services.merges.merge_by_subject(args.old_subject, args.new_subject)
            _emit({"count": count})
        else:
            moved = services.merges.merge_by_group(args.group, args.new_subject)
            _emit({"mappings": [record_to_dict(kind, record) for record in moved]})
    else:
        raise ValueError(f"Unsupported command: {command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "kinds":
            _emit(sorted(KINDS))
            return
        services = build_services(parsed_args.kind)
        _run_command(parsed_args, services)
    except MappingConflictError as exc:
        log.warning("Mapping conflict: %s", exc)
        _emit(exc.to_dict(), out=lambda text: print(text, file=sys.stderr))
        sys.exit(1)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)
    except MappingRegistryError as exc:
        log.error("%s", exc)
        sys.exit(1)
    except Exception:
        log.exception("Fatal error while handling mappings")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
