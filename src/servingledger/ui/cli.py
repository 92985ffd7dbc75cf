from __future__ import annotations

import argparse
import logging
import sys
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from signal import SIGINT, signal
from typing import TYPE_CHECKING, NoReturn
from uuid import UUID

from dotenv import load_dotenv

from servingledger.app import add_package, build_services, create_client, with_retries
from servingledger.config import ConfigurationError, configure_logging
from servingledger.domain.assignment import AssignmentOverrides
from servingledger.domain.catalogue import active_packages
from servingledger.domain.errors import (
    IllegalTransitionError,
    InsufficientCreditError,
    NotFoundError,
    RetryableError,
    ValidationError,
)
from servingledger.domain.model import CreditPool, PaymentStatus, SubmissionStatus

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from servingledger.app import LedgerServices
    from servingledger.domain.model import ClientCreditState, Submission

log = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_TEMPFAIL = 75

_CALLER_ERRORS = (
    ValidationError,
    InsufficientCreditError,
    NotFoundError,
    IllegalTransitionError,
    ConfigurationError,
    ValueError,
)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage client credit and submissions")
    subparsers = parser.add_subparsers(dest="command", required=True)

    client = subparsers.add_parser("client", help="Client management commands")
    client_sub = client.add_subparsers(dest="client_command", required=True)
    client_add = client_sub.add_parser("add", help="Create a client")
    client_add.add_argument("--name", type=str, required=True, help="Client display name")

    package = subparsers.add_parser("package", help="Package template commands")
    package_sub = package.add_subparsers(dest="package_command", required=True)
    package_add = package_sub.add_parser("add", help="Store a package template")
    package_add.add_argument("--id", dest="package_id", type=str, required=True)
    package_add.add_argument("--name", type=str, required=True)
    package_add.add_argument(
        "--servings",
        type=int,
        required=True,
        help="Servings granted by the package",
    )
    package_add.add_argument(
        "--images",
        type=int,
        help="Images granted by the package (omit when images are not metered)",
    )
    package_add.add_argument("--price", type=str, help="Package price, e.g. 199.90")
    package_add.add_argument("--description", type=str)
    package_add.add_argument("--max-edits", type=int, help="Maximum edits per serving")
    package_add.add_argument(
        "--inactive",
        action="store_true",
        help="Store the package without offering it for new selections",
    )
    package_list = package_sub.add_parser("list", help="List package templates")
    package_list.add_argument(
        "--all",
        action="store_true",
        help="Include inactive packages",
    )

    assign = subparsers.add_parser("assign", help="Assign a package to a client")
    assign.add_argument("--client", type=str, required=True, help="Client id")
    assign.add_argument(
        "--package",
        type=str,
        help="Package id (omit for a no-package or custom grant)",
    )
    assign.add_argument("--granted", type=int, help="Override granted servings")
    assign.add_argument("--consumed", type=int, help="Override servings consumed at assignment")
    assign.add_argument(
        "--payment",
        type=str,
        choices=[status.value for status in PaymentStatus],
        help="Payment status",
    )
    assign.add_argument("--expires", type=str, help="ISO-8601 expiry timestamp (UTC)")
    assign.add_argument("--notes", type=str)
    assign.add_argument(
        "--preview",
        action="store_true",
        help="Show the resulting credit without writing anything",
    )

    adjust = subparsers.add_parser("adjust", help="Adjust a client's remaining credit")
    adjust.add_argument("--client", type=str, required=True, help="Client id")
    adjust.add_argument(
        "--pool",
        type=str,
        choices=[pool.value for pool in CreditPool],
        default=CreditPool.SERVINGS.value,
    )
    adjust.add_argument("--delta", type=int, required=True, help="Signed change, e.g. -1 or 5")
    adjust.add_argument("--note", type=str)
    adjust.add_argument("--by", dest="created_by", type=str, help="Operator name")

    history = subparsers.add_parser("history", help="Show a client's assignment history")
    history.add_argument("--client", type=str, required=True, help="Client id")

    balance = subparsers.add_parser("balance", help="Show a client's credit balance")
    balance.add_argument("--client", type=str, required=True, help="Client id")

    submission = subparsers.add_parser("submission", help="Submission lifecycle commands")
    submission_sub = submission.add_subparsers(dest="submission_command", required=True)
    create = submission_sub.add_parser("create", help="Create a submission reserving credit")
    create.add_argument("--client", type=str, required=True, help="Client id")
    create.add_argument("--servings", type=int, default=0)
    create.add_argument("--images", type=int, default=0)
    create.add_argument("--item", dest="item_name", type=str)
    create.add_argument(
        "--allow-overdraft",
        action="store_true",
        help="Reserve even when the balance does not cover the request",
    )
    status = submission_sub.add_parser("status", help="Move a submission along the pipeline")
    status.add_argument("--id", dest="submission_id", type=str, required=True)
    status.add_argument(
        "--to",
        dest="target",
        type=str,
        required=True,
        choices=[state.value for state in SubmissionStatus],
    )
    status.add_argument("--note", type=str)
    cancel = submission_sub.add_parser("cancel", help="Cancel a submission")
    cancel.add_argument("--id", dest="submission_id", type=str, required=True)
    cancel.add_argument("--note", type=str)
    delete = submission_sub.add_parser("delete", help="Delete a submission")
    delete.add_argument("--id", dest="submission_id", type=str, required=True)
    edit = submission_sub.add_parser("edit", help="Count an edit on a submission")
    edit.add_argument("--id", dest="submission_id", type=str, required=True)
    submission_list = submission_sub.add_parser("list", help="List a client's submissions")
    submission_list.add_argument("--client", type=str, required=True, help="Client id")

    return parser.parse_args(list(argv))


def _parse_iso_datetime(value: str) -> datetime:
    try:
        normalized = value.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        dt = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise ValueError(f"Invalid ISO timestamp: {value}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _parse_decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value}") from exc


def _log_balance(client_id: UUID, state: ClientCreditState) -> None:
    for pool in CreditPool:
        balance = state.pool(pool)
        log.info(
            f"Client {client_id} {pool}: remaining={balance.remaining} "
            f"reserved={balance.reserved} consumed={balance.consumed} "
            f"granted={balance.granted} overdraft={balance.overdraft}"
        )


def _log_submission(submission: Submission) -> None:
    cancelled = f" cancelled_at={submission.cancelled_at}" if submission.is_cancelled else ""
    log.info(
        f"Submission {submission.id} [{submission.status}] servings={submission.requested_servings} "
        f"images={submission.requested_images} edits={submission.edit_count}{cancelled}"
    )


def _run_assign(args: argparse.Namespace, services: LedgerServices) -> None:
    client_id = _parse_uuid(args.client)
    overrides = AssignmentOverrides(
        granted=args.granted,
        consumed_at_assignment=args.consumed,
        payment_status=PaymentStatus(args.payment) if args.payment else None,
        expires_at=_parse_iso_datetime(args.expires) if args.expires else None,
        notes=args.notes,
    )
    if args.preview:
        preview = services.reconciler.preview(client_id, args.package, overrides)
        if preview.proposal is None:
            for issue in preview.issues:
                log.warning(f"{issue.field}: {issue.message}")
            raise ValidationError(preview.reason or "invalid assignment", preview.issues)
        proposal = preview.proposal
        log.info(
            f"Preview for client {client_id}: granted={proposal.granted} "
            f"consumed={proposal.consumed_at_assignment} remaining={proposal.remaining}"
        )
        return

    result = services.reconciler.assign(client_id, args.package, overrides)
    assignment = result.assignment
    log.info(
        f"Assignment {assignment.id} ({'updated' if result.changed else 'unchanged'}): "
        f"package={assignment.package_template_id} granted={assignment.granted_servings} "
        f"consumed={assignment.consumed_servings_at_assignment} "
        f"remaining={assignment.remaining_servings}"
    )


def _run_submission(args: argparse.Namespace, services: LedgerServices) -> None:
    coordinator = services.coordinator
    command = args.submission_command
    if command == "create":
        submission = coordinator.create(
            _parse_uuid(args.client),
            requested_servings=args.servings,
            requested_images=args.images,
            item_name=args.item_name,
            allow_overdraft=args.allow_overdraft,
        )
        _log_submission(submission)
    elif command == "status":
        submission = coordinator.transition(
            _parse_uuid(args.submission_id),
            SubmissionStatus(args.target),
            note=args.note,
        )
        _log_submission(submission)
    elif command == "cancel":
        _log_submission(coordinator.cancel(_parse_uuid(args.submission_id), note=args.note))
    elif command == "delete":
        coordinator.delete(_parse_uuid(args.submission_id))
    elif command == "edit":
        _log_submission(coordinator.record_edit(_parse_uuid(args.submission_id)))
    elif command == "list":
        for submission in coordinator.list_for_client(_parse_uuid(args.client)):
            _log_submission(submission)
    else:
        raise ValueError(f"Unsupported submission command: {command}")


def _dispatch(args: argparse.Namespace, services: LedgerServices) -> None:
    command = args.command
    if command == "client" and args.client_command == "add":
        client = create_client(services, name=args.name)
        log.info(f"Created client {client.id}")
    elif command == "package" and args.package_command == "add":
        add_package(
            services,
            package_id=args.package_id,
            name=args.name,
            granted_servings=args.servings,
            granted_images=args.images,
            price=_parse_decimal(args.price) if args.price else None,
            description=args.description,
            max_edits_per_serving=args.max_edits,
            active=not args.inactive,
        )
    elif command == "package" and args.package_command == "list":
        packages = services.catalogue.list() if args.all else active_packages(services.catalogue)
        for package in packages:
            images = package.granted_images if package.granted_images is not None else "-"
            log.info(
                f"{package.id}: {package.name} servings={package.granted_servings} "
                f"images={images} price={package.price} active={package.active}"
            )
    elif command == "assign":
        _run_assign(args, services)
    elif command == "adjust":
        services.reconciler.adjust_pool(
            _parse_uuid(args.client),
            CreditPool(args.pool),
            args.delta,
            note=args.note,
            created_by=args.created_by,
        )
    elif command == "history":
        for assignment in services.reconciler.history(_parse_uuid(args.client)):
            state = "active" if assignment.is_active else f"superseded {assignment.superseded_at}"
            log.info(
                f"{assignment.created_at} package={assignment.package_template_id} "
                f"granted={assignment.granted_servings} "
                f"consumed={assignment.consumed_servings_at_assignment} "
                f"remaining={assignment.remaining_servings} "
                f"payment={assignment.payment_status} ({state})"
            )
    elif command == "balance":
        client_id = _parse_uuid(args.client)
        _log_balance(client_id, services.coordinator.balance(client_id))
    elif command == "submission":
        _run_submission(args, services)
    else:
        raise ValueError(f"Unsupported command: {command}")


def _exit(code: int) -> NoReturn:
    sys.exit(code)


def main(argv: Sequence[str] | None = None, *, services: LedgerServices | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    try:
        effective_services = services or build_services()
        with_retries(
            lambda: _dispatch(parsed_args, effective_services),
            attempts=effective_services.config.retry_attempts,
        )
    except RetryableError:
        log.exception("Ledger store busy; retries exhausted")
        _exit(EXIT_TEMPFAIL)
    except _CALLER_ERRORS as exc:
        log.error(f"Rejected: {exc}")  # noqa: TRY400
        _exit(EXIT_USAGE)
    except Exception:
        log.exception("Fatal error")
        _exit(EXIT_FAILURE)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
