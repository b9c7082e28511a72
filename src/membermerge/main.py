#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from membermerge.adapters.decisions import load_decisions
from membermerge.adapters.sqlalchemy import shutdown
from membermerge.app import list_duplicate_groups, merge_members, resolve_member, show_member
from membermerge.config import ConfigurationError, configure_logging
from membermerge.domain.dedup import FailedOutcome, NotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from membermerge.adapters.decisions import MergeDecisions
    from membermerge.domain.dedup import DuplicateGroup, FullRecord

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Detect and merge duplicate member accounts")
    subparsers = parser.add_subparsers(dest="command", required=True)

    groups = subparsers.add_parser("groups", help="List duplicate groups")
    groups.add_argument(
        "--search",
        type=str,
        help="Only show groups whose email or member names contain this text",
    )

    show = subparsers.add_parser("show", help="Show a member with purchases and history")
    show.add_argument("member_id", type=str, help="Member id to display")

    merge = subparsers.add_parser("merge", help="Merge two members from a decisions file")
    merge.add_argument("decisions", type=str, help="Path to the JSON decisions file")
    merge.add_argument(
        "--operator",
        type=str,
        help="Operator id recorded in the audit trail (defaults to MEMBERMERGE_OPERATOR_ID)",
    )

    resolve = subparsers.add_parser("resolve", help="Follow redirects to the active member")
    resolve.add_argument("member_id", type=str, help="Member id, possibly a merged-away account")

    return parser.parse_args(list(argv))


def _print_groups(groups: Sequence[DuplicateGroup]) -> None:
    if not groups:
        print("No duplicate groups found")
        return
    for group in groups:
        print(f"{group.identity_key} ({len(group.members)} accounts)")
        for member in group.members:
            created = member.created_at.date().isoformat() if member.created_at else "-"
            name = f"{member.first_name} {member.last_name}".strip() or "-"
            print(
                f"  {member.id}  {name}  created={created}  "
                f"source={member.registration_source}  points={member.loyalty_points}"
            )


def _print_record(record: FullRecord) -> None:
    member = record.member
    profile = member.profile
    print(f"{member.id}  {profile.display_name or '-'} <{profile.email}>")
    if member.is_redirect:
        print(f"  merged into {member.merged_into} by {member.merged_by} at {member.merged_at}")
    membership = profile.membership
    if membership is not None:
        print(f"  membership: {membership.plan_name or membership.plan_id} ({membership.status})")
    print(f"  loyalty points: {profile.loyalty_points}")
    if profile.status.tags:
        print(f"  tags: {', '.join(profile.status.tags)}")
    print(f"  purchases ({len(record.purchases)}):")
    for purchase in record.purchases:
        print(
            f"    {purchase.id}  {purchase.purchased_at.date().isoformat()}  "
            f"{purchase.amount}  {purchase.item_name or purchase.type}  ref={purchase.payment_ref}"
        )
    print(f"  action history: {len(record.action_history)} entries")
    print(f"  membership history: {len(record.membership_history)} entries")


async def _run(args: argparse.Namespace, decisions: MergeDecisions | None) -> int:
    try:
        if args.command == "groups":
            _print_groups(await list_duplicate_groups(search=args.search))
        elif args.command == "show":
            _print_record(await show_member(args.member_id))
        elif args.command == "merge" and decisions is not None:
            outcome = await merge_members(decisions, operator_id=args.operator)
            print(outcome.describe())
            if isinstance(outcome, FailedOutcome):
                return 1
        elif args.command == "resolve":
            member = await resolve_member(args.member_id)
            print(member.id)
        else:
            raise ValueError(f"Unsupported command: {args.command}")
    finally:
        await shutdown()
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    decisions: MergeDecisions | None = None
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "merge":
            decisions = load_decisions(parsed_args.decisions)
    except (ValueError, OSError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        exit_code = asyncio.run(_run(parsed_args, decisions))
    except (ValueError, ConfigurationError, NotFoundError):
        log.exception("Request rejected")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)
    if exit_code:
        sys.exit(exit_code)


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
