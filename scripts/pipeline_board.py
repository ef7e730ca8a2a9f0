"""
Pipeline board from the terminal.

Usage:
  python scripts/pipeline_board.py
  python scripts/pipeline_board.py --json
  python scripts/pipeline_board.py --move q1 --to sent

Options:
  --scope   Backend scope (defaults to PIPELINE_SCOPE)
  --json    Print stats as JSON instead of the column summary
  --move    Item id to move
  --to      Target stage for --move
  --yes     Confirm the move without prompting
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Load .env so we pick up PIPELINE_API_BASE_URL
from dotenv import load_dotenv
load_dotenv(Path(__file__).resolve().parents[1] / ".env")

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
from app.adapters.backend.lapublica import get_backend_client
from app.config import settings
from app.pipeline.board import DropDecision, PipelineBoard
from app.pipeline.errors import PipelineError
from app.pipeline.executor import TransitionExecutor
from app.pipeline.stages import Stage
from app.pipeline.store import PipelineItemStore

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def print_board(board: PipelineBoard) -> None:
    for column in board.columns():
        print(f"{column.descriptor.label:<10} {column.count:>4}  {column.total:>14,.2f} EUR")
        for item in column.items:
            flag = " OVERDUE" if item.is_overdue else ""
            print(f"    {item.id:<12} {item.number:<16} {item.company:<30} {item.total:>12,.2f}{flag}")
    stats = board.stats()
    print(f"Conversion rate: {stats.conversion_rate * 100:.1f}%")
    print(f"Overdue: {stats.overdue.count} ({stats.overdue.amount:,.2f} EUR)")


async def move(board: PipelineBoard, item_id: str, to_stage: Stage, assume_yes: bool) -> int:
    try:
        board.drag_start(item_id)
    except LookupError:
        print(f"ERROR: unknown item {item_id}")
        return 1

    outcome = board.drag_end(to_stage)
    if outcome.decision == DropDecision.NOOP:
        print(f"{item_id} is already in {to_stage.value}, nothing to do")
        return 0
    if outcome.decision == DropDecision.REJECTED:
        print(f"ERROR: {outcome.notification.message} ({outcome.notification.detail})")
        return 1

    dialog = outcome.dialog
    print(f"{dialog.title}: {dialog.message}")
    while dialog.is_open:
        if not assume_yes:
            answer = input("Confirm? [y/N] ").strip().lower()
            if answer not in ("y", "yes"):
                dialog.cancel()
                print("Cancelled, nothing changed")
                return 1
        if await dialog.confirm():
            break
        print(f"ERROR: {dialog.error}")
        if assume_yes:
            return 1

    print(f"OK {item_id} moved to {to_stage.value}")
    return 0


async def main(args: argparse.Namespace) -> int:
    client = get_backend_client()
    scope = args.scope or settings.pipeline_scope or None
    try:
        snapshot = await client.fetch_snapshot(scope)
    except PipelineError as e:
        print(f"ERROR: {e.message}")
        return 1

    async def loader():
        return await client.fetch_items(scope)

    board = PipelineBoard(
        PipelineItemStore(snapshot.items),
        TransitionExecutor(client, source="cli"),
        loader=loader,
        expiring_window_days=settings.expiring_window_days,
    )

    if args.move:
        code = await move(board, args.move, Stage(args.to), args.yes)
        if code != 0:
            return code

    if args.json:
        print(json.dumps(board.stats().model_dump(mode="json", by_alias=True), indent=2))
    else:
        print_board(board)
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Show or move items on the budget pipeline")
    parser.add_argument("--scope", default=None)
    parser.add_argument("--json", action="store_true")
    parser.add_argument("--move", metavar="ITEM_ID")
    parser.add_argument("--to", choices=[s.value for s in Stage])
    parser.add_argument("--yes", action="store_true")
    args = parser.parse_args()
    if args.move and not args.to:
        parser.error("--move requires --to")
    sys.exit(asyncio.run(main(args)))
