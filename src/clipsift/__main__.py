import argparse
import logging
import sys

from clipsift.classifier import classify_text, prompt_signals
from clipsift.config import DB_PATH, LOG_PATH
from clipsift.models import Category
from clipsift.storage import StorageManager
from clipsift.utils import ensure_dirs, format_bytes


def configure_logging(verbose: bool = False) -> None:
    ensure_dirs()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_PATH),
            logging.StreamHandler(sys.stderr),
        ],
    )


def run_app(verbose: bool = False) -> int:
    """Run the Clipsift menu-bar application."""
    configure_logging(verbose)

    from clipsift.app import ClipsiftApp

    app = ClipsiftApp()
    app.run()
    return 0


def show_history(limit: int, query: str | None = None, category: str | None = None) -> int:
    """Print stored entries, newest first."""
    ensure_dirs()
    with StorageManager(DB_PATH) as storage:
        if query:
            entries = storage.search(query, limit=limit)
        else:
            entries = storage.get_recent(limit=limit, category=Category(category) if category else None)

    if not entries:
        print("No clipboard history.")
        return 0

    for entry in entries:
        stamp = entry.created_at.strftime("%Y-%m-%d %H:%M:%S")
        print(f"{stamp}  {entry.category.value:<6}  {format_bytes(entry.byte_size):>9}  {entry.preview}")
    return 0


def classify_stdin() -> int:
    """Classify text read from stdin and print the category."""
    text = sys.stdin.read()
    if not text:
        print("No input.", file=sys.stderr)
        return 1
    category = classify_text(text)
    print(category.value)
    if category == Category.PROMPT:
        print(f"prompt signals: {prompt_signals(text)}", file=sys.stderr)
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Clipsift - categorizing clipboard history for macOS",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  run         Run Clipsift in the menu bar (default)
  history     Print stored clipboard entries
  classify    Classify text from stdin

Examples:
  clipsift                          # start the menu-bar app
  clipsift history -n 20            # last 20 entries
  clipsift history --category log   # only logs
  pbpaste | clipsift classify       # which category would this land in?
""",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log heuristic decisions")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Run the menu-bar app")

    history = subparsers.add_parser("history", help="Print stored clipboard entries")
    history.add_argument("-n", "--limit", type=int, default=25, help="Number of entries to show")
    history.add_argument("-q", "--query", help="Full-text search")
    history.add_argument("--category", choices=[c.value for c in Category], help="Filter by category")

    subparsers.add_parser("classify", help="Classify text from stdin")

    args = parser.parse_args()

    if args.command == "history":
        sys.exit(show_history(args.limit, args.query, args.category))
    elif args.command == "classify":
        sys.exit(classify_stdin())
    else:
        sys.exit(run_app(args.verbose))


if __name__ == "__main__":
    main()
