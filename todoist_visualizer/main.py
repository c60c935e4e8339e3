"""Main module for Todoist Visualizer."""

import argparse
import logging
import sys
from typing import List, Optional, Sequence

from pydantic import ValidationError
from tabulate import tabulate

from todoist_visualizer.api.client import TodoistClient
from todoist_visualizer.config import TOKEN_ENV_VAR, VisualizerConfig, resolve_api_token
from todoist_visualizer.models import Err, RemoteItem
from todoist_visualizer.session import SessionSnapshot, VisualizerSession
from todoist_visualizer.utils.image_utils import PillowImageGenerator, PlaceholderImageGenerator

logger = logging.getLogger(__name__)


def print_items(items: List[RemoteItem]) -> None:
    """Print fetched items as a table."""
    if not items:
        print("No items found")
        return
    rows = [[item.kind.value, item.id, item.name] for item in items]
    print(tabulate(rows, headers=["Kind", "ID", "Name"], tablefmt="psql"))
    print(f"\nTotal items: {len(items)}")


def print_images(state: SessionSnapshot) -> None:
    """Print the generated image reference of every selected item."""
    rows = []
    for item_id in sorted(state.images):
        item = state.find_item(item_id)
        rows.append([item_id, item.name if item else "", state.images[item_id]])
    print(tabulate(rows, headers=["ID", "Name", "Image"], tablefmt="psql"))
    print(f"\nGenerated {len(rows)} images")


def report_error(result: Err) -> int:
    print(f"Error: {result.error.message}", file=sys.stderr)
    return 1


def format_config_error(error: ValidationError) -> str:
    """Describe invalid settings, one field per line."""
    lines = []
    for detail in error.errors():
        field = ".".join(str(part) for part in detail["loc"])
        lines.append(f"{field}: {detail['msg']}")
    return "Invalid configuration:\n  " + "\n  ".join(lines)


def build_session(args: argparse.Namespace) -> VisualizerSession:
    """Create a session from parsed command line arguments.

    Raises:
        ValidationError: If the environment or the arguments hold invalid settings
    """
    overrides = {
        "image_width": getattr(args, "width", None),
        "image_height": getattr(args, "height", None),
    }
    if getattr(args, "include_tasks", False):
        overrides["collections"] = ("favorites", "filters", "tasks")
    config = VisualizerConfig(**{k: v for k, v in overrides.items() if v is not None})
    client = TodoistClient(resolve_api_token(args.api_token, config), config)

    output_dir = getattr(args, "output_dir", None)
    if output_dir:
        generator = PillowImageGenerator(output_dir, config.image_width, config.image_height)
    else:
        generator = PlaceholderImageGenerator(config.image_width, config.image_height)
    return VisualizerSession(client, generator, config)


def run_list(session: VisualizerSession) -> int:
    """Fetch and print the configured collections."""
    result = session.load_collections()
    if isinstance(result, Err):
        return report_error(result)
    print_items(result.value.all_items())
    return 0


def run_generate(session: VisualizerSession, selected: Sequence[str]) -> int:
    """Fetch collections, select the given ids and generate their images."""
    result = session.load_collections()
    if isinstance(result, Err):
        return report_error(result)

    for item_id in dict.fromkeys(selected):
        result = session.toggle(item_id)
        if isinstance(result, Err):
            return report_error(result)

    result = session.generate_images()
    if isinstance(result, Err):
        return report_error(result)
    print_images(result.value)
    return 0


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Todoist Visualizer")

    # Global arguments
    parser.add_argument(
        "--api-token",
        type=str,
        help=f"Todoist API token (defaults to ${TOKEN_ENV_VAR})",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands", required=True)

    # List command
    list_parser = subparsers.add_parser("list", help="List favorites and filters")
    list_parser.add_argument("--include-tasks", action="store_true", help="Also fetch tasks")

    # Generate command
    generate_parser = subparsers.add_parser(
        "generate", help="Generate placeholder images for selected items"
    )
    generate_parser.add_argument(
        "--select",
        action="append",
        required=True,
        metavar="ID",
        help="Item id to select (repeatable)",
    )
    generate_parser.add_argument("--include-tasks", action="store_true", help="Also fetch tasks")
    generate_parser.add_argument(
        "--output-dir", type=str, help="Render PNG placeholders into this directory"
    )
    generate_parser.add_argument("--width", type=int, help="Image width in pixels")
    generate_parser.add_argument("--height", type=int, help="Image height in pixels")

    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the Todoist Visualizer CLI."""
    args = parse_arguments(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        session = build_session(args)
    except ValidationError as e:
        print(f"Error: {format_config_error(e)}", file=sys.stderr)
        return 1

    with session:
        if args.command == "list":
            return run_list(session)
        return run_generate(session, args.select)


if __name__ == "__main__":
    sys.exit(main())
