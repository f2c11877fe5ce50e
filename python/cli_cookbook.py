#!/usr/bin/env python3

import argparse
import json
import sys
from typing import List

from colored_logger import setup_colored_logging, get_colored_logger
from cookbook import (
    CookbookError,
    QueryError,
    RecipeLibrary,
    RecipeNotFound,
    RecipeWatcher,
    Settings,
    WatchRegistrationError,
)

logger = get_colored_logger(__name__)


class CookbookCLI:
    """
    Command-line interface for the recipe index.

    Every command loads the recipes directory into a fresh in-memory index
    first, then:
    - tags: lists recipes grouped by tag
    - search: runs a full-text search
    - show: prints one recipe's rendered HTML
    - stats: prints index statistics
    - watch: keeps the index in step with the directory until interrupted
    """

    def run(self, args: List[str] = None) -> int:
        """
        Run the CLI with the given arguments.

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        parser = self._create_parser()
        parsed_args = parser.parse_args(args)

        if not hasattr(parsed_args, "func"):
            parser.print_help()
            return 1

        settings = Settings(parsed_args.settings)
        if parsed_args.recipes:
            settings.recipes_path = parsed_args.recipes
        setup_colored_logging(
            level="DEBUG" if parsed_args.verbose else settings.log_level
        )

        library = RecipeLibrary.from_settings(settings)
        try:
            library.load_recipes()
            return parsed_args.func(library, parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 1
        except CookbookError as e:
            logger.error("%s", e)
            return 1
        finally:
            library.close()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="cookbook",
            description="Browse and search a directory of Markdown recipes",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  %(prog)s -r ~/recipes tags                 # List recipes grouped by tag
  %(prog)s -r ~/recipes search "chicken"     # Search recipe names and bodies
  %(prog)s -r ~/recipes show ChickenSoup     # Print a recipe's HTML
  %(prog)s -r ~/recipes watch                # Follow changes to the directory
            """,
        )
        parser.add_argument(
            "-v", "--verbose", action="store_true", help="Enable verbose logging"
        )
        parser.add_argument(
            "-r", "--recipes", help="Recipes directory (overrides settings)"
        )
        parser.add_argument("-s", "--settings", help="Path to a JSON settings file")

        subparsers = parser.add_subparsers(dest="command", help="Available commands")

        tags_parser = subparsers.add_parser("tags", help="List recipes grouped by tag")
        tags_parser.add_argument(
            "--format", choices=["list", "json"], default="list", help="Output format"
        )
        tags_parser.set_defaults(func=self._cmd_tags)

        search_parser = subparsers.add_parser("search", help="Search recipes")
        search_parser.add_argument("query", help="Search text")
        search_parser.add_argument(
            "--raw",
            action="store_true",
            help="Treat the query as FTS5 syntax (OR, NOT, prefix*, column:term)",
        )
        search_parser.add_argument(
            "--format", choices=["list", "json"], default="list", help="Output format"
        )
        search_parser.set_defaults(func=self._cmd_search)

        show_parser = subparsers.add_parser("show", help="Print a recipe's HTML")
        show_parser.add_argument("webpath", help="Recipe webpath, e.g. ChickenSoup")
        show_parser.set_defaults(func=self._cmd_show)

        stats_parser = subparsers.add_parser("stats", help="Show index statistics")
        stats_parser.set_defaults(func=self._cmd_stats)

        watch_parser = subparsers.add_parser(
            "watch", help="Keep the index in step with the recipes directory"
        )
        watch_parser.set_defaults(func=self._cmd_watch)

        return parser

    def _cmd_tags(self, library: RecipeLibrary, args) -> int:
        groups = library.list_grouped_by_tag()

        if args.format == "json":
            payload = [
                {
                    "tag": group.tag_name,
                    "recipes": [
                        {"name": ref.name, "webpath": ref.webpath}
                        for ref in group.recipes
                    ],
                }
                for group in groups
            ]
            print(json.dumps(payload, indent=2))
            return 0

        for group in groups:
            print(f"{group.tag_name or '(empty tag)'} ({len(group.recipes)})")
            for ref in group.recipes:
                print(f"  {ref.name}  [/{ref.webpath}]")
        return 0

    def _cmd_search(self, library: RecipeLibrary, args) -> int:
        try:
            results = library.search_recipes(args.query, raw=args.raw)
        except QueryError as e:
            logger.error("%s", e)
            return 2

        if args.format == "json":
            payload = [
                {"name": r.name, "webpath": r.webpath, "snippet": r.snippet}
                for r in results
            ]
            print(json.dumps(payload, indent=2))
            return 0

        if not results:
            print("No recipes found.")
            return 0

        for result in results:
            print(f"{result.name}  [/{result.webpath}]")
            if result.snippet:
                for line in result.snippet.splitlines():
                    print(f"    {line}")
        return 0

    def _cmd_show(self, library: RecipeLibrary, args) -> int:
        try:
            filename, name, html = library.get_recipe(args.webpath)
        except RecipeNotFound:
            print(f"No recipe at /{args.webpath}")
            return 1

        print(f"<!-- {name} ({filename}) -->")
        print(html)
        return 0

    def _cmd_stats(self, library: RecipeLibrary, args) -> int:
        stats = library.stats()
        print(f"Recipes: {stats['total_recipes']}")
        print(f"Tags: {stats['total_tags']}")
        return 0

    def _cmd_watch(self, library: RecipeLibrary, args) -> int:
        watcher = RecipeWatcher(library)
        try:
            watcher.start()
        except WatchRegistrationError as e:
            logger.critical("%s", e)
            return 1

        try:
            watcher.run()
        finally:
            watcher.close()
        return 0


def main() -> int:
    return CookbookCLI().run()


if __name__ == "__main__":
    sys.exit(main())
