import os
import threading
import time
from typing import Any, Dict, List, Tuple

from colored_logger import get_colored_logger
from .document_loader import DocumentLoader, RecipeDocument
from .errors import CookbookError, FileReadError
from .index_store import IndexStore
from .naming import webpath_from_filename
from .query_engine import QueryEngine, SearchResult, TagGroup
from .settings import Settings

logger = get_colored_logger(__name__)


class RecipeLibrary:
    """
    Service object owning the recipe index for one recipes directory.

    Entry points used by the bulk loader, the directory watcher and request
    handlers all go through here. The same file may be upserted twice in
    quick succession (once by a handler that wrote it, once by the watcher);
    both calls re-read the file and the later one wins.
    """

    def __init__(
        self,
        recipes_path: str,
        store: IndexStore = None,
        loader: DocumentLoader = None,
        search_limit: int = 10,
    ):
        """
        Initialize the library.

        Args:
            recipes_path: Directory holding the recipe Markdown files
            store: IndexStore instance. If None, creates an empty one.
            loader: DocumentLoader instance. If None, creates default instance.
            search_limit: Maximum hits per search
        """
        self.recipes_path = recipes_path
        self.store = store or IndexStore()
        self.loader = loader or DocumentLoader()
        self.queries = QueryEngine(self.store, search_limit=search_limit)

        self._stats_lock = threading.Lock()
        self.load_stats = self._empty_stats()

    @classmethod
    def from_settings(cls, settings: Settings) -> "RecipeLibrary":
        return cls(
            settings.recipes_path,
            store=IndexStore(snippet_tokens=settings.snippet_tokens),
            loader=DocumentLoader(recipe_ext=settings.recipe_ext),
            search_limit=settings.search_limit,
        )

    # Writes

    def upsert(self, filename: str, raw_bytes: bytes) -> RecipeDocument:
        """
        Load a recipe from its bytes and replace its index entry.

        Raises:
            ParseError: If the contents cannot be converted
            IndexWriteError: If the index write fails
        """
        document = self.loader.load(filename, raw_bytes)
        self.store.upsert(document)
        return document

    def upsert_file(self, filename: str) -> RecipeDocument:
        """
        Read a recipe file from the recipes directory and index it.

        Raises:
            FileReadError: If the file cannot be read
            ParseError: If the contents cannot be converted
            IndexWriteError: If the index write fails
        """
        filename = os.path.basename(filename)
        raw_bytes = self.loader.read(self.recipes_path, filename)
        return self.upsert(filename, raw_bytes)

    def delete(self, filename: str) -> bool:
        """
        Remove the entry for a recipe file, keyed by its file name only.

        Returns:
            True if an entry was removed
        """
        webpath = webpath_from_filename(filename, self.loader.recipe_ext)
        return self.store.delete(webpath)

    def index_file(self, filename: str) -> bool:
        """
        Upsert one file, logging and absorbing any failure.

        The previous entry for the recipe, if any, is kept when this fails.

        Returns:
            True if the file was indexed
        """
        try:
            document = self.upsert_file(filename)
        except CookbookError as e:
            logger.error("Failed to index recipe %s: %s", filename, e)
            self._bump("files_failed")
            return False

        logger.debug("Indexed %s as %s", document.filename, document.webpath)
        self._bump("files_indexed")
        return True

    def load_recipes(self) -> Dict[str, Any]:
        """
        Index every recipe file in the recipes directory.

        Runs single threaded and continues past files that fail to load.

        Returns:
            Dictionary containing load statistics

        Raises:
            FileReadError: If the recipes directory cannot be listed
        """
        logger.info("Loading recipes from %s", self.recipes_path)

        with self._stats_lock:
            self.load_stats = self._empty_stats()
            self.load_stats["start_time"] = time.time()

        try:
            entries = sorted(os.listdir(self.recipes_path))
        except OSError as e:
            raise FileReadError(self.recipes_path, e.strerror or str(e)) from e

        for entry in entries:
            self._bump("files_seen")
            if not self.loader.is_recipe(os.path.join(self.recipes_path, entry)):
                logger.debug("Skipping non-recipe entry %s", entry)
                self._bump("files_skipped")
                continue
            self.index_file(entry)

        return self._finalize_stats()

    # Reads

    def get_recipe(self, webpath: str) -> Tuple[str, str, str]:
        """
        Returns:
            (filename, name, html) of the recipe

        Raises:
            RecipeNotFound: If no recipe has that webpath
        """
        return self.store.get(webpath)

    def list_grouped_by_tag(self) -> List[TagGroup]:
        return self.queries.list_grouped_by_tag()

    def search_recipes(self, query: str, raw: bool = False) -> List[SearchResult]:
        return self.queries.search(query, raw=raw)

    def stats(self) -> Dict[str, int]:
        """Number of indexed recipes and distinct tags."""
        tags = set()
        recipes = 0
        for entry in self.store.list_all(("tags",)):
            recipes += 1
            tags.update(tag.strip() for tag in entry["tags"])
        return {"total_recipes": recipes, "total_tags": len(tags)}

    def close(self) -> None:
        self.store.close()

    # Statistics

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            "files_seen": 0,
            "files_indexed": 0,
            "files_skipped": 0,
            "files_failed": 0,
            "start_time": 0,
            "end_time": 0,
        }

    def _bump(self, key: str) -> None:
        with self._stats_lock:
            self.load_stats[key] += 1

    def _finalize_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            self.load_stats["end_time"] = time.time()
            self.load_stats["elapsed_time"] = (
                self.load_stats["end_time"] - self.load_stats["start_time"]
            )
            stats = self.load_stats.copy()

        logger.success(
            "Loaded recipes. Seen: %d, Indexed: %d, Skipped: %d, Failed: %d",
            stats["files_seen"],
            stats["files_indexed"],
            stats["files_skipped"],
            stats["files_failed"],
        )
        return stats
