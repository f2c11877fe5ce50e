"""
Cookbook Recipe Index

Turns a directory of Markdown recipe files into an in-memory searchable index,
keeps it in step with the directory, and answers tag listings and full-text
searches.

Key Components:
- convert_to_html: Markdown conversion with the "tags:" directive extension
- DocumentLoader: Builds RecipeDocuments from recipe files
- IndexStore: SQLite FTS5 in-memory index keyed by webpath
- QueryEngine: Tag-grouped listings and name-ordered search results
- RecipeLibrary: Service object exposing upsert/delete/get/list/search
- RecipeWatcher: Applies directory change events to a RecipeLibrary
"""

from .errors import (
    CookbookError,
    FileReadError,
    IndexWriteError,
    ParseError,
    QueryError,
    RecipeNotFound,
    WatchRegistrationError,
)
from .naming import RECIPE_EXT, strip_extension, to_webpath
from .tag_directive import convert_to_html
from .document_loader import DocumentLoader, RecipeDocument
from .index_store import IndexStore, SearchHit
from .query_engine import QueryEngine, RecipeRef, SearchResult, TagGroup, clean_snippet
from .settings import Settings
from .library import RecipeLibrary
from .watcher import EventKind, RecipeWatcher, WatchEvent, WatcherState

__all__ = [
    "CookbookError",
    "FileReadError",
    "IndexWriteError",
    "ParseError",
    "QueryError",
    "RecipeNotFound",
    "WatchRegistrationError",
    "RECIPE_EXT",
    "strip_extension",
    "to_webpath",
    "convert_to_html",
    "DocumentLoader",
    "RecipeDocument",
    "IndexStore",
    "SearchHit",
    "QueryEngine",
    "RecipeRef",
    "SearchResult",
    "TagGroup",
    "clean_snippet",
    "Settings",
    "RecipeLibrary",
    "EventKind",
    "RecipeWatcher",
    "WatchEvent",
    "WatcherState",
]
