import html
import json
import sqlite3
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from colored_logger import get_colored_logger
from .document_loader import RecipeDocument
from .errors import CookbookError, IndexWriteError, QueryError, RecipeNotFound

logger = get_colored_logger(__name__)

# Stored verbatim and matched by exact value
KEYWORD_FIELDS = ("filename", "webpath", "html", "tags")
# Tokenized and stemmed by the FTS5 porter tokenizer
TEXT_FIELDS = ("name", "searchable_text")
ALL_FIELDS = KEYWORD_FIELDS + TEXT_FIELDS

MARK_OPEN = "<mark>"
MARK_CLOSE = "</mark>"
ELLIPSIS = "…"

# Placed around matches by FTS5, swapped for MARK_OPEN/MARK_CLOSE once the
# fragment text has been escaped
_HIT_START = "\x02"
_HIT_END = "\x03"


def normalize_tags(value: Any) -> List[str]:
    """
    Normalize a stored tags value into an ordered list of strings.

    Single-tag entries come back from storage as a scalar string, multi-tag
    entries as a list.
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(tag) for tag in value]


def _encode_tags(tags: Sequence[str]) -> str:
    # One tag is stored as a scalar, several as an array
    if len(tags) == 1:
        return json.dumps(tags[0])
    return json.dumps(list(tags))


def _decode_tags(raw: Optional[str]) -> List[str]:
    if raw is None:
        return []
    return normalize_tags(json.loads(raw))


def _strip_markers(text: str) -> str:
    return text.replace(_HIT_START, "").replace(_HIT_END, "")


def render_fragment(fragment: str) -> str:
    """HTML-escape a raw fragment and turn its hit markers into <mark> tags."""
    escaped = html.escape(fragment)
    return escaped.replace(_HIT_START, MARK_OPEN).replace(_HIT_END, MARK_CLOSE)


@dataclass
class SearchHit:
    """One ranked hit: stored field values plus highlighted fragments per field."""

    id: str
    fields: Dict[str, Any] = field(default_factory=dict)
    fragments: Dict[str, List[str]] = field(default_factory=dict)


class IndexStore:
    """
    In-memory full-text index of recipe documents keyed by webpath.

    Backed by a private SQLite ``:memory:`` database with an FTS5 table for the
    analyzed fields. One connection is shared by all threads and every
    operation runs under a single re-entrant lock, so a reader never sees an
    entry between the statements of an upsert.
    """

    def __init__(self, snippet_tokens: int = 32):
        """
        Initialize an empty index.

        Args:
            snippet_tokens: Maximum number of tokens in a body fragment
        """
        self.snippet_tokens = snippet_tokens
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(":memory:", check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        with self._lock:
            self._conn.executescript(
                """
                -- Stored fields, one row per webpath
                CREATE TABLE recipes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    webpath TEXT UNIQUE NOT NULL,
                    filename TEXT NOT NULL,
                    name TEXT NOT NULL,
                    html TEXT NOT NULL,
                    tags TEXT NOT NULL,
                    searchable_text TEXT NOT NULL
                );

                CREATE INDEX idx_recipes_filename ON recipes(filename);

                -- Analyzed fields, rowid shared with recipes.id
                CREATE VIRTUAL TABLE recipes_fts USING fts5(
                    name,
                    searchable_text,
                    tokenize = 'porter unicode61'
                );
                """
            )
        logger.debug("Recipe index initialized")

    def upsert(self, doc: RecipeDocument) -> None:
        """
        Store a document, fully replacing any entry with the same webpath.

        Raises:
            IndexWriteError: If the entry cannot be written; the previous
                entry for the key is left in place
        """
        tags = _encode_tags(doc.tags)
        with self._lock:
            try:
                with self._conn:
                    existing = self._conn.execute(
                        "SELECT id FROM recipes WHERE webpath = ?", (doc.webpath,)
                    ).fetchone()

                    if existing is not None:
                        entry_id = existing["id"]
                        self._conn.execute(
                            """
                            UPDATE recipes SET
                                filename = ?, name = ?, html = ?, tags = ?,
                                searchable_text = ?
                            WHERE id = ?
                            """,
                            (
                                doc.filename,
                                doc.name,
                                doc.html,
                                tags,
                                doc.searchable_text,
                                entry_id,
                            ),
                        )
                        self._conn.execute(
                            "DELETE FROM recipes_fts WHERE rowid = ?", (entry_id,)
                        )
                    else:
                        cursor = self._conn.execute(
                            """
                            INSERT INTO recipes (
                                webpath, filename, name, html, tags, searchable_text
                            ) VALUES (?, ?, ?, ?, ?, ?)
                            """,
                            (
                                doc.webpath,
                                doc.filename,
                                doc.name,
                                doc.html,
                                tags,
                                doc.searchable_text,
                            ),
                        )
                        entry_id = cursor.lastrowid

                    self._conn.execute(
                        """
                        INSERT INTO recipes_fts (rowid, name, searchable_text)
                        VALUES (?, ?, ?)
                        """,
                        (
                            entry_id,
                            _strip_markers(doc.name),
                            _strip_markers(doc.searchable_text),
                        ),
                    )
            except sqlite3.Error as e:
                raise IndexWriteError(doc.webpath, str(e)) from e

        action = "Replaced" if existing is not None else "Added"
        logger.debug("%s %s in index", action, doc.webpath)

    def delete(self, webpath: str) -> bool:
        """
        Remove the entry for a webpath.

        Returns:
            True if an entry was removed, False if none existed

        Raises:
            IndexWriteError: If the delete fails
        """
        with self._lock:
            try:
                with self._conn:
                    existing = self._conn.execute(
                        "SELECT id FROM recipes WHERE webpath = ?", (webpath,)
                    ).fetchone()
                    if existing is None:
                        return False

                    self._conn.execute(
                        "DELETE FROM recipes_fts WHERE rowid = ?", (existing["id"],)
                    )
                    self._conn.execute(
                        "DELETE FROM recipes WHERE id = ?", (existing["id"],)
                    )
            except sqlite3.Error as e:
                raise IndexWriteError(webpath, str(e)) from e

        logger.debug("Deleted %s from index", webpath)
        return True

    def get(self, webpath: str) -> Tuple[str, str, str]:
        """
        Look up a recipe by webpath.

        Returns:
            (filename, name, html)

        Raises:
            RecipeNotFound: If no entry exists for the webpath
        """
        entry = self.get_entry(webpath, ("filename", "name", "html"))
        return entry["filename"], entry["name"], entry["html"]

    def get_entry(
        self, webpath: str, fields: Sequence[str] = ALL_FIELDS
    ) -> Dict[str, Any]:
        """Return the requested stored fields of one entry."""
        columns = self._columns(fields)
        with self._lock:
            try:
                row = self._conn.execute(
                    f"SELECT {columns} FROM recipes WHERE webpath = ?", (webpath,)
                ).fetchone()
            except sqlite3.Error as e:
                raise CookbookError(f"Index read failed for '{webpath}': {e}") from e

        if row is None:
            raise RecipeNotFound(webpath)
        return self._row_to_fields(row, fields)

    def list_all(self, fields: Sequence[str] = ALL_FIELDS) -> Iterator[Dict[str, Any]]:
        """
        Iterate over every entry ordered by webpath.

        The rows are read in one statement under the lock; iteration happens
        on that snapshot.
        """
        columns = self._columns(fields)
        with self._lock:
            try:
                rows = self._conn.execute(
                    f"SELECT {columns} FROM recipes ORDER BY webpath"
                ).fetchall()
            except sqlite3.Error as e:
                raise CookbookError(f"Index scan failed: {e}") from e

        for row in rows:
            yield self._row_to_fields(row, fields)

    def search(
        self,
        query: str,
        fields: Sequence[str] = ("name", "webpath", "searchable_text"),
        limit: int = 10,
    ) -> List[SearchHit]:
        """
        Run a full-text query against the analyzed fields.

        Args:
            query: FTS5 query string, e.g. "soup", "name:pie", "bread OR cake"
            fields: Stored fields to return with each hit
            limit: Maximum number of hits, best ranked first

        Returns:
            Hits ordered by relevance, with HTML-escaped highlighted fragments
            for the analyzed fields that matched

        Raises:
            QueryError: If the query string is malformed
        """
        columns = ", ".join(f"r.{name}" for name in self._field_names(fields))
        sql = f"""
            SELECT r.webpath AS hit_id, {columns},
                   -- bm25() is lower-is-better
                   bm25(recipes_fts) AS rank_score,
                   highlight(recipes_fts, 0, ?, ?) AS name_fragment,
                   snippet(recipes_fts, 1, ?, ?, ?, ?) AS searchable_text_fragment
            FROM recipes_fts
            JOIN recipes r ON r.id = recipes_fts.rowid
            WHERE recipes_fts MATCH ?
            ORDER BY rank_score
            LIMIT ?
        """
        params = (
            _HIT_START,
            _HIT_END,
            _HIT_START,
            _HIT_END,
            ELLIPSIS,
            self.snippet_tokens,
            query,
            limit,
        )

        with self._lock:
            try:
                rows = self._conn.execute(sql, params).fetchall()
            except sqlite3.OperationalError as e:
                raise QueryError(query, str(e)) from e
            except sqlite3.Error as e:
                raise CookbookError(f"Search failed for '{query}': {e}") from e

        hits = []
        for row in rows:
            fragments = {}
            for name in TEXT_FIELDS:
                fragment = row[f"{name}_fragment"]
                if fragment and _HIT_START in fragment:
                    fragments[name] = [render_fragment(fragment)]

            hits.append(
                SearchHit(
                    id=row["hit_id"],
                    fields=self._row_to_fields(row, fields),
                    fragments=fragments,
                )
            )

        logger.debug("Query %r matched %d recipes", query, len(hits))
        return hits

    def count(self) -> int:
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM recipes").fetchone()[0]

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @staticmethod
    def _field_names(fields: Sequence[str]) -> List[str]:
        unknown = [name for name in fields if name not in ALL_FIELDS]
        if unknown:
            raise ValueError(f"Unknown index fields: {', '.join(unknown)}")
        return list(fields)

    def _columns(self, fields: Sequence[str]) -> str:
        return ", ".join(self._field_names(fields))

    @staticmethod
    def _row_to_fields(row: sqlite3.Row, fields: Sequence[str]) -> Dict[str, Any]:
        result = {}
        for name in fields:
            if name == "tags":
                result[name] = _decode_tags(row[name])
            else:
                result[name] = row[name]
        return result
