import html
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List

from colored_logger import get_colored_logger
from .index_store import IndexStore

logger = get_colored_logger(__name__)

# Boundary lines shorter than this are treated as fragment debris
MIN_SNIPPET_LINE = 4

# Terms without a letter or digit produce no tokens
_WORD_CHAR = re.compile(r"[^\W_]")


@dataclass
class RecipeRef:
    name: str
    webpath: str


@dataclass
class TagGroup:
    """All recipes carrying one tag, built at query time."""

    tag_name: str
    recipes: List[RecipeRef] = field(default_factory=list)


@dataclass
class SearchResult:
    """
    One search result ready for display.

    ``name`` and ``snippet`` hold HTML. ``name`` is the escaped recipe name, with <mark>
    highlighting when it matched. ``snippet`` is a cleaned, escaped body
    fragment with <mark> highlighting, or empty.
    """

    name: str
    webpath: str
    snippet: str = ""


def _sort_key(value: str):
    return (value.casefold(), value)


def free_text_query(text: str) -> str:
    """
    Turn user-typed text into an FTS5 query that matches every term.

    Each whitespace-separated term becomes a quoted phrase, so punctuation
    such as apostrophes, hyphens and "&" is left to the tokenizer instead of
    being read as query syntax. Terms with no word characters are dropped.

    Returns:
        The FTS5 query, or "" if no term is left
    """
    phrases = []
    for term in text.split():
        if not _WORD_CHAR.search(term):
            continue
        phrases.append('"' + term.replace('"', '""') + '"')
    return " ".join(phrases)


def clean_snippet(fragment: str) -> str:
    """
    Tidy a highlighted body fragment for display.

    Lines are trimmed and blank ones dropped, then short lines are removed
    from both ends. If nothing survives, the original fragment is returned.
    """
    lines = [line.strip() for line in fragment.split("\n")]
    lines = [line for line in lines if line]

    start = 0
    while start < len(lines) and len(lines[start]) < MIN_SNIPPET_LINE:
        start += 1

    end = len(lines) - 1
    while end >= start and len(lines[end]) < MIN_SNIPPET_LINE:
        end -= 1

    if start > end:
        return fragment

    return "\n".join(lines[start : end + 1])


class QueryEngine:
    """
    Answers tag listings and full-text searches from an IndexStore.

    Both queries read a snapshot of the store and never write to it.
    """

    def __init__(self, store: IndexStore, search_limit: int = 10):
        """
        Args:
            store: The index to read
            search_limit: Maximum number of hits kept per search, chosen by
                relevance before results are ordered by name
        """
        self.store = store
        self.search_limit = search_limit

    def list_grouped_by_tag(self) -> List[TagGroup]:
        """
        Group every recipe under each of its tags.

        Returns:
            Groups ordered by tag name, recipes in each group ordered by name
        """
        grouped: Dict[str, List[RecipeRef]] = defaultdict(list)

        for entry in self.store.list_all(("name", "webpath", "tags")):
            for tag in entry["tags"]:
                grouped[tag.strip()].append(
                    RecipeRef(name=entry["name"], webpath=entry["webpath"])
                )

        groups = []
        for tag_name in sorted(grouped, key=_sort_key):
            recipes = sorted(grouped[tag_name], key=lambda ref: _sort_key(ref.name))
            groups.append(TagGroup(tag_name=tag_name, recipes=recipes))

        logger.debug("Grouped recipes into %d tags", len(groups))
        return groups

    def search(self, query: str, raw: bool = False) -> List[SearchResult]:
        """
        Full-text search over recipe names and bodies.

        Relevance decides which recipes are returned; the returned list is
        ordered by recipe name.

        Args:
            query: Free text, every term of which must match
            raw: Pass the query to FTS5 unchanged, allowing OR, NOT, prefix
                and column syntax

        Raises:
            QueryError: If a raw query string is malformed
        """
        match = query if raw else free_text_query(query or "")
        if not match or not match.strip():
            return []

        hits = self.store.search(
            match, fields=("name", "webpath"), limit=self.search_limit
        )

        results = []
        for hit in hits:
            raw_name = hit.fields["name"]

            name_fragments = hit.fragments.get("name")
            name = name_fragments[0] if name_fragments else html.escape(raw_name)

            body_fragments = hit.fragments.get("searchable_text")
            snippet = clean_snippet(body_fragments[0]) if body_fragments else ""

            result = SearchResult(
                name=name, webpath=hit.fields["webpath"], snippet=snippet
            )
            results.append((raw_name, result))

        results.sort(key=lambda item: _sort_key(item[0]))
        return [result for _, result in results]
