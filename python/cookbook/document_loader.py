import os
from dataclasses import dataclass, field
from typing import List

from colored_logger import get_colored_logger
from .errors import FileReadError, ParseError
from .naming import RECIPE_EXT, is_recipe_filename, name_from_path, to_webpath
from .tag_directive import DEFAULT_TAG, convert_to_html

logger = get_colored_logger(__name__)


@dataclass
class RecipeDocument:
    """
    The canonical record for one recipe file.

    ``webpath`` is derived from ``name`` and is the key of the index entry;
    ``searchable_text`` is the raw Markdown; it feeds full-text analysis only
    and is never displayed as the recipe body.
    """

    filename: str
    name: str
    webpath: str
    html: str
    searchable_text: str
    tags: List[str] = field(default_factory=lambda: [DEFAULT_TAG])

    def __post_init__(self):
        if not self.tags:
            self.tags = [DEFAULT_TAG]


class DocumentLoader:
    """
    Turns the bytes of a recipe file into a RecipeDocument.

    Loading never touches the index; callers decide what to do with the
    document or with the error.
    """

    def __init__(self, recipe_ext: str = RECIPE_EXT, encoding: str = "utf-8-sig"):
        self.recipe_ext = recipe_ext
        self.encoding = encoding

    def load(self, filename: str, raw_bytes: bytes) -> RecipeDocument:
        """
        Build a RecipeDocument from a file name and its contents.

        Args:
            filename: Name of the source file, e.g. "Chicken Soup.md"
            raw_bytes: Raw file contents

        Returns:
            The loaded document

        Raises:
            ParseError: If the contents cannot be decoded or converted
        """
        filename = os.path.basename(filename)
        name = name_from_path(filename, self.recipe_ext)

        try:
            source = raw_bytes.decode(self.encoding)
        except UnicodeDecodeError as e:
            raise ParseError(filename, f"not valid {self.encoding}: {e}") from e

        try:
            body_html, tags = convert_to_html(source)
        except Exception as e:
            raise ParseError(filename, str(e)) from e

        document = RecipeDocument(
            filename=filename,
            name=name,
            webpath=to_webpath(name),
            html=body_html,
            searchable_text=source,
            tags=tags,
        )
        logger.debug(
            "Loaded %s as %s with tags %s", filename, document.webpath, document.tags
        )
        return document

    def read(self, directory: str, filename: str) -> bytes:
        """
        Read the raw bytes of a recipe file.

        Raises:
            FileReadError: If the file cannot be opened or read
        """
        file_path = os.path.join(directory, filename)
        try:
            with open(file_path, "rb") as f:
                return f.read()
        except OSError as e:
            raise FileReadError(filename, e.strerror or str(e)) from e

    def is_recipe(self, path: str) -> bool:
        """True for regular files carrying the recipe extension."""
        return is_recipe_filename(path, self.recipe_ext) and os.path.isfile(path)
