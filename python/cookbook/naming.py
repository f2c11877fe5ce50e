"""
Name and key derivation shared by every code path that addresses a recipe.

The webpath is derived from the recipe name only, whether that name comes from
a file being loaded or from the basename reported by a remove event.
"""

import os
import re

RECIPE_EXT = ".md"

# A word is a run of letters/digits, optionally joined by apostrophes ("don't")
_WORD_PATTERN = re.compile(r"[^\W_]+(?:['’][^\W_]+)*")


def _title_word(match: "re.Match") -> str:
    word = match.group(0)
    return word[:1].upper() + word[1:].lower()


def title_case(name: str) -> str:
    """Upper-case the first letter of every word and lower-case the rest."""
    return _WORD_PATTERN.sub(_title_word, name)


def to_webpath(name: str) -> str:
    """
    Derive the URL-stable key for a recipe name.

    Title-cases each word, then removes spaces. Not injective:
    "chicken soup" and "Chicken  Soup" both map to "ChickenSoup".
    """
    return title_case(name).replace(" ", "")


def strip_extension(filename: str, ext: str = RECIPE_EXT) -> str:
    """Remove a trailing recipe extension, leaving other names untouched."""
    if ext and filename.endswith(ext):
        return filename[: -len(ext)]
    return filename


def is_recipe_filename(filename: str, ext: str = RECIPE_EXT) -> bool:
    return filename.endswith(ext)


def name_from_path(path: str, ext: str = RECIPE_EXT) -> str:
    """Recipe name for a file path, using only its basename."""
    return strip_extension(os.path.basename(path), ext)


def webpath_from_filename(filename: str, ext: str = RECIPE_EXT) -> str:
    return to_webpath(name_from_path(filename, ext))
