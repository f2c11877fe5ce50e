"""
Exception types raised by the cookbook indexing and search core.
"""


class CookbookError(Exception):
    """Base exception for the cookbook core"""
    pass


class FileReadError(CookbookError):
    """Raised when a recipe file or the recipes directory cannot be read"""
    def __init__(self, filename: str, reason: str):
        self.filename = filename
        self.reason = reason
        super().__init__(f"Could not read '{filename}': {reason}")


class ParseError(CookbookError):
    """Raised when a recipe file cannot be converted from Markdown"""
    def __init__(self, filename: str, reason: str):
        self.filename = filename
        self.reason = reason
        super().__init__(f"Could not convert '{filename}': {reason}")


class IndexWriteError(CookbookError):
    """Raised when the index store fails to write or delete an entry"""
    def __init__(self, webpath: str, reason: str):
        self.webpath = webpath
        self.reason = reason
        super().__init__(f"Index write failed for '{webpath}': {reason}")


class RecipeNotFound(CookbookError, LookupError):
    """Raised when no index entry exists for a webpath"""
    def __init__(self, webpath: str):
        self.webpath = webpath
        super().__init__(f"Recipe '{webpath}' not found")


class QueryError(CookbookError, ValueError):
    """Raised when a search query string cannot be parsed"""
    def __init__(self, query: str, reason: str):
        self.query = query
        self.reason = reason
        super().__init__(f"Invalid search query '{query}': {reason}")


class WatchRegistrationError(CookbookError):
    """Raised when the recipes directory cannot be watched"""
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot watch '{path}': {reason}")
