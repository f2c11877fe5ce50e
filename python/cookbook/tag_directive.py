import xml.etree.ElementTree as etree
from typing import List, Optional, Tuple

import markdown
from markdown.blockprocessors import BlockProcessor
from markdown.extensions import Extension
from markdown.util import AtomicString

from colored_logger import get_colored_logger

logger = get_colored_logger(__name__)

DIRECTIVE_PREFIX = "tags:"
DEFAULT_TAG = "Other"
# Deeper indentation makes the line a code block
MAX_DIRECTIVE_INDENT = 3

# Extensions used for every recipe conversion: tables and fenced code via
# "extra", hard line breaks via "nl2br"
MARKDOWN_EXTENSIONS = ["extra", "nl2br", "sane_lists"]


def parse_tag_line(line: str) -> List[str]:
    """
    Split the value of a "tags:" line into tag names.

    Values are split on commas and trimmed; empty names are kept as-is.
    """
    value = line[len(DIRECTIVE_PREFIX):] if line.startswith(DIRECTIVE_PREFIX) else line
    return [tag.strip() for tag in value.split(",")]


class TagsBlockProcessor(BlockProcessor):
    """
    Recognizes a "tags: a, b, c" line as the first unit of its parent.

    The line is removed from the flow of the document and rendered as a
    ``<div class="tags">`` holding one ``<span class="tag">`` per tag. Anything
    following the line in the same block is handed back to the parser.
    """

    def __init__(self, parser, extension: "TagDirectiveExtension"):
        super().__init__(parser)
        self.extension = extension

    @staticmethod
    def _dedent(block: str) -> str:
        stripped = block.lstrip(" ")
        if len(block) - len(stripped) > MAX_DIRECTIVE_INDENT:
            return block
        return stripped

    def test(self, parent: etree.Element, block: str) -> bool:
        if not self._dedent(block).startswith(DIRECTIVE_PREFIX):
            return False
        # Only when nothing precedes it at this nesting level
        return len(parent) == 0 and not (parent.text or "").strip()

    def run(self, parent: etree.Element, blocks: List[str]) -> None:
        block = self._dedent(blocks.pop(0))
        line, _, rest = block.partition("\n")
        tags = parse_tag_line(line)

        container = etree.SubElement(parent, "div", {"class": "tags"})
        for tag in tags:
            span = etree.SubElement(container, "span", {"class": "tag"})
            # AtomicString keeps inline patterns off the tag text; the
            # serializer still escapes it
            span.text = AtomicString(tag + " ")

        self.extension.record_tags(tags)

        if rest.strip():
            blocks.insert(0, rest)


class TagDirectiveExtension(Extension):
    """Python-Markdown extension collecting the tags of the converted document."""

    def __init__(self, **kwargs):
        self.tags: Optional[List[str]] = None
        super().__init__(**kwargs)

    def extendMarkdown(self, md: markdown.Markdown) -> None:
        md.registerExtension(self)
        # Ahead of every core block processor, including the empty-block one
        md.parser.blockprocessors.register(
            TagsBlockProcessor(md.parser, self), "tag_directive", 110
        )

    def record_tags(self, tags: List[str]) -> None:
        # The first directive in source order supplies the document's tags
        if self.tags is None:
            self.tags = list(tags)

    def reset(self) -> None:
        self.tags = None


def convert_to_html(source: str) -> Tuple[str, List[str]]:
    """
    Convert recipe Markdown to HTML and return it together with its tags.

    Args:
        source: Markdown text of the recipe

    Returns:
        (html, tags) where tags is ["Other"] if the document has no tags line
    """
    extension = TagDirectiveExtension()
    md = markdown.Markdown(extensions=MARKDOWN_EXTENSIONS + [extension])
    html = md.convert(source)

    tags = extension.tags if extension.tags else [DEFAULT_TAG]
    logger.debug("Converted %d characters of Markdown, tags=%s", len(source), tags)
    return html, tags
