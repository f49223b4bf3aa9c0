"""
Keep the caret at the same character offset while the surface is rewritten.

Offsets count text-node characters only; images and line breaks contribute
nothing, matching what a range's string form would report.
"""

import logging
from typing import Optional

from bs4.element import PageElement, Tag

from memopad.core.dom import NodeKind, classify, contains, iter_text_nodes, set_inner_html, text_length

logger = logging.getLogger(__name__)


class Selection:
    """
    A collapsed caret inside a surface tree.

    node is a text node (offset = characters into it) or a Tag (offset = child index).
    """

    def __init__(self, node: Optional[PageElement] = None, offset: int = 0):
        self.node = node
        self.offset = offset

    @property
    def is_active(self) -> bool:
        return self.node is not None

    def collapse(self, node: PageElement, offset: int) -> None:
        self.node = node
        self.offset = offset

    def clear(self) -> None:
        self.node = None
        self.offset = 0

    def is_within(self, root: Tag) -> bool:
        return self.is_active and contains(root, self.node)

    def __repr__(self):
        if not self.is_active:
            return "Selection(<none>)"
        return f"Selection({str(self.node)[:20]!r}, {self.offset})"


def _text_before(root: Tag, target: PageElement) -> int:
    """Characters of text that precede target in document order."""
    count = 0
    for node in root.descendants:
        if node is target:
            break
        if classify(node) == NodeKind.TEXT:
            count += len(node)
    return count


def capture_offset(root: Tag, selection: Optional[Selection]) -> int:
    """Character offset of the caret inside root, or 0 when the caret is elsewhere."""
    if selection is None or not selection.is_within(root):
        return 0

    node = selection.node
    if node is root:
        return sum(text_length(child) for child in root.contents[:selection.offset])

    before = _text_before(root, node)
    if isinstance(node, Tag):
        return before + sum(text_length(child) for child in node.contents[:selection.offset])
    return before + min(selection.offset, len(node))


def restore_offset(root: Tag, offset: int, selection: Optional[Selection]) -> bool:
    """
    Place the caret offset characters into root.
    The first text node whose cumulative length reaches the offset wins.
    Returns False, leaving the selection untouched, when the text is too short.
    """
    if selection is None:
        return False

    consumed = 0
    for text_node in iter_text_nodes(root):
        length = len(text_node)
        if consumed + length >= offset:
            selection.collapse(text_node, offset - consumed)
            return True
        consumed += length

    logger.debug(f"Cursor restore skipped: offset {offset} beyond text length {consumed}")
    return False


def rewrite_preserving_cursor(root: Tag, markup: str, selection: Optional[Selection]) -> int:
    """Replace root's content with markup, keeping the caret offset. Returns the captured offset."""
    was_inside = selection is not None and selection.is_within(root)
    offset = capture_offset(root, selection)
    set_inner_html(root, markup)
    if offset > 0:
        restore_offset(root, offset, selection)
    elif was_inside:
        # The old caret node is gone; park the caret at the start
        selection.collapse(root, 0)
    return offset
