import logging
import re
from typing import Optional

from bs4.element import Tag

from memopad.core.dom import DomNode, NodeKind, SELECTED_CLASS, clone, remove_class

logger = logging.getLogger(__name__)

EXCESS_NEWLINES_RE = re.compile(r'\n{3,}')


def normalize_newlines(text: str) -> str:
    """Collapse runs of 3+ newlines to 2 and strip leading/trailing newlines."""
    text = EXCESS_NEWLINES_RE.sub('\n\n', text)
    return text.strip('\n')


def _container_markup(element: Tag) -> str:
    copy_ = clone(element)
    remove_class(copy_, SELECTED_CLASS)
    return str(copy_)


def _extract_children(node: DomNode) -> str:
    parts = []
    previous_kind: Optional[NodeKind] = None
    for child in node.children():
        kind = child.kind()
        # The newline emitted for an image container already ends its line,
        # so a <br> right after it is not counted again.
        if kind == NodeKind.LINE_BREAK and previous_kind == NodeKind.IMAGE_CONTAINER:
            previous_kind = kind
            continue
        parts.append(_extract_node(child, kind))
        previous_kind = kind
    return ''.join(parts)


def _extract_node(node: DomNode, kind: NodeKind) -> str:
    if kind == NodeKind.TEXT:
        return node.text_content()

    if kind == NodeKind.IMAGE_CONTAINER:
        # Keep the whole container markup, do not descend into it
        return _container_markup(node.element) + '\n'

    if kind == NodeKind.STANDALONE_IMAGE:
        return node.outer_markup()

    if kind == NodeKind.LINE_BREAK:
        return '\n'

    if kind == NodeKind.BLOCK_CONTAINER:
        content = _extract_children(node)
        return content + '\n' if content else content

    if kind == NodeKind.INLINE_OTHER:
        # Anchors and other inline markup: text only
        return _extract_children(node)

    return ''


def extract_plain_text(root: Tag) -> str:
    """
    Flatten the editable surface into NoteText.

    Image containers are kept verbatim (minus the transient 'selected' class),
    block and line-break structure becomes newlines, all other markup is dropped.
    """
    text = _extract_children(DomNode(root))
    result = normalize_newlines(text)
    logger.debug(f"Extracted {len(result)} chars of note text")
    return result
