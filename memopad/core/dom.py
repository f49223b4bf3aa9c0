"""
Adapter between the editable surface (a BeautifulSoup tree) and the content core.

The content core never asks "is this a div?" directly. It asks a DomNode for its
kind() and dispatches on the closed NodeKind set, so the same traversal code works
for any tree that can answer kind() / text_content() / children() / outer_markup().
"""

import copy
import html as html_module
import logging
from enum import Enum, auto
from typing import Callable, Dict, Iterator, List, Optional, Union

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PageElement, PreformattedString, Tag

logger = logging.getLogger(__name__)

PARSER = 'html.parser'

IMAGE_CONTAINER_CLASS = 'image-container'
INSERTED_IMAGE_CLASS = 'inserted-image'
RESIZE_HANDLE_CLASS = 'resize-handle'
SELECTED_CLASS = 'selected'

BLOCK_TAGS = frozenset({'div', 'p'})

SURFACE_ID = 'note-display'


class NodeKind(Enum):
    TEXT = auto()
    IMAGE_CONTAINER = auto()
    STANDALONE_IMAGE = auto()
    LINE_BREAK = auto()
    BLOCK_CONTAINER = auto()
    INLINE_OTHER = auto()
    IGNORED = auto()  # comments, doctype, processing instructions


def classify(node: PageElement) -> NodeKind:
    """Map a bs4 node onto its NodeKind. Priority follows the extraction table."""
    if isinstance(node, NavigableString):
        # Comment, CData, Doctype etc. are NavigableString subclasses but carry no note text
        if isinstance(node, PreformattedString):
            return NodeKind.IGNORED
        return NodeKind.TEXT

    if not isinstance(node, Tag):
        return NodeKind.IGNORED

    if has_class(node, IMAGE_CONTAINER_CLASS):
        return NodeKind.IMAGE_CONTAINER
    name = (node.name or '').lower()
    if name == 'img':
        return NodeKind.STANDALONE_IMAGE
    if name == 'br':
        return NodeKind.LINE_BREAK
    if name in BLOCK_TAGS:
        return NodeKind.BLOCK_CONTAINER
    return NodeKind.INLINE_OTHER


class DomNode:
    """Capability view over one node of the surface tree."""

    __slots__ = ('element',)

    def __init__(self, element: PageElement):
        self.element = element

    def kind(self) -> NodeKind:
        return classify(self.element)

    def text_content(self) -> str:
        if isinstance(self.element, Tag):
            return ''.join(str(t) for t in iter_text_nodes(self.element))
        if classify(self.element) == NodeKind.TEXT:
            return str(self.element)
        return ''

    def children(self) -> List['DomNode']:
        if isinstance(self.element, Tag):
            return [DomNode(child) for child in self.element.contents]
        return []

    def outer_markup(self) -> str:
        if isinstance(self.element, Tag):
            return str(self.element)
        return html_module.escape(self.text_content(), quote=False)

    def __repr__(self):
        return f"DomNode({self.kind().name}, {str(self.element)[:40]!r})"


# --- Tree construction ---

def parse_fragment(markup: str) -> BeautifulSoup:
    """Parse an HTML fragment the way the surface's innerHTML setter would."""
    return BeautifulSoup(markup or '', PARSER)


def create_surface(markup: str = '') -> Tag:
    """Create a fresh editable surface element, optionally pre-filled with markup."""
    soup = BeautifulSoup(f'<div id="{SURFACE_ID}" contenteditable="true"></div>', PARSER)
    surface = soup.find('div')
    if markup:
        set_inner_html(surface, markup)
    return surface


def new_tag(name: str, attrs: Optional[Dict[str, str]] = None) -> Tag:
    """Create a detached Tag that can be inserted into any surface tree."""
    return BeautifulSoup('', PARSER).new_tag(name, attrs=attrs or {})


def set_inner_html(root: Tag, markup: str) -> None:
    """Replace every child of root with the parsed markup."""
    root.clear()
    fragment = parse_fragment(markup)
    for child in list(fragment.contents):
        root.append(child.extract())


def inner_html(root: Tag) -> str:
    return root.decode_contents()


def clone(tag: Tag) -> Tag:
    """Deep copy of a tag, detached from its tree."""
    return copy.copy(tag)


# --- Traversal ---

def iter_text_nodes(root: PageElement) -> Iterator[NavigableString]:
    """Yield text nodes under root in document order."""
    if not isinstance(root, Tag):
        if classify(root) == NodeKind.TEXT:
            yield root
        return
    for node in root.descendants:
        if classify(node) == NodeKind.TEXT:
            yield node


def text_length(node: PageElement) -> int:
    return sum(len(t) for t in iter_text_nodes(node))


def contains(root: Tag, node: Optional[PageElement]) -> bool:
    """Identity-based containment (bs4 equality compares markup, not identity)."""
    if node is None:
        return False
    if node is root:
        return True
    return any(parent is root for parent in node.parents)


def child_index(parent: Tag, node: PageElement) -> int:
    for i, child in enumerate(parent.contents):
        if child is node:
            return i
    raise ValueError("node is not a child of parent")


def closest(node: Optional[PageElement], predicate: Callable[[Tag], bool],
            stop: Optional[Tag] = None) -> Optional[Tag]:
    """Nearest inclusive ancestor Tag matching predicate, not looking above stop."""
    current = node
    while current is not None:
        if isinstance(current, Tag) and predicate(current):
            return current
        if current is stop:
            break
        current = current.parent
    return None


def find_image_containers(root: Tag) -> List[Tag]:
    return [tag for tag in root.find_all('div') if has_class(tag, IMAGE_CONTAINER_CLASS)]


# --- Class list helpers ---

def get_classes(tag: Tag) -> List[str]:
    value = tag.get('class') or []
    if isinstance(value, str):
        value = value.split()
    return list(value)


def has_class(tag: Tag, name: str) -> bool:
    return name in get_classes(tag)


def add_class(tag: Tag, name: str) -> None:
    classes = get_classes(tag)
    if name not in classes:
        classes.append(name)
        tag['class'] = classes


def remove_class(tag: Tag, name: str) -> None:
    classes = [c for c in get_classes(tag) if c != name]
    if classes:
        tag['class'] = classes
    elif tag.has_attr('class'):
        del tag['class']


# --- Inline style helpers ---

def parse_style(value: Union[str, None]) -> Dict[str, str]:
    styles = {}
    for declaration in (value or '').split(';'):
        if ':' not in declaration:
            continue
        prop, _, val = declaration.partition(':')
        prop = prop.strip().lower()
        if prop:
            styles[prop] = val.strip()
    return styles


def format_style(styles: Dict[str, str]) -> str:
    return ' '.join(f"{prop}: {val};" for prop, val in styles.items())


def style_get(tag: Tag, prop: str) -> Optional[str]:
    return parse_style(tag.get('style')).get(prop.lower())


def style_set(tag: Tag, prop: str, value: str) -> None:
    styles = parse_style(tag.get('style'))
    styles[prop.lower()] = value
    tag['style'] = format_style(styles)
