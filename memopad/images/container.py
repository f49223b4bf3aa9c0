import logging
from dataclasses import dataclass, field
from typing import Optional

from bs4.element import NavigableString, Tag

from memopad.content.cursor import Selection
from memopad.core.config import EditorConfig
from memopad.core.dom import (
    IMAGE_CONTAINER_CLASS,
    INSERTED_IMAGE_CLASS,
    RESIZE_HANDLE_CLASS,
    child_index,
    closest,
    has_class,
    new_tag,
    parse_fragment,
)
from memopad.images.ingest import FileItem, NormalizedImage, ingest_image

logger = logging.getLogger(__name__)

CONTAINER_STYLE = 'position: relative; display: inline-block; max-width: 100%; margin: 10px 0;'
IMAGE_STYLE = 'width: auto; max-width: 100%; height: auto; display: block;'


@dataclass(frozen=True)
class ImageBlock:
    """Serialized image container, stored verbatim inside NoteText."""
    markup: str = field(repr=False)
    data_url: str = field(repr=False)
    mime: str
    width: int
    height: int


def build_container(image: NormalizedImage) -> Tag:
    """Wrap an image in a non-editable container with a resize handle."""
    container = new_tag('div', {
        'class': IMAGE_CONTAINER_CLASS,
        'contenteditable': 'false',
        'style': CONTAINER_STYLE,
    })
    img = new_tag('img', {
        'class': f'{INSERTED_IMAGE_CLASS} resizable',
        'src': image.data_url,
        'style': IMAGE_STYLE,
        'draggable': 'false',
        'data-width': str(image.width),
        'data-height': str(image.height),
    })
    handle = new_tag('div', {'class': RESIZE_HANDLE_CLASS})
    container.append(img)
    container.append(handle)
    return container


def create_image_block(image: NormalizedImage) -> ImageBlock:
    markup = str(build_container(image))
    return ImageBlock(markup, image.data_url, image.mime, image.width, image.height)


def ingest(item: FileItem, source: str, config: EditorConfig) -> ImageBlock:
    """Size-check, normalize and wrap one pasted or dropped image."""
    return create_image_block(ingest_image(item, source, config))


def container_from_block(block: ImageBlock) -> Tag:
    """Materialize an ImageBlock as a detached container Tag."""
    fragment = parse_fragment(block.markup)
    container = fragment.find(lambda tag: has_class(tag, IMAGE_CONTAINER_CLASS))
    if container is None:
        raise ValueError("ImageBlock markup holds no image container")
    return container.extract()


def insert_at_cursor(root: Tag, container: Tag, selection: Optional[Selection]) -> Tag:
    """
    Insert container at the caret and move the caret just after it.
    Without a caret inside root the container is appended at the end.
    """
    if selection is None or not selection.is_within(root):
        root.append(container)
        logger.debug("No caret inside surface, image appended at end")
        return container

    node = selection.node
    offset = selection.offset

    # Never nest inside another (non-editable) image container
    enclosing = closest(node, lambda t: has_class(t, IMAGE_CONTAINER_CLASS), stop=root)
    if enclosing is not None and enclosing is not root:
        node = enclosing.parent
        offset = child_index(node, enclosing) + 1

    if isinstance(node, NavigableString):
        parent = node.parent
        index = child_index(parent, node)
        text = str(node)
        offset = max(0, min(offset, len(text)))
        before, after = text[:offset], text[offset:]
        node.extract()
        if after:
            parent.insert(index, NavigableString(after))
        parent.insert(index, container)
        if before:
            parent.insert(index, NavigableString(before))
    else:
        parent = node
        index = max(0, min(offset, len(parent.contents)))
        parent.insert(index, container)

    selection.collapse(parent, child_index(parent, container) + 1)
    return container
