import logging
from typing import Callable, Optional

from bs4.element import PageElement, Tag

from memopad.core.dom import (
    IMAGE_CONTAINER_CLASS,
    INSERTED_IMAGE_CLASS,
    SELECTED_CLASS,
    add_class,
    closest,
    contains,
    has_class,
    remove_class,
)
from memopad.images.preview import PreviewLauncher

logger = logging.getLogger(__name__)

DELETE_KEYS = ('Delete', 'Backspace')


class ImageSelectionController:
    """
    Click-to-select, Delete/Backspace-to-remove and double-click-to-preview for
    image containers on one surface. At most one container is selected.
    """

    def __init__(self, root: Tag, on_change: Callable[..., None],
                 preview: Optional[PreviewLauncher] = None):
        self.root = root
        self.on_change = on_change
        self.preview = preview
        self.selected: Optional[Tag] = None

    def _container_for(self, target: Optional[PageElement]) -> Optional[Tag]:
        return closest(target, lambda t: has_class(t, IMAGE_CONTAINER_CLASS), stop=self.root)

    def clear(self) -> None:
        if self.selected is not None:
            remove_class(self.selected, SELECTED_CLASS)
            self.selected = None

    def click(self, target: Optional[PageElement]) -> Optional[Tag]:
        """Select the container under target, or clear the selection."""
        container = self._container_for(target)
        if container is None:
            self.clear()
            return None
        if self.selected is not None and self.selected is not container:
            remove_class(self.selected, SELECTED_CLASS)
        self.selected = container
        add_class(container, SELECTED_CLASS)
        return container

    def key_down(self, key: str) -> bool:
        """
        Delete the selected container on Delete/Backspace.
        Returns True when the key was consumed.
        """
        if self.selected is None or key not in DELETE_KEYS:
            return False
        to_remove = self.selected
        self.clear()
        to_remove.decompose()
        logger.info("Image container deleted")
        # Removing an image is not a text edit: save, but do not linkify
        self.on_change(skip_linkify=True)
        return True

    def double_click(self, target: Optional[PageElement]) -> bool:
        """Open the preview for the image under target. Returns True when one was opened."""
        img = closest(target, lambda t: t.name == 'img' and has_class(t, INSERTED_IMAGE_CLASS),
                      stop=self.root)
        if img is None or not img.get('src') or self.preview is None:
            return False
        return self.preview.show(img['src']) is not None

    def forget_detached(self) -> None:
        """Drop the selection if its container was replaced by a content rewrite."""
        if self.selected is not None and not contains(self.root, self.selected):
            self.selected = None
