"""
Drag-to-resize for image containers, and the registry that keeps binding idempotent.
"""

import logging
import re
from enum import Enum, auto
from typing import Callable, Dict, List, Optional, Tuple

from bs4.element import Tag

from memopad.core.dom import (
    INSERTED_IMAGE_CLASS,
    RESIZE_HANDLE_CLASS,
    contains,
    find_image_containers,
    has_class,
    style_get,
    style_set,
)

logger = logging.getLogger(__name__)

PX_RE = re.compile(r'^\s*(\d+(?:\.\d+)?)px\s*$')

# Called with skip_linkify=True when a resize finishes
ChangeCallback = Callable[..., None]


class ResizeState(Enum):
    IDLE = auto()
    RESIZING = auto()


def _parse_px(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    match = PX_RE.match(value)
    return float(match.group(1)) if match else None


def find_parts(container: Tag) -> Tuple[Optional[Tag], Optional[Tag]]:
    img = container.find(lambda t: t.name == 'img' and has_class(t, INSERTED_IMAGE_CLASS))
    handle = container.find(lambda t: has_class(t, RESIZE_HANDLE_CLASS))
    return img, handle


class ResizeController:
    """
    Pointer-drag state machine for one container: IDLE -> RESIZING -> IDLE.

    The new width is start width + horizontal pointer delta, clamped to
    [min_width, available_width()].
    """

    def __init__(self, container: Tag, img: Tag, handle: Tag,
                 available_width: Callable[[], float],
                 on_change: ChangeCallback,
                 min_width: int = 50):
        self.container = container
        self.img = img
        self.handle = handle
        self.available_width = available_width
        self.on_change = on_change
        self.min_width = min_width
        self.state = ResizeState.IDLE
        self.start_x = 0.0
        self.start_width = 0.0

    @property
    def is_resizing(self) -> bool:
        return self.state == ResizeState.RESIZING

    def current_width(self) -> float:
        width = _parse_px(style_get(self.img, 'width'))
        if width is not None:
            return width
        try:
            natural = float(self.img.get('data-width') or 0)
        except ValueError:
            return 0.0
        # Without an inline width the image is drawn at most max-width: 100%
        return min(natural, self.available_width())

    def pointer_down(self, client_x: float) -> None:
        self.state = ResizeState.RESIZING
        self.start_x = client_x
        self.start_width = self.current_width()
        style_set(self.handle, 'opacity', '1')

    def pointer_move(self, client_x: float) -> Optional[int]:
        """Apply the dragged width. Returns the width set, or None when idle."""
        if not self.is_resizing:
            return None
        new_width = self.start_width + (client_x - self.start_x)
        max_width = max(self.min_width, self.available_width())
        width = int(round(min(max(new_width, self.min_width), max_width)))
        style_set(self.img, 'width', f'{width}px')
        style_set(self.img, 'max-width', 'none')
        return width

    def pointer_up(self) -> bool:
        """Finish a drag. Returns True when a resize actually ended."""
        if not self.is_resizing:
            return False
        self.state = ResizeState.IDLE
        style_set(self.handle, 'opacity', '0')
        logger.debug(f"Image resized to {style_get(self.img, 'width')}")
        # A resize is not a text edit: save, but do not linkify
        self.on_change(skip_linkify=True)
        return True


class BindingRegistry:
    """
    Which containers already have a ResizeController.

    Keyed by object identity; the entry holds the container itself so the id
    cannot be recycled while it is registered.
    """

    def __init__(self):
        self._bound: Dict[int, Tuple[Tag, ResizeController]] = {}

    def __len__(self):
        return len(self._bound)

    def is_bound(self, container: Tag) -> bool:
        entry = self._bound.get(id(container))
        return entry is not None and entry[0] is container

    def bind(self, container: Tag, controller: ResizeController) -> None:
        self._bound[id(container)] = (container, controller)

    def unbind(self, container: Tag) -> None:
        if self.is_bound(container):
            del self._bound[id(container)]

    def controller_for(self, container: Tag) -> Optional[ResizeController]:
        entry = self._bound.get(id(container))
        if entry is not None and entry[0] is container:
            return entry[1]
        return None

    def prune(self, root: Tag) -> int:
        """Forget containers no longer attached under root."""
        stale = [key for key, (container, _) in self._bound.items() if not contains(root, container)]
        for key in stale:
            del self._bound[key]
        return len(stale)


def bind_resize(container: Tag, registry: BindingRegistry,
                available_width: Callable[[], float],
                on_change: ChangeCallback,
                min_width: int = 50) -> Optional[ResizeController]:
    """Attach a controller unless one is already attached. Containers missing parts are skipped."""
    existing = registry.controller_for(container)
    if existing is not None:
        return existing

    img, handle = find_parts(container)
    if img is None or handle is None:
        logger.debug("Image container without image or handle, not bound")
        return None

    controller = ResizeController(container, img, handle, available_width, on_change, min_width)
    registry.bind(container, controller)
    return controller


def rebind_all(root: Tag, registry: BindingRegistry,
               available_width: Callable[[], float],
               on_change: ChangeCallback,
               min_width: int = 50) -> List[ResizeController]:
    """Bind every container under root that is not bound yet. Returns the new controllers."""
    registry.prune(root)
    created = []
    for container in find_image_containers(root):
        if registry.is_bound(container):
            continue
        controller = bind_resize(container, registry, available_width, on_change, min_width)
        if controller is not None:
            created.append(controller)
    if created:
        logger.debug(f"Bound resize handlers on {len(created)} container(s)")
    return created
