"""
Editor session: wires the content core to one editable surface.

Every change notification re-extracts NoteText and resets two debounces: a short
one that saves, and a long one that linkifies and rewrites the surface. A third
short debounce coalesces image re-binding after nodes are added. Time is read
from an injectable clock and due work runs from tick(), so the whole flow is
single-threaded and deterministic.
"""

import logging
import time
from typing import Callable, Iterable, List, Optional

from bs4.element import PageElement, Tag

from memopad.content.cursor import Selection, rewrite_preserving_cursor
from memopad.content.extract import extract_plain_text
from memopad.content.linkify import contains_url, linkify
from memopad.core.config import EditorConfig
from memopad.core.debounce import Debounce
from memopad.core.dom import create_surface, inner_html, parse_fragment, set_inner_html
from memopad.editor.store import NoteStore
from memopad.images.container import ImageBlock, container_from_block, ingest, insert_at_cursor
from memopad.images.ingest import SOURCE_DROP, SOURCE_PASTE, FileItem, ImageError, ImageTooLargeError
from memopad.images.preview import PreviewLauncher, PreviewSurface
from memopad.images.resize import BindingRegistry, ResizeController, bind_resize, rebind_all
from memopad.images.selection import ImageSelectionController

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]


def log_notice(message: str) -> None:
    logger.warning(f"User notice: {message}")


class EditorSession:
    def __init__(self, store: NoteStore, config: Optional[EditorConfig] = None,
                 root: Optional[Tag] = None,
                 clock: Callable[[], float] = time.monotonic,
                 notifier: Notifier = log_notice,
                 preview_factory: Optional[Callable[[], PreviewSurface]] = None):
        self.store = store
        self.config = config or EditorConfig()
        self.root = root if root is not None else create_surface()
        self.clock = clock
        self.notifier = notifier
        self.selection = Selection()
        self.registry = BindingRegistry()

        self.save_timer = Debounce(self.config.save_delay)
        self.linkify_timer = Debounce(self.config.linkify_delay)
        self.rebind_timer = Debounce(self.config.rebind_delay)
        self.pending_text = ''

        preview = PreviewLauncher(preview_factory) if preview_factory else None
        self.images = ImageSelectionController(self.root, self.notify_change, preview)
        self._active_resize: Optional[ResizeController] = None

    # --- Lifecycle ---

    def load(self) -> bool:
        """Load the stored note into the surface. Failures leave the surface as it was."""
        try:
            content = self.store.load_note()
        except Exception as e:
            logger.error(f"Failed to load note: {e}", exc_info=True)
            return False

        set_inner_html(self.root, linkify(content))
        self.pending_text = content
        self.rebind_images()
        logger.info(f"Note loaded ({len(content)} chars)")
        return True

    def new_memo(self) -> Optional[str]:
        """Start a fresh memo: new id in the store, empty surface, nothing pending."""
        try:
            memo_id = self.store.create_new_memo()
        except Exception as e:
            logger.error(f"Failed to create new memo: {e}", exc_info=True)
            return None

        self.save_timer.cancel()
        self.linkify_timer.cancel()
        set_inner_html(self.root, '')
        self.selection.clear()
        self.images.forget_detached()
        self.registry.prune(self.root)
        self.pending_text = ''
        return memo_id

    # --- Change notifications ---

    def notify_change(self, skip_linkify: bool = False) -> str:
        """
        The surface content changed. Extracts NoteText and (re)starts the debounces.
        skip_linkify is set for image resize/delete, which must be saved but not re-linkified.
        """
        text = extract_plain_text(self.root)
        self.pending_text = text
        now = self.clock()
        if not skip_linkify:
            self.linkify_timer.reset(now)
        self.save_timer.reset(now)
        return text

    def notify_mutation(self, added_nodes: bool = True) -> None:
        """Nodes were added to the surface; schedule a re-bind scan."""
        if added_nodes:
            self.rebind_timer.reset(self.clock())

    def tick(self, now: Optional[float] = None) -> List[str]:
        """Run whatever debounced work is due. Returns the names of the paths that ran."""
        if now is None:
            now = self.clock()
        ran = []
        if self.save_timer.fire(now):
            self.save(self.pending_text)
            ran.append('save')
        if self.linkify_timer.fire(now):
            self.apply_linkify(self.pending_text)
            ran.append('linkify')
        if self.rebind_timer.fire(now):
            self.rebind_images()
            ran.append('rebind')
        return ran

    def flush(self) -> None:
        """Save immediately if a save is pending."""
        if self.save_timer.pending:
            self.save_timer.cancel()
            self.save(self.pending_text)

    # --- Debounced work ---

    def save(self, text: str) -> bool:
        try:
            if text.strip():
                self.store.save_note_to_history(text)
            else:
                self.store.save_note(text)
            logger.debug(f"Auto-saved note ({len(text)} chars)")
            return True
        except Exception as e:
            logger.error(f"Auto-save failed: {e}", exc_info=True)
            return False

    def apply_linkify(self, text: str) -> bool:
        """Rewrite the surface with linkified text when that changes it. Keeps the caret offset."""
        if not contains_url(text):
            return False

        markup = linkify(text)
        if inner_html(self.root) == parse_fragment(markup).decode_contents():
            return False

        offset = rewrite_preserving_cursor(self.root, markup, self.selection)
        self.images.forget_detached()
        self.notify_mutation(added_nodes=True)
        logger.debug(f"Surface re-linkified, caret offset {offset}")
        return True

    def _available_width(self) -> float:
        return self.config.surface_width

    def rebind_images(self) -> List[ResizeController]:
        return rebind_all(
            self.root,
            self.registry,
            available_width=self._available_width,
            on_change=self.notify_change,
            min_width=self.config.min_image_width,
        )

    # --- Images ---

    def insert_image(self, block: ImageBlock) -> Tag:
        container = container_from_block(block)
        insert_at_cursor(self.root, container, self.selection)
        # Resizable immediately, before the rebind timer fires
        bind_resize(container, self.registry, self._available_width, self.notify_change,
                    self.config.min_image_width)
        self.notify_mutation(added_nodes=True)
        self.notify_change()
        return container

    def paste(self, items: Iterable[FileItem]) -> Optional[Tag]:
        """
        Insert the first acceptable image from a clipboard payload.
        Oversized images are skipped with a notice; a processing failure stops the paste.
        """
        for item in items:
            if not item.is_image:
                continue
            try:
                block = ingest(item, SOURCE_PASTE, self.config)
            except ImageTooLargeError as e:
                self.notifier(e.message)
                continue
            except ImageError as e:
                self.notifier(e.message)
                return None
            logger.info("Image pasted")
            return self.insert_image(block)
        return None

    def drop(self, files: Iterable[FileItem]) -> List[Tag]:
        """Insert every acceptable dropped image, in order."""
        inserted = []
        for item in files:
            if not item.is_image:
                continue
            try:
                block = ingest(item, SOURCE_DROP, self.config)
            except ImageError as e:
                self.notifier(e.message)
                continue
            inserted.append(self.insert_image(block))
        if inserted:
            logger.info(f"Dropped {len(inserted)} image(s)")
        return inserted

    # --- Pointer / keyboard events ---

    def click(self, target: Optional[PageElement]) -> Optional[Tag]:
        return self.images.click(target)

    def double_click(self, target: Optional[PageElement]) -> bool:
        return self.images.double_click(target)

    def key_down(self, key: str) -> bool:
        return self.images.key_down(key)

    def pointer_down(self, container: Tag, client_x: float) -> bool:
        """Pointer pressed on a container's resize handle."""
        controller = self.registry.controller_for(container)
        if controller is None:
            return False
        controller.pointer_down(client_x)
        self._active_resize = controller
        return True

    def pointer_move(self, client_x: float) -> Optional[int]:
        if self._active_resize is None:
            return None
        return self._active_resize.pointer_move(client_x)

    def pointer_up(self) -> bool:
        controller, self._active_resize = self._active_resize, None
        if controller is None:
            return False
        return controller.pointer_up()
