import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

PREVIEW_EVENT = 'preview-image-data'


class PreviewSurface(ABC):
    """
    A full-screen display surface for one image.
    The surface must acknowledge readiness before it can receive the image payload.
    """

    @abstractmethod
    def open(self) -> None:
        """Start creating the surface. Readiness is reported later through on_ready."""
        pass

    @abstractmethod
    def on_ready(self, callback: Callable[[], None]) -> None:
        """Register a callback fired once the surface has fully initialized."""
        pass

    @abstractmethod
    def on_error(self, callback: Callable[[Any], None]) -> None:
        """Register a callback fired if the surface cannot be created."""
        pass

    @abstractmethod
    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        """Deliver an event to the surface."""
        pass


class PreviewLauncher:
    """
    Opens a preview surface and hands it the image only after it says it is ready.

    surfaces holds the previews still waiting for their handshake; a surface
    leaves it once its payload is sent or its creation fails.
    """

    def __init__(self, surface_factory: Callable[[], PreviewSurface]):
        self.surface_factory = surface_factory
        self.surfaces: List[PreviewSurface] = []

    def show(self, image_src: str) -> Optional[PreviewSurface]:
        """Open a preview for image_src. Failures are logged; returns None on failure."""
        try:
            surface = self.surface_factory()
        except Exception as e:
            logger.error(f"Failed to create preview surface: {e}", exc_info=True)
            return None

        logger.debug(f"Opening preview, image data length: {len(image_src)}")

        sent = []

        def send_payload():
            if sent:
                return  # one payload per surface
            sent.append(True)
            self._release(surface)
            try:
                surface.emit(PREVIEW_EVENT, {'data': image_src})
                logger.info("Preview image data sent")
            except Exception as e:
                logger.error(f"Failed to send preview image data: {e}", exc_info=True)

        def report_error(error):
            logger.error(f"Preview surface creation failed: {error}")
            self._release(surface)

        self.surfaces.append(surface)
        try:
            surface.on_ready(send_payload)
            surface.on_error(report_error)
            surface.open()
        except Exception as e:
            logger.error(f"Failed to open preview surface: {e}", exc_info=True)
            self._release(surface)
            return None

        return surface

    def _release(self, surface: PreviewSurface) -> None:
        self.surfaces = [s for s in self.surfaces if s is not surface]


class QueuedPreviewSurface(PreviewSurface):
    """
    In-process surface that records delivered events.

    Readiness is signalled explicitly by calling acknowledge_ready() from whatever
    hosts the real display (for example the HTTP layer once the preview page loads).
    """

    def __init__(self):
        self.surface_id = uuid.uuid4().hex
        self.opened = False
        self.ready = False
        self.events: List[Dict[str, Any]] = []
        self._ready_callbacks: List[Callable[[], None]] = []
        self._error_callbacks: List[Callable[[Any], None]] = []

    def open(self) -> None:
        self.opened = True

    def on_ready(self, callback: Callable[[], None]) -> None:
        self._ready_callbacks.append(callback)
        if self.ready:
            callback()

    def on_error(self, callback: Callable[[Any], None]) -> None:
        self._error_callbacks.append(callback)

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        if not self.ready:
            raise RuntimeError("Preview surface is not ready")
        self.events.append({'event': event, 'payload': payload})

    def acknowledge_ready(self) -> None:
        if self.ready:
            return
        self.ready = True
        for callback in list(self._ready_callbacks):
            callback()

    def fail(self, error: Any) -> None:
        for callback in list(self._error_callbacks):
            callback(error)
