import logging

from .dialects import DIALECTS
from .exceptions import UnsupportedFormatError
from .renderer import FormatRenderer

logger = logging.getLogger(__name__)


def _key(format) -> str:
    # Store plain identifiers so get_supported_formats lists strings.
    return str(getattr(format, "value", format))


class RendererRegistry:
    """Map from dialect identifier to renderer instance.

    Build one registry and pass it to whatever needs renderers.  The five
    built-in dialects are instantiated on first use; identifiers may be
    :class:`~sheetconv.models.NotationFormat` members or plain strings.
    """

    def __init__(self, include_defaults: bool = True):
        self._include_defaults = include_defaults
        self._renderers: dict[str, FormatRenderer] | None = None

    @property
    def renderers(self) -> dict[str, FormatRenderer]:
        if self._renderers is None:
            self._renderers = {}
            if self._include_defaults:
                for descriptor in DIALECTS:
                    self._renderers[_key(descriptor.format)] = FormatRenderer(descriptor)
                logger.debug("Initialised %d default renderers", len(self._renderers))
        return self._renderers

    def create_renderer(self, format: str) -> FormatRenderer:
        """Return the renderer for *format*.

        Raises UnsupportedFormatError if none is registered.
        """
        renderer = self.renderers.get(_key(format))
        if renderer is None:
            raise UnsupportedFormatError(format)
        return renderer

    def get_renderer(self, format: str) -> FormatRenderer | None:
        """Like :meth:`create_renderer` but returns None instead of raising."""
        return self.renderers.get(_key(format))

    def get_supported_formats(self) -> list[str]:
        return list(self.renderers)

    def is_format_supported(self, format: str) -> bool:
        return _key(format) in self.renderers

    def register_renderer(self, format: str, renderer: FormatRenderer) -> None:
        """Register *renderer* for *format*, replacing any existing one."""
        if _key(format) in self.renderers:
            logger.debug("Replacing renderer for %s", format)
        self.renderers[_key(format)] = renderer

    def unregister_renderer(self, format: str) -> bool:
        """Remove the renderer for *format*; return whether one was registered."""
        return self.renderers.pop(_key(format), None) is not None
