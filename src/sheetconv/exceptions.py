class SheetconvError(Exception):
    """Base exception for sheetconv."""


class ValidationError(SheetconvError, ValueError):
    """Raised when a model value is constructed with invalid data."""


class CannotRenderError(SheetconvError):
    """Raised when a renderer refuses a chordsheet in ``can_render``."""

    def __init__(self, format: str):
        self.format = getattr(format, "value", format)
        super().__init__(f"Cannot render chordsheet in {self.format} format")


class UnknownLineTypeError(SheetconvError):
    """Raised when a renderer is handed something that is not a Line variant."""

    def __init__(self, line: object):
        self.line = line
        kind = getattr(line, "kind", type(line).__name__)
        super().__init__(f"Unknown line type: {kind}")


class UnsupportedFormatError(SheetconvError):
    """Raised when no renderer is registered for the requested format."""

    def __init__(self, format: str):
        self.format = getattr(format, "value", format)
        super().__init__(f"No renderer available for format: {self.format}")
