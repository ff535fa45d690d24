"""Line-level rendering: text lines with chords, blank lines, annotations.

Chords go either *above* the lyric (an overlay line built column by column)
or *inline* (spliced into the lyric right to left, so earlier insertions never
shift the offsets of chords still waiting to be inserted)::

    above:   C       F
             Amazing grace how sweet the sound

    inline:  [C]Amazing [F]grace how sweet the sound

Chord data reaching this module is not re-validated.  Out-of-range or
negative offsets are clamped to the text, empty chord tokens write nothing.
"""

import re

from .dialects import DialectDescriptor
from .exceptions import UnknownLineTypeError
from .models import (
    AnnotationLine,
    AnnotationType,
    EmptyLine,
    Line,
    PlacementMode,
    RenderingOptions,
    TextLine,
)

_WRAPPER_RE = re.compile(r"^[\[({]|[\])}]$")


def clean_chord_text(original_text: str) -> str:
    """Strip one layer of surrounding brackets, parentheses or braces."""
    return _WRAPPER_RE.sub("", original_text).strip()


def _clamp(index, length: int) -> int:
    try:
        index = int(index)
    except (TypeError, ValueError):
        return 0
    return max(0, min(index, length))


class LineRenderer:
    """Render single lines for one dialect."""

    def __init__(self, descriptor: DialectDescriptor):
        self.descriptor = descriptor

    def render_line(self, line: Line, options: RenderingOptions | None = None) -> str:
        if isinstance(line, TextLine):
            return self.render_text_line(line, options)
        if isinstance(line, EmptyLine):
            return self.render_empty_line(line, options)
        if isinstance(line, AnnotationLine):
            return self.render_annotation_line(line, options)
        raise UnknownLineTypeError(line)

    # --- Text lines ---

    def render_text_line(self, line: TextLine, options: RenderingOptions | None = None) -> str:
        """Return the rendered line(s), always ending in a single newline."""
        if not line.chords:
            return line.text + "\n"

        if self.resolve_placement(options) is PlacementMode.ABOVE:
            return self.render_chords_above(line, options)
        return self.render_chords_inline(line, options)

    def resolve_placement(self, options: RenderingOptions | None) -> PlacementMode:
        """An explicit ``above``/``inline`` wins; ``auto`` means the dialect default."""
        if options is not None and options.chord_placement is not PlacementMode.AUTO:
            return options.chord_placement
        return self.descriptor.default_placement

    def render_chords_above(self, line: TextLine, options: RenderingOptions | None = None) -> str:
        text = line.text
        buffer = [" "] * len(text)

        for chord in sorted(line.chords, key=lambda c: _clamp(c.start_index, len(text))):
            token = self._above_token(chord, options)
            start = _clamp(chord.start_index, len(text))
            end = min(start + len(token), len(buffer))
            buffer[start:end] = token[: end - start]

        chord_line = "".join(buffer).rstrip()
        return chord_line + "\n" + text + "\n"

    def render_chords_inline(self, line: TextLine, options: RenderingOptions | None = None) -> str:
        result = line.text
        length = len(line.text)

        # Right to left: offsets refer to the original text.
        for chord in sorted(line.chords, key=lambda c: _clamp(c.start_index, length), reverse=True):
            pos = _clamp(chord.start_index, length)
            result = result[:pos] + self._inline_token(chord, options) + result[pos:]

        return result + "\n"

    def _above_token(self, chord, options: RenderingOptions | None) -> str:
        original = getattr(chord, "original_text", None)
        if options is not None and options.preserve_original_text and original:
            return clean_chord_text(original)
        return chord.value or ""

    def _inline_token(self, chord, options: RenderingOptions | None) -> str:
        original = getattr(chord, "original_text", None)
        if options is not None and options.preserve_original_text and original:
            return original
        if not chord.value:
            return ""
        return self.descriptor.wrap_inline_chord(chord.value)

    # --- Blank lines and annotations ---

    def render_empty_line(self, line: EmptyLine, options: RenderingOptions | None = None) -> str:
        return "\n" * line.count

    def render_annotation_line(self, line: AnnotationLine, options: RenderingOptions | None = None) -> str:
        wrapped = self.descriptor.wrap_annotation(line.value, line.annotation_type)
        return wrapped + "\n" + "\n" * self.annotation_spacing(line.annotation_type, options)

    def annotation_spacing(self, annotation_type: AnnotationType, options: RenderingOptions | None) -> int:
        """Blank lines emitted after an annotation of *annotation_type*."""
        if annotation_type is AnnotationType.COMMENT:
            rules = options.whitespace_rules if options is not None else None
            if rules is not None and rules.empty_lines_after_comments is not None:
                return rules.empty_lines_after_comments
            return self.descriptor.whitespace.empty_lines_after_comments or 0
        return self.descriptor.annotation_spacing
