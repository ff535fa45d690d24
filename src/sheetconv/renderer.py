"""Dialect-agnostic chordsheet renderer.

Renders a :class:`~sheetconv.models.Chordsheet` to one dialect, as described
by a :class:`~sheetconv.dialects.DialectDescriptor`.

Usage::

    from sheetconv.registry import RendererRegistry
    registry = RendererRegistry()
    result = registry.create_renderer("chordpro").render(chordsheet)
    Path("output.cho").write_text(result.content)
"""

import logging
import time
from dataclasses import replace

from .dialects import DialectDescriptor
from .exceptions import CannotRenderError
from .models import (
    Chordsheet,
    EmptyLine,
    Line,
    RenderingOptions,
    RenderingResult,
    RenderingStats,
    Section,
    TextLine,
    WhitespaceRules,
)
from .placement import LineRenderer

logger = logging.getLogger(__name__)

# Longest run of blank lines kept when a dialect collapses runs.
_MAX_COLLAPSED_EMPTY_LINES = 2


def _merge_empty_runs(lines):
    """Fold adjacent EmptyLines into one so a run is capped as a whole."""
    merged = []
    for line in lines:
        if isinstance(line, EmptyLine) and merged and isinstance(merged[-1], EmptyLine):
            previous = merged[-1]
            merged[-1] = EmptyLine(count=previous.count + line.count, line_number=previous.line_number)
        else:
            merged.append(line)
    return merged


class FormatRenderer:
    """Render chordsheets in the dialect described by *descriptor*.

    Instances hold no per-call state and can be shared freely.
    """

    def __init__(self, descriptor: DialectDescriptor):
        self.descriptor = descriptor
        self.line_renderer = LineRenderer(descriptor)

    @property
    def format(self) -> str:
        return self.descriptor.format

    def default_whitespace_rules(self) -> WhitespaceRules:
        return self.descriptor.whitespace

    def merge_options(self, options: RenderingOptions | None = None) -> RenderingOptions:
        """Return *options* with the dialect's whitespace rules filled in."""
        defaults = self.default_whitespace_rules()
        if options is None:
            return RenderingOptions(whitespace_rules=defaults)
        if options.whitespace_rules is None:
            return replace(options, whitespace_rules=defaults)
        return replace(options, whitespace_rules=options.whitespace_rules.merged_over(defaults))

    def can_render(self, chordsheet: Chordsheet) -> bool:
        if not isinstance(chordsheet, Chordsheet):
            return False
        if not isinstance(chordsheet.sections, (list, tuple)):
            return False
        if not all(isinstance(getattr(s, "lines", None), (list, tuple)) for s in chordsheet.sections):
            return False
        if self.descriptor.accepts is not None:
            return self.descriptor.accepts(chordsheet)
        return True

    def render(self, chordsheet: Chordsheet, options: RenderingOptions | None = None) -> RenderingResult:
        """Return the rendered document plus counters.

        Raises :class:`~sheetconv.exceptions.CannotRenderError` when
        :meth:`can_render` refuses *chordsheet*.
        """
        start = time.perf_counter()

        if not self.can_render(chordsheet):
            raise CannotRenderError(self.format)
        if self.descriptor.prepare is not None:
            chordsheet = self.descriptor.prepare(chordsheet)

        opts = self.merge_options(options)
        parts: list[str] = []

        metadata_block = self.render_metadata(chordsheet, opts)
        if metadata_block:
            parts.append(metadata_block)

        sections_rendered = 0
        lines_rendered = 0
        chords_rendered = 0
        spacing = opts.whitespace_rules.empty_lines_between_sections or 0

        for section in chordsheet.sections:
            content = self.render_section(section, opts)
            if not content.strip():
                continue

            # Spacing goes between rendered sections only.
            if sections_rendered and spacing > 0:
                parts.append("\n" * spacing)
            parts.append(content)

            sections_rendered += 1
            lines_rendered += len(section.lines)
            chords_rendered += sum(len(line.chords) for line in section.lines if isinstance(line, TextLine))

        elapsed = time.perf_counter() - start
        logger.info(
            "Rendered %s: %d section(s), %d line(s), %d chord(s) in %.2f ms",
            self.format,
            sections_rendered,
            lines_rendered,
            chords_rendered,
            elapsed * 1000,
        )
        return RenderingResult(
            content="".join(parts),
            format=self.format,
            metadata=RenderingStats(
                lines_rendered=lines_rendered,
                sections_rendered=sections_rendered,
                chords_rendered=chords_rendered,
                rendering_time=elapsed,
            ),
        )

    def render_metadata(self, chordsheet: Chordsheet, options: RenderingOptions) -> str:
        if not options.include_metadata:
            return ""
        lines = [f.format(chordsheet) for f in self.descriptor.metadata_fields]
        lines = [line for line in lines if line]
        return "\n".join(lines) + "\n\n" if lines else ""

    def render_section(self, section: Section, options: RenderingOptions | None = None) -> str:
        opts = self.merge_options(options)
        parts: list[str] = []

        if section.title:
            parts.append(self.descriptor.section_title(section))

        collapse = not opts.whitespace_rules.preserve_consecutive_empty_lines
        lines = _merge_empty_runs(section.lines) if collapse else section.lines
        for line in lines:
            if collapse and isinstance(line, EmptyLine) and line.count > _MAX_COLLAPSED_EMPTY_LINES:
                line = EmptyLine(count=_MAX_COLLAPSED_EMPTY_LINES, line_number=line.line_number)
            parts.append(self.line_renderer.render_line(line, opts))

        return "".join(parts)

    def render_line(self, line: Line, options: RenderingOptions | None = None) -> str:
        return self.line_renderer.render_line(line, self.merge_options(options))
