from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import ClassVar, Union

from .exceptions import ValidationError


class _ValueEnum(str, Enum):
    def __str__(self) -> str:
        return self.value


class NotationFormat(_ValueEnum):
    """Output dialects the engine knows how to render."""

    CHORDPRO = "chordpro"
    ONSONG = "onsong"
    SONGBOOK = "songbook"
    GUITAR_TABS = "guitar_tabs"
    NASHVILLE = "nashville"


class AnnotationType(_ValueEnum):
    COMMENT = "comment"
    INSTRUCTION = "instruction"
    TEMPO = "tempo"
    DYNAMICS = "dynamics"
    SECTION = "section"


class SectionType(_ValueEnum):
    VERSE = "verse"
    CHORUS = "chorus"
    BRIDGE = "bridge"
    PRE_CHORUS = "pre-chorus"
    INTRO = "intro"
    OUTRO = "outro"
    INSTRUMENTAL = "instrumental"
    SOLO = "solo"
    CODA = "coda"
    TAG = "tag"
    NOTE = "note"
    UNKNOWN = "unknown"


class ChordPosition(_ValueEnum):
    """Where a chord sat relative to the lyric in its source text."""

    ABOVE = "above"
    INLINE = "inline"
    BETWEEN = "between"


class PlacementMode(_ValueEnum):
    """How a renderer should place chords; AUTO defers to the dialect."""

    ABOVE = "above"
    INLINE = "inline"
    AUTO = "auto"


def _coerce(enum_cls, value, what: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid {what}: {value!r}") from None


# ---------------------------------------------------------------------------
# Chords and lines
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChordPlacement:
    """A chord anchored to a character span of its line's text.

    ``start_index``/``end_index`` are 0-based offsets into the owning
    :class:`TextLine`'s ``text`` (end exclusive).  ``original_text`` is the
    token exactly as it was captured, e.g. ``[Am7]``.
    """

    value: str
    original_text: str
    start_index: int
    end_index: int
    placement: ChordPosition | None = None

    def __post_init__(self):
        if not self.value:
            raise ValidationError("Chord value must not be empty")
        if not self.original_text:
            raise ValidationError("Chord original_text must not be empty")
        if self.start_index < 0:
            raise ValidationError(f"Chord start_index must be >= 0, got {self.start_index}")
        if self.end_index < self.start_index:
            raise ValidationError(
                f"Chord end_index ({self.end_index}) is before start_index ({self.start_index})"
            )
        if self.placement is not None:
            object.__setattr__(self, "placement", _coerce(ChordPosition, self.placement, "placement"))


@dataclass(frozen=True)
class TextLine:
    """A lyric (or plain text) line with the chords that belong to it.

    Chords keep construction order; renderers sort them when they need to.
    """

    kind: ClassVar[str] = "text"

    text: str
    chords: tuple[ChordPlacement, ...] = ()
    line_number: int | None = None

    def __post_init__(self):
        object.__setattr__(self, "chords", tuple(self.chords))


@dataclass(frozen=True)
class EmptyLine:
    """One or more consecutive blank lines."""

    kind: ClassVar[str] = "empty"

    count: int = 1
    line_number: int | None = None

    def __post_init__(self):
        if self.count < 1:
            raise ValidationError(f"EmptyLine count must be >= 1, got {self.count}")


@dataclass(frozen=True)
class AnnotationLine:
    """A non-lyric remark: comment, instruction, tempo, dynamics or section header."""

    kind: ClassVar[str] = "annotation"

    value: str
    annotation_type: AnnotationType = AnnotationType.COMMENT
    line_number: int | None = None

    def __post_init__(self):
        if not self.value:
            raise ValidationError("AnnotationLine value must not be empty")
        object.__setattr__(
            self, "annotation_type", _coerce(AnnotationType, self.annotation_type, "annotation type")
        )


Line = Union[TextLine, EmptyLine, AnnotationLine]


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


@dataclass
class Section:
    """A typed section of a song (verse, chorus, bridge, etc.)."""

    type: SectionType = SectionType.UNKNOWN
    title: str | None = None  # e.g. "Verse 1"; None for untitled passages
    lines: list[Line] = field(default_factory=list)


@dataclass
class SongMetadata:
    album: str | None = None
    year: str | None = None
    tempo: str | None = None
    time_signature: str | None = None  # e.g. "3/4"
    capo: str | None = None
    ccli: str | None = None
    tuning: str | None = None  # e.g. "Drop D", "DADGAD"
    custom: dict[str, str] = field(default_factory=dict)


@dataclass
class Chordsheet:
    """Canonical, format-agnostic representation of a song."""

    id: str
    title: str | None = None
    artist: str | None = None
    original_key: str | None = None
    sections: list[Section] = field(default_factory=list)
    metadata: SongMetadata | None = None


# ---------------------------------------------------------------------------
# Rendering configuration and results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WhitespaceRules:
    """Blank-line policy for a dialect.

    ``None`` means "not set": a dialect's defaults set every field, a per-call
    override only the ones it wants to change.
    """

    empty_lines_after_comments: int | None = None
    empty_lines_after_sections: int | None = None
    empty_lines_between_sections: int | None = None
    preserve_consecutive_empty_lines: bool | None = None

    def merged_over(self, base: "WhitespaceRules") -> "WhitespaceRules":
        """Return *base* with every field that is set on ``self`` replacing it."""
        changes = {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}
        return replace(base, **changes)


@dataclass(frozen=True)
class RenderingOptions:
    preserve_original_text: bool = False
    chord_placement: PlacementMode = PlacementMode.AUTO
    include_metadata: bool = True
    whitespace_rules: WhitespaceRules | None = None

    def __post_init__(self):
        object.__setattr__(
            self, "chord_placement", _coerce(PlacementMode, self.chord_placement, "chord placement")
        )


@dataclass(frozen=True)
class RenderingStats:
    lines_rendered: int
    sections_rendered: int
    chords_rendered: int
    rendering_time: float  # seconds


@dataclass(frozen=True)
class RenderingResult:
    content: str
    format: str
    metadata: RenderingStats
    warnings: list[str] | None = None
