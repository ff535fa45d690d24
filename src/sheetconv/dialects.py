"""Per-dialect rendering descriptors.

Every dialect is described by one frozen :class:`DialectDescriptor`; a single
generic :class:`~sheetconv.renderer.FormatRenderer` consumes it.

Whitespace defaults
-------------------

+-------------+----------------+----------------+-----------------+-----------+
| Dialect     | after comments | after sections | between sections| keep 3+   |
+=============+================+================+=================+===========+
| ChordPro    | 0              | 1              | 1               | yes       |
| OnSong      | 0              | 1              | 1               | yes       |
| Songbook    | 3              | 2              | 2               | no        |
| Guitar Tabs | 1              | 2              | 2               | yes       |
| Nashville   | 0              | 1              | 1               | yes       |
+-------------+----------------+----------------+-----------------+-----------+
"""

from dataclasses import dataclass, field
from typing import Callable

from .models import (
    AnnotationType,
    Chordsheet,
    NotationFormat,
    PlacementMode,
    Section,
    SectionType,
    TextLine,
    WhitespaceRules,
)
from .transpose import is_valid_key, to_nashville_numbers


@dataclass(frozen=True)
class MetadataField:
    """One line of a dialect's metadata block.

    ``source`` names a Chordsheet attribute (``title``, ``artist``,
    ``original_key``) or a :class:`~sheetconv.models.SongMetadata` attribute.
    """

    source: str
    template: str
    uppercase: bool = False

    def format(self, chordsheet: Chordsheet) -> str | None:
        if hasattr(chordsheet, self.source):
            value = getattr(chordsheet, self.source)
        else:
            value = getattr(chordsheet.metadata, self.source, None) if chordsheet.metadata else None
        if value is None or value == "":
            return None
        value = str(value)
        return self.template.format(value.upper() if self.uppercase else value)


@dataclass(frozen=True)
class DialectDescriptor:
    format: str
    default_placement: PlacementMode
    inline_chord: str  # template for a chord spliced into the lyric
    annotation_wraps: dict[AnnotationType, str]
    default_annotation_wrap: str
    annotation_spacing: int  # blank lines after non-comment annotations
    whitespace: WhitespaceRules
    metadata_fields: tuple[MetadataField, ...]
    section_title: Callable[[Section], str]
    accepts: Callable[[Chordsheet], bool] | None = None
    prepare: Callable[[Chordsheet], Chordsheet] | None = None  # applied before rendering
    extension: str = ".txt"
    description: str = field(default="", compare=False)

    def wrap_annotation(self, value: str, annotation_type: AnnotationType) -> str:
        return self.annotation_wraps.get(annotation_type, self.default_annotation_wrap).format(value)

    def wrap_inline_chord(self, value: str) -> str:
        return self.inline_chord.format(value)


# ---------------------------------------------------------------------------
# Section titles
# ---------------------------------------------------------------------------

CHORDPRO_SECTION_DIRECTIVES = {
    SectionType.VERSE: "verse",
    SectionType.CHORUS: "chorus",
    SectionType.BRIDGE: "bridge",
    SectionType.PRE_CHORUS: "prechorus",
    SectionType.INTRO: "comment",
    SectionType.OUTRO: "comment",
    SectionType.INSTRUMENTAL: "comment",
    SectionType.SOLO: "comment",
    SectionType.CODA: "comment",
    SectionType.TAG: "comment",
    SectionType.NOTE: "comment",
    SectionType.UNKNOWN: "comment",
}

SONGBOOK_SECTION_LABELS = {
    SectionType.CHORUS: "CHORUS",
    SectionType.BRIDGE: "BRIDGE",
    SectionType.PRE_CHORUS: "PRE-CHORUS",
    SectionType.INTRO: "INTRO",
    SectionType.OUTRO: "OUTRO",
    SectionType.INSTRUMENTAL: "INSTRUMENTAL",
    SectionType.SOLO: "SOLO",
    SectionType.CODA: "CODA",
    SectionType.TAG: "TAG",
}


def _section_key(section: Section):
    try:
        return SectionType(section.type)
    except ValueError:
        return section.type


def chordpro_section_title(section: Section) -> str:
    directive = CHORDPRO_SECTION_DIRECTIVES.get(_section_key(section), "comment")
    return f"{{{directive}: {section.title}}}\n"


def label_section_title(section: Section) -> str:
    return f"{section.title}:\n"


def songbook_section_title(section: Section) -> str:
    section_type = _section_key(section)
    if section_type is SectionType.VERSE:
        title = section.title[:1].upper() + section.title[1:]
    else:
        title = SONGBOOK_SECTION_LABELS.get(section_type, section.title.upper())
    return f"{title}\n"


def comment_section_title(section: Section) -> str:
    return f"// {section.title}\n"


# ---------------------------------------------------------------------------
# Extra acceptance checks
# ---------------------------------------------------------------------------


def has_any_chord(chordsheet: Chordsheet) -> bool:
    """Songbook output is pointless without at least one chord to place above."""
    return any(
        isinstance(line, TextLine) and line.chords
        for section in chordsheet.sections
        for line in section.lines
    )


def has_original_key(chordsheet: Chordsheet) -> bool:
    """Nashville numbers are relative to a key, so one must be set."""
    return bool(chordsheet.original_key and chordsheet.original_key.strip())


def letter_chords_as_numbers(chordsheet: Chordsheet) -> Chordsheet:
    """Number the letter chords of a sheet whose key is a real note name."""
    if not is_valid_key(chordsheet.original_key):
        return chordsheet
    return to_nashville_numbers(chordsheet)


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------

CHORDPRO = DialectDescriptor(
    format=NotationFormat.CHORDPRO,
    default_placement=PlacementMode.INLINE,
    inline_chord="[{}]",
    annotation_wraps={
        AnnotationType.COMMENT: "{{comment: {}}}",
        AnnotationType.INSTRUCTION: "{{{}}}",
        AnnotationType.TEMPO: "{{tempo: {}}}",
        AnnotationType.DYNAMICS: "{{comment: {}}}",
    },
    default_annotation_wrap="{{comment: {}}}",
    annotation_spacing=0,
    whitespace=WhitespaceRules(
        empty_lines_after_comments=0,
        empty_lines_after_sections=1,
        empty_lines_between_sections=1,
        preserve_consecutive_empty_lines=True,
    ),
    metadata_fields=(
        MetadataField("title", "{{title: {}}}"),
        MetadataField("artist", "{{artist: {}}}"),
        MetadataField("original_key", "{{key: {}}}"),
        MetadataField("album", "{{album: {}}}"),
        MetadataField("year", "{{year: {}}}"),
        MetadataField("tempo", "{{tempo: {}}}"),
        MetadataField("capo", "{{capo: {}}}"),
    ),
    section_title=chordpro_section_title,
    extension=".cho",
    description="ChordPro directives with inline [chords]",
)

ONSONG = DialectDescriptor(
    format=NotationFormat.ONSONG,
    default_placement=PlacementMode.INLINE,
    inline_chord="[{}]",
    annotation_wraps={
        AnnotationType.COMMENT: "*{}",
        AnnotationType.INSTRUCTION: "*{}",
        AnnotationType.TEMPO: "Tempo: {}",
        AnnotationType.DYNAMICS: "*{}",
    },
    default_annotation_wrap="*{}",
    annotation_spacing=0,
    whitespace=WhitespaceRules(
        empty_lines_after_comments=0,
        empty_lines_after_sections=1,
        empty_lines_between_sections=1,
        preserve_consecutive_empty_lines=True,
    ),
    metadata_fields=(
        MetadataField("title", "Title: {}"),
        MetadataField("artist", "Artist: {}"),
        MetadataField("original_key", "Key: {}"),
        MetadataField("album", "Album: {}"),
        MetadataField("year", "Year: {}"),
        MetadataField("tempo", "Tempo: {}"),
        MetadataField("capo", "Capo: {}"),
        MetadataField("ccli", "CCLI: {}"),
    ),
    section_title=label_section_title,
    extension=".onsong",
    description="OnSong labels with inline [chords]",
)

SONGBOOK = DialectDescriptor(
    format=NotationFormat.SONGBOOK,
    default_placement=PlacementMode.ABOVE,
    inline_chord="{}",
    annotation_wraps={},
    default_annotation_wrap="({})",
    annotation_spacing=1,
    whitespace=WhitespaceRules(
        empty_lines_after_comments=3,
        empty_lines_after_sections=2,
        empty_lines_between_sections=2,
        preserve_consecutive_empty_lines=False,
    ),
    metadata_fields=(
        MetadataField("title", "{}", uppercase=True),
        MetadataField("artist", "by {}"),
        MetadataField("original_key", "Key: {}"),
        MetadataField("tempo", "Tempo: {}"),
        MetadataField("capo", "Capo: {}"),
    ),
    section_title=songbook_section_title,
    accepts=has_any_chord,
    description="Traditional songbook, chords above lyrics",
)

GUITAR_TABS = DialectDescriptor(
    format=NotationFormat.GUITAR_TABS,
    default_placement=PlacementMode.ABOVE,
    inline_chord="{}",
    annotation_wraps={
        AnnotationType.COMMENT: "// {}",
        AnnotationType.INSTRUCTION: "[{}]",
        AnnotationType.TEMPO: "Tempo: {}",
        AnnotationType.DYNAMICS: "[{}]",
    },
    default_annotation_wrap="// {}",
    annotation_spacing=1,
    whitespace=WhitespaceRules(
        empty_lines_after_comments=1,
        empty_lines_after_sections=2,
        empty_lines_between_sections=2,
        preserve_consecutive_empty_lines=True,
    ),
    metadata_fields=(
        MetadataField("title", "// {}"),
        MetadataField("artist", "// Artist: {}"),
        MetadataField("original_key", "// Key: {}"),
        MetadataField("tempo", "// Tempo: {}"),
        MetadataField("capo", "// Capo: {}"),
        MetadataField("tuning", "// Tuning: {}"),
    ),
    section_title=comment_section_title,
    description="Tab-site style, // comments, chords above lyrics",
)

NASHVILLE = DialectDescriptor(
    format=NotationFormat.NASHVILLE,
    default_placement=PlacementMode.INLINE,
    inline_chord="[{}]",
    annotation_wraps={
        AnnotationType.COMMENT: "({})",
        AnnotationType.INSTRUCTION: "[{}]",
        AnnotationType.TEMPO: "Tempo: {}",
        AnnotationType.DYNAMICS: "({})",
    },
    default_annotation_wrap="({})",
    annotation_spacing=0,
    whitespace=WhitespaceRules(
        empty_lines_after_comments=0,
        empty_lines_after_sections=1,
        empty_lines_between_sections=1,
        preserve_consecutive_empty_lines=True,
    ),
    metadata_fields=(
        MetadataField("title", "Title: {}"),
        MetadataField("artist", "Artist: {}"),
        MetadataField("original_key", "Key: {}"),
        MetadataField("tempo", "Tempo: {}"),
        MetadataField("time_signature", "Time: {}"),
        MetadataField("capo", "Capo: {}"),
    ),
    section_title=label_section_title,
    accepts=has_original_key,
    prepare=letter_chords_as_numbers,
    description="Nashville Number System chart, requires a key",
)

DIALECTS: tuple[DialectDescriptor, ...] = (CHORDPRO, ONSONG, SONGBOOK, GUITAR_TABS, NASHVILLE)
