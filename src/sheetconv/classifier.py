"""Line classification and document parsing.

Turns raw chord-sheet text into the typed model:

  1. classify_line()        - EmptyLine / AnnotationLine / TextLine, first match wins
  2. extract_chords()       - bracketed chord tokens -> clean text + ChordPlacements
  3. section_header_type()  - canonical SectionType of a section-header line
  4. merge_chord_lyric_lines() - chord-above-lyric pair -> one TextLine
  5. parse_chordsheet()     - full pipeline: raw text -> Chordsheet

Classification never fails: anything that is not blank, a section header or a
recognised annotation comes back as a TextLine.
"""

import logging
import re
import uuid
from abc import ABC, abstractmethod

from .models import (
    AnnotationLine,
    AnnotationType,
    ChordPlacement,
    ChordPosition,
    Chordsheet,
    EmptyLine,
    Line,
    Section,
    SectionType,
    SongMetadata,
    TextLine,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Regexes
# ---------------------------------------------------------------------------

_SECTION_WORDS = (
    r"Verse|Chorus|Bridge|Intro|Outro|Pre-?Chorus|Post-?Chorus|Refrain|Tag|Vamp|"
    r"Interlude|Solo|Break|Instrumental|Coda"
)
_DIRECTIVE_WORDS = (
    r"verse|chorus|bridge|intro|outro|pre_?chorus|post_?chorus|refrain|tag|vamp|"
    r"interlude|solo|break|instrumental|coda"
)

# Section headers, in evaluation order:
#   [Verse 2]   Chorus:   {start_of_verse: Verse 1}   {soc}
#   {verse: Verse 1}   {prechorus: Pre-Chorus}   {comment: Intro}
SECTION_HEADER_PATTERNS = (
    re.compile(rf"^\[(?P<label>(?P<kw>{_SECTION_WORDS})(?:\s*\d+)?)\]$", re.IGNORECASE),
    re.compile(rf"^(?P<label>(?P<kw>{_SECTION_WORDS})(?:\s*\d+)?):?\s*$", re.IGNORECASE),
    re.compile(
        rf"^\{{(?P<edge>start_of_|end_of_)(?P<kw>{_DIRECTIVE_WORDS})(?::\s*(?P<label>[^}}]*))?\}}$",
        re.IGNORECASE,
    ),
    re.compile(r"^\{(?P<edge>so|eo)(?P<kw>[vcb])\}$", re.IGNORECASE),
    re.compile(r"^\{(?P<kw>verse|chorus|bridge|pre_?chorus)\s*:\s*(?P<label>[^}]*?)\s*\}$", re.IGNORECASE),
    # A comment holding nothing but a section name is that section's title.
    re.compile(
        rf"^\{{(?:comment|c)\s*:\s*(?P<label>(?P<kw>{_SECTION_WORDS})(?:\s*\d+)?)\s*\}}$",
        re.IGNORECASE,
    ),
)

# Generic annotations, in priority order.  Group 1 is the annotation value.
ANNOTATION_PATTERNS = (
    re.compile(r"^\*(.*)$"),  # *Play softly
    re.compile(r"^\((.*)\)$"),  # (Repeat chorus)
    re.compile(r"^\{(?:comment|c):\s*(.*?)\}?$", re.IGNORECASE),  # {comment: ...}
    re.compile(r"^<b>(.*)</b>$", re.IGNORECASE),  # <b>Key change</b>
)

# Keyword sets used to type an annotation; the first set that matches wins.
ANNOTATION_KEYWORDS = (
    (
        AnnotationType.TEMPO,
        re.compile(
            r"\b(?:tempo|slow(?:er)?|fast(?:er)?|moderate|allegro|andante|adagio|presto|"
            r"largo|vivace|steady)\b"
        ),
    ),
    (
        AnnotationType.DYNAMICS,
        re.compile(
            r"\b(?:dynamics|loud(?:er)?|soft(?:ly|er)?|forte|piano|crescendo|diminuendo|"
            r"ff|f|mf|mp|p|pp|sfz|sforzando)\b"
        ),
    ),
    (
        AnnotationType.INSTRUCTION,
        re.compile(
            r"\b(?:instruction|repeat|play|stop|pause|hold|fermata|ritard(?:ando)?|"
            r"accel(?:erando)?|da capo|dal segno|fine|coda|simile|tacet)\b"
        ),
    ),
)

# Letter chords: C, Am7, Cmaj7, F#m7b5, C7sus4, Bb/D
_LETTER_CHORD = (
    r"[A-G][#b]?(?:maj|min|m|dim|aug|sus|add|\+|°|ø)*\d*"
    r"(?:(?:maj|sus|add|b|#)\d+)*(?:/[A-Ga-g][#b]?)?"
)
# Nashville numbers: 1, 4, 6m, 5/7, b7
_NUMBER_CHORD = r"[#b]?[1-7](?:m|°|\+|-)?(?:maj|sus|add)?\d*(?:/[#b]?[1-7])?"

# A bracketed chord token inside a lyric line: [D], [Am7], [G/B], [4], [N.C.]
BRACKETED_CHORD_RE = re.compile(rf"\[\s*({_LETTER_CHORD}|{_NUMBER_CHORD}|N\.?C\.?)\s*\]")

# Bare chord name as it appears on a chord-above-lyric line.  Standalone
# slash-bass tokens (/b, /f#) are continuation chords.
CHORD_NAME_RE = re.compile(rf"^(?:{_LETTER_CHORD}|/[A-Ga-g][#b]?)$")

# Metadata: {title: X} anywhere, "Title: X" before the first body line.
_META_DIRECTIVE_RE = re.compile(r"^\{(?P<name>[A-Za-z_]+)\s*:\s*(?P<value>.*?)\s*\}$")
_META_LABEL_RE = re.compile(
    r"^(?P<name>Title|Artist|Key|Album|Year|Tempo|Time|Capo|CCLI|Tuning)\s*:\s*(?P<value>\S.*?)\s*$",
    re.IGNORECASE,
)

_METADATA_FIELDS = {
    "title": "title",
    "t": "title",
    "subtitle": "artist",
    "st": "artist",
    "artist": "artist",
    "key": "key",
    "album": "album",
    "year": "year",
    "tempo": "tempo",
    "time": "time_signature",
    "capo": "capo",
    "ccli": "ccli",
    "tuning": "tuning",
}
# Directives that look like metadata but belong to the line classifier.
_NON_METADATA_DIRECTIVES = {"comment", "c"}

_SECTION_TYPE_ALIASES = {
    "prechorus": SectionType.PRE_CHORUS,
    "postchorus": SectionType.CHORUS,
    "refrain": SectionType.CHORUS,
    "interlude": SectionType.INSTRUMENTAL,
    "break": SectionType.INSTRUMENTAL,
    "vamp": SectionType.TAG,
}
_SHORT_DIRECTIVE_WORDS = {"v": "verse", "c": "chorus", "b": "bridge"}


# ---------------------------------------------------------------------------
# Section headers
# ---------------------------------------------------------------------------


def _match_section_header(line: str) -> re.Match | None:
    stripped = line.strip()
    for pattern in SECTION_HEADER_PATTERNS:
        m = pattern.match(stripped)
        if m:
            return m
    return None


def _header_keyword(m: re.Match) -> str:
    kw = m.group("kw").lower()
    return _SHORT_DIRECTIVE_WORDS.get(kw, kw).replace("_", "-")


def section_header_label(line: str) -> str | None:
    """Return the human-readable label of a section header line.

    ``[Verse 2]`` and ``Verse 2:`` give ``Verse 2``; a directive without a
    label (``{start_of_chorus}``, ``{soc}``) gives the keyword, ``Chorus``.
    """
    m = _match_section_header(line)
    if not m:
        return None
    label = (m.groupdict().get("label") or "").strip()
    return label or _header_keyword(m).title()


def section_header_type(line: str) -> SectionType | None:
    """Return the canonical :class:`SectionType` of a header line, or None."""
    m = _match_section_header(line)
    if not m:
        return None
    kw = _header_keyword(m)
    if kw.replace("-", "") in _SECTION_TYPE_ALIASES:
        return _SECTION_TYPE_ALIASES[kw.replace("-", "")]
    try:
        return SectionType(kw)
    except ValueError:
        return SectionType.UNKNOWN


def is_section_end(line: str) -> bool:
    """True for ``{end_of_x}`` / ``{eox}`` directives."""
    m = _match_section_header(line)
    return bool(m and (m.groupdict().get("edge") or "").lower() in ("end_of_", "eo"))


# ---------------------------------------------------------------------------
# Chord extraction
# ---------------------------------------------------------------------------


def extract_chords(line: str) -> tuple[str, tuple[ChordPlacement, ...]]:
    """Strip bracketed chord tokens from *line*.

    Returns the token-free text and one :class:`ChordPlacement` per token,
    indexed into that token-free text::

        >>> text, chords = extract_chords("[C]Amazing [F]grace")
        >>> text
        'Amazing grace'
        >>> [(c.value, c.start_index) for c in chords]
        [('C', 0), ('F', 8)]

    Brackets whose content is not chord-shaped (``[x2]``) are left in place.
    """
    parts: list[str] = []
    chords: list[ChordPlacement] = []
    pos = 0
    clean_len = 0

    for m in BRACKETED_CHORD_RE.finditer(line):
        parts.append(line[pos:m.start()])
        clean_len += m.start() - pos
        value = m.group(1)
        chords.append(
            ChordPlacement(
                value=value,
                original_text=m.group(0),
                start_index=clean_len,
                end_index=clean_len + len(value),
                placement=ChordPosition.INLINE,
            )
        )
        pos = m.end()

    parts.append(line[pos:])
    return "".join(parts), tuple(chords)


def is_chord_line(line: str) -> bool:
    """True if every whitespace-separated token on *line* is a bare chord name."""
    tokens = line.split()
    return bool(tokens) and all(CHORD_NAME_RE.match(t) for t in tokens)


def extract_chords_with_offsets(line: str) -> list[tuple[int, str]]:
    """Return ``(column_offset, chord_name)`` pairs from a chord-above line."""
    return [(m.start(), m.group()) for m in re.finditer(r"\S+", line) if CHORD_NAME_RE.match(m.group())]


def merge_chord_lyric_lines(chord_line: str, lyric_line: str, line_number: int | None = None) -> TextLine:
    """Merge a chord line and the lyric line below it into one :class:`TextLine`.

    Each chord is anchored at the column it occupied in *chord_line*.  A chord
    whose column lies past the end of the lyric is anchored at the end rather
    than dropped.

    Example::

        chord_line = "C       F"
        lyric_line = "Amazing grace how sweet the sound"
        -> TextLine(text=lyric_line, chords=(C@0, F@8))
    """
    text = lyric_line.rstrip()
    chords = []
    for offset, name in extract_chords_with_offsets(chord_line):
        start = min(offset, len(text))
        chords.append(
            ChordPlacement(
                value=name,
                original_text=name,
                start_index=start,
                end_index=start + len(name),
                placement=ChordPosition.ABOVE,
            )
        )
    return TextLine(text=text, chords=tuple(chords), line_number=line_number)


# ---------------------------------------------------------------------------
# Line processors
# ---------------------------------------------------------------------------


class LineProcessor(ABC):
    """One step of the classification chain."""

    @abstractmethod
    def can_process(self, line: str) -> bool:
        """Return True if this processor claims *line*."""

    @abstractmethod
    def process(self, line: str, line_number: int) -> Line:
        """Turn *line* into a typed Line."""


class EmptyLineProcessor(LineProcessor):
    def can_process(self, line: str) -> bool:
        return not line.strip()

    def process(self, line: str, line_number: int) -> EmptyLine:
        # Runs of blank lines are merged by parse_chordsheet, not here.
        return EmptyLine(count=1, line_number=line_number)


class AnnotationLineProcessor(LineProcessor):
    """Section headers and comment-like annotations.

    Section-header patterns are tried before the generic annotation patterns:
    ``[Chorus]`` is a header, not a bracketed comment.
    """

    def can_process(self, line: str) -> bool:
        stripped = line.strip()
        return _match_section_header(stripped) is not None or self._match_annotation(stripped) is not None

    def process(self, line: str, line_number: int) -> AnnotationLine:
        stripped = line.strip()
        label = section_header_label(stripped)
        if label is not None:
            return AnnotationLine(value=label, annotation_type=AnnotationType.SECTION, line_number=line_number)

        m = self._match_annotation(stripped)
        value = m.group(1).strip() if m else ""
        if not value:
            # Bare markers such as "*" or "()" keep their literal text.
            value = stripped
        return AnnotationLine(
            value=value,
            annotation_type=classify_annotation_type(value),
            line_number=line_number,
        )

    @staticmethod
    def _match_annotation(line: str) -> re.Match | None:
        for pattern in ANNOTATION_PATTERNS:
            m = pattern.match(line)
            if m:
                return m
        return None


class TextLineProcessor(LineProcessor):
    """Fallback: every line is at least text."""

    def can_process(self, line: str) -> bool:
        return True

    def process(self, line: str, line_number: int) -> TextLine:
        text, chords = extract_chords(line.rstrip())
        return TextLine(text=text, chords=chords, line_number=line_number)


DEFAULT_PROCESSORS: tuple[LineProcessor, ...] = (
    EmptyLineProcessor(),
    AnnotationLineProcessor(),
    TextLineProcessor(),
)


def classify_annotation_type(value: str) -> AnnotationType:
    """Type an annotation by keyword: tempo, then dynamics, then instruction."""
    lowered = value.lower()
    for annotation_type, pattern in ANNOTATION_KEYWORDS:
        if pattern.search(lowered):
            return annotation_type
    return AnnotationType.COMMENT


def classify_line(
    line: str,
    line_number: int = 1,
    processors: tuple[LineProcessor, ...] = DEFAULT_PROCESSORS,
) -> Line:
    """Classify a single raw line; the first processor that claims it wins."""
    for processor in processors:
        if processor.can_process(line):
            return processor.process(line, line_number)
    return TextLine(text=line.rstrip(), line_number=line_number)


# ---------------------------------------------------------------------------
# Full parser
# ---------------------------------------------------------------------------


def slugify(text: str) -> str:
    """Convert a string to a lowercase hyphenated slug."""
    text = text.lower()
    text = re.sub(r"[^\w\s-]", "", text)  # drop punctuation
    text = re.sub(r"[\s_]+", "-", text)  # spaces/underscores -> hyphens
    text = re.sub(r"-{2,}", "-", text)  # collapse multiple hyphens
    return text.strip("-")


def _metadata_field(line: str, allow_labels: bool) -> tuple[str, str] | None:
    """Return ``(name, value)`` if *line* is a metadata directive or label."""
    stripped = line.strip()
    if _match_section_header(stripped):
        return None
    m = _META_DIRECTIVE_RE.match(stripped)
    if m:
        name = m.group("name").lower()
        if name in _NON_METADATA_DIRECTIVES or name.startswith(("start_of_", "end_of_")):
            return None
        return name, m.group("value")
    if allow_labels:
        m = _META_LABEL_RE.match(stripped)
        if m:
            return m.group("name").lower(), m.group("value")
    return None


def _append_line(section: Section, line: Line) -> None:
    if isinstance(line, EmptyLine) and section.lines and isinstance(section.lines[-1], EmptyLine):
        previous = section.lines[-1]
        section.lines[-1] = EmptyLine(count=previous.count + line.count, line_number=previous.line_number)
        return
    section.lines.append(line)


def _close_section(section: Section, sections: list[Section]) -> None:
    lines = section.lines
    while lines and isinstance(lines[0], EmptyLine):
        lines.pop(0)
    while lines and isinstance(lines[-1], EmptyLine):
        lines.pop()
    if lines or section.title:
        sections.append(section)


def _is_lyric(line: str) -> bool:
    return isinstance(classify_line(line), TextLine) and not is_chord_line(line)


def parse_chordsheet(text: str, sheet_id: str | None = None) -> Chordsheet:
    """Parse raw chord-sheet text into a :class:`~sheetconv.models.Chordsheet`.

    Algorithm
    ---------
    1. Metadata directives (``{title: ...}``) are collected wherever they
       appear; ``Title: ...`` style labels only before the first body line.
    2. Every other line goes through :func:`classify_line`.
    3. Section-header annotations start a new Section (``{end_of_x}`` just
       closes the current one); the header itself is not kept as a line.
    4. A bare chord line immediately followed by a lyric line is merged into a
       single TextLine with :func:`merge_chord_lyric_lines`.
    5. Adjacent blank lines merge into one EmptyLine; blank lines at the edges
       of a section are dropped, and so are sections left with nothing in them.
    """
    raw_lines = text.splitlines()
    fields: dict[str, str] = {}
    custom: dict[str, str] = {}
    sections: list[Section] = []
    current = Section()
    in_body = False

    i = 0
    while i < len(raw_lines):
        raw = raw_lines[i]
        number = i + 1

        meta = _metadata_field(raw, allow_labels=not in_body)
        if meta:
            name, value = meta
            if name in _METADATA_FIELDS:
                fields.setdefault(_METADATA_FIELDS[name], value)
            else:
                custom.setdefault(name, value)
            i += 1
            continue

        line = classify_line(raw, number)

        if isinstance(line, AnnotationLine) and line.annotation_type is AnnotationType.SECTION:
            in_body = True
            _close_section(current, sections)
            if is_section_end(raw):
                current = Section()
            else:
                current = Section(type=section_header_type(raw), title=line.value)
            i += 1
            continue

        if isinstance(line, TextLine) and not line.chords and is_chord_line(raw):
            if i + 1 < len(raw_lines) and _is_lyric(raw_lines[i + 1]):
                line = merge_chord_lyric_lines(raw, raw_lines[i + 1], number)
                i += 1

        if not isinstance(line, EmptyLine):
            in_body = True
        _append_line(current, line)
        i += 1

    _close_section(current, sections)

    metadata_values = {k: v for k, v in fields.items() if k not in ("title", "artist", "key")}
    metadata = SongMetadata(**metadata_values, custom=custom) if metadata_values or custom else None
    title = fields.get("title")

    logger.debug("Parsed %d section(s) from %d line(s)", len(sections), len(raw_lines))
    return Chordsheet(
        id=sheet_id or (slugify(title) if title else "") or uuid.uuid4().hex,
        title=title,
        artist=fields.get("artist"),
        original_key=fields.get("key"),
        sections=sections,
        metadata=metadata,
    )
