"""Guess which notation dialect a chord sheet was written in.

Each dialect has a handful of regexes.  Every hit adds a little to the
dialect's score (plus a bonus for how dense the hits are), and a table of
telltale features adds or subtracts a fixed amount on top::

    {title: ...}          -> ChordPro, strongly
    [Verse 1] on its own  -> Guitar Tabs
    (Repeat chorus)       -> Songbook
    1 - 4 - 5             -> Nashville

Scores are capped at 1.5.  When even the best one is under 0.3 the text is
too plain to score and a few blunt checks pick the dialect instead.
"""

import logging
import re
from dataclasses import dataclass

from .models import NotationFormat

logger = logging.getLogger(__name__)

MAX_CONFIDENCE = 1.5
MIN_CONFIDENCE = 0.3

_CHORD = r"[A-G][#b]?(?:m|maj|dim|aug)?(?:sus[24]?|add[0-9]|[0-9]+)?(?:/[A-G][#b]?)?"

_NUMBER_CHORD = re.compile(r"\b[1-7][mb°]?(?:sus[24]?|add[0-9]|maj[0-9]|[0-9]+)?(?:/[1-7])?")
_NUMBER_RUN = re.compile(r"\b[1-7]\s*-\s*[1-7]")
_NUMBER_BAR = re.compile(r"\|[^|]*[1-7][^|]*\|")
_NUMBER_QUALITY = re.compile(r"\b[1-7][mb°]")
_ANY_NUMBER = re.compile(r"\b[1-7]")
_LETTER_QUALITY = re.compile(r"\b[A-G][#b]?(?:m|maj)")

_BRACKET_CHORD = re.compile(rf"\[{_CHORD}\]")
_ANY_BRACKET_CHORD = re.compile(r"\[[A-G][#b]?[^\]]*\]")
_BRACKET_CHORD_BEFORE_WORD = re.compile(r"\[[A-G][#b]?[^\]]*\][^\[]*\w")
_STAR_LINE = re.compile(r"^\*[^*\n]+$", re.MULTILINE)

_CHORD_PAIR_LINE = re.compile(rf"^{_CHORD}\s+[A-G][#b]?", re.MULTILINE)
_CHORD_ONLY_LINE = re.compile(rf"^{_CHORD}$", re.MULTILINE)
_PAREN_LINE = re.compile(r"^\([^)]+\)$", re.MULTILINE)
_CHORD_OVER_LYRIC = re.compile(r"^[A-G][#b]?(?:m|maj|dim|aug)?[^\n]*\n[a-z]", re.MULTILINE | re.IGNORECASE)

_DIRECTIVE = re.compile(r"\{[^}]+\}")
_TITLE = re.compile(r"\{title:[^}]+\}", re.IGNORECASE)
_ARTIST = re.compile(r"\{artist:[^}]+\}", re.IGNORECASE)
_KEY = re.compile(r"\{key:[^}]+\}", re.IGNORECASE)
_START_OF_CHORUS = re.compile(r"\{start_of_chorus\}", re.IGNORECASE)
_END_OF_CHORUS = re.compile(r"\{end_of_chorus\}", re.IGNORECASE)
_START_OF_VERSE = re.compile(r"\{start_of_verse\}", re.IGNORECASE)

_BRACKET_HEADER = re.compile(r"^\[[A-Za-z][^\]]*\]$", re.MULTILINE)
_COMMON_BRACKET_HEADER = re.compile(r"^\[(?:Intro|Verse|Chorus|Bridge|Outro)\]", re.MULTILINE | re.IGNORECASE)
_CHORD_DASH = re.compile(rf"^{_CHORD}\s*-\s*", re.MULTILINE)
_CHORD_LINE_THEN_TEXT = re.compile(r"^\s*[A-G][#b]?[^\n]*\n\s*[^A-G(\[\n]", re.MULTILINE)


@dataclass(frozen=True)
class FormatSignals:
    format: NotationFormat
    patterns: tuple[re.Pattern, ...]
    bonuses: tuple[tuple[re.Pattern, float], ...]
    indicators: tuple[str, ...]


# Evaluation order doubles as the tie-break order.
FORMAT_SIGNALS = (
    FormatSignals(
        NotationFormat.NASHVILLE,
        (_NUMBER_CHORD, _NUMBER_RUN, _NUMBER_BAR),
        ((_NUMBER_RUN, 0.3), (_NUMBER_BAR, 0.2), (_NUMBER_QUALITY, 0.2), (_LETTER_QUALITY, -0.1), (_TITLE, -0.2)),
        ("Nashville numbers", "numeric chord notation", "bar notation with numbers"),
    ),
    FormatSignals(
        NotationFormat.ONSONG,
        (_BRACKET_CHORD, _STAR_LINE, _BRACKET_CHORD_BEFORE_WORD),
        ((_BRACKET_CHORD_BEFORE_WORD, 0.3), (_STAR_LINE, 0.2), (_BRACKET_HEADER, -0.2), (_TITLE, -0.2)),
        ("chords in brackets", "inline chord placement", "OnSong annotations (*)"),
    ),
    FormatSignals(
        NotationFormat.SONGBOOK,
        (_CHORD_PAIR_LINE, _PAREN_LINE, _CHORD_OVER_LYRIC),
        (
            (_PAREN_LINE, 0.3),
            (_CHORD_OVER_LYRIC, 0.4),
            (_CHORD_PAIR_LINE, 0.3),
            (_BRACKET_HEADER, -0.4),
            (_ANY_BRACKET_CHORD, -0.3),
        ),
        ("chords above lyrics", "chord-over-lyrics format", "Songbook annotations (())"),
    ),
    FormatSignals(
        NotationFormat.CHORDPRO,
        (_DIRECTIVE, _TITLE, _ARTIST, _KEY, _START_OF_CHORUS, _END_OF_CHORUS),
        (
            (_TITLE, 0.8),
            (_ARTIST, 0.4),
            (_KEY, 0.4),
            (_START_OF_CHORUS, 0.4),
            (_END_OF_CHORUS, 0.4),
            (_START_OF_VERSE, 0.4),
            (_DIRECTIVE, 0.2),
        ),
        ("ChordPro directives {}", "metadata tags", "section markers"),
    ),
    FormatSignals(
        NotationFormat.GUITAR_TABS,
        (_BRACKET_HEADER, _CHORD_DASH, _CHORD_LINE_THEN_TEXT),
        (
            (_BRACKET_HEADER, 0.6),
            (_CHORD_DASH, 0.3),
            (_CHORD_LINE_THEN_TEXT, 0.2),
            (_COMMON_BRACKET_HEADER, 0.3),
            (_ANY_BRACKET_CHORD, -0.2),
        ),
        ("section headers in brackets", "chord lines followed by lyrics", "Guitar Tabs format"),
    ),
)


@dataclass(frozen=True)
class FormatDetection:
    format: NotationFormat
    confidence: float
    indicators: tuple[str, ...] = ()


def score_format(text: str, signals: FormatSignals) -> float:
    """Score *text* against one dialect's signals, capped at ``MAX_CONFIDENCE``."""
    total_lines = len(text.split("\n"))
    score = 0.0
    for pattern in signals.patterns:
        matches = len(pattern.findall(text))
        if matches:
            score += matches * 0.1 + matches / total_lines * 0.5

    score += sum(weight for pattern, weight in signals.bonuses if pattern.search(text))
    if signals.format is NotationFormat.GUITAR_TABS and len(_BRACKET_HEADER.findall(text)) > 1:
        score += 0.4

    return min(score, MAX_CONFIDENCE)


def detect_all_formats(text: str) -> list[FormatDetection]:
    """Every dialect with its score, best first."""
    if not text or not text.strip():
        return [FormatDetection(signals.format, 0.0) for signals in FORMAT_SIGNALS]

    results = []
    for signals in FORMAT_SIGNALS:
        score = score_format(text, signals)
        results.append(FormatDetection(signals.format, score, signals.indicators if score > 0 else ()))
    # sorted() is stable, so ties keep FORMAT_SIGNALS order
    return sorted(results, key=lambda r: r.confidence, reverse=True)


def detect_format(text: str) -> FormatDetection:
    """Return the most likely dialect of *text*."""
    if not text or not text.strip():
        return FormatDetection(NotationFormat.ONSONG, 0.0, ("empty input - defaulting to OnSong",))

    best = detect_all_formats(text)[0]
    if best.confidence < MIN_CONFIDENCE:
        logger.debug("Best score %.2f (%s) too low, using fallback checks", best.confidence, best.format)
        return _fallback(text)

    logger.debug("Detected %s with confidence %.2f", best.format, best.confidence)
    return best


def _fallback(text: str) -> FormatDetection:
    has_brackets = bool(_ANY_BRACKET_CHORD.search(text))
    has_headers = bool(_BRACKET_HEADER.search(text))

    if has_brackets and not has_headers:
        return FormatDetection(NotationFormat.ONSONG, 0.5, ("fallback: detected chord brackets",))
    if _ANY_NUMBER.search(text) and not _LETTER_QUALITY.search(text):
        return FormatDetection(NotationFormat.NASHVILLE, 0.4, ("fallback: detected numeric notation",))
    if _CHORD_ONLY_LINE.search(text) and not has_headers and not has_brackets:
        return FormatDetection(NotationFormat.SONGBOOK, 0.4, ("fallback: detected chord lines",))
    return FormatDetection(NotationFormat.ONSONG, 0.2, ("fallback: default to OnSong format",))
