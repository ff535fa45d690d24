"""Key transposition and Nashville number conversion.

A chord name splits into root, suffix and an optional bass note::

    F#m7/C#   ->   root F#, suffix m7, bass C#

Only the root and the bass move.  The suffix is kept verbatim, so ``sus4``,
``maj7`` and ``add9`` survive every conversion.  Tokens that are not letter
chords (``N.C.``, Nashville numbers, ``x2``) pass through untouched, which
lets a sheet that mixes notations be converted without losing anything.

Notes are spelled with flats when the target key is a flat key (``F``, ``Bb``,
``Dm`` ...) and with sharps otherwise.
"""

import logging
import re
from dataclasses import replace

from .exceptions import ValidationError
from .models import ChordPlacement, Chordsheet, TextLine

logger = logging.getLogger(__name__)

SHARP_NOTES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")
FLAT_NOTES = ("C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B")

FLAT_KEYS = frozenset(
    {"F", "Bb", "Eb", "Ab", "Db", "Gb", "Cb", "Dm", "Gm", "Cm", "Fm", "Bbm", "Ebm", "Abm"}
)

_NOTE_INDEX = {note: i for i, note in enumerate(SHARP_NOTES)}
_NOTE_INDEX.update({note: i for i, note in enumerate(FLAT_NOTES)})
_NOTE_INDEX.update({"Cb": 11, "Fb": 4, "E#": 5, "B#": 0})

# Nashville degree for each semitone above the tonic.
NASHVILLE_DEGREES = ("1", "b2", "2", "b3", "3", "4", "#4", "5", "b6", "6", "b7", "7")
_MAJOR_SCALE = (0, 2, 4, 5, 7, 9, 11)

_CHORD_RE = re.compile(r"^(?P<root>[A-G][#b]?)(?P<suffix>[^/]*)(?:/(?P<bass>[A-Ga-g][#b]?))?$")
_NUMBER_RE = re.compile(
    r"^(?P<accidental>[#b]?)(?P<degree>[1-7])(?P<suffix>[^/]*)"
    r"(?:/(?P<bass_accidental>[#b]?)(?P<bass>[1-7]))?$"
)
_KEY_RE = re.compile(r"^\s*(?P<root>[A-G][#b]?)(?P<minor>m(?!aj))?")


# ---------------------------------------------------------------------------
# Notes and keys
# ---------------------------------------------------------------------------


def note_index(note: str) -> int:
    """Semitones above C, 0-11."""
    try:
        return _NOTE_INDEX[note[:1].upper() + note[1:]]
    except KeyError:
        raise ValidationError(f"Invalid note: {note!r}") from None


def parse_key(key: str | None) -> tuple[str, bool]:
    """Split a key name into ``(root, is_minor)``: ``"Bbm"`` gives ``("Bb", True)``."""
    m = _KEY_RE.match(key or "")
    if not m:
        raise ValidationError(f"Invalid key: {key!r}")
    return m.group("root"), bool(m.group("minor"))


def is_valid_key(key: str | None) -> bool:
    return bool(_KEY_RE.match(key or ""))


def prefers_flats(key: str | None) -> bool:
    if not is_valid_key(key):
        return False
    root, minor = parse_key(key)
    return root + ("m" if minor else "") in FLAT_KEYS


def transpose_note(note: str, semitones: int, target_key: str | None = None) -> str:
    scale = FLAT_NOTES if prefers_flats(target_key) else SHARP_NOTES
    return scale[(note_index(note) + semitones) % 12]


def key_distance(from_key: str, to_key: str) -> int:
    """Semitones to move up from *from_key* to reach *to_key*, 0-11."""
    return (note_index(parse_key(to_key)[0]) - note_index(parse_key(from_key)[0])) % 12


def transpose_key(key: str, semitones: int) -> str:
    root, minor = parse_key(key)
    index = (note_index(root) + semitones) % 12
    suffix = "m" if minor else ""
    if FLAT_NOTES[index] + suffix in FLAT_KEYS:
        return FLAT_NOTES[index] + suffix
    return SHARP_NOTES[index] + suffix


# ---------------------------------------------------------------------------
# Single chords
# ---------------------------------------------------------------------------


def transpose_chord(name: str, semitones: int, target_key: str | None = None) -> str:
    """Move a letter chord by *semitones*; anything else is returned unchanged."""
    m = _CHORD_RE.match(name)
    if not m:
        return name
    chord = transpose_note(m.group("root"), semitones, target_key) + m.group("suffix")
    if m.group("bass"):
        chord += "/" + transpose_note(m.group("bass"), semitones, target_key)
    return chord


def chord_to_nashville(name: str, key: str) -> str:
    """``D`` in G is ``5``, ``Em`` is ``6m``, ``F`` is ``b7``."""
    m = _CHORD_RE.match(name)
    if not m:
        return name
    tonic = note_index(parse_key(key)[0])
    number = NASHVILLE_DEGREES[(note_index(m.group("root")) - tonic) % 12] + m.group("suffix")
    if m.group("bass"):
        number += "/" + NASHVILLE_DEGREES[(note_index(m.group("bass")) - tonic) % 12]
    return number


def nashville_to_chord(number: str, key: str) -> str:
    """Inverse of :func:`chord_to_nashville`; non-numbers are returned unchanged."""
    m = _NUMBER_RE.match(number)
    if not m:
        return number
    root = parse_key(key)[0]
    chord = _degree_note(root, m.group("accidental"), m.group("degree"), key) + m.group("suffix")
    if m.group("bass"):
        chord += "/" + _degree_note(root, m.group("bass_accidental"), m.group("bass"), key)
    return chord


def _degree_note(root: str, accidental: str, degree: str, key: str) -> str:
    offset = _MAJOR_SCALE[int(degree) - 1] + {"#": 1, "b": -1}.get(accidental, 0)
    return transpose_note(root, offset, key)


# ---------------------------------------------------------------------------
# Whole chordsheets
# ---------------------------------------------------------------------------


def _convert_chord(chord, convert):
    if not isinstance(chord, ChordPlacement):
        return chord
    value = convert(chord.value)
    if value == chord.value:
        return chord
    if chord.value in chord.original_text:
        original = chord.original_text.replace(chord.value, value, 1)
    else:
        original = value
    return replace(chord, value=value, original_text=original, end_index=chord.start_index + len(value))


def map_chords(chordsheet: Chordsheet, convert) -> Chordsheet:
    """Return a copy of *chordsheet* with ``convert`` applied to every chord name."""
    sections = []
    for section in chordsheet.sections or ():
        lines = []
        for line in section.lines:
            if isinstance(line, TextLine) and line.chords:
                line = replace(line, chords=tuple(_convert_chord(c, convert) for c in line.chords))
            lines.append(line)
        sections.append(replace(section, lines=lines))
    return replace(chordsheet, sections=sections)


def transpose_chordsheet(
    chordsheet: Chordsheet, semitones: int | None = None, to_key: str | None = None
) -> Chordsheet:
    """Transpose every letter chord, by *semitones* or into *to_key*.

    Moving into a key needs the sheet's ``original_key``; the result carries
    the new key either way.  Nashville numbers are key-relative and stay put.
    """
    if to_key is not None:
        if not is_valid_key(chordsheet.original_key):
            raise ValidationError("Cannot transpose to a key: the chordsheet has no valid original key")
        semitones = key_distance(chordsheet.original_key, to_key)
        new_key = to_key.strip()
    elif semitones is None:
        raise ValidationError("Transposition needs either semitones or a target key")
    elif is_valid_key(chordsheet.original_key):
        new_key = transpose_key(chordsheet.original_key, semitones)
    else:
        new_key = chordsheet.original_key

    logger.debug("Transposing %s by %d semitones to %s", chordsheet.id, semitones, new_key)
    transposed = map_chords(chordsheet, lambda name: transpose_chord(name, semitones, new_key))
    return replace(transposed, original_key=new_key)


def to_nashville_numbers(chordsheet: Chordsheet) -> Chordsheet:
    """Rewrite letter chords as Nashville numbers relative to the original key."""
    key = chordsheet.original_key
    if not is_valid_key(key):
        raise ValidationError(f"Nashville numbers need a valid original key, got {key!r}")
    return map_chords(chordsheet, lambda name: chord_to_nashville(name, key))


def from_nashville_numbers(chordsheet: Chordsheet, key: str | None = None) -> Chordsheet:
    """Rewrite Nashville numbers as letter chords in *key* (default: the original key)."""
    key = key or chordsheet.original_key
    if not is_valid_key(key):
        raise ValidationError(f"Letter chords need a valid key, got {key!r}")
    return map_chords(chordsheet, lambda name: nashville_to_chord(name, key))
