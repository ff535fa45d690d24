import pytest

from sheetconv.exceptions import ValidationError
from sheetconv.models import (
    AnnotationLine,
    AnnotationType,
    ChordPlacement,
    ChordPosition,
    Chordsheet,
    EmptyLine,
    PlacementMode,
    RenderingOptions,
    Section,
    SectionType,
    TextLine,
    WhitespaceRules,
)

# ---------------------------------------------------------------------------
# ChordPlacement
# ---------------------------------------------------------------------------


def test_chord_placement_stores_fields():
    chord = ChordPlacement(value="Am7", original_text="[Am7]", start_index=3, end_index=6)
    assert chord.value == "Am7"
    assert chord.original_text == "[Am7]"
    assert chord.start_index == 3
    assert chord.end_index == 6
    assert chord.placement is None


def test_chord_placement_coerces_placement_string():
    chord = ChordPlacement(value="C", original_text="C", start_index=0, end_index=1, placement="above")
    assert chord.placement is ChordPosition.ABOVE


def test_chord_placement_is_immutable():
    chord = ChordPlacement(value="C", original_text="[C]", start_index=0, end_index=1)
    with pytest.raises(AttributeError):
        chord.value = "D"


def test_chord_placement_rejects_negative_start():
    with pytest.raises(ValidationError):
        ChordPlacement(value="C", original_text="[C]", start_index=-1, end_index=1)


def test_chord_placement_rejects_inverted_span():
    with pytest.raises(ValidationError):
        ChordPlacement(value="C", original_text="[C]", start_index=5, end_index=4)


def test_chord_placement_allows_zero_width_span():
    chord = ChordPlacement(value="C", original_text="[C]", start_index=4, end_index=4)
    assert chord.end_index == chord.start_index


def test_chord_placement_rejects_empty_strings():
    with pytest.raises(ValidationError):
        ChordPlacement(value="", original_text="[C]", start_index=0, end_index=1)
    with pytest.raises(ValidationError):
        ChordPlacement(value="C", original_text="", start_index=0, end_index=1)


def test_validation_error_is_a_value_error():
    with pytest.raises(ValueError):
        ChordPlacement(value="C", original_text="[C]", start_index=-3, end_index=0)


# ---------------------------------------------------------------------------
# Lines
# ---------------------------------------------------------------------------


def test_line_kinds():
    assert TextLine(text="x").kind == "text"
    assert EmptyLine().kind == "empty"
    assert AnnotationLine(value="x").kind == "annotation"


def test_text_line_stores_chords_as_tuple():
    chord = ChordPlacement(value="C", original_text="[C]", start_index=0, end_index=1)
    line = TextLine(text="hello", chords=[chord])
    assert line.chords == (chord,)
    assert line.line_number is None


def test_empty_line_defaults_to_one():
    assert EmptyLine().count == 1


def test_empty_line_rejects_zero_count():
    with pytest.raises(ValidationError):
        EmptyLine(count=0)


def test_annotation_line_defaults_to_comment():
    assert AnnotationLine(value="Softly").annotation_type is AnnotationType.COMMENT


def test_annotation_line_coerces_type_string():
    line = AnnotationLine(value="Slowly", annotation_type="tempo")
    assert line.annotation_type is AnnotationType.TEMPO


def test_annotation_line_rejects_empty_value():
    with pytest.raises(ValidationError):
        AnnotationLine(value="")


def test_annotation_line_rejects_unknown_type():
    with pytest.raises(ValidationError):
        AnnotationLine(value="x", annotation_type="shout")


# ---------------------------------------------------------------------------
# Section / Chordsheet
# ---------------------------------------------------------------------------


def test_section_defaults():
    section = Section()
    assert section.type is SectionType.UNKNOWN
    assert section.title is None
    assert section.lines == []


def test_chordsheet_defaults():
    sheet = Chordsheet(id="amazing-grace")
    assert sheet.title is None
    assert sheet.artist is None
    assert sheet.original_key is None
    assert sheet.sections == []
    assert sheet.metadata is None


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


def test_whitespace_rules_merge_only_set_fields():
    base = WhitespaceRules(
        empty_lines_after_comments=3,
        empty_lines_after_sections=2,
        empty_lines_between_sections=2,
        preserve_consecutive_empty_lines=False,
    )
    merged = WhitespaceRules(empty_lines_between_sections=0).merged_over(base)
    assert merged.empty_lines_between_sections == 0
    assert merged.empty_lines_after_comments == 3
    assert merged.preserve_consecutive_empty_lines is False


def test_whitespace_rules_merge_keeps_false_override():
    base = WhitespaceRules(preserve_consecutive_empty_lines=True)
    merged = WhitespaceRules(preserve_consecutive_empty_lines=False).merged_over(base)
    assert merged.preserve_consecutive_empty_lines is False


def test_rendering_options_defaults():
    options = RenderingOptions()
    assert options.preserve_original_text is False
    assert options.chord_placement is PlacementMode.AUTO
    assert options.include_metadata is True
    assert options.whitespace_rules is None


def test_rendering_options_rejects_unknown_placement():
    with pytest.raises(ValidationError):
        RenderingOptions(chord_placement="sideways")
