from pathlib import Path

from click.testing import CliRunner

from sheetconv.cli import _default_filename, main

SONG = """\
{title: Amazing Grace}
{artist: John Newton}
{key: G}

[Verse 1]
C       F
Amazing grace how sweet the sound
"""

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_song(tmp_path: Path, name: str = "amazing-grace.cho", content: str = SONG) -> Path:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


def _convert(*args: str):
    return CliRunner().invoke(main, ["convert", *args])


# ---------------------------------------------------------------------------
# _default_filename
# ---------------------------------------------------------------------------


def test_default_filename_from_title():
    assert _default_filename("Amazing Grace", "x", "chordpro") == "amazing-grace.cho"
    assert _default_filename("Amazing Grace", "x", "onsong") == "amazing-grace.onsong"
    assert _default_filename("Amazing Grace", "x", "songbook") == "amazing-grace.txt"


def test_default_filename_falls_back_to_id():
    assert _default_filename(None, "hymn-1", "nashville") == "hymn-1.txt"


def test_default_filename_unknown_format():
    assert _default_filename("Song", "x", "chordpro_compact") == "song.txt"


# ---------------------------------------------------------------------------
# --help / formats
# ---------------------------------------------------------------------------


def test_help_output():
    result = CliRunner().invoke(main, ["--help"])
    assert result.exit_code == 0
    assert "Convert chord sheets between notation formats." in result.output


def test_formats_lists_all_dialects():
    result = CliRunner().invoke(main, ["formats"])
    assert result.exit_code == 0
    assert result.output.split() == ["chordpro", "onsong", "songbook", "guitar_tabs", "nashville"]


# ---------------------------------------------------------------------------
# convert
# ---------------------------------------------------------------------------


def test_convert_to_stdout(tmp_path):
    result = _convert(str(_write_song(tmp_path)), "--to", "chordpro", "--stdout")
    assert result.exit_code == 0
    assert result.output == (
        "{title: Amazing Grace}\n"
        "{artist: John Newton}\n"
        "{key: G}\n"
        "\n"
        "{verse: Verse 1}\n"
        "[C]Amazing [F]grace how sweet the sound\n"
    )


def test_convert_writes_named_output(tmp_path):
    dest = tmp_path / "out.txt"
    result = _convert(str(_write_song(tmp_path)), "--to", "songbook", "-o", str(dest))
    assert result.exit_code == 0
    assert f"Written to {dest}" in result.output
    assert dest.read_text(encoding="utf-8").startswith("AMAZING GRACE\nby John Newton\n")


def test_convert_default_output_name(tmp_path):
    source = _write_song(tmp_path)
    runner = CliRunner()
    with runner.isolated_filesystem(temp_dir=tmp_path):
        result = runner.invoke(main, ["convert", str(source), "--to", "onsong"])
        assert result.exit_code == 0
        assert "Written to amazing-grace.onsong" in result.output
        assert Path("amazing-grace.onsong").read_text(encoding="utf-8").startswith("Title: Amazing Grace\n")


def test_convert_placement_above(tmp_path):
    result = _convert(str(_write_song(tmp_path)), "--to", "chordpro", "--stdout", "--placement", "above")
    assert result.exit_code == 0
    assert "C       F\nAmazing grace how sweet the sound\n" in result.output


def test_convert_no_metadata(tmp_path):
    result = _convert(str(_write_song(tmp_path)), "--to", "onsong", "--stdout", "--no-metadata")
    assert result.exit_code == 0
    assert result.output.startswith("Verse 1:\n")


def test_convert_preserve_original(tmp_path):
    source = _write_song(tmp_path, content="[Verse]\n[Am7]Hello [G/B]there\n")
    result = _convert(str(source), "--to", "songbook", "--stdout", "--preserve-original")
    assert result.exit_code == 0
    assert "Am7   G/B\nHello there\n" in result.output


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


def test_convert_unknown_format(tmp_path):
    result = _convert(str(_write_song(tmp_path)), "--to", "bogus", "--stdout")
    assert result.exit_code == 1
    assert "No renderer available for format: bogus" in result.output
    assert "Supported formats: chordpro, onsong" in result.output


def test_convert_cannot_render(tmp_path):
    source = _write_song(tmp_path, content="[Verse]\n[C]Hello\n")
    result = _convert(str(source), "--to", "nashville", "--stdout")
    assert result.exit_code == 1
    assert "Cannot render chordsheet in nashville format" in result.output


def test_convert_invalid_utf8(tmp_path):
    source = tmp_path / "broken.txt"
    source.write_bytes(b"\xff\xfe\x00")
    result = _convert(str(source), "--to", "chordpro", "--stdout")
    assert result.exit_code == 1
    assert "Error: File is not valid UTF-8 text" in result.output


def test_convert_unknown_extension_warns(tmp_path):
    source = _write_song(tmp_path, name="amazing-grace.docx")
    result = _convert(str(source), "--to", "chordpro", "--stdout")
    assert result.exit_code == 0
    assert "Warning: File extension '.docx' is not officially supported" in result.output


def test_convert_missing_input():
    result = _convert("does-not-exist.cho", "--to", "chordpro")
    assert result.exit_code != 0


def test_convert_requires_target(tmp_path):
    result = _convert(str(_write_song(tmp_path)))
    assert result.exit_code != 0
    assert "--to" in result.output


# ---------------------------------------------------------------------------
# Transposition
# ---------------------------------------------------------------------------


def test_convert_transpose_semitones(tmp_path):
    result = _convert(str(_write_song(tmp_path)), "--to", "chordpro", "--stdout", "--transpose", "2")
    assert result.exit_code == 0
    assert "{key: A}\n" in result.output
    assert "[D]Amazing [G]grace how sweet the sound\n" in result.output


def test_convert_transpose_down(tmp_path):
    result = _convert(str(_write_song(tmp_path)), "--to", "chordpro", "--stdout", "--transpose", "-2")
    assert result.exit_code == 0
    assert "{key: F}\n" in result.output
    assert "[Bb]Amazing [Eb]grace" in result.output


def test_convert_to_key(tmp_path):
    result = _convert(str(_write_song(tmp_path)), "--to", "songbook", "--stdout", "--key", "D")
    assert result.exit_code == 0
    assert "Key: D\n" in result.output
    assert "G       C\nAmazing grace how sweet the sound\n" in result.output


def test_convert_to_key_without_source_key(tmp_path):
    source = _write_song(tmp_path, content="[Verse]\n[C]Hello\n")
    result = _convert(str(source), "--to", "chordpro", "--stdout", "--key", "D")
    assert result.exit_code == 1
    assert "no valid original key" in result.output


def test_convert_transpose_and_key_conflict(tmp_path):
    result = _convert(str(_write_song(tmp_path)), "--to", "chordpro", "--stdout", "--transpose", "1", "--key", "D")
    assert result.exit_code == 1
    assert "--transpose and --key cannot be used together" in result.output


def test_convert_to_nashville_numbers_chords(tmp_path):
    result = _convert(str(_write_song(tmp_path)), "--to", "nashville", "--stdout")
    assert result.exit_code == 0
    assert "[4]Amazing [b7]grace how sweet the sound\n" in result.output


# ---------------------------------------------------------------------------
# detect
# ---------------------------------------------------------------------------


def test_detect_command(tmp_path):
    result = CliRunner().invoke(main, ["detect", str(_write_song(tmp_path))])
    assert result.exit_code == 0
    assert result.output.startswith("chordpro (confidence 1.50)\n")
    assert "  - ChordPro directives {}\n" in result.output


def test_detect_command_all(tmp_path):
    result = CliRunner().invoke(main, ["detect", str(_write_song(tmp_path)), "--all"])
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert len(lines) == 5
    assert lines[0].split() == ["chordpro", "1.50"]


def test_detect_command_empty_file(tmp_path):
    source = _write_song(tmp_path, content="\n\n")
    result = CliRunner().invoke(main, ["detect", str(source)])
    assert result.exit_code == 1
    assert "Error: File contains no chord sheet content" in result.output
