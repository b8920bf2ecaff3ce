"""Unit tests for the song sheet parser, chord placement and lyric normalizer"""

import pytest

from app.services import chord_processor, lyrics_normalizer, lyrics_parser
from app.services.chord_processor import PlacedChord
from app.services.lyrics_parser import LyricsParseError

SONG_SHEET = """
(Verso 1)
G        D        Em
Cuan grande es mi Dios
(Coro)
Santo, santo, santo
"""


# ============================================================================
# Structure and chord line detection
# ============================================================================


@pytest.mark.parametrize(
    "line,expected",
    [
        ("(Coro)", 4),
        ("(Coro 2)", 4),
        ("(Chorus)", 4),
        ("(Verso 1)", 2),
        ("(Pre-Coro)", 3),
        ("(Pre Coro)", 3),
        ("(Introducción)", 1),
        ("(Puente)", 5),
        ("(Outro)", 8),
        ("(Desconocido)", None),
        ("Coro", None),
    ],
)
def test_detect_structure(line, expected):
    assert lyrics_parser.detect_structure(line) == expected


@pytest.mark.parametrize(
    "line,expected",
    [
        ("G D Em", True),
        ("G - F - A", True),
        ("Am7  D/F#  G", True),
        ("Cuan grande es mi Dios", False),
        ("A mi Dios", False),
        ("Santo, santo, santo", False),
    ],
)
def test_has_chords(line, expected):
    assert lyrics_parser.has_chords(line) is expected


def test_validate_max_chords_per_line():
    errors = lyrics_parser.validate_max_chords_per_line(["C D E F G A", "Letra normal", "C G"])
    assert len(errors) == 1
    assert errors[0].startswith("Line 1 has 6 chords")


def test_parse_file_content_keeps_original_lines():
    cleaned, mapping = lyrics_parser.parse_file_content("  a \n\n b\r\n")
    assert cleaned == ["a", "b"]
    assert mapping == {0: "  a ", 1: " b"}


# ============================================================================
# Chord processor
# ============================================================================


def test_normalize_chord_line_treats_dashes_as_separators():
    assert chord_processor.normalize_chord_line("G - F - A") == "G F A"
    assert chord_processor.normalize_chord_line("F-A-G") == "F A G"


def test_extract_chords_with_position():
    chords = chord_processor.extract_chords_with_position("G    D/F#  Em7")
    assert [(c.chord, c.char_position) for c in chords] == [("G", 0), ("D/F#", 5), ("Em7", 11)]


@pytest.mark.parametrize(
    "char_position,length,expected",
    [(0, 100, 1), (14, 100, 1), (15, 100, 2), (35, 100, 3), (55, 100, 4), (75, 100, 5), (99, 100, 5), (10, 0, 1)],
)
def test_calculate_chord_position(char_position, length, expected):
    assert chord_processor.calculate_chord_position(char_position, length) == expected


def test_redistribute_shifts_conflicts_forward():
    chords = [PlacedChord("A", 0, 1), PlacedChord("B", 2, 1), PlacedChord("C", 4, 1)]
    result = chord_processor.redistribute_positions(chords)
    assert [c.position for c in result] == [1, 2, 3]


def test_redistribute_compresses_when_no_slot_left():
    chords = [PlacedChord("A", 0, 5), PlacedChord("B", 1, 5)]
    result = chord_processor.redistribute_positions(chords)
    positions = [c.position for c in result]
    assert len(set(positions)) == 2
    assert positions == sorted(positions)
    assert all(1 <= p <= 5 for p in positions)


@pytest.mark.parametrize(
    "symbol,expected",
    [
        ("G", {"root_note": "G", "chord_quality": "", "slash_chord": None}),
        ("Em", {"root_note": "E", "chord_quality": "m", "slash_chord": None}),
        ("Dbmaj7", {"root_note": "C#", "chord_quality": "maj7", "slash_chord": None}),
        ("Bb/D", {"root_note": "A#", "chord_quality": "", "slash_chord": "D"}),
        ("D/F#", {"root_note": "D", "chord_quality": "", "slash_chord": "F#"}),
        ("H", None),
        ("Gxyz", None),
    ],
)
def test_parse_chord(symbol, expected):
    assert chord_processor.parse_chord(symbol) == expected


# ============================================================================
# Normalizer
# ============================================================================


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Santo, santo, santo", "Santo Santo Santo"),
        ("CUAN GRANDE ES MI DIOS", "Cuan grande es mi Dios"),
        ("  mi   señor  y mi rey ", "Mi Señor y mi rey"),
        ("lleno del espíritu santo", "Lleno del Espíritu Santo"),
        ("rey de reyes; jesús", "Rey De Reyes Jesús"),
        ("diosito", "Diosito"),
    ],
)
def test_normalize(raw, expected):
    assert lyrics_normalizer.normalize(raw) == expected


def test_normalize_blank_is_unchanged():
    assert lyrics_normalizer.normalize("   ") == "   "


# ============================================================================
# Full text parsing
# ============================================================================


def test_parse_text_song_sheet():
    parsed = lyrics_parser.parse_text(SONG_SHEET)
    assert len(parsed) == 2

    verse, chorus = parsed
    assert verse.structure_id == 2
    assert verse.lyrics == "Cuan grande es mi Dios"
    assert [(c["root_note"], c["chord_quality"], c["position"]) for c in verse.chords] == [
        ("G", "", 1),
        ("D", "", 3),
        ("E", "m", 5),
    ]

    assert chorus.structure_id == 4
    assert chorus.lyrics == "Santo Santo Santo"
    assert chorus.chords == []


def test_parse_text_defaults_to_verse():
    parsed = lyrics_parser.parse_text("Primera linea\nSegunda linea")
    assert [p.structure_id for p in parsed] == [2, 2]


def test_parse_text_skips_dangling_chord_lines():
    parsed = lyrics_parser.parse_text("G D\n(Coro)\nAleluya\nC G")
    assert [p.lyrics for p in parsed] == ["Aleluya"]


def test_parse_text_chord_line_followed_by_chord_line():
    parsed = lyrics_parser.parse_text("C G\nAm F\nTe alabo")
    assert parsed[0].lyrics == "C G"
    assert parsed[0].chords == []
    assert parsed[1].lyrics == "Te alabo"
    assert [c["root_note"] for c in parsed[1].chords] == ["A", "F"]


def test_parse_text_lyric_before_structure_marker_is_skipped():
    parsed = lyrics_parser.parse_text("Titulo\n(Coro)\nAleluya")
    assert [(p.structure_id, p.lyrics) for p in parsed] == [(4, "Aleluya")]


def test_parse_text_too_many_chords():
    with pytest.raises(LyricsParseError):
        lyrics_parser.parse_text("C D E F G A\nLetra")


def test_parse_single_with_chords():
    parsed = lyrics_parser.parse_single("G    D\nCuan grande es")
    assert parsed.lyrics == "Cuan grande es"
    assert [(c["root_note"], c["position"]) for c in parsed.chords] == [("G", 1), ("D", 3)]


def test_parse_single_without_chords():
    parsed = lyrics_parser.parse_single("solo letra")
    assert parsed.lyrics == "Solo letra"
    assert parsed.chords == []


def test_parse_single_only_structure_markers():
    with pytest.raises(LyricsParseError):
        lyrics_parser.parse_single("(Coro)")
