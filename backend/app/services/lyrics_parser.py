"""
Plain-text song sheet parser.

Input is a song sheet as musicians write it:

    (Verso 1)
    G        D        Em
    Cuan grande es mi Dios
    (Coro)
    Santo, santo, santo

Structure markers in parentheses switch the current section, chord lines are
paired with the lyric line below them, and plain lines become chord-less
lyrics. Parsing is pure; persisting the result is up to the caller.
"""

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from app.models.song import MAX_CHORDS_PER_LYRIC
from app.services import chord_processor, lyrics_normalizer

DEFAULT_STRUCTURE_ID = 2  # verse

STRUCTURE_MAP = {
    # English
    "intro": 1,
    "introduction": 1,
    "verse": 2,
    "pre-chorus": 3,
    "prechorus": 3,
    "chorus": 4,
    "refrain": 4,
    "bridge": 5,
    "interlude": 6,
    "solo": 7,
    "outro": 8,
    # Spanish
    "introduccion": 1,
    "verso": 2,
    "pre-coro": 3,
    "precoro": 3,
    "coro": 4,
    "estribillo": 4,
    "puente": 5,
    "interludio": 6,
    "intermedio": 7,
    "final": 8,
    "salida": 8,
}

_STRUCTURE_LINE = re.compile(r"^\(([^)]+)\)$")
_CHORD_WORD = re.compile(
    rf"^[A-G][#b]?(?:{chord_processor.QUALITY_ALTERNATION})?(?:/[A-G][#b]?)?$"
)
_CHORD_IN_LINE = re.compile(
    rf"(?:^|\s)([A-G][#b]?(?:{chord_processor.QUALITY_ALTERNATION})?"
    rf"(?:/[A-G][#b]?(?:{chord_processor.QUALITY_ALTERNATION})?)?)(?:\s|$|-)"
)


class LyricsParseError(ValueError):
    pass


@dataclass
class ParsedLyric:
    structure_id: int
    lyrics: str
    chords: List[dict] = field(default_factory=list)  # root_note, chord_quality, slash_chord, position


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def detect_structure(line: str) -> Optional[int]:
    """Return the structure id for a "(Coro 2)" style marker, or None for any other line."""
    match = _STRUCTURE_LINE.match(line)
    if not match:
        return None

    name = _strip_accents(match.group(1).lower().strip())
    name = re.sub(r"\s*\d+\s*$", "", name)
    without_spaces = re.sub(r"\s+", "", name)
    return STRUCTURE_MAP.get(name) or STRUCTURE_MAP.get(without_spaces)


def has_chords(line: str) -> bool:
    """
    Decide whether a line is a chord line.

    Short lines (six words or fewer) count as chord lines when at least half
    of the words are chord symbols; longer lines fall back to a pattern search.
    """
    words = line.strip().split()
    if words and len(words) <= 6:
        potential = sum(1 for w in words if _CHORD_WORD.match(re.sub(r"[-\s]", "", w)))
        return potential >= len(words) * 0.5
    return bool(_CHORD_IN_LINE.search(line))


def validate_max_chords_per_line(lines: List[str], max_chords: int = MAX_CHORDS_PER_LYRIC) -> List[str]:
    """Return one error message per chord line holding more than `max_chords` chords."""
    errors = []
    for i, line in enumerate(lines):
        if detect_structure(line) is not None or not has_chords(line):
            continue
        count = len(chord_processor.extract_chords_with_position(chord_processor.normalize_chord_line(line)))
        if count > max_chords:
            errors.append(f'Line {i + 1} has {count} chords (max {max_chords}): "{line}"')
    return errors


def parse_file_content(content: str) -> Tuple[List[str], Dict[int, str]]:
    """
    Split content into non-empty stripped lines.

    Returns:
        (cleaned_lines, mapping of cleaned index -> original untrimmed line)
    """
    cleaned = []
    mapping = {}
    for original in re.split(r"\r?\n", content):
        stripped = original.strip()
        if stripped:
            mapping[len(cleaned)] = original
            cleaned.append(stripped)
    return cleaned, mapping


def _chords_for(chords_line: str, lyrics_line: str) -> List[dict]:
    chords = []
    for placed in chord_processor.place_chords(chords_line, lyrics_line):
        parsed = chord_processor.parse_chord(placed.chord)
        if parsed:
            chords.append({**parsed, "position": placed.position})
    return chords


def parse_text(content: str) -> List[ParsedLyric]:
    """
    Parse a full song sheet into ordered lyrics with chords.

    Raises:
        LyricsParseError: a chord line has more than five chords
    """
    lines, original = parse_file_content(content)
    errors = validate_max_chords_per_line(lines)
    if errors:
        raise LyricsParseError("Validation failed:\n" + "\n".join(errors))

    parsed: List[ParsedLyric] = []
    current_structure = DEFAULT_STRUCTURE_ID
    i = 0
    while i < len(lines):
        line = lines[i]

        structure_id = detect_structure(line)
        if structure_id is not None:
            current_structure = structure_id
            i += 1
            continue

        next_line = lines[i + 1] if i + 1 < len(lines) else None
        next_is_structure = next_line is not None and detect_structure(next_line) is not None

        if not has_chords(line):
            if not next_is_structure:
                parsed.append(ParsedLyric(current_structure, lyrics_normalizer.normalize(line)))
            i += 1
            continue

        # chord line with nothing to sit on
        if next_line is None or next_is_structure:
            i += 1
            continue

        if has_chords(next_line):
            parsed.append(ParsedLyric(current_structure, line))
            i += 1
            continue

        chords = _chords_for(original.get(i, line), original.get(i + 1, next_line))
        parsed.append(ParsedLyric(current_structure, lyrics_normalizer.normalize(next_line), chords))
        i += 2

    return parsed


def parse_single(content: str) -> ParsedLyric:
    """
    Parse the text for one lyric: an optional chord line plus a lyric line.

    Structure markers are ignored; the returned structure_id is the default and
    should not overwrite the stored one.
    """
    lines, original = parse_file_content(content)
    errors = validate_max_chords_per_line(lines)
    if errors:
        raise LyricsParseError("Validation failed:\n" + "\n".join(errors))

    valid = [(idx, line) for idx, line in enumerate(lines) if detect_structure(line) is None]
    if not valid:
        raise LyricsParseError("No valid lyrics found in the text content")

    chords_entry = None
    lyrics_entry = None
    for n, (idx, line) in enumerate(valid):
        line_has_chords = has_chords(line)
        if line_has_chords and chords_entry is None:
            chords_entry = (idx, line)
            if n + 1 < len(valid) and not has_chords(valid[n + 1][1]):
                lyrics_entry = valid[n + 1]
                break
        elif not line_has_chords and lyrics_entry is None:
            lyrics_entry = (idx, line)
            break

    if lyrics_entry is None:
        lyrics_entry = valid[0]

    lyrics_idx, lyrics_line = lyrics_entry
    chords = []
    if chords_entry is not None:
        chords_idx, chords_line = chords_entry
        chords = _chords_for(original.get(chords_idx, chords_line), original.get(lyrics_idx, lyrics_line))

    return ParsedLyric(DEFAULT_STRUCTURE_ID, lyrics_normalizer.normalize(lyrics_line), chords)
