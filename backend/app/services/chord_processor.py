"""
Chord extraction and placement.

A chord line such as ``"G      D/F#    Em"`` sits above a lyric line. Each
chord is mapped to one of five slots (1-5) across the lyric according to
where it falls horizontally, and slot collisions are resolved while keeping
the chords in left-to-right order.
"""

import math
import re
from dataclasses import dataclass
from typing import List, Optional

from app.models.song import MAX_CHORDS_PER_LYRIC, ROOT_NOTES

FLAT_TO_SHARP = {
    "Cb": "B",
    "Db": "C#",
    "Eb": "D#",
    "Fb": "E",
    "Gb": "F#",
    "Ab": "G#",
    "Bb": "A#",
}

# Longest alternatives first so "maj7" wins over "m"
QUALITY_ALTERNATION = "maj7|mMaj7|dim7|m7b5|maj9|maj11|maj13|sus4|sus2|aug|dim|m13|m11|m9|m7|7|9|11|13|m"

CHORD_PATTERN = re.compile(
    rf"[A-G][#b]?(?:{QUALITY_ALTERNATION})?(?:/[A-G][#b]?(?:{QUALITY_ALTERNATION})?)?"
)
FULL_CHORD_PATTERN = re.compile(
    rf"^([A-G][#b]?)({QUALITY_ALTERNATION})?(?:/([A-G][#b]?)({QUALITY_ALTERNATION})?)?$"
)

SLOT_COUNT = MAX_CHORDS_PER_LYRIC


@dataclass
class PlacedChord:
    chord: str
    char_position: int
    position: int


def normalize_note(note: str) -> str:
    return FLAT_TO_SHARP.get(note, note)


def normalize_chord_line(line: str) -> str:
    """Treat dashes as separators: "G - F - A" and "F-A-G" become "G F A" and "F A G"."""
    line = re.sub(r"\s*-\s*", " ", line)
    return re.sub(r"\s+", " ", line).strip()


def extract_chords_with_position(chords_line: str) -> List[PlacedChord]:
    """Find every chord token and its character offset. `position` is left at 0."""
    return [
        PlacedChord(chord=m.group(0), char_position=m.start(), position=0)
        for m in CHORD_PATTERN.finditer(chords_line)
    ]


def calculate_chord_position(char_position: int, reference_length: int) -> int:
    """Map a character offset to a slot 1-5 by percentage of the reference length."""
    if reference_length == 0:
        return 1

    percentage = char_position / reference_length * 100
    if percentage < 15:
        return 1
    if percentage < 35:
        return 2
    if percentage < 55:
        return 3
    if percentage < 75:
        return 4
    return 5


def _compress_positions(chords: List[PlacedChord]) -> None:
    count = len(chords)
    for i, chord in enumerate(chords):
        chord.position = max(1, min(SLOT_COUNT, math.ceil((i + 1) / count * SLOT_COUNT)))

    used = set()
    for chord in chords:
        pos = chord.position
        while pos in used and pos <= SLOT_COUNT:
            pos += 1
        if pos > SLOT_COUNT:
            pos = chord.position - 1
            while pos >= 1 and pos in used:
                pos -= 1
        chord.position = pos
        used.add(pos)


def redistribute_positions(chords: List[PlacedChord]) -> List[PlacedChord]:
    """
    Make slot assignments unique while preserving left-to-right order.

    A chord that collides with an earlier one moves to the next free slot.
    When no slot is free to the right, all chords are spread evenly.
    """
    if not chords:
        return []

    ordered = sorted(chords, key=lambda c: c.char_position)
    result = [PlacedChord(c.chord, c.char_position, c.position) for c in ordered]

    has_conflict = True
    while has_conflict:
        has_conflict = False
        used = set()
        for chord in result:
            current = chord.position
            if current in used:
                has_conflict = True
                new_pos = current + 1
                while new_pos <= SLOT_COUNT and new_pos in used:
                    new_pos += 1
                if new_pos <= SLOT_COUNT:
                    chord.position = new_pos
                else:
                    _compress_positions(result)
                    has_conflict = False
                    break
            used.add(current)

    return result


def place_chords(chords_line: str, lyrics_line: str) -> List[PlacedChord]:
    """Extract chords from `chords_line` and assign unique slots against the longer of the two lines."""
    chords = extract_chords_with_position(chords_line)
    if not chords:
        return []
    reference_length = max(len(chords_line), len(lyrics_line))
    for chord in chords:
        chord.position = calculate_chord_position(chord.char_position, reference_length)
    return redistribute_positions(chords)


def parse_chord(chord: str) -> Optional[dict]:
    """
    Split a chord symbol into its parts.

    Returns:
        dict with keys root_note, chord_quality, slash_chord (flats converted
        to sharps), or None when the symbol is not a valid chord
    """
    match = FULL_CHORD_PATTERN.match(chord)
    if not match:
        return None

    root_note = normalize_note(match.group(1))
    quality = match.group(2) or ""
    slash_root = match.group(3)
    if slash_root:
        slash_root = normalize_note(slash_root)

    if root_note not in ROOT_NOTES or (slash_root and slash_root not in ROOT_NOTES):
        return None

    return {
        "root_note": root_note,
        "chord_quality": quality,
        "slash_chord": slash_root or None,
    }
