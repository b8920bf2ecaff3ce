import re

DIVINE_WORDS = [
    "dios",
    "señor",
    "padre",
    "hijo",
    "santo",
    "espíritu santo",
    "espiritu santo",
    "jesús",
    "jesus",
    "jeshua",
    "yeshua",
    "cristo",
    "jesucristo",
    "salvador",
    "mesías",
    "mesias",
    "emanuel",
    "emmanuel",
    "jehová",
    "jehova",
    "yahveh",
    "yahweh",
    "adonai",
    "elohim",
    "el shaddai",
    "altísimo",
    "altisimo",
    "todopoderoso",
    "omnipotente",
    "creador",
    "redentor",
    "cordero",
    "rey de reyes",
    "león de judá",
    "alfa y omega",
]

INVALID_CHARACTERS = re.compile(r"[().*/\\\"',;:\-_=+\[\]{}<>|~`@#$%^&]")

_DIVINE_PATTERNS = [re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE) for word in DIVINE_WORDS]


def _title_phrase(match: re.Match) -> str:
    return " ".join(w[:1].upper() + w[1:].lower() for w in match.group(0).split(" "))


def normalize(lyrics: str) -> str:
    """
    Clean a lyric line for storage.

    Strips punctuation (keeps letters, digits, spaces and ¡!¿?), collapses
    whitespace, lower-cases, capitalizes the first letter and every divine
    name ("Dios", "Espíritu Santo", "Rey De Reyes", ...).
    """
    if not lyrics or not lyrics.strip():
        return lyrics

    normalized = INVALID_CHARACTERS.sub("", lyrics.strip())
    normalized = re.sub(r"\s+", " ", normalized).strip().lower()
    if normalized:
        normalized = normalized[0].upper() + normalized[1:]

    for pattern in _DIVINE_PATTERNS:
        normalized = pattern.sub(_title_phrase, normalized)
    return normalized
