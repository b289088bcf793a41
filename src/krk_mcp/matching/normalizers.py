import re
import unicodedata
from functools import lru_cache

# Generic tokens to ignore in coverage calculations
GENERIC_TOKENS = frozenset({
    "przystanek", "stacja", "station", "stop", "bus", "tram", "pkp", "mpk",
    "krakow", "ulica", "aleja", "plac", "osiedle",
})

# Polish street abbreviations (lowercase -> expanded)
ABBREVIATIONS: dict[str, str] = {
    "al.": "aleja ",
    "ul.": "ulica ",
    "os.": "osiedle ",
    "pl.": "plac ",
    "dw.": "dworzec ",
    "gl.": "glowny ",
    "ks.": "ksiedza ",
    "sw.": "swietego ",
}

# Letters that don't decompose under NFD
_EXTRA_FOLDS = str.maketrans({"ł": "l", "Ł": "L"})


@lru_cache(maxsize=4096)
def remove_accents(text: str) -> str:
    """Remove diacritics from text.

    Example: "Łagiewniki Świętych" -> "Lagiewniki Swietych"
    """
    normalized = unicodedata.normalize("NFD", text.translate(_EXTRA_FOLDS))
    return "".join(c for c in normalized if unicodedata.category(c) != "Mn")


@lru_cache(maxsize=4096)
def normalize_text(text: str) -> str:
    """Normalize text for fuzzy matching.

    - Converts to lowercase
    - Removes diacritics
    - Expands street abbreviations
    - Normalizes whitespace

    Example: "Pl. Wszystkich Świętych" -> "plac wszystkich swietych"
    """
    result = remove_accents(text.lower().strip())

    for abbrev, expanded in ABBREVIATIONS.items():
        result = result.replace(abbrev, expanded)

    return " ".join(result.split())


def get_meaningful_tokens(text: str) -> set[str]:
    """Extract tokens from normalized text, excluding generic/noise words.

    Example: "Przystanek Dworzec Główny" -> {"dworzec", "glowny"}
    """
    normalized = normalize_text(text)
    raw_tokens = re.split(r"[\s/\-]+", normalized)
    return {t for t in raw_tokens if t and len(t) > 1 and t not in GENERIC_TOKENS}
