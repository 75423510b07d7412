"""
Name normalization for comparing Forge Steel names with Codex names.

Forge Steel and Codex describe the same rules content but spell it differently:
punctuation, accents, smart quotes and a known list of renames. Every name comparison
in the importer goes through ``TextNormalizer.strings_match``.
"""

import re
import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class TextNormalizer:
    """Sanitizes and translates names so Forge Steel and Codex spellings compare equal."""

    # Accented letters, ligatures and typographic punctuation folded to ASCII
    CHARACTER_MAP: Dict[str, str] = {
        # Lower-case accents
        "á": "a", "à": "a", "â": "a", "ä": "a",
        "é": "e", "è": "e", "ê": "e", "ë": "e",
        "í": "i", "ì": "i", "î": "i", "ï": "i",
        "ó": "o", "ò": "o", "ô": "o", "ö": "o",
        "ú": "u", "ù": "u", "û": "u", "ü": "u",
        "ñ": "n", "ç": "c", "ý": "y",
        # Upper-case accents
        "Á": "A", "À": "A", "Â": "A", "Ä": "A",
        "É": "E", "È": "E", "Ê": "E", "Ë": "E",
        "Í": "I", "Ì": "I", "Î": "I", "Ï": "I",
        "Ó": "O", "Ò": "O", "Ô": "O", "Ö": "O",
        "Ú": "U", "Ù": "U", "Û": "U", "Ü": "U",
        "Ñ": "N", "Ç": "C", "Ý": "Y",
        # Ligatures
        "Æ": "AE", "æ": "ae",
        "Œ": "OE", "œ": "oe",
        "ß": "ss",
        # Icelandic / Old English
        "Ð": "D", "ð": "d",
        "Þ": "Th", "þ": "th",
        # Scandinavian
        "Ø": "O", "ø": "o",
        "Å": "A", "å": "a",
        # Typographic punctuation
        "–": "-",  # En dash
        "—": "-",  # Em dash
        "‘": "'",  # Left single quote
        "’": "'",  # Right single quote
        "“": '"',  # Left double quote
        "”": '"',  # Right double quote
        "…": "...",  # Ellipsis
        "\u00ad": "-",  # Soft hyphen
    }

    # Anything not alphanumeric, whitespace or one of ;:!@#$%^&*()-+=?, is dropped
    DISALLOWED_CHARS = re.compile(r"[^A-Za-z0-9\s;:!@#$%^&*()\-+=?,]")

    # Forge Steel name -> Codex name
    TRANSLATIONS: Dict[str, str] = {
        # Abilities
        "Demon Unleashed": "A Demon Unleashed",
        "Force Orb": "Force Orbs",
        "Halt, Miscreant!": "Halt Miscreant!",
        "Motivate Earth": "Manipulate Earth",
        # Ancestries
        "Elf (high)": "Elf, High",
        "Elf (wode)": "Elf, Wode",
        # Ancestry features
        "Draconic Pride": "Draconian Pride",
        "Perseverence": "Perseverance",
        "Resist the Unnatural": "Resist the Supernatural",
        # Choice types
        "Elementalist Ward": "Ward",
        # Classes and subclasses
        "Chronokinetic": "Disciple of the Chronokinetic",
        "Cryokinetic": "Disciple of the Cryokinetic",
        "Metakinetic": "Disciple of the Metakinetic",
        # Perks
        "I've Got You": "I've Got You!",
        "Put Your Back Into It": "Put Your Back Into It!",
        "Teamwork": "Team Backbone",
        "Prayer": "Prayers",
        # Inciting incidents
        "Near-Death Experience": "Near Death Experience",
        # Kits
        "Rapid Fire": "Rapid-Fire",
        # Languages
        "Anjali": "Anjal",
        "Kalliac": "Kalliak",
        "Yllric": "Yllyric",
        # Psionic augmentations and wards
        "Battle Augmentation": "Battle Augmentation ",
        "Steel Ward": "Steel Ward ",
        "Talent Ward": "Ward",
        # Skills
        "Perform": "Performance",
    }

    _lowered_translations: Optional[Dict[str, str]] = None

    @classmethod
    def sanitize(cls, text: Optional[str]) -> str:
        """Fold accents and typographic punctuation, then strip disallowed characters.

        Args:
            text: Name to sanitize; ``None`` is treated as an empty string

        Returns:
            The sanitized name, trimmed of surrounding whitespace
        """
        if not text:
            return ""

        for bad, good in cls.CHARACTER_MAP.items():
            if bad in text:
                text = text.replace(bad, good)

        return cls.DISALLOWED_CHARS.sub("", text).strip()

    @classmethod
    def translate(cls, name: Optional[str]) -> str:
        """Translate a Forge Steel name to its Codex spelling.

        The lookup is exact first, then case-insensitive. Names without a
        translation come back unchanged.
        """
        name = name or ""
        if name in cls.TRANSLATIONS:
            return cls.TRANSLATIONS[name]

        if cls._lowered_translations is None:
            cls._lowered_translations = {
                key.lower(): value for key, value in cls.TRANSLATIONS.items()
            }
        return cls._lowered_translations.get(name.lower(), name)

    @classmethod
    def normalize_name(cls, name: Optional[str]) -> str:
        """Comparison key for a name: translated, sanitized and lower-cased."""
        return cls.sanitize(cls.translate((name or "").lower())).lower()

    @classmethod
    def strings_match(cls, first: Optional[str], second: Optional[str]) -> bool:
        """Compare two names after translation, sanitization and case folding.

        Args:
            first: First name (``None`` treated as empty)
            second: Second name (``None`` treated as empty)

        Returns:
            True if both names normalize to the same key
        """
        return cls.normalize_name(first) == cls.normalize_name(second)

    @classmethod
    def starts_with(cls, text: Optional[str], prefix: Optional[str]) -> bool:
        """Prefix test under the same sanitization and case folding as ``strings_match``."""
        normalized_text = cls.sanitize(text).lower()
        normalized_prefix = cls.sanitize(prefix).lower()
        return normalized_text.startswith(normalized_prefix)

    @classmethod
    def translate_feature_choice(
        cls, name: Optional[str], description: Optional[str]
    ) -> str:
        """Translate the name of a selected feature option.

        Forge Steel labels every immunity option "Damage Modifier"; the real option
        is the description text up to and including "Immunity".

        Args:
            name: Display name of the selected option
            description: Description of the selected option

        Returns:
            The Codex name to look for among the slot's options
        """
        name = name or ""
        if name.lower() == "damage modifier":
            match = re.match(r"^(.*Immunity)", description or "", flags=re.DOTALL)
            if match:
                return match.group(1)
            logger.debug(f"Damage Modifier without an immunity: '{description}'")
            return name
        return cls.translate(name)
