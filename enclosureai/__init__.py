"""EnclosureAI — natural-language device descriptions to printable enclosures."""

__version__ = "0.1.0"
