"""NoteVault - marketplace backend for academic notes."""

__version__ = "1.0.0"
