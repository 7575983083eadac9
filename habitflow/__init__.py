"""habitflow: owner-scoped entity persistence with optional AI generation."""

__version__ = "0.1.0"
