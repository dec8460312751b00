"""Context-aware task and planning tracker with a JSON command shell."""

__version__ = "0.1.0"