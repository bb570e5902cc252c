"""Push It! presence and hold-to-vote polling service."""

__version__ = "1.0.0"
