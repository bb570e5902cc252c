from .reaper import HoldReaper

__all__ = ["HoldReaper"]
