"""DistWatch - snapshot change detection with delayed notification."""

__version__ = "1.0.0"
