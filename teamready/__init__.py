"""TeamReady — workforce readiness and attendance compliance engine."""

__version__ = "1.0.0"
