"""URL shortening service with expiring links and click analytics."""

__version__ = "1.0.0"
