"""Ad studio: marketing creative generation across image and video providers."""

__version__ = "1.0.0"
