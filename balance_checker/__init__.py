"""SiliconFlow token validity and balance checker."""

__version__ = "1.0.0"
