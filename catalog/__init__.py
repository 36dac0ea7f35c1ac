"""Product catalog service: stock tracking, change history and CSV interchange."""

__version__ = "1.0.0"
