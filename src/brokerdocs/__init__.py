"""brokerdocs - document storage and folder lifecycle for brokerage records."""

__version__ = "1.0.0"
