"""revcost — Chart-ready revenue/cost series and outlier reports from spreadsheets."""

__version__ = "0.1.0"

SOURCE_KEY = "Source"
MONTH_KEY = "month"

DATASET_KINDS: tuple[str, ...] = ("revenue", "cost")

DEFAULT_OUTLIER_THRESHOLD = 2.0
"""Number of standard deviations a value must exceed to be flagged."""
