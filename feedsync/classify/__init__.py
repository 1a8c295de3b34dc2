"""Product category classification."""
from feedsync.classify.categories import CATEGORIES, UNCLASSIFIED, classify

__all__ = ["CATEGORIES", "UNCLASSIFIED", "classify"]
