"""
Utils package
"""

from .normalization import fold_text, index_by_name, normalize_category_ref, normalize_name_token

__all__ = [
    "fold_text",
    "index_by_name",
    "normalize_category_ref",
    "normalize_name_token",
]
