"""
Text Processing Utilities

Helpers for turning user-entered names into URL-safe identifiers and
for formatting amounts in customer-facing messages.
"""

import re
import unicodedata


def generate_slug(name: str) -> str:
    """
    Build a URL slug from a category or product name.

    Steps:
    1. Lowercase
    2. Decompose accented characters (NFD) and drop the combining marks
    3. Collapse every run of non-alphanumerics into a single hyphen
    4. Trim leading/trailing hyphens

    Examples:
        >>> generate_slug("Frutos Secos")
        'frutos-secos'
        >>> generate_slug("Nuez de Castilla (1 kg)")
        'nuez-de-castilla-1-kg'
        >>> generate_slug("Piñón Rosa")
        'pinon-rosa'
    """
    normalized = unicodedata.normalize("NFD", name.lower())
    without_marks = "".join(c for c in normalized if not unicodedata.combining(c))
    slug = re.sub(r"[^a-z0-9]+", "-", without_marks)
    return slug.strip("-")


def format_mxn(amount: float) -> str:
    """
    Format an amount with thousands separators, dropping ".00".

    >>> format_mxn(1500)
    '1,500'
    >>> format_mxn(99.5)
    '99.5'
    """
    if float(amount).is_integer():
        return f"{int(amount):,}"
    return f"{amount:,.2f}".rstrip("0")
