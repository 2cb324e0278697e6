"""Normalization of raw recognition output."""

from typing import Optional

from ..config.models import CleaningOptions

SINGLE_QUOTE = "'"
# Left single quotation mark, emitted by some engines in place of an apostrophe.
MISREAD_SINGLE_QUOTE = "‘"
DOUBLE_QUOTE = '"'


def clean_text(text: str, options: Optional[CleaningOptions] = None) -> str:
    """
    Apply the enabled cleaning steps in a fixed order.

    1. trim surrounding whitespace
    2. trim surrounding apostrophes, then surrounding misread quotes
    3. trim surrounding double quotes
    4. delete every newline
    """
    if options is None:
        options = CleaningOptions()

    if options.trim_whitespace:
        text = text.strip()
    if options.trim_single_quote:
        text = text.strip(SINGLE_QUOTE).strip(MISREAD_SINGLE_QUOTE)
    if options.trim_double_quote:
        text = text.strip(DOUBLE_QUOTE)
    if options.no_newlines:
        text = text.replace("\r\n", "").replace("\n", "")
    return text
