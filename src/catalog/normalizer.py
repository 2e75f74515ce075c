"""
Text normalization shared by the catalog and the extractor
"""
import re

# Quote and apostrophe variants, including Hebrew geresh/gershayim
_QUOTES_RE = re.compile(r"['\"`׳״‘’“”]")
# Everything that is neither a word character nor whitespace, plus underscore
_PUNCT_RE = re.compile(r"[^\w\s]|_")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """
    Normalize free text for alias lookup.

    Lowercases, drops quotes/apostrophes (so "צ'לסי" == "צלסי"),
    turns any other punctuation into a space and collapses whitespace.

    Example:
        >>> normalize("  Real-Madrid?!  ")
        'real madrid'
    """
    if not text:
        return ""
    text = text.lower()
    text = _QUOTES_RE.sub("", text)
    text = _PUNCT_RE.sub(" ", text)
    text = _WHITESPACE_RE.sub(" ", text)
    return text.strip()
