"""Symbol normalization for user-entered tickers.

Turns free-form input ("btc", "eth/usdt", "SOL") into an exchange id from
the loaded symbol list, defaulting to a USDT quote.
"""

import re

from byagent.models import SymbolInfo

_NON_ALNUM = re.compile(r"[^A-Z0-9]")

DEFAULT_QUOTE = "USDT"


def normalize_symbol(raw: str | None, known: list[SymbolInfo]) -> str | None:
    """Resolve raw ticker input to an exchange symbol.

    Resolution order:
    1. ``<input>USDT`` when the input lacks the quote and that symbol exists
    2. the cleaned input itself when it is a known symbol
    3. the first known symbol whose base equals, or whose id starts with, the input
    4. the cleaned input unchanged (the exchange decides whether it exists)

    Returns:
        Normalized symbol, or None when nothing alphanumeric remains.
    """
    if not raw:
        return None
    cleaned = _NON_ALNUM.sub("", raw.upper())
    if not cleaned:
        return None

    ids = {info.symbol for info in known}

    if not cleaned.endswith(DEFAULT_QUOTE):
        guess = cleaned + DEFAULT_QUOTE
        if guess in ids:
            return guess

    if cleaned in ids:
        return cleaned

    for info in known:
        if info.base == cleaned or info.symbol.startswith(cleaned):
            return info.symbol

    return cleaned
