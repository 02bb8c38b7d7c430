"""Asset symbol normalization across exchange and chain formats."""

from __future__ import annotations

import re

_QUOTE_SUFFIX_RE = re.compile(r"[:/-](USDT|USDC|BTC|ETH|BNB|EUR|USD|DAI)$")
_MARKET_SUFFIX_RE = re.compile(r"-(SPOT|PERP|FUTURES)$")

# Wrapped / bridged tickers mapped to their canonical asset.
SYMBOL_ALIASES: dict[str, str] = {
    "WETH": "ETH",
    "WBTC": "BTC",
    "WBNB": "BNB",
    "WAXE": "AXE",
    "WFTM": "FTM",
    "WAVAX": "AVAX",
    "WMATIC": "MATIC",
    "WPOL": "POL",
    "WCRO": "CRO",
    "WSOL": "SOL",
    "USDC.E": "USDC",
    "USDC.P": "USDC",
    "USDT.E": "USDT",
    "USDT.P": "USDT",
    "BTC.B": "BTC",
    "MANTLE": "MNT",
    "LUNA": "LUNC",
}


def normalize_symbol(symbol: str | None) -> str:
    """Normalize an exchange, pair or on-chain symbol to a bare asset ticker.

    Examples:
        >>> normalize_symbol("btc/usdt")
        'BTC'
        >>> normalize_symbol("0x1::coin::WETH")
        'ETH'
        >>> normalize_symbol("ETHUSDC")
        'ETH'
    """
    if not symbol:
        return ""

    s = symbol.upper().strip()

    # "0x...::Module::Coin" or "Spot::BTC"
    if "::" in s:
        return normalize_symbol(s.split("::")[-1])

    # "BTC:USDT" style base/quote
    if ":" in s:
        return normalize_symbol(s.split(":")[0])

    s = _QUOTE_SUFFIX_RE.sub("", s)
    s = _MARKET_SUFFIX_RE.sub("", s)

    # Concatenated market pairs such as BTCUSDT; a bare USDT/USDC/USD stays.
    for quote in ("USDT", "USDC", "USD"):
        if s.endswith(quote) and len(s) > len(quote):
            s = s[: -len(quote)]
            break

    return SYMBOL_ALIASES.get(s, s)
