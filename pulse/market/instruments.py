"""Instrument metadata — classification, reference prices, supported pairs."""

from typing import Literal

InstrumentType = Literal["crypto", "forex", "commodity"]

_COMMODITY_CODES = ("XAU", "XAG")
_FIAT_CODES = ("EUR", "GBP", "JPY", "CHF", "AUD", "CAD", "NZD")

# Anchor prices for synthetic windows when the exchange has no data.
REFERENCE_PRICES: dict[str, float] = {
    "XAUUSD": 2050.00,
    "EURUSD": 1.0850,
    "GBPUSD": 1.2650,
    "USDJPY": 149.50,
    "AUDUSD": 0.6750,
    "USDCAD": 1.3650,
    "BTCUSDT": 43500.0,
    "ETHUSDT": 2650.0,
}
DEFAULT_REFERENCE_PRICE = 100.0

CRYPTO_PAIRS: tuple[str, ...] = (
    "BTCUSDT", "ETHUSDT", "BNBUSDT", "ADAUSDT", "SOLUSDT", "XRPUSDT",
    "DOTUSDT", "LINKUSDT", "LTCUSDT", "BCHUSDT", "AVAXUSDT", "MATICUSDT",
    "ATOMUSDT", "FILUSDT", "TRXUSDT", "ETCUSDT", "XLMUSDT", "VETUSDT",
    "ICPUSDT", "FTMUSDT", "HBARUSDT", "ALGOUSDT", "AXSUSDT", "SANDUSDT",
)

FOREX_PAIRS: dict[str, str] = {
    "XAUUSD": "Gold vs US Dollar",
    "EURUSD": "Euro vs US Dollar",
    "GBPUSD": "British Pound vs US Dollar",
    "USDJPY": "US Dollar vs Japanese Yen",
    "AUDUSD": "Australian Dollar vs US Dollar",
    "USDCAD": "US Dollar vs Canadian Dollar",
}


def instrument_type(symbol: str) -> InstrumentType:
    """Classify *symbol* as crypto, forex, or commodity.

    Only crypto instruments have an exchange candle feed; the other two
    are served from synthetic windows.
    """
    upper = symbol.upper()
    if any(code in upper for code in _COMMODITY_CODES):
        return "commodity"
    if any(code in upper for code in _FIAT_CODES):
        return "forex"
    return "crypto"


def reference_price(symbol: str) -> float:
    """Return the anchor price used for synthetic data."""
    return REFERENCE_PRICES.get(symbol.upper(), DEFAULT_REFERENCE_PRICE)


def price_decimals(symbol: str) -> int:
    """Decimal places used when rounding synthetic prices."""
    return 2 if "JPY" in symbol.upper() else 4


def supported_pairs() -> list[dict]:
    """List every known pair with its display metadata."""
    pairs: list[dict] = []
    for symbol in CRYPTO_PAIRS:
        base = symbol[: -len("USDT")]
        pairs.append({
            "symbol": symbol,
            "base_asset": base,
            "quote_asset": "USDT",
            "display_name": f"{base}/USDT",
            "type": "crypto",
        })
    for symbol, description in FOREX_PAIRS.items():
        base, quote = symbol[:3], symbol[3:]
        pairs.append({
            "symbol": symbol,
            "base_asset": base,
            "quote_asset": quote,
            "display_name": "Gold/USD" if base == "XAU" else f"{base}/{quote}",
            "type": instrument_type(symbol),
            "description": description,
        })
    return pairs
