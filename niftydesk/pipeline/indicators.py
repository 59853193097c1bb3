"""Technical indicators over an ordered price series (oldest first).

Every function is total: empty or short inputs return the documented
fallback instead of raising or producing NaN.

    VWAP  empty → 0, no usable volume → last price
    SMA   fewer than ``period`` samples → mean of all samples
    EMA   seeded with the SMA of the first ``period`` samples
    RSI   fewer than ``period + 1`` samples → 50 (neutral)
    MACD  fewer than 26 samples → 0 / 0 / 0
"""

from typing import Sequence

from niftydesk.models.datatypes import MacdResult, TechnicalIndicators

VWAP_WINDOW = 20
MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL = 9


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def calculate_vwap(prices: Sequence[float], volumes: Sequence[float]) -> float:
    """Volume-weighted average price over the supplied window."""
    if not prices:
        return 0.0
    last = float(prices[-1])
    if not volumes or len(volumes) != len(prices):
        return last

    total_volume = sum(volumes)
    if total_volume == 0:
        return last

    return sum(p * v for p, v in zip(prices, volumes)) / total_volume


def calculate_sma(prices: Sequence[float], period: int) -> float:
    """Arithmetic mean of the last ``period`` prices."""
    if len(prices) < period:
        return _mean(prices)
    return _mean(prices[-period:])


def calculate_ema(prices: Sequence[float], period: int) -> float:
    """Exponential moving average with ``k = 2 / (period + 1)``."""
    if not prices:
        return 0.0
    if len(prices) < period:
        return _mean(prices)

    k = 2 / (period + 1)
    ema = _mean(prices[:period])
    for price in prices[period:]:
        ema = price * k + ema * (1 - k)
    return ema


def calculate_rsi(prices: Sequence[float], period: int = 14) -> float:
    """Relative Strength Index over the last ``period`` price changes."""
    if len(prices) < period + 1:
        return 50.0

    deltas = [prices[i] - prices[i - 1] for i in range(1, len(prices))]
    window = deltas[-period:]
    gains = [d for d in window if d > 0]
    losses = [-d for d in window if d < 0]

    avg_gain = sum(gains) / period if gains else 0.0
    avg_loss = sum(losses) / period if losses else 0.0

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def calculate_macd(prices: Sequence[float]) -> MacdResult:
    """MACD line, signal line and histogram.

    The signal line is the 9-period EMA of a MACD history rebuilt by
    recomputing both EMAs over every growing prefix, which is quadratic in
    the series length. Histories used here are ~100 points.
    """
    if len(prices) < MACD_SLOW:
        return MacdResult()

    macd_line = calculate_ema(prices, MACD_FAST) - calculate_ema(prices, MACD_SLOW)

    history = []
    for i in range(MACD_SLOW, len(prices)):
        prefix = prices[: i + 1]
        history.append(calculate_ema(prefix, MACD_FAST) - calculate_ema(prefix, MACD_SLOW))

    signal_line = calculate_ema(history, MACD_SIGNAL)
    return MacdResult(macd=macd_line, signal=signal_line, histogram=macd_line - signal_line)


def calculate_all(
    prices: Sequence[float],
    volumes: Sequence[float],
    vix: float,
) -> TechnicalIndicators:
    """Compute the full dashboard indicator set for one fetch cycle.

    Args:
        prices: Historical closes, newest last (the live price included).
        volumes: Volumes aligned with ``prices``.
        vix: Volatility gauge reported alongside the history.

    Returns:
        TechnicalIndicators: VWAP over the last 20 samples, SMA50, EMA9,
        EMA21, RSI14 and MACD(12, 26, 9).
    """
    prices = list(prices)
    volumes = list(volumes)
    return TechnicalIndicators(
        vwap=calculate_vwap(prices[-VWAP_WINDOW:], volumes[-VWAP_WINDOW:]),
        sma50=calculate_sma(prices, 50),
        ema9=calculate_ema(prices, 9),
        ema21=calculate_ema(prices, 21),
        rsi=calculate_rsi(prices, 14),
        macd=calculate_macd(prices),
        vix=float(vix),
    )
