"""Strategy data models — typed representations for indicator bundles and strategy outputs."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Literal, Optional

Action = Literal["long", "short"]
MarketTrend = Literal["BULLISH", "BEARISH", "NEUTRAL"]


@dataclass(frozen=True)
class Candle:
    """A single OHLCV bar, oldest-first in any sequence."""

    open: float
    high: float
    low: float
    close: float
    volume: float
    quote_volume: float = 0.0
    start: str = ""
    timestamp: str = ""


@dataclass(frozen=True)
class MarketInfo:
    """Exchange metadata for one tradeable market."""

    symbol: str
    tick_size: float = 0.0
    step_size: float = 0.0
    decimal_price: int = 2
    decimal_quantity: int = 4


# ── Indicator bundles ────────────────────────────────────────────────────


@dataclass(frozen=True)
class EmaInfo:
    """Fast/slow EMA state plus the most recent crossing, if any."""

    ema9: Optional[float] = None
    ema21: Optional[float] = None
    diff: Optional[float] = None
    diff_pct: Optional[float] = None
    signal: Optional[str] = None  # "bullish" or "bearish"
    crossed: Optional[str] = None  # cross on the last candle only
    cross_index: Optional[int] = None
    cross_type: Optional[str] = None  # "goldenCross" or "deathCross"
    candles_ago: Optional[int] = None


@dataclass(frozen=True)
class RsiInfo:
    value: Optional[float] = None
    prev: Optional[float] = None
    avg: Optional[float] = None
    avg_prev: Optional[float] = None
    history: tuple[float, ...] = ()


@dataclass(frozen=True)
class MacdInfo:
    macd: Optional[float] = None
    signal: Optional[float] = None
    histogram: Optional[float] = None
    histogram_prev: Optional[float] = None


@dataclass(frozen=True)
class BollingerInfo:
    upper: Optional[float] = None
    middle: Optional[float] = None
    lower: Optional[float] = None


@dataclass(frozen=True)
class AtrInfo:
    value: Optional[float] = None
    history: tuple[float, ...] = ()


@dataclass(frozen=True)
class StochInfo:
    k: Optional[float] = None
    d: Optional[float] = None
    k_prev: Optional[float] = None
    d_prev: Optional[float] = None


@dataclass(frozen=True)
class AdxInfo:
    adx: Optional[float] = None
    di_plus: Optional[float] = None
    di_minus: Optional[float] = None
    di_plus_prev: Optional[float] = None
    di_minus_prev: Optional[float] = None
    adx_ema: Optional[float] = None


@dataclass(frozen=True)
class TrendLine:
    """Least-squares line fitted over one candle metric."""

    trend: str  # "increasing", "decreasing" or "flat"
    slope: float
    intercept: float
    forecast: float


@dataclass(frozen=True)
class VolumeTrends:
    volume: Optional[TrendLine] = None
    variance: Optional[TrendLine] = None
    price: Optional[TrendLine] = None


@dataclass(frozen=True)
class VwapBands:
    """Classical VWAP with ±1/2/3 standard-deviation bands."""

    vwap: Optional[float] = None
    std_dev: Optional[float] = None
    upper_bands: tuple[float, ...] = ()
    lower_bands: tuple[float, ...] = ()


@dataclass(frozen=True)
class ReversalPulse:
    """A wave-oscillator cross on the last candle."""

    color: Literal["GREEN", "RED"]
    strength: float


@dataclass(frozen=True)
class MomentumInfo:
    wt1: Optional[float] = None
    wt2: Optional[float] = None
    value: Optional[float] = None  # wt1 - wt2
    rsi: Optional[float] = None
    is_bullish: bool = False
    is_bearish: bool = False
    reversal: Optional[ReversalPulse] = None


@dataclass(frozen=True)
class MoneyFlowInfo:
    mfi: Optional[float] = None
    mfi_avg: Optional[float] = None
    value: Optional[float] = None
    is_bullish: bool = False
    is_bearish: bool = False
    is_strong: bool = False
    direction: Optional[str] = None  # "UP" or "DOWN"
    history: tuple[float, ...] = ()


@dataclass(frozen=True)
class MarketSnapshot:
    """Full indicator bundle for one market at one evaluation instant.

    Built once per cycle by ``build_snapshot`` and never mutated by
    strategies.
    """

    market: MarketInfo
    mark_price: float
    ema: EmaInfo = field(default_factory=EmaInfo)
    rsi: RsiInfo = field(default_factory=RsiInfo)
    macd: MacdInfo = field(default_factory=MacdInfo)
    bollinger: BollingerInfo = field(default_factory=BollingerInfo)
    atr: AtrInfo = field(default_factory=AtrInfo)
    stoch: StochInfo = field(default_factory=StochInfo)
    adx: AdxInfo = field(default_factory=AdxInfo)
    trends: VolumeTrends = field(default_factory=VolumeTrends)
    vwap: VwapBands = field(default_factory=VwapBands)
    momentum: Optional[MomentumInfo] = None
    money_flow: Optional[MoneyFlowInfo] = None
    timestamp: str = ""

    @property
    def symbol(self) -> str:
        return self.market.symbol


# ── Strategy outputs ─────────────────────────────────────────────────────


class ConfluenceTier(IntEnum):
    """Confidence label derived from a confluence count."""

    BRONZE = 1
    SILVER = 2
    GOLD = 3
    DIAMOND = 4

    @classmethod
    def from_count(cls, confluences: int) -> Optional["ConfluenceTier"]:
        """Return the tier for *confluences* (1-4), or ``None`` outside that range."""
        try:
            return cls(confluences)
        except ValueError:
            return None


@dataclass(frozen=True)
class TradeSignal:
    """A trade decision produced by a strategy.

    ``entry``, ``stop``, ``target`` and the ladders are already rounded to
    the market's declared price precision.
    """

    market: str
    entry: float
    stop: float
    target: float
    action: Action
    pnl: float
    risk: float
    targets: tuple[float, ...] = ()
    stop_losses: tuple[float, ...] = ()
    signal_level: Optional[str] = None
    confluences: Optional[int] = None
    reason: Optional[str] = None
    entry_type: Optional[str] = None
    order_result: Optional[dict] = None


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a confirmation filter."""

    is_valid: bool
    reason: str
    details: dict = field(default_factory=dict)


@dataclass(frozen=True)
class RuleHit:
    """A named entry rule that chose a side."""

    side: Action
    label: str
    detail: str


@dataclass(frozen=True)
class SignalAnalysis:
    """Signal-only view of a snapshot, with no sizing or price levels."""

    has_signal: bool
    is_long: bool = False
    signal_type: str = "NEUTRAL"
    details: tuple[str, ...] = ()
