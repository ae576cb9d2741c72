"""Strategy registry — maps strategy names to classes.

Used by the decision loop to instantiate the strategy named by
``StrategyConfig.strategy_name`` (``TRADING_STRATEGY``).
"""

import logging
from typing import Optional

from backbot.config import StrategyConfig
from backbot.strategy.base import StrategyProtocol
from backbot.strategy.cypher_punk import CypherPunkStrategy
from backbot.strategy.default import DefaultStrategy
from backbot.strategy.level import LevelStrategy
from backbot.strategy.pro_max import ProMaxStrategy

logger = logging.getLogger("backbot.strategy.registry")

DEFAULT_STRATEGY = "DEFAULT"

STRATEGY_REGISTRY: dict[str, type] = {
    "DEFAULT": DefaultStrategy,
    "PRO_MAX": ProMaxStrategy,
    "CYPHER_PUNK": CypherPunkStrategy,
    "LEVEL": LevelStrategy,
}


def available_strategies() -> list[str]:
    return list(STRATEGY_REGISTRY)


def is_valid_strategy(name: Optional[str]) -> bool:
    """Case-insensitive membership test."""
    return bool(name) and name.strip().upper() in STRATEGY_REGISTRY


def get_strategy(
    name: Optional[str] = None, config: Optional[StrategyConfig] = None
) -> StrategyProtocol:
    """Look up and instantiate a strategy by name (case-insensitive).

    Unknown or missing names fall back to the Default strategy.
    """
    key = (name or DEFAULT_STRATEGY).strip().upper()
    if key not in STRATEGY_REGISTRY:
        logger.warning(
            "Unknown strategy '%s', using %s. Available: %s",
            name, DEFAULT_STRATEGY, ", ".join(STRATEGY_REGISTRY),
        )
        key = DEFAULT_STRATEGY
    return STRATEGY_REGISTRY[key](config)
