from .config import BreakoutConfig, coerce_breakout_config, load_breakout_config
from .strategy import BreakoutStrategy

__all__: list[str] = [
    "BreakoutConfig",
    "BreakoutStrategy",
    "coerce_breakout_config",
    "load_breakout_config",
]
