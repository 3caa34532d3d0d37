from .config import AIRangeConfig, coerce_airange_config, load_airange_config
from .strategy import AIRangeStrategy

__all__: list[str] = [
    "AIRangeConfig",
    "AIRangeStrategy",
    "coerce_airange_config",
    "load_airange_config",
]
