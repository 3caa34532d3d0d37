from .arbiter import ClosePlan, ExitAdviceArbiter, arbitrate
from .context import AccountState, BarSeries, PositionState, StrategyContext
from .controller import OrderVenue, PositionController
from .enter import (
    AIEnterSignal,
    EnterMode,
    EnterSignal,
    InputVector,
    InputVectorExtractor,
    OutputVector,
)
from .exits import ExitSignal, TrailingStopLoss
from .learn_mode import LearnModeEnterSignal
from .models import (
    AdviceType,
    Bar,
    CloseAdvice,
    Direction,
    FillEvent,
    MarketEvent,
    OpenRequest,
    OrderAction,
    OrderIntent,
    OrderType,
)
from .paper import PaperVenue
from .player import PlayerEnterSignal
from .training_log import TrainingDataLogger, TrainingRecord

__all__: list[str] = [
    "AIEnterSignal",
    "AccountState",
    "AdviceType",
    "Bar",
    "BarSeries",
    "CloseAdvice",
    "ClosePlan",
    "Direction",
    "EnterMode",
    "EnterSignal",
    "ExitAdviceArbiter",
    "ExitSignal",
    "FillEvent",
    "InputVector",
    "InputVectorExtractor",
    "LearnModeEnterSignal",
    "MarketEvent",
    "OpenRequest",
    "OrderAction",
    "OrderIntent",
    "OrderType",
    "OrderVenue",
    "OutputVector",
    "PaperVenue",
    "PlayerEnterSignal",
    "PositionController",
    "PositionState",
    "StrategyContext",
    "TrailingStopLoss",
    "TrainingDataLogger",
    "TrainingRecord",
    "arbitrate",
]
