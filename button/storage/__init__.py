from ._schema import SCHEMA_VERSION, SCHEMA_SQL
from .rounds import RoundRepo
from .presses import PressRepo
from .players import PlayerRepo
from .settlement_repo import SettlementRepo
from .manager import StorageManager

__all__ = [
    "SCHEMA_VERSION",
    "SCHEMA_SQL",
    "RoundRepo",
    "PressRepo",
    "PlayerRepo",
    "SettlementRepo",
    "StorageManager",
]
