from .ids import DatabaseSequence, IdGenerator, MonotonicIdGenerator, sequence_high_water_mark
from .session import create_engine, create_schema, create_session_factory, ping
from .utils import apply_dict_updates

__all__ = [
    "DatabaseSequence",
    "IdGenerator",
    "MonotonicIdGenerator",
    "apply_dict_updates",
    "create_engine",
    "create_schema",
    "create_session_factory",
    "ping",
    "sequence_high_water_mark",
]
