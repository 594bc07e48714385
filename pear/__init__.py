from .config import Command, Config
from .environment import Environment
from .dispatcher import Dispatcher

__all__ = [
    "Command",
    "Config",
    "Environment",
    "Dispatcher",
]

__version__ = "0.3.0"
