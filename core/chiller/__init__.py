"""Chiller refrigerator monitoring package."""

# Define public API
__all__ = [
    "AppSettings",
    "ConfigStore",
    "Configuration",
    "HistoryReader",
    "LiveChannel",
    "PartialConfiguration",
    "Recorder",
    "SamplingService",
    "Status",
    "StatusRecord",
]

# Import settings
from .settings import AppSettings

# Import models
from .models import Configuration, PartialConfiguration, Status, StatusRecord

# Import services
from .config_store import ConfigStore
from .history import HistoryReader
from .live import LiveChannel
from .recorder import Recorder
from .sampling_service import SamplingService
