"""Forgetsy: trending counters that forget."""

from forgetsy.client import Forgetsy
from forgetsy.config import ForgetsyConfig
from forgetsy.decaying_set import DecayingSet
from forgetsy.delta import Delta
from forgetsy.exceptions import (
    ConfigError,
    ForgetsyError,
    InvalidArgument,
    NotFound,
    StoreUnavailable,
)

__version__ = "0.1.0"
__all__ = [
    "ConfigError",
    "DecayingSet",
    "Delta",
    "Forgetsy",
    "ForgetsyConfig",
    "ForgetsyError",
    "InvalidArgument",
    "NotFound",
    "StoreUnavailable",
]
