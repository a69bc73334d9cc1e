import logging
from dataclasses import asdict, is_dataclass
from enum import Enum

from pydantic import BaseModel, SecretBytes, SecretStr

from .logger import KEY_EVENT_LOG_LEVEL, KeyForgeLogger

DEBUG = logging.DEBUG
INFO = logging.INFO
WARNING = logging.WARNING
ERROR = logging.ERROR
CRITICAL = logging.CRITICAL
KEY_EVENT = KEY_EVENT_LOG_LEVEL


def log_encoder(obj):
    if isinstance(obj, (SecretStr, SecretBytes)):
        return "**********"
    if isinstance(obj, Enum):
        return str(obj.value)
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if is_dataclass(obj):
        return asdict(obj)
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return f"<{len(obj)} bytes>"
    raise TypeError(f"Object of type {obj.__class__.__name__} is not JSON serializable")


__all__ = [
    "KeyForgeLogger",
    "log_encoder",
    "DEBUG",
    "INFO",
    "WARNING",
    "ERROR",
    "CRITICAL",
    "KEY_EVENT",
]
