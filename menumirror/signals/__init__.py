"""
Signals — Cross-request status mailbox between the write path and pollers.
"""

from .store import FileSignalStore, MemorySignalStore, SignalStore
from .topics import NoticeType, SignalTopic, Topics

__all__ = [
    "FileSignalStore",
    "MemorySignalStore",
    "NoticeType",
    "SignalStore",
    "SignalTopic",
    "Topics",
]
