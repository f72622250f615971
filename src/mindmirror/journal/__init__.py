"""Journal entries: repositories, playback handles and the coordinator."""

from mindmirror.journal.coordinator import (
    FormState,
    JournalCoordinator,
    PendingVideo,
    ResolvedEntry,
)
from mindmirror.journal.http import HttpEntryRepository
from mindmirror.journal.playback import PlaybackRegistry
from mindmirror.journal.repository import (
    EntryRepository,
    InMemoryEntryRepository,
    SqlEntryRepository,
)

__all__ = [
    "EntryRepository",
    "FormState",
    "HttpEntryRepository",
    "InMemoryEntryRepository",
    "JournalCoordinator",
    "PendingVideo",
    "PlaybackRegistry",
    "ResolvedEntry",
    "SqlEntryRepository",
]
