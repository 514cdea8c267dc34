"""In-memory collection of image channels, standing in for the host data browser."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .models import DataField


class NoImageError(LookupError):
    """Requested channel does not exist."""


@dataclass
class ChannelRecord:
    """A channel: field, title and free-form string metadata."""

    id: int
    field: DataField
    title: str = ""
    meta: Dict[str, str] = field(default_factory=dict)


@dataclass
class OperationLogEntry:
    """Provenance record linking a source channel to an output channel."""

    source_id: int
    output_id: int
    operation: str
    timestamp: str


class ImageCollection:
    """Ordered channels with integer ids and an operation log."""

    def __init__(self):
        self._channels: Dict[int, ChannelRecord] = {}
        self._next_id = 0
        self._log: List[OperationLogEntry] = []
        self.current_id: Optional[int] = None

    def __len__(self) -> int:
        return len(self._channels)

    def __contains__(self, channel_id: int) -> bool:
        return channel_id in self._channels

    def add(self, data_field: DataField, title: str = "", meta: dict = None) -> int:
        """Append a channel and make it current. Returns its id."""
        channel_id = self._next_id
        self._next_id += 1
        self._channels[channel_id] = ChannelRecord(
            id=channel_id,
            field=data_field,
            title=title,
            meta=dict(meta) if meta else {},
        )
        self.current_id = channel_id
        return channel_id

    def get(self, channel_id: int) -> ChannelRecord:
        try:
            return self._channels[channel_id]
        except KeyError:
            raise NoImageError(f"No channel with id {channel_id}") from None

    def current(self) -> ChannelRecord:
        if self.current_id is None:
            raise NoImageError("Collection has no current channel")
        return self.get(self.current_id)

    def ids(self) -> List[int]:
        return list(self._channels)

    def log_operation(self, source_id: int, output_id: int, operation: str):
        self._log.append(OperationLogEntry(
            source_id=source_id,
            output_id=output_id,
            operation=operation,
            timestamp=datetime.now().isoformat(),
        ))

    def operation_log(self, channel_id: int = None) -> List[OperationLogEntry]:
        """Log entries, optionally only those producing ``channel_id``."""
        if channel_id is None:
            return list(self._log)
        return [e for e in self._log if e.output_id == channel_id]
