import sys
import json
from typing import Any, Dict, Optional, TextIO
from datetime import datetime, timezone

from .bus import MessageStore

LOG_LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
}


def _level_value(level: str) -> int:
    return LOG_LEVELS.get(level.upper(), LOG_LEVELS["INFO"])


class _LevelFilteredRenderer:
    def __init__(self, stream: Optional[TextIO], min_level: str):
        self._stream = stream if stream is not None else sys.stderr
        self._min_level_val = _level_value(min_level)

    def accepts(self, level: str) -> bool:
        return _level_value(level) >= self._min_level_val

    def render(self, msg_id: str, level: str, **kwargs: Any) -> None:
        if self.accepts(level):
            print(self.format(msg_id, level, kwargs), file=self._stream)

    def format(self, msg_id: str, level: str, data: Dict[str, Any]) -> str:
        raise NotImplementedError


class CliRenderer(_LevelFilteredRenderer):
    """
    Renders messages as human-readable, formatted text strings.
    """

    def __init__(
        self,
        store: MessageStore,
        stream: Optional[TextIO] = None,
        min_level: str = "INFO",
    ):
        super().__init__(stream, min_level)
        self._store = store

    def format(self, msg_id: str, level: str, data: Dict[str, Any]) -> str:
        # Recipe inputs read better as KEY=VALUE pairs than as a dict repr.
        if isinstance(data.get("inputs"), dict):
            data = dict(data)
            data["inputs"] = ", ".join(f"{k}={v}" for k, v in sorted(data["inputs"].items()))
        return self._store.get(msg_id, **data)


class JsonRenderer(_LevelFilteredRenderer):
    """
    Renders messages as structured, JSON-formatted strings, one per line.
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        min_level: str = "INFO",
    ):
        super().__init__(stream, min_level)

    def format(self, msg_id: str, level: str, data: Dict[str, Any]) -> str:
        log_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.upper(),
            "event_id": msg_id,
            "data": data,
        }
        return json.dumps(log_record, default=repr)
