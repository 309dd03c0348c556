import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"
LOCALES_DIR = Path(__file__).parent.parent / "locales"


class MessageStore:
    """
    Message templates keyed by message id, loaded from the JSON files of a
    locale directory. Ids missing from the requested locale fall back to
    the default locale.
    """

    def __init__(self, locale: str = DEFAULT_LOCALE, locales_dir: Optional[Path] = None):
        self.locale = locale
        self.locales_dir = Path(locales_dir) if locales_dir is not None else LOCALES_DIR
        self._messages: Dict[str, str] = {}

        if locale != DEFAULT_LOCALE:
            self._messages.update(self._load_locale(DEFAULT_LOCALE))
        self._messages.update(self._load_locale(locale))

    def _load_locale(self, locale: str) -> Dict[str, str]:
        locale_path = self.locales_dir / locale
        if not locale_path.is_dir():
            logger.warning("No messages for locale '%s' in %s.", locale, self.locales_dir)
            return {}

        messages: Dict[str, str] = {}
        for message_file in sorted(locale_path.glob("*.json")):
            try:
                with open(message_file, "r", encoding="utf-8") as f:
                    messages.update(json.load(f))
            except (json.JSONDecodeError, OSError) as e:
                logger.error("Failed to load message file %s: %s", message_file, e)
        return messages

    def __contains__(self, msg_id: str) -> bool:
        return msg_id in self._messages

    def get(self, msg_id: str, default: str = "", **kwargs) -> str:
        template = self._messages.get(msg_id, default or f"<{msg_id}>")
        try:
            return template.format(**kwargs)
        except KeyError as e:
            return f"<Formatting error for '{msg_id}': missing key {e}>"


class Renderer(Protocol):
    def render(self, msg_id: str, level: str, **kwargs: Any) -> None: ...


class MessageBus:
    """
    Routes semantic messages to the active renderer. Without a renderer,
    messages are dropped.
    """

    def __init__(self, store: MessageStore):
        self._store = store
        self._renderer: Optional[Renderer] = None

    @property
    def store(self) -> MessageStore:
        return self._store

    def set_renderer(self, renderer: Optional[Renderer]):
        self._renderer = renderer

    def _render(self, level: str, msg_id: str, **kwargs: Any) -> None:
        if self._renderer is not None:
            self._renderer.render(msg_id, level, **kwargs)

    def debug(self, msg_id: str, **kwargs: Any) -> None:
        self._render("debug", msg_id, **kwargs)

    def info(self, msg_id: str, **kwargs: Any) -> None:
        self._render("info", msg_id, **kwargs)

    def warning(self, msg_id: str, **kwargs: Any) -> None:
        self._render("warning", msg_id, **kwargs)

    def error(self, msg_id: str, **kwargs: Any) -> None:
        self._render("error", msg_id, **kwargs)


bus = MessageBus(store=MessageStore(locale=DEFAULT_LOCALE))
