import importlib.metadata
import logging
from typing import Dict, List

from recipes.runtime.exceptions import UnknownResourceError
from recipes.spec.protocols import ResourceKind

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "recipes.resources"


class ResourceRegistry:
    """
    Maps resource kind names to their implementations. Kinds shipped by
    other distributions are discovered through the `recipes.resources`
    entry point group the first time a kind is looked up.
    """

    _instance = None

    def __init__(self, discover: bool = True):
        self._kinds: Dict[str, ResourceKind] = {}
        self._loaded = not discover

    @classmethod
    def instance(cls):
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def get(self, name: str, identity: str = "unknown") -> ResourceKind:
        self._ensure_loaded()
        try:
            return self._kinds[name]
        except KeyError:
            raise UnknownResourceError(name, identity)

    def register(self, name: str, kind: ResourceKind) -> None:
        self._kinds[name] = kind

    def unregister(self, name: str) -> None:
        self._kinds.pop(name, None)

    def names(self) -> List[str]:
        self._ensure_loaded()
        return sorted(self._kinds)

    def __contains__(self, name: str) -> bool:
        self._ensure_loaded()
        return name in self._kinds

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self._loaded = True
            self._discover_entry_points()

    def _discover_entry_points(self) -> None:
        for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
            try:
                kind_cls = ep.load()
                kind = kind_cls() if isinstance(kind_cls, type) else kind_cls
            except Exception as e:
                logger.error("Error loading resource kind %s: %s", ep.name, e)
                continue

            if not all(
                hasattr(kind, attr) for attr in ("validate", "plan", "create")
            ):
                logger.warning(
                    "Resource kind %s does not implement the ResourceKind protocol. Skipping.",
                    ep.name,
                )
                continue
            # Explicit registrations win over discovered ones.
            self._kinds.setdefault(ep.name, kind)


# Global registry accessor
registry = ResourceRegistry.instance()
