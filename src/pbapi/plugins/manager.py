from __future__ import annotations

import threading
from typing import Any, Iterable, Optional

from loguru import logger

from pbapi.domain.models import PluginDefinition
from pbapi.errors import PluginError, PluginNotFound
from pbapi.plugins.base import ApiPlugin


class PluginManager:
    """
    Registry of API plugin classes.

    `create_instance` builds a plugin with the collaborators handed to the
    manager (for the built-in plugins: the graph store). Instances are cached
    per plugin id.
    """

    def __init__(self, plugins: Iterable[type[ApiPlugin]] = (), **collaborators: Any):
        self._classes: dict[str, type[ApiPlugin]] = {}
        self._instances: dict[str, ApiPlugin] = {}
        self._collaborators = collaborators
        self._lock = threading.Lock()
        for cls in plugins:
            self.register(cls)

    def register(self, cls: type[ApiPlugin]) -> type[ApiPlugin]:
        definition = getattr(cls, "definition", None)
        if not isinstance(definition, PluginDefinition):
            raise PluginError(f"{cls.__name__} is missing an @api_plugin definition")
        if definition.id in self._classes and self._classes[definition.id] is not cls:
            logger.warning("Plugin {} already registered, replacing", definition.id)
        with self._lock:
            self._classes[definition.id] = cls
            self._instances.pop(definition.id, None)
        return cls

    def get_definitions(self) -> dict[str, PluginDefinition]:
        return {pid: self._classes[pid].definition for pid in sorted(self._classes)}

    def get_definition(self, plugin_id: str) -> PluginDefinition:
        cls = self._classes.get(plugin_id)
        if cls is None:
            raise PluginNotFound(plugin_id)
        return cls.definition

    def enabled_definitions(self, enabled: Optional[Iterable[str]]) -> list[PluginDefinition]:
        """Definitions of registered plugins whose id is in `enabled` (all when None)."""
        defs = self.get_definitions()
        if enabled is None:
            return list(defs.values())
        wanted = set(enabled)
        for missing in sorted(wanted - set(defs)):
            logger.warning("Enabled plugin {} is not registered", missing)
        return [d for pid, d in defs.items() if pid in wanted]

    def permissions(self) -> dict[str, str]:
        out: dict[str, str] = {}
        for definition in self.get_definitions().values():
            for name, title in definition.permissions.items():
                out.setdefault(name, title)
        return out

    def create_instance(self, plugin_id: str) -> ApiPlugin:
        with self._lock:
            instance = self._instances.get(plugin_id)
            if instance is not None:
                return instance
            cls = self._classes.get(plugin_id)
            if cls is None:
                raise PluginNotFound(plugin_id)
            instance = cls(**self._collaborators)
            self._instances[plugin_id] = instance
            return instance
