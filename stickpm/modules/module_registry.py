"""
Module Registry: maps module tags to handlers and dispatches module actions.
"""
import logging
from typing import Any, Dict, List, Optional, Type
from .base_module import BaseModule, InvalidPayloadError

logger = logging.getLogger(__name__)

class ModuleRegistry:
    def __init__(self, session_registry):
        self.session_registry = session_registry
        self._modules: Dict[str, BaseModule] = {}

    def register(self, module_class: Type[BaseModule]):
        """
        Register a module class, instantiating it.
        """
        module_instance = module_class(self.session_registry)
        tag = module_instance.MODULE_TAG

        if not tag:
            logger.warning(f"Module class {module_class.__name__} has no MODULE_TAG. Skipping.")
            return

        if tag in self._modules:
            logger.warning(f"Module tag '{tag}' collision: {type(self._modules[tag]).__name__} vs {module_class.__name__}. Last one wins.")

        self._modules[tag] = module_instance
        logger.info(f"Registered module: {tag} ({module_instance.MODULE_NAME})")

    def get_module(self, tag: str) -> Optional[BaseModule]:
        """Get a module instance by tag."""
        return self._modules.get(tag)

    def get_all_tags(self) -> List[str]:
        """Get all registered tags in registration order."""
        return list(self._modules.keys())

    def dispatch(self, tag: str, data: Any) -> bool:
        """
        Hand data to the module registered under tag.

        Unknown tags, malformed payloads and handler failures are logged and
        dropped; nothing propagates to the caller.

        Returns:
            True if the module handled the payload
        """
        module = self._modules.get(tag)
        if not module:
            logger.warning(f"Unknown module: {tag}")
            return False

        try:
            payload = module.parse_payload(data)
        except InvalidPayloadError as e:
            logger.warning(f"Invalid payload for module {tag}: {e}")
            return False

        try:
            module.handle(payload)
        except Exception as e:
            logger.exception(f"Error handling action in module {tag}: {e}")
            return False

        return True
