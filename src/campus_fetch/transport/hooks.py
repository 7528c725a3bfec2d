"""
Named one-shot callback hooks for the callback-bridge transport.

The registry is process-wide shared state in production (`default_registry()`)
but is always injected into the transport, so tests can hand in their own.
"""

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

Hook = Callable[[Any], Any]


class HookRegistry:
    def __init__(self) -> None:
        self._hooks: dict[str, Hook] = {}

    def register(self, name: str, fn: Hook) -> Callable[[], None]:
        """Register `fn` under `name`. Returns a cleanup function."""
        if name in self._hooks:
            raise ValueError(f"Callback hook {name!r} is already registered")
        self._hooks[name] = fn

        def remove() -> None:
            if self._hooks.get(name) is fn:
                del self._hooks[name]

        return remove

    def unregister(self, name: str) -> bool:
        return self._hooks.pop(name, None) is not None

    def dispatch(self, name: str, data: Any) -> bool:
        """Invoke the hook registered as `name`. False if there is none."""
        hook = self._hooks.get(name)
        if hook is None:
            logger.debug("No callback hook named %s; dropping response", name)
            return False
        hook(data)
        return True

    def names(self) -> list[str]:
        return list(self._hooks)

    def __contains__(self, name: object) -> bool:
        return name in self._hooks

    def __len__(self) -> int:
        return len(self._hooks)


_default_registry = HookRegistry()


def default_registry() -> HookRegistry:
    return _default_registry
