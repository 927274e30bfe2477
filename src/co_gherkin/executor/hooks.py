import inspect
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

HookFunction = Callable[[], Any]

HOOK_KINDS = ('before_feature', 'after_feature', 'before_scenario', 'after_scenario')


class HooksRegistry:
    """Lifecycle hooks run around features and scenarios"""

    def __init__(self):
        self.hooks: Dict[str, List[HookFunction]] = {kind: [] for kind in HOOK_KINDS}

    def register(self, kind: str, function: HookFunction) -> HookFunction:
        """Register a hook of the given kind"""
        if kind not in self.hooks:
            raise ValueError(f"Unknown hook kind: {kind}")
        self.hooks[kind].append(function)
        logger.debug(f"Registered {kind} hook: {getattr(function, '__name__', function)}")
        return function

    async def run_hooks(self, kind: str) -> None:
        """Run all hooks of a kind in registration order, one at a time"""
        if kind not in self.hooks:
            raise ValueError(f"Unknown hook kind: {kind}")
        for hook in self.hooks[kind]:
            result = hook()
            if inspect.isawaitable(result):
                await result

    def clear(self) -> None:
        """Clear all hooks"""
        for hooks in self.hooks.values():
            hooks.clear()

    def get_all(self) -> Dict[str, List[HookFunction]]:
        return self.hooks


global_hooks = HooksRegistry()


def before_feature(function: HookFunction) -> HookFunction:
    """Run ``function`` before each feature"""
    return global_hooks.register('before_feature', function)


def after_feature(function: HookFunction) -> HookFunction:
    """Run ``function`` after each feature"""
    return global_hooks.register('after_feature', function)


def before_scenario(function: HookFunction) -> HookFunction:
    """Run ``function`` before each scenario, e.g. to reset shared state"""
    return global_hooks.register('before_scenario', function)


def after_scenario(function: HookFunction) -> HookFunction:
    """Run ``function`` after each scenario, whether it passed or not"""
    return global_hooks.register('after_scenario', function)
