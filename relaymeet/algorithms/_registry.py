import importlib
import pkgutil
from typing import Dict, Type

from relaymeet import algorithms
from relaymeet.algorithms._base import TeamBalancer

_registry: Dict[str, Type[TeamBalancer]] = {}


def register(cls: Type[TeamBalancer]) -> Type[TeamBalancer]:
    """Register a TeamBalancer under its module name.

    Args:
        cls: TeamBalancer subclass to register.

    Returns:
        Type[TeamBalancer]: The registered class.
    """
    _registry[cls.__module__.rsplit(".", 1)[-1]] = cls
    return cls


def _discover_algorithms() -> None:
    """Import every public module in the algorithms package so @register runs."""
    for module in pkgutil.iter_modules(algorithms.__path__):
        if not module.name.startswith("_"):
            importlib.import_module(f"{algorithms.__name__}.{module.name}")


def get_algorithms() -> Dict[str, Type[TeamBalancer]]:
    _discover_algorithms()
    return dict(_registry)


def get_balancer(name: str) -> Type[TeamBalancer]:
    _discover_algorithms()
    try:
        return _registry[name]
    except KeyError:
        raise ValueError(f"No algorithm named {name!r}")
