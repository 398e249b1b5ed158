# workers/__init__.py
from .dispatcher import TaskDispatcher
from .registry import WorkerRegistry, get_registry

__all__ = ["TaskDispatcher", "WorkerRegistry", "get_registry"]
