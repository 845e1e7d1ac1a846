from .config import AppConfig, load_config
from .task_store import InMemoryTaskStore

__all__ = ["AppConfig", "load_config", "InMemoryTaskStore"]
