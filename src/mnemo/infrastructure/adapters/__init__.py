# Infrastructure Store Adapters Package
from .memory_store import InMemoryStore
from .yaml_store import YamlFileStore

__all__ = ["InMemoryStore", "YamlFileStore"]
