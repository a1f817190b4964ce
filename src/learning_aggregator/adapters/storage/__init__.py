"""Storage adapters."""

from learning_aggregator.adapters.storage.memory_storage import InMemoryStorage
from learning_aggregator.adapters.storage.yaml_storage import YamlStorage

__all__ = ["InMemoryStorage", "YamlStorage"]
