"""YAML file storage adapter."""

import logging
from dataclasses import asdict, fields
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from learning_aggregator.adapters.storage.memory_storage import InMemoryStorage
from learning_aggregator.core import (
    Difficulty,
    PersistenceError,
    PlanRecord,
    Pricing,
    ProgressEntry,
    ProgressStatus,
    ResourceType,
    StoredResource,
    Topic,
    TopicResource,
)

logger = logging.getLogger(__name__)

ENUM_FIELDS: dict[str, type[Enum]] = {
    "type": ResourceType,
    "difficulty": Difficulty,
    "pricing": Pricing,
    "status": ProgressStatus,
}


def _to_plain(obj: Any) -> dict[str, Any]:
    """Dataclass to YAML-safe dict: enums become values, datetimes ISO strings."""
    data = asdict(obj)
    for key, value in data.items():
        if isinstance(value, Enum):
            data[key] = value.value
        elif isinstance(value, datetime):
            data[key] = value.isoformat()
    return data


def _from_plain(cls: type, data: dict[str, Any]) -> Any:
    known = {f.name for f in fields(cls)}
    values = {}
    for key, value in data.items():
        if key not in known:
            continue
        if key in ENUM_FIELDS and value is not None:
            value = ENUM_FIELDS[key](value)
        elif isinstance(value, str) and (key.endswith("_at") or key.endswith("_date") or key == "last_updated"):
            value = datetime.fromisoformat(value)
        values[key] = value
    return cls(**values)


class YamlStorage(InMemoryStorage):
    """In-memory store persisted as a single YAML snapshot.

    The snapshot is rewritten after every mutation and read back on
    construction, so separate processes see each other's data.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                snapshot = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise PersistenceError(f"Could not read storage file {self.path}: {e}") from e

        for item in snapshot.get("topics", []):
            topic = _from_plain(Topic, item)
            self.topics[topic.id] = topic
        for item in snapshot.get("resources", []):
            resource = _from_plain(StoredResource, item)
            self.resources[resource.id] = resource
        for item in snapshot.get("topic_resources", []):
            link = _from_plain(TopicResource, item)
            self.topic_resources[(link.topic_id, link.resource_id)] = link
        for item in snapshot.get("plans", []):
            plan = _from_plain(PlanRecord, item)
            self.plans[plan.id] = plan
        for item in snapshot.get("progress", []):
            entry = _from_plain(ProgressEntry, item)
            self.progress[(entry.plan_id, entry.resource_id)] = entry

        logger.debug(
            "Loaded %d topics, %d resources, %d plans from %s",
            len(self.topics), len(self.resources), len(self.plans), self.path,
        )

    def _commit(self) -> None:
        snapshot = {
            "topics": [_to_plain(t) for t in self.topics.values()],
            "resources": [_to_plain(r) for r in self.resources.values()],
            "topic_resources": [_to_plain(link) for link in self.topic_resources.values()],
            "plans": [_to_plain(p) for p in self.plans.values()],
            "progress": [_to_plain(e) for e in self.progress.values()],
        }

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                yaml.safe_dump(snapshot, f, allow_unicode=True, default_flow_style=False, sort_keys=False)
        except (OSError, yaml.YAMLError) as e:
            raise PersistenceError(f"Could not write storage file {self.path}: {e}") from e
