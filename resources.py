from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List

from fastmcp.exceptions import ResourceError

URI_PREFIX = "task:///"
MIME_TYPE = "application/json"


class TaskNotFoundError(ResourceError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    description: str

    @property
    def uri(self) -> str:
        return task_uri(self.id)

    def as_dict(self) -> Dict[str, str]:
        return asdict(self)

    def as_metadata(self) -> Dict[str, str]:
        return {
            "uri": self.uri,
            "mimeType": MIME_TYPE,
            "name": self.title,
            "description": f"Task: {self.title}",
        }


SEED_TASKS = (
    Task(id="1", title="First Task", description="This is task 1"),
    Task(id="2", title="Second Task", description="This is task 2"),
)


def task_uri(task_id: str) -> str:
    return URI_PREFIX + task_id


def task_id_from_uri(uri: str) -> str:
    if not uri.startswith(URI_PREFIX):
        raise TaskNotFoundError(uri)
    return uri[len(URI_PREFIX):]


class TaskCatalog:
    """Read-only task store exposed as ``task:///<id>`` resources."""

    def __init__(self, tasks: Iterable[Task] = SEED_TASKS) -> None:
        self._tasks: Dict[str, Task] = {}
        for task in tasks:
            self._register(task)

    def _register(self, task: Task) -> None:
        self._tasks[task.id] = task

    def __iter__(self):
        return iter(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)

    def list_resources(self) -> List[Dict[str, str]]:
        return [task.as_metadata() for task in self._tasks.values()]

    def get(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def read(self, uri: str) -> str:
        task = self.get(task_id_from_uri(uri))
        return json.dumps(task.as_dict(), indent=2)
