from abc import ABC, abstractmethod
from typing import Any, ClassVar

from labelflow.core.api import ApiCaller
from labelflow.core.schema import Column, TaskData, Target
from labelflow.util import deserialize, logging


class DataStore(ABC):
    """
    Rows and selection state of one entity target.

    Capabilities used by the session: `load_task`, `set_selected`,
    `unset` and `reload`. `loading_item` is True while a single item load
    is in flight.
    """
    target: ClassVar[Target]

    def __init__(self, columns: list[Column], api: ApiCaller):
        self.columns = list(columns)
        self.api = api

        self.items: dict[int, dict[str, Any]] = {}
        self.selected: int | None = None
        self.highlighted: int | None = None
        self.loading_item = False
        self.loading = False

    @property
    def selected_item(self) -> dict[str, Any] | None:
        if self.selected is None:
            return None
        return self.items.get(self.selected)

    def is_selected(self, item_id: int) -> bool:
        return self.selected is not None and self.selected == item_id

    async def load_task(self, task_id: int, select: bool = True) -> TaskData | None:
        self.loading_item = True
        try:
            result = await self.api.call("task", {"taskID": task_id})
        finally:
            self.loading_item = False

        if not result.ok:
            return None

        task = deserialize.validate_payload(result.response, TaskData, source="task")
        self.ingest_task(task)

        if select:
            self.set_selected(self._selection_id(task))
        return task

    def set_selected(self, item_id: int | None):
        logging.debug15(f"{type(self).__name__}: select {item_id}")
        self.selected = item_id
        self.highlighted = item_id

    def unset(self, with_highlight: bool = False):
        self.selected = None
        if with_highlight:
            self.highlighted = None

    async def reload(self, view_id: int | None = None):
        self.loading = True
        try:
            result = await self.api.call(self.target.value, {"tabID": view_id})
        finally:
            self.loading = False

        if not result.ok:
            return

        rows = result.response
        if isinstance(rows, dict):
            rows = rows.get(self.target.value, [])

        self.items = {row["id"]: row for row in rows or [] if "id" in row}

    @abstractmethod
    def ingest_task(self, task: TaskData):
        """Merge the rows this store shows for `task` into `items`."""
        pass

    def _selection_id(self, task: TaskData) -> int | None:
        return task.id


class TasksStore(DataStore):
    target = Target.TASKS

    def ingest_task(self, task: TaskData):
        self.items[task.id] = task.model_dump()


class AnnotationsStore(DataStore):
    target = Target.ANNOTATIONS

    def ingest_task(self, task: TaskData):
        for annotation in task.annotations:
            if "id" in annotation:
                self.items[annotation["id"]] = {**annotation, "task_id": task.id}

    def _selection_id(self, task: TaskData) -> int | None:
        # Select the first annotation of the task when asked to select
        return task.annotations[0]["id"] if task.annotations else None
