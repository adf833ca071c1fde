import asyncio
from typing import Any, Callable

import pytest

from labelflow.core.navigation import MemoryHistory
from labelflow.core.notify import LoggingNotifier
from labelflow.core.schema import ApiResult, ClientConfig
from labelflow.core.session import Session

PROJECT = {"id": 1, "title": "Demo", "config_has_control_tags": True}

ACTIONS = [
    {"id": "delete_tasks", "title": "Delete tasks", "order": 100},
    {"id": "retrieve_tasks_predictions", "title": "Retrieve predictions", "order": 90},
]

COLUMNS = [
    {"id": "id", "target": "tasks", "title": "ID"},
    {"id": "completed_at", "target": "tasks", "title": "Completed"},
    {"id": "id", "target": "annotations", "title": "ID"},
]

VIEWS = [
    {
        "id": 1,
        "title": "Default",
        "target": "tasks",
        "ordering": ["-id"],
        "filters": {
            "conjunction": "and",
            "items": [
                {"filter": "filter:tasks:id", "operator": "greater", "type": "Number", "value": 3},
            ],
        },
    },
    {"id": 2, "title": "Second", "target": "tasks"},
]

TASKS = {
    7: {"id": 7, "annotations": [{"id": 3}, {"id": 4}]},
    8: {"id": 8, "annotations": []},
    9: {"id": 9, "annotations": [{"id": 5}]},
}


def _task_result(params: dict[str, Any] | None, body: dict[str, Any] | None) -> ApiResult:
    task = TASKS.get((params or {}).get("taskID"))
    if task is None:
        return ApiResult(error="Not Found", status=404, response={"detail": "Not found."})
    return ApiResult(status=200, response=task)


Scripted = ApiResult | Exception | Callable[[Any, Any], ApiResult]


class FakeTransport:
    """
    Scripted transport. Each operation answers with its queued results in
    order, the last one is repeated. Every call is recorded.
    """

    def __init__(self):
        self.calls: list[tuple[str, Any, Any]] = []
        self.gates: dict[str, asyncio.Event] = {}
        self._scripts: dict[str, list[Scripted]] = {}
        self.on_call: Callable[[str], None] | None = None

        self.script("project", ApiResult(status=200, response=dict(PROJECT)))
        self.script("actions", ApiResult(status=200, response=list(ACTIONS)))
        self.script("columns", ApiResult(status=200, response={"columns": list(COLUMNS)}))
        self.script("views", ApiResult(status=200, response=list(VIEWS)))
        self.script("task", _task_result)
        self.script("tasks", ApiResult(status=200, response={"tasks": [{"id": i} for i in TASKS]}))
        self.script("annotations", ApiResult(status=200, response={"annotations": [{"id": 3}, {"id": 4}, {"id": 5}]}))
        self.script("invokeAction", ApiResult(status=200, response={"processed_items": 2}))

    def script(self, method_name: str, *results: Scripted):
        self._scripts[method_name] = list(results)

    def gate(self, method_name: str) -> asyncio.Event:
        """Block calls of `method_name` until the returned event is set."""
        event = asyncio.Event()
        self.gates[method_name] = event
        return event

    def names(self) -> list[str]:
        return [name for name, _, _ in self.calls]

    def count(self, method_name: str) -> int:
        return self.names().count(method_name)

    async def call(self, method_name: str, params=None, body=None) -> ApiResult:
        self.calls.append((method_name, params, body))
        if self.on_call is not None:
            self.on_call(method_name)

        gate = self.gates.get(method_name)
        if gate is not None:
            await gate.wait()

        queued = self._scripts.get(method_name)
        if not queued:
            raise AssertionError(f"No scripted result for {method_name!r}")
        result = queued.pop(0) if len(queued) > 1 else queued[0]

        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(params, body)
        return result


class RecordingNotifier(LoggingNotifier):
    def __init__(self):
        super().__init__()
        self.errors: list[tuple[str, str | None]] = []
        self.confirms: list[str] = []

    def error(self, message, description=None):
        super().error(message, description)
        self.errors.append((message, description))

    def confirm(self, title, content, ok_text, on_ok):
        super().confirm(title, content, ok_text, on_ok)
        self.confirms.append(title)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def history():
    return MemoryHistory()


@pytest.fixture
def config():
    return ClientConfig(poll_interval=60)


@pytest.fixture
def session(transport, notifier, history, config):
    return Session(transport, navigation=history, notifier=notifier, config=config)


def run(coro):
    return asyncio.run(coro)


async def load(session: Session) -> Session:
    """Run the load sequence, then stop the poll timer it started."""
    await session.fetch_data()
    session.polling.cancel()
    return session
