import asyncio
from collections.abc import Coroutine, Mapping
from concurrent.futures import Future
from typing import Any

from labelflow.core.api import ApiCaller
from labelflow.core.errors import LabelflowError
from labelflow.core.events import EventBus
from labelflow.core.navigation import MemoryHistory, NavigationService
from labelflow.core.notify import LoggingNotifier, Notifier
from labelflow.core.polling import PollingTask
from labelflow.core.registry import (
    DEFAULT_FACTORIES,
    StoreFactory,
    StoreRegistry,
    create_data_stores,
    factories_from_config,
)
from labelflow.core.schema import (
    ActionDescriptor,
    ApiResult,
    ClientConfig,
    LabelingItem,
    Mode,
    NavigationState,
    ProjectMeta,
    SelectionSnapshot,
    ServerError,
    Target,
)
from labelflow.core.stores import DataStore
from labelflow.core.transport import Transport
from labelflow.core.views import View, ViewsStore
from labelflow.util import deserialize, logging

NOT_CONFIGURED_TITLE = "Labeling is not configured."
NOT_CONFIGURED_CONTENT = "You need to configure how you want to label your data first."
NOT_CONFIGURED_OK = "Go to setup"


class Session:
    """
    Root state of the client: mode, selected item, project metadata and
    available actions. Derived values are computed on read, changes are
    announced on `events`.
    """

    def __init__(
        self,
        transport: Transport,
        navigation: NavigationService | None = None,
        notifier: Notifier | None = None,
        config: ClientConfig | None = None,
        store_factories: Mapping[str, StoreFactory] | None = None,
        events: EventBus | None = None,
    ):
        self.config = config or ClientConfig()
        self.notifier = notifier or LoggingNotifier()
        self.navigation = navigation or MemoryHistory()
        self.events = events or EventBus()

        self.api = ApiCaller(transport, self.notifier)
        self.registry = StoreRegistry()
        self.views_store = ViewsStore(self.api, self.registry)

        if store_factories is not None:
            self.store_factories = dict(store_factories)
        elif self.config.stores:
            self.store_factories = factories_from_config(self.config.stores)
        else:
            self.store_factories = dict(DEFAULT_FACTORIES)

        self.mode = Mode.BROWSING
        self.project = ProjectMeta()
        self.loading = False
        self.available_actions: list[ActionDescriptor] = []

        self.polling = PollingTask(self.fetch_project, self.config.poll_interval)
        self._detach_navigation = None
        self._background_tasks: set[asyncio.Task] = set()
        self._loop: asyncio.AbstractEventLoop | None = None

    # --- Derived state ---
    @property
    def last_errors(self) -> dict[str, ServerError]:
        return self.api.last_errors

    @property
    def current_view(self) -> View | None:
        return self.views_store.selected

    @property
    def target(self) -> str:
        view = self.current_view
        return view.target if view is not None else Target.TASKS.value

    @property
    def data_store(self) -> DataStore | None:
        return self.registry.for_target(self.target)

    @property
    def task_store(self) -> DataStore:
        return self.registry.get(Target.TASKS.store_name)

    @property
    def annotation_store(self) -> DataStore:
        return self.registry.get(Target.ANNOTATIONS.store_name)

    @property
    def is_label_stream_mode(self) -> bool:
        return self.mode is Mode.LABEL_STREAM

    @property
    def is_browsing_mode(self) -> bool:
        return self.mode is Mode.BROWSING

    @property
    def is_labeling(self) -> bool:
        store = self.data_store
        return (store is not None and store.selected is not None) or self.is_label_stream_mode

    @property
    def labeling_is_configured(self) -> bool:
        return self.project.labeling_is_configured

    # --- Mode & selection ---
    def set_mode(self, mode: Mode | str):
        mode = Mode(mode)
        if mode is not self.mode:
            logging.debug15(f"Mode: {self.mode.value} -> {mode.value}")
        self.mode = mode
        self.events.publish("mode", mode)

    async def set_task(
        self,
        task_id: int,
        completion_id: int | None = None,
        push_state: bool = True,
    ):
        if push_state is not False:
            self.navigation.navigate({"task": task_id, "annotation": completion_id})

        # Select right away only when both ids are known to avoid an intermediate state
        task = await self.task_store.load_task(
            task_id, select=task_id is not None and completion_id is not None
        )

        annotation_store = self.registry.for_target(Target.ANNOTATIONS)
        if task is not None and annotation_store is not None:
            annotation_store.ingest_task(task)

        if completion_id is not None and annotation_store is not None:
            annotation_store.set_selected(completion_id)
        else:
            if completion_id is not None:
                logging.warning(f"No annotations store, selecting task {task_id} only")
            self.task_store.set_selected(task_id)

        self.events.publish("selection", task_id, completion_id)

    def unset_task(self):
        for store in self._selection_stores():
            store.unset()
        self.navigation.navigate({"task": None, "annotation": None})
        self.events.publish("selection", None, None)

    def unset_selection(self):
        for store in self._selection_stores():
            store.unset(with_highlight=True)
        self.events.publish("selection", None, None)

    async def start_labeling(
        self,
        item: LabelingItem | Mapping[str, Any] | None = None,
        push_state: bool = True,
        toggle: bool = True,
    ):
        """
        Open `item` for labeling, or the label stream when there is no item
        and nothing selected. With `toggle` an already selected item closes
        labeling instead. History restores pass `toggle=False`.
        """
        if not self.labeling_is_configured:
            logging.info("Labeling requested but the project has no labeling config")
            self.notifier.confirm(
                title=NOT_CONFIGURED_TITLE,
                content=NOT_CONFIGURED_CONTENT,
                ok_text=NOT_CONFIGURED_OK,
                on_ok=lambda: self.navigation.assign(self.config.setup_url),
            )
            return

        store = self.data_store
        if item is None and (store is None or store.selected is None):
            self.set_mode(Mode.LABEL_STREAM)
            return

        # A pending item load wins, do not start a second one
        if store is not None and store.loading_item:
            return

        if item is not None and not isinstance(item, LabelingItem):
            item = LabelingItem.model_validate(item)

        if item is not None and not (toggle and self._is_selected(item)):
            if item.task_id is not None:
                await self.set_task(item.task_id, completion_id=item.id, push_state=push_state)
            else:
                await self.set_task(item.id, push_state=push_state)
        else:
            self.close_labeling()

    def close_labeling(self):
        logging.debug15("Close labeling")
        self.unset_task()
        self.set_mode(Mode.BROWSING)
        self.events.publish("labeling_closed")

    def _is_selected(self, item: LabelingItem) -> bool:
        task_store = self.registry.for_target(Target.TASKS)
        if item.task_id is None:
            return task_store is not None and task_store.is_selected(item.id)

        # An annotation counts as selected only together with its task
        annotation_store = self.registry.for_target(Target.ANNOTATIONS)
        return (
            task_store is not None
            and annotation_store is not None
            and task_store.is_selected(item.task_id)
            and annotation_store.is_selected(item.id)
        )

    def _selection_stores(self) -> list[DataStore]:
        # Annotations first so the task never appears without its annotation
        stores = (self.registry.for_target(Target.ANNOTATIONS), self.registry.for_target(Target.TASKS))
        return [store for store in stores if store is not None]

    # --- Data stores ---
    def create_data_stores(self):
        return create_data_stores(
            self.views_store.columns, self.store_factories, self.registry, api=self.api
        )

    # --- Navigation ---
    def resolve_url_params(self):
        if self._detach_navigation is not None:
            return
        self._detach_navigation = self.navigation.on_change(self._on_navigation)

    def _on_navigation(self, state: NavigationState):
        if state.view:
            self.views_store.set_selected(state.view)

        if state.task:
            item = _item_from_navigation(state)
            self._dispatch(self.start_labeling(item, push_state=False, toggle=False))
        else:
            self.close_labeling()

    # --- Remote data ---
    async def api_call(
        self,
        method_name: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> ApiResult:
        return await self.api.call(method_name, params, body)

    async def fetch_project(self):
        result = await self.api_call("project")
        if not result.ok:
            return

        project = deserialize.validate_payload(result.response or {}, ProjectMeta, source="project")
        if project.model_dump() != self.project.model_dump():
            self.project = project
            self.events.publish("project", project)

    async def fetch_actions(self):
        result = await self.api_call("actions")
        if not result.ok:
            return

        self.available_actions = deserialize.validate_list(
            result.response or [], ActionDescriptor, source="actions"
        )
        self.events.publish("actions", self.available_actions)

    async def fetch_data(self):
        self._loop = asyncio.get_running_loop()
        self._set_loading(True)
        pending = self.navigation.current_state()

        try:
            await self.fetch_project()
            await self.fetch_actions()
            await self.views_store.fetch_columns()
            self.create_data_stores()
            await self.views_store.fetch_views(pending.view)

            if pending.task:
                await self.start_labeling(
                    _item_from_navigation(pending), push_state=False, toggle=False
                )

            self.resolve_url_params()
        finally:
            self._set_loading(False)

        self.start_polling()

    def _set_loading(self, loading: bool):
        self.loading = loading
        self.events.publish("loading", loading)

    # --- Actions ---
    async def invoke_action(self, action_id: str, reload: bool = True) -> ApiResult:
        view = self.current_view
        if view is None:
            raise LabelflowError(f"Cannot invoke action {action_id!r} without a selected view")

        needs_lock = any(action.id == action_id for action in self.available_actions)
        if needs_lock:
            view.lock()

        try:
            selected = view.selected
            action_params = {
                "ordering": list(view.ordering),
                "selectedItems": (
                    selected.snapshot if selected.has_selected else SelectionSnapshot.everything()
                ).to_payload(),
                "filters": {
                    "conjunction": view.conjunction,
                    "items": view.serialized_filters,
                },
            }

            result = await self.api_call(
                "invokeAction",
                {"id": action_id, "tabID": view.id},
                {"body": action_params},
            )

            if reload is not False:
                await view.reload()
                self._spawn(self.fetch_project())
                view.clear_selection()
        finally:
            # Released on every path, unlocking an unlocked view is a no-op
            view.unlock()

        return result

    # --- Polling & lifecycle ---
    def start_polling(self) -> bool:
        return self.polling.start()

    def before_destroy(self):
        self.polling.cancel()
        if self._detach_navigation is not None:
            self._detach_navigation()
            self._detach_navigation = None

    async def settle(self):
        """Wait until every background task spawned by the session finished."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks))

    def _dispatch(self, coro: Coroutine[Any, Any, Any]):
        """Run `coro` from a synchronous callback on whatever loop is available."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            return self._spawn(coro)

        if self._loop is not None and self._loop.is_running():
            future = asyncio.run_coroutine_threadsafe(coro, self._loop)
            future.add_done_callback(_log_task_failure)
            return future

        # No loop anywhere, apply the change before returning
        return asyncio.run(coro)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        task.add_done_callback(_log_task_failure)
        return task


def _item_from_navigation(state: NavigationState) -> LabelingItem:
    if state.annotation:
        return LabelingItem(id=state.annotation, task_id=state.task)
    return LabelingItem(id=state.task)


def _log_task_failure(task: asyncio.Task | Future):
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logging.error(f"Unhandled exception in background task: {exc}", exc_info=exc)
