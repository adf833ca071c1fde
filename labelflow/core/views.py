from typing import Any, Awaitable, Callable

from labelflow.core.api import ApiCaller
from labelflow.core.registry import StoreRegistry
from labelflow.core.schema import Column, SelectionSnapshot, ViewData
from labelflow.util import deserialize, logging


class Selection:
    """
    Row selection of a view. In `all` mode `ids` holds the excluded rows,
    otherwise the explicitly selected ones.
    """

    def __init__(self):
        self.all = False
        self.ids: set[int] = set()

    @property
    def has_selected(self) -> bool:
        return self.all or bool(self.ids)

    def toggle(self, item_id: int):
        if item_id in self.ids:
            self.ids.remove(item_id)
        else:
            self.ids.add(item_id)

    def select_all(self):
        self.all = True
        self.ids.clear()

    def clear(self):
        self.all = False
        self.ids.clear()

    @property
    def snapshot(self) -> SelectionSnapshot:
        if self.all:
            return SelectionSnapshot.everything(excluded=sorted(self.ids))
        return SelectionSnapshot.explicit(sorted(self.ids))


ViewReloader = Callable[["View"], Awaitable[None]]


class View:
    def __init__(self, data: ViewData, reloader: ViewReloader | None = None):
        self.id = data.id
        self.title = data.title
        self.target = data.target
        self.ordering = list(data.ordering)
        self.conjunction = data.filters.conjunction
        self.filters = list(data.filters.items)

        self.selected = Selection()
        self.locked = False
        self._reloader = reloader

    @property
    def serialized_filters(self) -> list[dict[str, Any]]:
        return [item.model_dump(exclude_none=True) for item in self.filters]

    def lock(self):
        self.locked = True

    def unlock(self):
        # Unlocking an unlocked view is a no-op
        self.locked = False

    def clear_selection(self):
        self.selected.clear()

    async def reload(self):
        if self._reloader is not None:
            await self._reloader(self)

    def __repr__(self) -> str:
        return f"View(id={self.id}, target={self.target!r}, locked={self.locked})"


class ViewsStore:
    def __init__(self, api: ApiCaller, registry: StoreRegistry):
        self.api = api
        self.registry = registry

        self.views: list[View] = []
        self.columns: list[Column] = []
        self.selected: View | None = None

    async def fetch_columns(self) -> list[Column]:
        result = await self.api.call("columns")
        if result.ok:
            payload = _unwrap(result.response, "columns")
            self.columns = deserialize.validate_list(payload, Column, source="columns")
        return self.columns

    async def fetch_views(self, view_id: int | None = None) -> list[View]:
        result = await self.api.call("views")
        if not result.ok:
            return self.views

        payload = _unwrap(result.response, "views")
        self.views = [
            View(data, reloader=self._reload_view)
            for data in deserialize.validate_list(payload, ViewData, source="views")
        ]

        if view_id is not None and self.find(view_id) is not None:
            self.set_selected(view_id)
        elif self.views:
            self.selected = self.views[0]

        return self.views

    def find(self, view_id: int) -> View | None:
        return next((view for view in self.views if view.id == view_id), None)

    def set_selected(self, view_id: int):
        view = self.find(view_id)
        if view is None:
            logging.warning(f"Cannot select unknown view {view_id}")
            return
        self.selected = view

    async def _reload_view(self, view: View):
        store = self.registry.for_target(view.target)
        if store is None:
            logging.debug15(f"No data store to reload for view {view.id}")
            return
        await store.reload(view.id)


def _unwrap(payload: Any, key: str) -> Any:
    if isinstance(payload, dict):
        return payload.get(key, [])
    return payload
