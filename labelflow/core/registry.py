from collections.abc import Callable, Iterable, Mapping
from typing import Any

from labelflow.core.errors import StoreNotRegistered
from labelflow.core.schema import Column, StoreTarget, Target
from labelflow.core.stores import AnnotationsStore, DataStore, TasksStore
from labelflow.util import logging

StoreFactory = Callable[..., DataStore]


def store_name(target: Target | str) -> str:
    if isinstance(target, Target):
        return target.store_name
    return f"{target}Store"


class StoreRegistry:
    """
    Data stores looked up by name ("<target>Store").
    At most one instance is registered per name.
    """

    def __init__(self):
        self._stores: dict[str, DataStore] = {}

    def register(self, name: str, instance: DataStore) -> DataStore:
        if name in self._stores:
            logging.warning(f"Store name: {name!r} is allready in use.")
            return self._stores[name]

        self._stores[name] = instance
        logging.debug15(f"Registered data store {name!r}")
        return instance

    def get(self, name: str) -> DataStore:
        try:
            return self._stores[name]
        except KeyError:
            raise StoreNotRegistered(name) from None

    def find(self, name: str) -> DataStore | None:
        return self._stores.get(name)

    def for_target(self, target: Target | str) -> DataStore | None:
        return self.find(store_name(target))

    def names(self) -> list[str]:
        return list(self._stores)

    def __contains__(self, name: object) -> bool:
        return name in self._stores


def group_columns(columns: Iterable[Column]) -> dict[str, list[Column]]:
    # dicts keep insertion order, so groups appear in first-seen order
    grouped: dict[str, list[Column]] = {}
    for column in columns:
        grouped.setdefault(column.target, []).append(column)
    return grouped


def create_data_stores(
    columns: Iterable[Column],
    factories: Mapping[str, StoreFactory],
    registry: StoreRegistry,
    **kwargs: Any,
) -> dict[str, DataStore]:
    """
    Instantiate one store per column target and register it.

    Targets without a factory are skipped. Exceptions raised by a factory
    are not caught.
    """
    created: dict[str, DataStore] = {}

    for target, target_columns in group_columns(columns).items():
        factory = factories.get(target)
        if factory is None:
            logging.debug15(f"No data store for target {target!r}, skipping")
            continue

        instance = factory(target_columns, **kwargs)
        created[target] = registry.register(store_name(target), instance)

    return created


def factories_from_config(stores: Mapping[str, StoreTarget]) -> dict[str, StoreFactory]:
    return {
        target: store_target.resolve(DataStore)
        for target, store_target in stores.items()
    }


DEFAULT_FACTORIES: dict[str, StoreFactory] = {
    Target.TASKS.value: TasksStore,
    Target.ANNOTATIONS.value: AnnotationsStore,
}
