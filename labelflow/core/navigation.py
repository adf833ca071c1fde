from collections.abc import Mapping
from typing import Callable, Protocol

from labelflow.core.schema import NavigationState
from labelflow.util import logging, query

NavigationListener = Callable[[NavigationState], None]


class NavigationService(Protocol):
    def navigate(self, changes: Mapping[str, int | None]):
        """Push a new entry made of the current state updated with `changes`."""
        ...

    def on_change(self, listener: NavigationListener) -> Callable[[], None]:
        """Listen to back/forward moves. Returns a function that detaches the listener."""
        ...

    def current_state(self) -> NavigationState:
        ...

    def assign(self, url: str):
        """Leave the application for `url`."""
        ...


class MemoryHistory:
    """
    In-process navigation history with back/forward semantics.

    `navigate` pushes silently. Moving with `back`/`forward`/`go` notifies
    the listeners with the entry that became current.
    """

    def __init__(self, initial: NavigationState | None = None):
        self.entries: list[NavigationState] = [initial or NavigationState()]
        self.index = 0
        self.location: str | None = None
        self._listeners: list[NavigationListener] = []

    @classmethod
    def from_url(cls, url: str) -> "MemoryHistory":
        params = query.parse_query(url)
        return cls(NavigationState.model_validate(params))

    @property
    def url(self) -> str:
        return query.build_query(self.current_state().model_dump())

    def current_state(self) -> NavigationState:
        return self.entries[self.index]

    def navigate(self, changes: Mapping[str, int | None]):
        state = self.current_state().merge(**changes)
        # Pushing drops the forward entries, like a browser does
        del self.entries[self.index + 1:]
        self.entries.append(state)
        self.index += 1
        logging.debug15(f"Navigate: {state.model_dump()}")

    def on_change(self, listener: NavigationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def detach():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return detach

    def go(self, delta: int) -> bool:
        target = self.index + delta
        if delta == 0 or not 0 <= target < len(self.entries):
            return False

        self.index = target
        state = self.current_state()
        for listener in list(self._listeners):
            listener(state)
        return True

    def back(self) -> bool:
        return self.go(-1)

    def forward(self) -> bool:
        return self.go(1)

    def assign(self, url: str):
        logging.info(f"Leaving for {url}")
        self.location = url
