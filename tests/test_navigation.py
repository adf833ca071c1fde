import pytest

from labelflow.core.navigation import MemoryHistory
from labelflow.core.schema import ApiResult, Mode, NavigationState, Target
from labelflow.core.session import Session
from labelflow.util import query

from conftest import COLUMNS, load, run


class TestQuery:

    def test_parse_query_from_url(self):
        assert query.parse_query("http://host/projects/1/data?view=2&task=7") == {"view": "2", "task": "7"}

    def test_parse_bare_query(self):
        assert query.parse_query("?task=7&annotation=3") == {"task": "7", "annotation": "3"}

    def test_build_query_skips_unset_keys(self):
        assert query.build_query({"view": 1, "task": None, "annotation": None}) == "?view=1"
        assert query.build_query({"task": None}) == ""


class TestMemoryHistory:

    def test_from_url_coerces_ids(self):
        history = MemoryHistory.from_url("?view=2&task=7&annotation=3")

        assert history.current_state() == NavigationState(view=2, task=7, annotation=3)
        assert history.url == "?view=2&task=7&annotation=3"

    def test_navigate_merges_and_does_not_notify(self):
        history = MemoryHistory(NavigationState(view=1))
        seen = []
        history.on_change(seen.append)

        history.navigate({"task": 7, "annotation": None})

        assert history.current_state() == NavigationState(view=1, task=7)
        assert seen == []

    def test_back_and_forward_notify(self):
        history = MemoryHistory()
        seen = []
        history.on_change(seen.append)
        history.navigate({"task": 7})
        history.navigate({"task": 8})

        assert history.back() is True
        assert history.forward() is True
        assert history.forward() is False

        assert [state.task for state in seen] == [7, 8]

    def test_navigate_drops_forward_entries(self):
        history = MemoryHistory()
        history.navigate({"task": 7})
        history.navigate({"task": 8})
        history.back()

        history.navigate({"task": 9})

        assert [state.task for state in history.entries] == [None, 7, 9]
        assert history.forward() is False

    def test_detached_listener_is_not_called(self):
        history = MemoryHistory()
        seen = []
        detach = history.on_change(seen.append)
        history.navigate({"task": 7})

        detach()
        history.back()

        assert seen == []


class TestHistorySync:

    def test_back_restores_task_and_annotation(self, session, history):
        async def scenario():
            await load(session)
            await session.set_task(7, completion_id=3, push_state=True)
            await session.set_task(9)
            entries = len(history.entries)

            assert history.back()
            await session.settle()
            return entries

        entries = run(scenario())

        assert session.task_store.selected == 7
        assert session.annotation_store.selected == 3
        # Restoring from history pushes nothing new
        assert len(history.entries) == entries

    def test_back_to_entry_of_current_selection_keeps_it(self, session, history):
        async def scenario():
            await load(session)
            await session.set_task(7, completion_id=3)
            history.navigate({"view": 2})

            assert history.back()
            await session.settle()

        run(scenario())

        assert (session.task_store.selected, session.annotation_store.selected) == (7, 3)
        assert session.is_labeling

    def test_back_to_current_task_keeps_it(self, session, history):
        async def scenario():
            await load(session)
            await session.set_task(8)
            history.navigate({"view": 2})
            history.back()
            await session.settle()

        run(scenario())

        assert session.task_store.selected == 8

    def test_back_outside_event_loop_applies_entry(self, session, history):
        async def scenario():
            await load(session)
            await session.set_task(7)
            await session.set_task(8)

        run(scenario())

        assert history.back()
        assert session.task_store.selected == 7

        assert history.forward()
        assert session.task_store.selected == 8

    def test_back_restores_task_only(self, session, history):
        async def scenario():
            await load(session)
            await session.set_task(8)
            await session.set_task(7, completion_id=4)
            history.back()
            await session.settle()

        run(scenario())

        assert session.task_store.selected == 8

    def test_back_to_entry_without_task_closes_labeling(self, session, history):
        async def scenario():
            await load(session)
            await session.set_task(8)
            history.back()
            await session.settle()

        run(scenario())

        assert session.mode is Mode.BROWSING
        assert session.task_store.selected is None

    def test_view_in_entry_is_selected(self, session, history):
        async def scenario():
            await load(session)
            history.navigate({"view": 2})
            history.navigate({"view": 1})
            history.back()
            await session.settle()

        run(scenario())

        assert session.current_view.id == 2

    def test_listener_is_installed_once(self, session, history):
        async def scenario():
            await load(session)
            session.resolve_url_params()
            await session.set_task(8)
            history.back()
            history.forward()
            await session.settle()

        run(scenario())

        assert len(history._listeners) == 1

    def test_before_destroy_detaches_listener(self, session, history):
        async def scenario():
            await load(session)
            await session.set_task(8)
            session.before_destroy()
            history.back()

        run(scenario())

        assert session.task_store.selected == 8


@pytest.mark.parametrize(
    "url, expected",
    [
        ("?view=2&task=7&annotation=3", (2, 7, 3)),
        ("?view=2&task=8", (2, 8, None)),
        ("?task=9", (1, 9, None)),
    ],
)
def test_load_resolves_pending_url_selection(transport, notifier, config, url, expected):
    history = MemoryHistory.from_url(url)
    session = Session(transport, navigation=history, notifier=notifier, config=config)

    run(load(session))

    assert (
        session.current_view.id,
        session.task_store.selected,
        session.annotation_store.selected,
    ) == expected
    # The url already describes this state
    assert len(history.entries) == 1


def test_pending_annotation_without_annotations_store_selects_task(transport, notifier, config):
    task_columns = [column for column in COLUMNS if column["target"] == "tasks"]
    transport.script("columns", ApiResult(status=200, response={"columns": task_columns}))
    history = MemoryHistory.from_url("?task=7&annotation=3")
    session = Session(transport, navigation=history, notifier=notifier, config=config)

    run(load(session))

    assert session.registry.for_target(Target.ANNOTATIONS) is None
    assert session.task_store.selected == 7
