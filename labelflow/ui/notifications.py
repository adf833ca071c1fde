from itertools import count
from typing import Any, Callable

from dash import Input, Output, State, dcc, html, no_update
from dash.exceptions import PreventUpdate

import dash_mantine_components as dmc

from labelflow.core.notify import LoggingNotifier, PendingConfirm
from . import ids

POLL_INTERVAL_MS = 1000


class MantineNotifier(LoggingNotifier):
    """
    Notifier that renders to dash_mantine_components.

    Error notifications are queued as closable alerts until a callback
    drains them into `ids.NOTIFICATIONS_CONTAINER`. A confirmation opens the
    single `ids.CONFIRM_MODAL` of the layout.
    """

    def __init__(self):
        super().__init__()
        self.queue: list[dmc.Alert] = []
        self._counter = count()
        self._confirm_shown = False

    def error(self, message: str, description: str | None = None):
        super().error(message, description)
        self.queue.append(
            create_error_alert(message, description, f"{ids.NOTIFICATION}-{next(self._counter)}")
        )

    def confirm(
        self,
        title: str,
        content: str,
        ok_text: str,
        on_ok: Callable[[], None],
    ):
        super().confirm(title, content, ok_text, on_ok)
        self._confirm_shown = False

    def drain(self) -> list[dmc.Alert]:
        alerts, self.queue = self.queue, []
        return alerts

    def take_unshown_confirm(self) -> PendingConfirm | None:
        if self.pending_confirm is None or self._confirm_shown:
            return None
        self._confirm_shown = True
        return self.pending_confirm


def create_error_alert(message: str, description: str | None, alert_id: str) -> dmc.Alert:
    return dmc.Alert(
        description or "",
        id=alert_id,
        title=message,
        color="red",
        withCloseButton=True,
    )


def create_confirm_modal() -> dmc.Modal:
    return dmc.Modal(
        [
            dmc.Text(id=ids.CONFIRM_MODAL_CONTENT),
            dmc.Group(
                [
                    dmc.Button("Cancel", id=ids.CONFIRM_MODAL_CANCEL_BTN, variant="default"),
                    dmc.Button("OK", id=ids.CONFIRM_MODAL_OK_BTN),
                ],
                justify="flex-end",
                mt="md",
            ),
        ],
        id=ids.CONFIRM_MODAL,
        opened=False,
        closeOnClickOutside=False,
        withCloseButton=False,
    )


def create_notification_area() -> html.Div:
    return html.Div(
        [
            dcc.Interval(id=ids.NOTIFICATIONS_INTERVAL, interval=POLL_INTERVAL_MS),
            dmc.Stack(id=ids.NOTIFICATIONS_CONTAINER, children=[], gap="xs"),
            create_confirm_modal(),
        ]
    )


def poll_notifications(notifier: MantineNotifier, current_alerts: list[Any] | None) -> dict[str, Any]:
    alerts = notifier.drain()
    pending = notifier.take_unshown_confirm()
    if not alerts and pending is None:
        raise PreventUpdate

    update = dict(
        alerts=[*(current_alerts or []), *alerts] if alerts else no_update,
        show_modal=no_update,
        title=no_update,
        content=no_update,
        ok_text=no_update,
    )
    if pending is not None:
        update.update(
            show_modal=True,
            title=pending.title,
            content=pending.content,
            ok_text=pending.ok_text,
        )
    return update


def register_callbacks(app, notifier: MantineNotifier):
    @app.callback(
        Input(ids.NOTIFICATIONS_INTERVAL, 'n_intervals'),
        State(ids.NOTIFICATIONS_CONTAINER, 'children'),
        output=dict(
            alerts=Output(ids.NOTIFICATIONS_CONTAINER, 'children'),
            show_modal=Output(ids.CONFIRM_MODAL, 'opened', allow_duplicate=True),
            title=Output(ids.CONFIRM_MODAL, 'title'),
            content=Output(ids.CONFIRM_MODAL_CONTENT, 'children'),
            ok_text=Output(ids.CONFIRM_MODAL_OK_BTN, 'children'),
        ),
        prevent_initial_call=True,
    )
    def on_poll(_n_intervals, current_alerts):
        return poll_notifications(notifier, current_alerts)

    @app.callback(
        Input(ids.CONFIRM_MODAL_OK_BTN, 'n_clicks'),
        output=dict(
            show_modal=Output(ids.CONFIRM_MODAL, 'opened', allow_duplicate=True),
        ),
        prevent_initial_call=True,
    )
    def on_confirm_ok(clicks):
        if clicks is None:
            raise PreventUpdate

        notifier.accept_confirm()
        return dict(show_modal=False)

    @app.callback(
        Input(ids.CONFIRM_MODAL_CANCEL_BTN, 'n_clicks'),
        output=dict(
            show_modal=Output(ids.CONFIRM_MODAL, 'opened', allow_duplicate=True),
        ),
        prevent_initial_call=True,
    )
    def on_confirm_cancel(clicks):
        if clicks is None:
            raise PreventUpdate

        notifier.dismiss_confirm()
        return dict(show_modal=False)
