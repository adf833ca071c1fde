from dash import Dash

import dash_mantine_components as dmc

from labelflow.ui.notifications import MantineNotifier, create_notification_area, register_callbacks


def create_app(notifier: MantineNotifier) -> Dash:
    app = Dash(__name__, title="labelflow")
    app.layout = dmc.MantineProvider(
        dmc.Container(create_notification_area(), pt="md"),
    )
    register_callbacks(app, notifier)
    return app
