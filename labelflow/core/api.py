from typing import Any

from labelflow.core.notify import Notifier
from labelflow.core.schema import ApiResult, ServerError
from labelflow.core.transport import Transport
from labelflow.util import logging

LOAD_ERROR_MESSAGE = "Error occurred when loading data"


class ApiCaller:
    """
    Uniform wrapper around every remote call.

    Keeps the last operational failure per operation name in `last_errors`.
    An entry exists only while the most recent completed call of that
    operation failed with something other than a 404.
    """

    def __init__(self, transport: Transport, notifier: Notifier):
        self.transport = transport
        self.notifier = notifier
        self.last_errors: dict[str, ServerError] = {}

    async def call(
        self,
        method_name: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> ApiResult:
        # Transport faults are not classified here, they propagate
        result = await self.transport.call(method_name, params, body)

        if result.ok:
            self.last_errors.pop(method_name, None)
            return result

        if result.status == 404:
            # Not found is left to the caller to interpret
            logging.debug15(f"{method_name!r} returned 404")
            # A finished call supersedes an older failure record
            self.last_errors.pop(method_name, None)
            return result

        logging.warning(f"Remote operation {method_name!r} failed: {result.error} ({result.status})")
        # Without response detail there is nothing new to keep
        if result.response is not None:
            self.last_errors[method_name] = ServerError(response=result.response)

        self.notifier.error(LOAD_ERROR_MESSAGE, result.detail())
        return result
