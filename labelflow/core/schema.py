import logging
from enum import Enum
from typing import Any, TypeVar

import hydra

import pydantic
from pydantic import ConfigDict, Field

GENERIC_FAILURE_MARKER = 'Something went wrong'

T = TypeVar("T")


class Mode(Enum):
    BROWSING = "browsing"
    LABEL_STREAM = "labelStreaming"


class Target(Enum):
    TASKS = "tasks"
    ANNOTATIONS = "annotations"

    @property
    def store_name(self) -> str:
        return f"{self.value}Store"


# --- Remote results ---
class ApiResult(pydantic.BaseModel):
    """
    Uniform envelope every transport returns.
    `error` is set for any failed call, `status` carries the HTTP-like
    status code when known and `response` the decoded payload or error detail.
    """
    error: str | None = None
    status: int | None = None
    response: Any = None

    @property
    def ok(self) -> bool:
        return not self.error

    def detail(self) -> str | None:
        if isinstance(self.response, dict) and self.response.get('detail'):
            return str(self.response['detail'])
        return self.error


class ServerError(pydantic.BaseModel):
    error: str = GENERIC_FAILURE_MARKER
    response: Any = None


class ProjectMeta(pydantic.BaseModel):
    # Project metadata stays open ended, only the flags we read are typed.
    model_config = ConfigDict(extra="allow")

    id: int | None = None
    title: str | None = None
    config_has_control_tags: bool = False

    @property
    def labeling_is_configured(self) -> bool:
        return self.config_has_control_tags is True


class ActionDescriptor(pydantic.BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    title: str | None = None
    order: int | None = None
    dialog: dict[str, Any] | None = None


class Column(pydantic.BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    target: str = Target.TASKS.value
    title: str | None = None
    type: str | None = None


class FilterItem(pydantic.BaseModel):
    model_config = ConfigDict(extra="allow")

    filter: str
    operator: str
    type: str | None = None
    value: Any = None


class FilterGroup(pydantic.BaseModel):
    conjunction: str = "and"
    items: list[FilterItem] = Field(default_factory=list)


class ViewData(pydantic.BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    title: str = ""
    target: str = Target.TASKS.value
    ordering: list[str] = Field(default_factory=list)
    filters: FilterGroup = Field(default_factory=FilterGroup)


class TaskData(pydantic.BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    annotations: list[dict[str, Any]] = Field(default_factory=list)


# --- Selection & navigation ---
class SelectionSnapshot(pydantic.BaseModel):
    """
    Serialized row selection. Either everything except `excluded`
    (`all=True`) or exactly `included` (`all=False`), never both.
    """
    model_config = ConfigDict(frozen=True)

    all: bool
    excluded: list[int] | None = None
    included: list[int] | None = None

    @pydantic.model_validator(mode="before")
    @classmethod
    def _fill_active_form(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            key = 'excluded' if data.get('all') else 'included'
            if data.get(key) is None:
                data[key] = []
        return data

    @pydantic.model_validator(mode="after")
    def _check_single_form(self) -> "SelectionSnapshot":
        if self.all and self.included is not None:
            raise ValueError("A snapshot selecting all items cannot carry included ids")
        if not self.all and self.excluded is not None:
            raise ValueError("An explicit snapshot cannot carry excluded ids")
        return self

    @classmethod
    def everything(cls, excluded: list[int] | None = None) -> "SelectionSnapshot":
        return cls(all=True, excluded=list(excluded or []))

    @classmethod
    def explicit(cls, included: list[int]) -> "SelectionSnapshot":
        return cls(all=False, included=list(included))

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class NavigationState(pydantic.BaseModel):
    # INFO: Lax mode on purpose. History entries coming from the url hold strings.
    model_config = ConfigDict(frozen=True)

    view: int | None = None
    task: int | None = None
    annotation: int | None = None

    def merge(self, **changes: int | None) -> "NavigationState":
        data = self.model_dump()
        data.update(changes)
        return NavigationState.model_validate(data)


# --- Configuration ---
class StoreTarget(pydantic.BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    target_: str = Field(..., alias="_target_")

    def resolve(self, expected_type: type[T]) -> type[T]:
        return _resolve_class(self, expected_type)


class ApiConfig(pydantic.BaseModel):
    base_url: str = "http://localhost:8080/api/dm"
    timeout: float = 10.0


class ClientConfig(pydantic.BaseModel):
    api: ApiConfig = Field(default_factory=ApiConfig)
    poll_interval: float = Field(default=10.0, gt=0)
    setup_url: str = "./settings"
    stores: dict[str, StoreTarget] = Field(default_factory=dict)


def _resolve_class(cfg: StoreTarget, expected_type: type[T]) -> type[T]:
    try:
        clazz = hydra.utils.get_class(cfg.target_)
    except Exception as e:
        logging.error(
            "\n".join([
                f"Hydra failed to resolve class for: {expected_type.__name__}.",
                f"Config: {cfg.model_dump(by_alias=True)}",
                f"Exception: {e}",
            ])
        )
        raise

    if not issubclass(clazz, expected_type):
        logging.error("\n".join([
            "Hydra resolved unexpected type:",
            f"Expected subclass of: {expected_type.__name__}",
            f"Actual type:          {clazz.__name__}",
        ]))
        raise TypeError(
            f"Expected subclass of {expected_type.__name__}, got {clazz.__name__}"
        )

    return clazz


class LabelingItem(pydantic.BaseModel):
    """
    A row to label. Rows carrying a `task_id` are annotations of that
    task, rows without one are tasks themselves.
    """
    model_config = ConfigDict(extra="ignore")

    id: int
    task_id: int | None = None
