"""Typed parameters of the MCP commands, decoded from JSON."""

from __future__ import annotations

import json
from dataclasses import MISSING, dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, Mapping, TypeVar

from compass.domain.discovery import DiscoverySource, Impact
from compass.domain.task import TaskStatus
from compass.errors import CompassError

_P = TypeVar("_P")
_Converter = Callable[[Any, str], Any]
_ABSENT = object()


class InvalidParamsError(CompassError, ValueError):
    """The parameters of a command are not valid JSON of the expected shape."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"invalid parameters: {detail}")


def _json_type(value: Any) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _mismatch(value: Any, key: str, expected: str) -> InvalidParamsError:
    return InvalidParamsError(f"cannot use {_json_type(value)} as {expected} for field {key!r}")


def _string(value: Any, key: str) -> str:
    if isinstance(value, str):
        return value
    raise _mismatch(value, key, "string")


def _integer(value: Any, key: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise _mismatch(value, key, "integer")


def _boolean(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise _mismatch(value, key, "boolean")


def _strings(value: Any, key: str) -> list[str]:
    if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
        return list(value)
    raise _mismatch(value, key, "list of strings")


def _object(value: Any, key: str) -> dict[str, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    raise _mismatch(value, key, "object")


def _enum(enum_type: type[Enum]) -> _Converter:
    def convert(value: Any, key: str) -> Enum:
        if isinstance(value, enum_type):
            return value
        if isinstance(value, str):
            try:
                return enum_type(value)
            except ValueError:
                pass
            allowed = ", ".join(member.value for member in enum_type)
            raise InvalidParamsError(f"{value!r} is not one of {allowed} for field {key!r}")
        raise _mismatch(value, key, "string")

    return convert


def _param(name: str, convert: _Converter, default: Any = None, factory: Any = MISSING) -> Any:
    metadata = {"json": name, "convert": convert}
    if factory is not MISSING:
        return field(default_factory=factory, metadata=metadata)
    return field(default=default, metadata=metadata)


@dataclass
class CreateProjectParams:
    allows_empty: ClassVar[bool] = False
    name: str = _param("name", _string, "")
    description: str = _param("description", _string, "")
    goal: str = _param("goal", _string, "")


@dataclass
class SetCurrentProjectParams:
    allows_empty: ClassVar[bool] = False
    id: str = _param("id", _string, "")


@dataclass
class CreateTaskParams:
    allows_empty: ClassVar[bool] = False
    project_id: str = _param("projectId", _string, "")
    title: str = _param("title", _string, "")
    description: str = _param("description", _string, "")
    files: list[str] = _param("files", _strings, factory=list)
    dependencies: list[str] = _param("dependencies", _strings, factory=list)
    acceptance: list[str] = _param("acceptance", _strings, factory=list)


@dataclass
class UpdateTaskParams:
    allows_empty: ClassVar[bool] = False
    id: str = _param("id", _string, "")
    updates: dict[str, Any] = _param("updates", _object, factory=dict)


@dataclass
class ListTasksParams:
    allows_empty: ClassVar[bool] = True
    project_id: str | None = _param("projectId", _string)
    status: TaskStatus | None = _param("status", _enum(TaskStatus))
    parent: str | None = _param("parent", _string)


@dataclass
class IdParams:
    """Parameters naming a single task or planning session by ID."""

    allows_empty: ClassVar[bool] = False
    id: str = _param("id", _string, "")


@dataclass
class TaskIdParams:
    allows_empty: ClassVar[bool] = False
    task_id: str = _param("taskId", _string, "")


@dataclass
class SearchContextParams:
    allows_empty: ClassVar[bool] = False
    query: str = _param("query", _string, "")
    project_id: str | None = _param("projectId", _string)
    limit: int = _param("limit", _integer, 0)
    offset: int = _param("offset", _integer, 0)


@dataclass
class NextTaskParams:
    allows_empty: ClassVar[bool] = True
    project_id: str = _param("projectId", _string, "")
    exclude: list[str] = _param("exclude", _strings, factory=list)


@dataclass
class ProjectScopeParams:
    """Parameters of commands that act on one project, the current one by default."""

    allows_empty: ClassVar[bool] = True
    project_id: str = _param("projectId", _string, "")


@dataclass
class StartPlanningParams:
    allows_empty: ClassVar[bool] = False
    project_id: str = _param("projectId", _string, "")
    name: str = _param("name", _string, "")


@dataclass
class AddDiscoveryParams:
    allows_empty: ClassVar[bool] = False
    project_id: str = _param("projectId", _string, "")
    insight: str = _param("insight", _string, "")
    impact: Impact | None = _param("impact", _enum(Impact))
    source: DiscoverySource | None = _param("source", _enum(DiscoverySource))
    affected_task_ids: list[str] = _param("affectedTaskIds", _strings, factory=list)


@dataclass
class RecordDecisionParams:
    allows_empty: ClassVar[bool] = False
    project_id: str = _param("projectId", _string, "")
    question: str = _param("question", _string, "")
    choice: str = _param("choice", _string, "")
    rationale: str = _param("rationale", _string, "")
    alternatives: list[str] = _param("alternatives", _strings, factory=list)
    reversible: bool = _param("reversible", _boolean, False)
    affected_task_ids: list[str] = _param("affectedTaskIds", _strings, factory=list)


def _decode(raw: Any) -> Any:
    if raw is None:
        return _ABSENT
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidParamsError(str(exc)) from exc
    if isinstance(raw, str):
        if not raw:
            return _ABSENT
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidParamsError(str(exc)) from exc
    return raw


def parse_params(params_type: type[_P], raw: Any) -> _P:
    """Decode ``raw`` (JSON text, bytes or an already decoded mapping) into ``params_type``.

    Keys are matched exactly first and then ignoring case; unknown keys and
    null values are ignored. Missing parameters are an error unless the type
    allows them to be left out.
    """
    if not (isinstance(params_type, type) and is_dataclass(params_type)):
        raise TypeError(f"{params_type!r} is not a parameters type")

    data = _decode(raw)
    if data is _ABSENT:
        if getattr(params_type, "allows_empty", False):
            return params_type()
        raise InvalidParamsError("unexpected end of JSON input")
    if data is None:
        return params_type()
    if not isinstance(data, Mapping):
        raise InvalidParamsError(f"expected a JSON object, got {_json_type(data)}")

    by_name = {f.metadata["json"]: f for f in fields(params_type)}
    by_folded = {name.lower(): f for name, f in by_name.items()}

    values: dict[str, Any] = {}
    for key, value in data.items():
        if not isinstance(key, str):
            continue
        spec = by_name.get(key) or by_folded.get(key.lower())
        if spec is None or value is None:
            continue
        values[spec.name] = spec.metadata["convert"](value, key)
    return params_type(**values)