"""
The API model: functions, tables and events, each valid for a version or a
range of versions, and the merge that folds per version scrapes into one.

Copyright (C) 2025 - PsychedelicPalimpsest


This program is free software: you can redistribute it and/or modify
it under the terms of the GNU Affero General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Affero General Public License for more details.

You should have received a copy of the GNU Affero General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

import json
from typing import *
from dataclasses import dataclass, field, replace

from wowdecl.version import (
    SemVer, VersionOrRange, VersionError,
    extend_version, version_test, parse_version
)


DEFAULT_NAMESPACE = "WoWAPI"


class APILoadError(ValueError):
    pass


LiteralValue = str | int | float | bool


def _nilable(jso : Dict[str, Any]) -> bool:
    nilable = jso["nilable"]
    if not isinstance(nilable, bool):
        raise TypeError(f"nilable must be a boolean, got {nilable!r}")
    return nilable


def _version(jso : Dict[str, Any]) -> VersionOrRange:
    txt = jso["version"]
    if not isinstance(txt, str):
        raise TypeError(f"version must be a string, got {txt!r}")
    return parse_version(txt)


@dataclass(frozen=True)
class VariableSignature:
    name : str
    type : str
    nilable : bool
    description : str = ""

    mixin : str | None = None
    default : LiteralValue | None = None
    strideIndex : int | None = None
    value : LiteralValue | None = None

    innerType : str | None = None
    enumValue : int | None = None

    def identical_to(self, other : 'VariableSignature') -> bool:
        # Descriptions and the rest of the metadata do not make a new declaration
        return (
            self.name == other.name and
            self.type == other.type and
            self.nilable == other.nilable
        )

    def to_json(self) -> Dict[str, Any]:
        out = {
            "name": self.name,
            "type": self.type,
            "nilable": self.nilable,
            "description": self.description,
        }
        for key in ("mixin", "default", "strideIndex", "value", "innerType", "enumValue"):
            if (v := getattr(self, key)) is not None:
                out[key] = v
        return out

    @classmethod
    def From_json(cls, jso : Dict[str, Any]) -> 'VariableSignature':
        return VariableSignature(
            jso["name"],
            jso["type"],
            _nilable(jso),
            jso.get("description", ""),
            jso.get("mixin"),
            jso.get("default"),
            jso.get("strideIndex"),
            jso.get("value"),
            jso.get("innerType"),
            jso.get("enumValue"),
        )


@dataclass(frozen=True)
class ListItemDescription:
    name : str
    description : str = ""

    def to_json(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description}


def identical_signatures(a : List[VariableSignature], b : List[VariableSignature]) -> bool:
    """
    Set comparison of two signature lists. The length check keeps a duplicated
    signature from hiding a removed one.
    """
    if len(a) != len(b):
        return False
    return all(
        any(s.identical_to(ss) for ss in b)
        for s in a
    )


def _signatures(jso : Dict[str, Any], key : str) -> List[VariableSignature]:
    return [VariableSignature.From_json(s) for s in jso.get(key) or []]


@dataclass
class APIFunction:
    name : str
    version : VersionOrRange

    ns : str = DEFAULT_NAMESPACE
    description : str = ""
    parameters : List[VariableSignature] = field(default_factory=list)
    returns : List[VariableSignature] = field(default_factory=list)
    events : List[ListItemDescription] = field(default_factory=list)

    def __post_init__(self):
        self.ns = self.ns or DEFAULT_NAMESPACE

    def identical_to(self, func : 'APIFunction') -> bool:
        return (
            self.name == func.name and
            self.ns == func.ns and
            identical_signatures(self.parameters, func.parameters) and
            identical_signatures(self.returns, func.returns)
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "ns": self.ns,
            "description": self.description,
            "parameters": [p.to_json() for p in self.parameters],
            "returns": [r.to_json() for r in self.returns],
            "events": [e.to_json() for e in self.events],
            "version": self.version.format(),
        }

    @classmethod
    def From_json(cls, jso : Dict[str, Any]) -> 'APIFunction':
        return APIFunction(
            jso["name"],
            _version(jso),
            jso.get("ns", DEFAULT_NAMESPACE),
            jso.get("description", ""),
            _signatures(jso, "parameters"),
            _signatures(jso, "returns"),
            [ListItemDescription(e["name"], e.get("description", "")) for e in jso.get("events") or []],
        )


@dataclass
class APITable:
    name : str
    version : VersionOrRange

    ns : str = DEFAULT_NAMESPACE
    description : str = ""

    # '', 'Structure', 'Enumeration', 'Constants' ...
    type : str = ""
    fields : List[VariableSignature] = field(default_factory=list)
    parameters : List[VariableSignature] = field(default_factory=list)
    values : List[VariableSignature] = field(default_factory=list)

    def __post_init__(self):
        self.ns = self.ns or DEFAULT_NAMESPACE

    def is_enum(self) -> bool:
        return self.type in ("Enum", "Enumeration")

    def is_constants(self) -> bool:
        return self.type == "Constants"

    def identical_to(self, t : 'APITable') -> bool:
        return (
            self.name == t.name and
            self.ns == t.ns and
            identical_signatures(self.fields, t.fields)
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "ns": self.ns,
            "description": self.description,
            "type": self.type,
            "fields": [f.to_json() for f in self.fields],
            "parameters": [p.to_json() for p in self.parameters],
            "values": [v.to_json() for v in self.values],
            "version": self.version.format(),
        }

    @classmethod
    def From_json(cls, jso : Dict[str, Any]) -> 'APITable':
        return APITable(
            jso["name"],
            _version(jso),
            jso.get("ns", DEFAULT_NAMESPACE),
            jso.get("description", ""),
            jso.get("type", ""),
            _signatures(jso, "fields"),
            _signatures(jso, "parameters"),
            _signatures(jso, "values"),
        )


@dataclass
class APIEvent:
    name : str
    literalName : str
    version : VersionOrRange

    ns : str = DEFAULT_NAMESPACE
    description : str = ""
    payload : List[VariableSignature] = field(default_factory=list)

    def __post_init__(self):
        self.ns = self.ns or DEFAULT_NAMESPACE

    def identical_to(self, e : 'APIEvent') -> bool:
        return (
            self.name == e.name and
            self.literalName == e.literalName and
            self.ns == e.ns and
            identical_signatures(self.payload, e.payload)
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "literalName": self.literalName,
            "ns": self.ns,
            "description": self.description,
            "payload": [p.to_json() for p in self.payload],
            "version": self.version.format(),
        }

    @classmethod
    def From_json(cls, jso : Dict[str, Any]) -> 'APIEvent':
        return APIEvent(
            jso["name"],
            jso["literalName"],
            _version(jso),
            jso.get("ns", DEFAULT_NAMESPACE),
            jso.get("description", ""),
            _signatures(jso, "payload"),
        )


APIEntity = APIFunction | APITable | APIEvent
T = TypeVar("T", APIFunction, APITable, APIEvent)


def combine_items(items : List[T], combining_items : List[T]) -> None:
    """
    Folds combining_items into items. Only the first entity of the same name is
    considered: if it is the same declaration its version is widened, otherwise
    the new entity is appended next to it.
    """
    for combining_item in combining_items:
        for i, existing in enumerate(items):
            if existing.name != combining_item.name:
                continue
            if existing.identical_to(combining_item):
                items[i] = replace(existing, version=extend_version(existing.version, combining_item.version))
                break
            items.append(combining_item)
            break
        else:
            items.append(combining_item)


class API:
    functions : List[APIFunction]
    tables : List[APITable]
    events : List[APIEvent]

    def __init__(self,
                functions : List[APIFunction] | None = None,
                tables : List[APITable] | None = None,
                events : List[APIEvent] | None = None):
        self.functions = list(functions or [])
        self.tables = list(tables or [])
        self.events = list(events or [])

    def __len__(self) -> int:
        return len(self.functions) + len(self.tables) + len(self.events)

    def __eq__(self, other : object) -> bool:
        if not isinstance(other, API):
            return NotImplemented
        return (
            self.functions == other.functions and
            self.tables == other.tables and
            self.events == other.events
        )

    def add_function(self, f : APIFunction):
        self.functions.append(f)

    def add_table(self, t : APITable):
        self.tables.append(t)

    def add_event(self, e : APIEvent):
        self.events.append(e)

    def filter_for_version(self, version : SemVer) -> 'API':
        return API(
            [f for f in self.functions if version_test(f.version, version)],
            [t for t in self.tables if version_test(t.version, version)],
            [e for e in self.events if version_test(e.version, version)],
        )

    def combine(self, api : 'API') -> 'API':
        """
        Returns a new API with the entities of api folded into those of self.
        Neither input is modified, so combines can be chained:
        a.combine(b).combine(c)
        """
        combined = API(self.functions, self.tables, self.events)

        combine_items(combined.functions, api.functions)
        combine_items(combined.events, api.events)
        combine_items(combined.tables, api.tables)

        return combined

    def to_json(self) -> Dict[str, Any]:
        return {
            "functions": [f.to_json() for f in self.functions],
            "tables": [t.to_json() for t in self.tables],
            "events": [e.to_json() for e in self.events],
        }

    def serialize(self) -> str:
        return json.dumps(self.to_json(), indent=2)

    @classmethod
    def From_json(cls, content : str) -> 'API':
        try:
            jso = json.loads(content)
        except json.JSONDecodeError as e:
            raise APILoadError(f"Not a JSON document: {e}") from e
        if not isinstance(jso, dict):
            raise APILoadError(f"Expected a JSON object, got {type(jso).__name__}")

        api = API()
        for key, loader, target in (
            ("functions", APIFunction.From_json, api.functions),
            ("tables", APITable.From_json, api.tables),
            ("events", APIEvent.From_json, api.events),
        ):
            entries = jso.get(key) or []
            if not isinstance(entries, list):
                raise APILoadError(f"Expected a list of {key}, got {type(entries).__name__}")
            for i, entry in enumerate(entries):
                try:
                    target.append(loader(entry))
                except (KeyError, TypeError, VersionError) as e:
                    name = entry.get("name", f"#{i}") if isinstance(entry, dict) else f"#{i}"
                    raise APILoadError(f"Cannot load {key[:-1]} {name}: {e!r}") from e
        return api


class APIBuilder:
    apis : List[API]

    def __init__(self):
        self.apis = []

    def add(self, api : API):
        self.apis.append(api)

    def merge(self) -> API:
        if not len(self.apis):
            raise ValueError("Nothing to merge, add at least one API first")

        combined = self.apis[0]
        for api in self.apis[1:]:
            combined = combined.combine(api)
        return combined
