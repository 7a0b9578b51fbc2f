"""
Reads the generated API documentation of wow-ui-source
(Interface/AddOns/Blizzard_APIDocumentationGenerated) into versioned API
entities.

Repository: https://github.com/Gethe/wow-ui-source

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

import os
import logging
import tarfile
from typing import *
from dataclasses import dataclass, field

from wowdecl.api import API, APIFunction, APITable, APIEvent, VariableSignature
from wowdecl.luaMng import LuaNode, LuaTable, LuaString, LuaBool, parse_documentation_file
from wowdecl.storage import download_file
from wowdecl.version import SemVer


logger = logging.getLogger(__name__)

UI_SOURCE_REMOTE = "https://github.com/Gethe/wow-ui-source"
DOCUMENTATION_DIR = ("Interface", "AddOns", "Blizzard_APIDocumentationGenerated")

TYPE_MAP = {
    "cstring": "string",
    "bool": "boolean",
}

# Keys that are present in the documentation but carry nothing we declare
IGNORED_KEYS = {
    "Type", "Environment", "NumValues", "MinValue", "MaxValue",
    "MayReturnNothing", "SecretArguments", "SynchronousEvent", "UniqueEvent",
    "IsProtectedFunction", "HasRestrictions", "RequiresValidAndPublicCVar",
    "ConditionalReturns",
}


@dataclass
class FileAPIDocumentation:
    name : str | None = None
    ns : str | None = None
    functions : List[APIFunction] = field(default_factory=list)
    tables : List[APITable] = field(default_factory=list)
    events : List[APIEvent] = field(default_factory=list)


def unhandled_field(owner : str, key : str):
    if key in IGNORED_KEYS:
        return
    logger.warning(f"Unhandled field {key} in {owner}")


def _string(node : LuaNode | None) -> str | None:
    if node is None:
        return None
    if type(node) is not LuaString:
        raise ValueError(f"Expected a string, got {type(node).__name__}")
    return node.contents


def _documentation(node : LuaNode | None) -> str:
    if type(node) is LuaTable:
        return " ".join(_string(i) for i in node.items if type(i) is LuaString)
    return _string(node) or ""


def _require_name(tbl : LuaTable, kind : str) -> str:
    name = _string(tbl.get("Name"))
    if not name:
        raise ValueError(f"{kind} without a Name (fields: {', '.join(tbl.keys())})")
    return name


def _literal(owner : str, node : LuaNode) -> Any:
    if type(node) is LuaTable:
        logger.debug(f"Dropping table literal of {owner}")
        return None
    return node.to_python()


def map_type(t : str) -> str:
    return TYPE_MAP.get(t, t)


def to_variable_signature(tbl : LuaTable) -> VariableSignature:
    name = _require_name(tbl, "Variable")

    values = {}
    for key, value in tbl.fields:
        match key:
            case "Name":
                pass
            case "Type":
                values["type"] = map_type(_string(value))
            case "Nilable":
                values["nilable"] = type(value) is LuaBool and value.value
            case "Documentation":
                values["description"] = _documentation(value)
            case "InnerType":
                values["innerType"] = map_type(_string(value))
            case "Mixin":
                values["mixin"] = _string(value)
            case "Default":
                values["default"] = _literal(name, value)
            case "StrideIndex":
                values["strideIndex"] = _literal(name, value)
            case "EnumValue":
                values["enumValue"] = _literal(name, value)
            case "Value":
                values["value"] = _literal(name, value)
            case _:
                unhandled_field(name, key)

    return VariableSignature(
        name,
        values.pop("type", "unknown"),
        values.pop("nilable", False),
        **values
    )


def _signatures(node : LuaNode | None) -> List[VariableSignature]:
    if type(node) is not LuaTable:
        return []
    return [to_variable_signature(t) for t in node.tables()]


def to_function(tbl : LuaTable, ns : str | None, version : SemVer) -> APIFunction:
    name = _require_name(tbl, "Function")
    func = APIFunction(name, version, ns)

    for key, value in tbl.fields:
        match key:
            case "Name":
                pass
            case "Arguments":
                func.parameters = _signatures(value)
            case "Returns":
                func.returns = _signatures(value)
            case "Documentation":
                func.description = _documentation(value)
            case _:
                unhandled_field(name, key)
    return func


def to_table(tbl : LuaTable, ns : str | None, version : SemVer) -> APITable:
    name = _require_name(tbl, "Table")
    table = APITable(name, version, ns)

    for key, value in tbl.fields:
        match key:
            case "Name":
                pass
            case "Type":
                table.type = _string(value)
            case "Fields":
                table.fields = _signatures(value)
            case "Values":
                table.values = _signatures(value)
            case "Arguments":
                # CallbackType tables
                table.parameters = _signatures(value)
            case "Documentation":
                table.description = _documentation(value)
            case _:
                unhandled_field(name, key)
    return table


def to_event(tbl : LuaTable, ns : str | None, version : SemVer) -> APIEvent:
    name = _require_name(tbl, "Event")
    literal_name = _string(tbl.get("LiteralName"))
    if not literal_name:
        raise ValueError(f"Event {name} without a LiteralName")
    event = APIEvent(name, literal_name, version, ns)

    for key, value in tbl.fields:
        match key:
            case "Name" | "LiteralName":
                pass
            case "Payload":
                event.payload = _signatures(value)
            case "Documentation":
                event.description = _documentation(value)
            case _:
                unhandled_field(name, key)
    return event


def to_api_definition(tbl : LuaTable, version : SemVer) -> FileAPIDocumentation:
    doc = FileAPIDocumentation(
        _string(tbl.get("Name")),
        _string(tbl.get("Namespace")),
    )

    for key, value in tbl.fields:
        if key in ("Name", "Namespace"):
            continue
        if type(value) is not LuaTable:
            unhandled_field(doc.name or "<file>", key)
            continue

        match key:
            case "Functions":
                doc.functions = [to_function(t, doc.ns, version) for t in value.tables()]
            case "Tables":
                doc.tables = [to_table(t, doc.ns, version) for t in value.tables()]
            case "Events":
                doc.events = [to_event(t, doc.ns, version) for t in value.tables()]
            case _:
                unhandled_field(doc.name or "<file>", key)
    return doc


def scrape_directory(path : str, version : SemVer) -> API:
    api = API()

    files = sorted(f for f in os.listdir(path) if f.endswith(".lua"))
    for file in files:
        with open(os.path.join(path, file), "r", encoding="utf-8") as f:
            tbl = parse_documentation_file(f.read())

        if tbl is None:
            logger.warning(f"No documentation table in {file}")
            continue

        try:
            doc = to_api_definition(tbl, version)
        except ValueError as e:
            raise ValueError(f"Cannot read {file}: {e}") from e

        if doc.name:
            logger.info(f"Parsed {doc.name}")

        for func in doc.functions:
            api.add_function(func)
        for table in doc.tables:
            api.add_table(table)
        for event in doc.events:
            api.add_event(event)
    return api


def _safe_ref(ref : str) -> str:
    return ref.replace("/", "_")


def download_ui_source(ref : str, cache_dir : str, remote : str = UI_SOURCE_REMOTE) -> str:
    """
    Fetches the tarball of a branch/tag of wow-ui-source and extracts its
    documentation directory.

    :return: The directory holding the documentation .lua files
    """
    target = os.path.join(cache_dir, _safe_ref(ref))
    if os.path.isdir(target) and os.listdir(target):
        return target

    os.makedirs(cache_dir, exist_ok=True)
    archive = os.path.join(cache_dir, _safe_ref(ref) + ".tar.gz")
    if not os.path.exists(archive):
        print(f"Downloading wow-ui-source {ref}")
        download_file(f"{remote}/archive/{ref}.tar.gz", archive)

    os.makedirs(target, exist_ok=True)
    with tarfile.open(archive, "r:gz") as tar:
        for member in tar:
            # <repo>-<ref>/Interface/AddOns/Blizzard_APIDocumentationGenerated/<file>.lua
            parts = member.name.split("/")
            if not member.isfile() or len(parts) != len(DOCUMENTATION_DIR) + 2:
                continue
            if tuple(parts[1:-1]) != DOCUMENTATION_DIR or not parts[-1].endswith(".lua"):
                continue

            src = tar.extractfile(member)
            if src is None:
                raise RuntimeError(f"Cannot read {member.name} from {archive}")
            with open(os.path.join(target, parts[-1]), "wb") as f:
                f.write(src.read())

    if not os.listdir(target):
        raise RuntimeError(f"No documentation found in wow-ui-source {ref}")
    return target
