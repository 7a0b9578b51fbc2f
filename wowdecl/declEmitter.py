"""
Turns a merged API into TypeScript declaration files (.d.ts), one file per
category and version, plus an index per version importing all of them.

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
import re
import json
import logging
import posixpath
from typing import *
from dataclasses import dataclass, replace

from wowdecl.api import (
    API, APIFunction, APITable, APIEvent, APIEntity,
    VariableSignature, DEFAULT_NAMESPACE
)
from wowdecl.version import SemVer, Range, version_test
from wowdecl.naming import kebab_case


logger = logging.getLogger(__name__)


FILE_CATEGORIES = {
    "account", "achievement", "action", "activity", "addon", "archaeology",
    "arena", "artifact", "auction", "bank", "barber", "battlefield", "binding",
    "buff", "calendar", "camera", "channel", "character", "class",
    "communication", "companion", "constants", "container", "currency",
    "cursor", "debug", "event", "global", "gossip", "groups", "guild",
    "inventory", "item", "map", "totem", "get", "set", "mouse", "cinematic",
    "model", "quest", "security", "spell", "system", "target", "texture",
    "unit", "zone",
}

PRIMITIVE_TYPES = {
    "string": "string",
    "cstring": "string",
    "boolean": "boolean",
    "bool": "boolean",
    "number": "number",
    "table": "object",
}

RESERVED_WORDS = {
    "break", "case", "catch", "class", "const", "continue", "debugger",
    "default", "delete", "do", "else", "enum", "export", "extends", "false",
    "finally", "for", "function", "if", "import", "in", "instanceof", "new",
    "null", "return", "super", "switch", "this", "throw", "true", "try",
    "typeof", "var", "void", "while", "with",
}

# Words the category split would otherwise break apart
KEYWORD_FIXES = (
    (re.compile("pvp", re.I), "Pvp"),
    (re.compile("GUID"), "Guid"),
    (re.compile("ID"), "Id"),
    (re.compile("UI"), "Ui"),
    (re.compile("AFK"), "Afk"),
)


@dataclass(frozen=True)
class SerializationCtx:
    INDENTATION_MULTIPLIER : int = 4

    indentation_level : int = 0

    def mutate_for_indentation(self) -> 'SerializationCtx':
        return replace(self, indentation_level = self.indentation_level + 1)

    def indent(self) -> str:
        return " " * (self.indentation_level * self.INDENTATION_MULTIPLIER)


def known_types(api : API) -> Dict[str, str]:
    """ Type tokens naming a documented table, and the name they are declared under """
    known = {}
    for t in api.tables:
        ts_name = f"Enum.{t.name}" if t.is_enum() else t.name
        known[t.name] = ts_name
        known[ts_name] = ts_name
    return known


def map_type(t : str, known : Dict[str, str]) -> str:
    if t in PRIMITIVE_TYPES:
        return PRIMITIVE_TYPES[t]
    if t in known:
        return known[t]
    logger.debug(f"Unknown type {t}")
    return "unknown"


def signature_type(sig : VariableSignature, known : Dict[str, str]) -> str:
    if sig.type == "table" and sig.innerType:
        return f"{map_type(sig.innerType, known)}[]"
    return map_type(sig.type, known)


def identifier(name : str) -> str:
    return name + "_" if name in RESERVED_WORDS else name


def file_categorize_entry(entity : APIEntity) -> str:
    file_name = entity.ns.replace("C_", "", 1)
    if file_name != DEFAULT_NAMESPACE:
        if file_name == "PvP":
            return "pvp"
        return kebab_case(file_name)

    name = entity.name
    for pattern, fix in KEYWORD_FIXES:
        name = pattern.sub(fix, name, count=1)
    keywords = [w.lower() for w in re.split(r"(?=[A-Z])", name) if w]

    return next((k for k in keywords if k in FILE_CATEGORIES), "general")


def partition_entities(api : API, versions : List[SemVer]) -> Dict[str, API]:
    """
    Decides the file of every entity. Entities valid for any version go to
    <version>/<category>/index of every version, the others to
    <version>/<category>/<version> of the versions they are valid for.
    """
    partitions : Dict[str, API] = {}

    def place(entity : APIEntity, kind : str):
        category = file_categorize_entry(entity)
        if entity.version.format() == "":
            paths = [posixpath.join(v.format(), category, "index") for v in versions]
        else:
            paths = [
                posixpath.join(v.format(), category, v.format())
                for v in versions if version_test(entity.version, v)
            ]

        for path in paths:
            partition = partitions.setdefault(path, API())
            getattr(partition, kind).append(entity)

    for t in api.tables:
        place(t, "tables")
    for f in api.functions:
        place(f, "functions")
    for e in api.events:
        place(e, "events")
    return partitions


def render_jsdoc(description : str, tags : List[str], ctx : SerializationCtx) -> List[str]:
    if not description and not tags:
        return []

    lines = [ctx.indent() + "/**"]
    for line in description.splitlines():
        lines.append(f"{ctx.indent()} * {line}".rstrip())
    if description and tags:
        lines.append(ctx.indent() + " *")
    for tag in tags:
        lines.append(f"{ctx.indent()} * {tag}".rstrip())
    lines.append(ctx.indent() + " */")
    return lines


def _version_tag(entity : APIEntity) -> List[str]:
    if isinstance(entity.version, Range) and entity.version.format():
        return [f"@version {entity.version.format()}"]
    return []


def render_members(sigs : List[VariableSignature], known : Dict[str, str]) -> List[str]:
    """
    'name: T' for each signature, nilable ones optional. A nilable entry
    followed by a required one cannot be optional and becomes 'T | undefined'.
    """
    last_required = max((i for i, s in enumerate(sigs) if not s.nilable), default=-1)

    out = []
    for i, sig in enumerate(sigs):
        t = signature_type(sig, known)
        name = identifier(sig.name)
        if not sig.nilable:
            out.append(f"{name}: {t}")
        elif i < last_required:
            out.append(f"{name}: {t} | undefined")
        else:
            out.append(f"{name}?: {t}")
    return out


def render_return_type(returns : List[VariableSignature], known : Dict[str, str]) -> str:
    def item(sig : VariableSignature) -> str:
        t = signature_type(sig, known)
        return f"{t} | null" if sig.nilable else t

    if not returns:
        return "void"
    if len(returns) == 1:
        return item(returns[0])
    return "LuaMultiReturn<[" + ", ".join(f"{identifier(r.name)}: {item(r)}" for r in returns) + "]>"


def render_function(func : APIFunction, known : Dict[str, str], ctx : SerializationCtx,
                    declare : bool = True) -> List[str]:
    tags = []
    for p in func.parameters:
        tags.append(f"@param {{{signature_type(p, known)}}} {identifier(p.name)} {p.description}")
    for r in func.returns:
        txt = ": ".join(x for x in (r.name, r.description) if x)
        tags.append(f"@returns {{{signature_type(r, known)}}} {txt}")
    for e in func.events:
        tags.append("@event " + ": ".join(x for x in (e.name, e.description) if x))
    tags.extend(_version_tag(func))

    params = ", ".join(render_members(func.parameters, known))
    keyword = "declare function" if declare else "function"

    return render_jsdoc(func.description, tags, ctx) + [
        f"{ctx.indent()}{keyword} {func.name}({params}): {render_return_type(func.returns, known)};"
    ]


def _wrap_namespace(qualified : str, render : Callable[[str, SerializationCtx], List[str]]) -> List[str]:
    """ 'A.B' renders B inside 'declare namespace A', a plain name at the top level """
    ns, _, name = qualified.rpartition(".")
    ctx = SerializationCtx()
    if not ns:
        return render(name, ctx)
    return [f"declare namespace {ns} {{"] + render(name, ctx.mutate_for_indentation()) + ["}"]


def render_table(table : APITable, known : Dict[str, str]) -> List[str]:
    tags = _version_tag(table)

    if table.is_enum():
        def enum_body(name : str, ctx : SerializationCtx) -> List[str]:
            inner = ctx.mutate_for_indentation()
            lines = render_jsdoc(table.description, tags, ctx)
            lines.append(f"{ctx.indent()}{'enum' if ctx.indentation_level else 'declare enum'} {name} {{")
            for member in table.fields:
                value = member.enumValue if member.enumValue is not None else member.value
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    lines.append(f"{inner.indent()}{identifier(member.name)} = {value},")
                else:
                    lines.append(f"{inner.indent()}{identifier(member.name)},")
            lines.append(ctx.indent() + "}")
            return lines
        return _wrap_namespace(known.get(table.name, table.name), enum_body)

    ctx = SerializationCtx()
    inner = ctx.mutate_for_indentation()
    lines = render_jsdoc(table.description, tags, ctx)

    if table.is_constants():
        lines.append(f"declare const {table.name}: {{")
        for member in table.values or table.fields:
            if member.value is not None:
                t = json.dumps(member.value)
            else:
                t = signature_type(member, known)
            lines.append(f"{inner.indent()}readonly {member.name}: {t};")
        lines.append("};")
        return lines

    if table.type == "CallbackType":
        params = ", ".join(render_members(table.parameters, known))
        lines.append(f"type {table.name} = ({params}) => void;")
        return lines

    lines.append(f"interface {table.name} {{")
    for member in render_members(table.fields, known):
        lines.append(f"{inner.indent()}{member};")
    lines.append("}")
    return lines


def render_events(events : List[APIEvent], known : Dict[str, str]) -> List[str]:
    ctx = SerializationCtx().mutate_for_indentation()
    lines = ["interface WoWEvents {"]
    for event in events:
        lines.extend(render_jsdoc(event.description, _version_tag(event), ctx))
        payload = ", ".join(render_members(event.payload, known))
        lines.append(f"{ctx.indent()}{event.literalName}: [{payload}];")
    lines.append("}")
    return lines


def render_partition(api : API, known : Dict[str, str]) -> str:
    """ Namespaced functions first, then global functions, tables and events """
    namespaces : Dict[str, List[APIFunction]] = {}
    for func in api.functions:
        namespaces.setdefault(func.ns, []).append(func)
    global_functions = namespaces.pop(DEFAULT_NAMESPACE, [])

    blocks : List[List[str]] = []
    inner = SerializationCtx().mutate_for_indentation()
    for ns, functions in namespaces.items():
        lines = [f"declare namespace {ns} {{"]
        for func in functions:
            lines.extend(render_function(func, known, inner, declare=False))
        lines.append("}")
        blocks.append(lines)

    for func in global_functions:
        blocks.append(render_function(func, known, SerializationCtx()))
    for table in api.tables:
        blocks.append(render_table(table, known))
    if api.events:
        blocks.append(render_events(api.events, known))

    return "\n\n".join("\n".join(b) for b in blocks) + "\n"


def build_imports(refs : Iterable[str]) -> str:
    """ One import per partition, grouped under a comment with their first letter """
    groups : Dict[str, List[str]] = {}
    for ref in sorted(refs):
        groups.setdefault(ref[:1], []).append(ref)

    blocks = []
    for letter, group in groups.items():
        blocks.append("\n".join([f"// {letter.upper()}"] + [f'import "./{ref}";' for ref in group]))
    return "\n\n".join(blocks) + "\n"


def emit_declarations(api : API, versions : List[SemVer], out_dir : str) -> List[str]:
    """
    Writes <out_dir>/<partition>.d.ts for every partition and
    <out_dir>/<version>/index.d.ts importing them.

    :return: The written paths
    """
    known = known_types(api)
    written = []
    refs : Dict[str, Set[str]] = {v.format(): set() for v in versions}

    for path, partition in sorted(partition_entities(api, versions).items()):
        root, category, name = path.split("/")
        refs[root].add(f"{category}/{name}")

        out = os.path.join(out_dir, *path.split("/")) + ".d.ts"
        os.makedirs(os.path.dirname(out), exist_ok=True)
        with open(out, "w", encoding="utf-8") as f:
            f.write(render_partition(partition, known))
        written.append(out)

    for version, version_refs in refs.items():
        if not version_refs:
            continue
        out = os.path.join(out_dir, version, "index.d.ts")
        with open(out, "w", encoding="utf-8") as f:
            f.write(build_imports(version_refs))
        written.append(out)

    print(f"Emitted {len(written)} declaration files to {out_dir}")
    return written
