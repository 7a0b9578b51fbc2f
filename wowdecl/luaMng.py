"""
A parser for the literal tables Blizzard ships in
Interface/AddOns/Blizzard_APIDocumentationGenerated, ex:

    local ActionBarFrame =
    {
        Name = "ActionBar",
        Namespace = "C_ActionBar",
        Functions = { { Name = "HasAction", Arguments = { ... } } },
    };

    APIDocumentation:AddDocumentationTable(ActionBarFrame);

Only literals are understood: strings, numbers, booleans, nil, names and
(nested) table constructors. That is all these files contain.

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

from typing import *
from string import digits, ascii_letters, whitespace, hexdigits

from io import StringIO


class LuaParseError(ValueError):
    pass


def _error(stream : StringIO, msg : str) -> LuaParseError:
    return LuaParseError(f"{msg} (at offset {stream.tell()})")


def _peek(stream : StringIO) -> str:
    pos = stream.tell()
    c = stream.read(1)
    stream.seek(pos)
    return c


def skip_ws(stream : StringIO):
    """
    Moves the stream to the next char that is neither whitespace nor part
    of a comment.
    """
    while True:
        pos = stream.tell()
        c = stream.read(1)
        if c == '':
            return
        if c in whitespace:
            continue

        if c == '-':
            if stream.read(1) == '-':
                skip_comment(stream)
                continue
            stream.seek(pos)
            return

        stream.seek(stream.tell() - 1)
        return


def _long_bracket_level(stream : StringIO) -> int | None:
    """ For a stream on '[', reads '[==[' and returns the '=' count, or rewinds and gives None """
    start = stream.tell()
    if stream.read(1) != '[':
        stream.seek(start)
        return None
    level = 0
    while (c := stream.read(1)) == '=':
        level += 1
    if c != '[':
        stream.seek(start)
        return None
    return level


def _read_long_bracket(stream : StringIO, level : int) -> str:
    ender = ']' + '=' * level + ']'
    raw = ""
    while not raw.endswith(ender):
        c = stream.read(1)
        if c == '':
            raise _error(stream, "Unterminated long bracket")
        raw += c
    return raw[:-len(ender)]


def skip_comment(stream : StringIO):
    # Stream is just past '--'
    level = _long_bracket_level(stream)
    if level is not None:
        _read_long_bracket(stream, level)
        return
    while (c := stream.read(1)) != '\n' and c != '':
        pass


class LuaNode:
    def __init__(self):
        raise Exception("CANNOT INIT BASE")

    def to_python(self) -> Any:
        """ Plain python value of this node, tables become LuaTable again """
        raise Exception("Not implmented")

    @classmethod
    def Deserialize(cls, stream : StringIO) -> 'LuaNode':
        """
        Parse from string.

        Conventions:
            - Stream should be set the first char of the token
            - At return the stream is put directly after the thing
              being parsed. It is the callers responsibility to
              handle ws
        """
        raise Exception("Not implmented")


class LuaString(LuaNode):
    ESCAPE_DICT = {
            'a': '\a',
            'b': '\b',
            'f': '\f',
            'n': '\n',
            'r': '\r',
            't': '\t',
            'v': '\v',
            '\\': '\\',
            '\'': '\'',
            '"': '"',
            '\n': '\n',
    }

    contents : str
    def __init__(self, contents : str):
        self.contents = contents

    def to_python(self) -> str:
        return self.contents

    @classmethod
    def Deserialize(cls, stream: StringIO) -> 'LuaString':
        level = _long_bracket_level(stream)
        if level is not None:
            return LuaString(_read_long_bracket(stream, level).removeprefix('\n'))

        quote = stream.read(1)
        if quote not in ('"', "'"):
            raise _error(stream, f"Expected a string, got '{quote}'")

        contents = ""
        while (c := stream.read(1)) != quote:
            if c == '' or c == '\n':
                raise _error(stream, "Unterminated string")
            if c == '\\':
                c = stream.read(1)
                if c not in cls.ESCAPE_DICT:
                    raise _error(stream, f"Cannot parse string due to unknown escaped charicter: {c}")
                c = cls.ESCAPE_DICT[c]
            contents += c
        return LuaString(contents)


class LuaNumber(LuaNode):
    raw_contents : str

    VALID_CONTENTS = hexdigits + "xX.-+"

    def __init__(self, raw_contents : str):
        self.raw_contents = raw_contents

    def to_python(self) -> int | float:
        raw = self.raw_contents
        sign = -1 if raw.startswith('-') else 1
        raw = raw.lstrip('-')
        if raw.startswith('0x') or raw.startswith('0X'):
            return sign * int(raw[2:], 16)
        if any(c in raw for c in ".eE"):
            return sign * float(raw)
        return sign * int(raw)

    @classmethod
    def Deserialize(cls, stream: StringIO) -> 'LuaNumber':
        raw = ""
        while (c := stream.read(1)) in cls.VALID_CONTENTS and c != '':
            # A '-' after the first char is the start of a comment or an expression
            if c in '-+' and raw and raw[-1] not in 'eE':
                break
            raw += c
        if c != '':
            stream.seek(stream.tell() - 1)

        # Validate
        body = raw.lstrip('-')
        if body.startswith('0x') or body.startswith('0X'):
            if not body[2:] or any(c not in hexdigits for c in body[2:]):
                raise _error(stream, f"Invalid number in hex mode: {raw}")
        else:
            try:
                float(body)
            except ValueError:
                raise _error(stream, f"Invalid number: {raw}")
        return LuaNumber(raw)


class LuaBool(LuaNode):
    value : bool
    def __init__(self, value : bool):
        self.value = value

    def to_python(self) -> bool:
        return self.value


class LuaNil(LuaNode):
    def __init__(self):
        pass

    def to_python(self) -> None:
        return None


class LuaName(LuaNode):
    """ A bare (possibly dotted) name, ex: Enum.PowerType """
    name : str
    def __init__(self, name : str):
        self.name = name

    def to_python(self) -> str:
        return self.name

    @classmethod
    def Deserialize(cls, stream: StringIO) -> 'LuaNode':
        name = ""
        while (c := stream.read(1)) != '' and c in (ascii_letters + digits + "_."):
            name += c
        if c != '':
            stream.seek(stream.tell() - 1)

        if name == "true":
            return LuaBool(True)
        if name == "false":
            return LuaBool(False)
        if name == "nil":
            return LuaNil()
        return LuaName(name)


class LuaTable(LuaNode):
    """
    A table constructor. Keyed entries keep their order in `fields`,
    positional entries are in `items`.
    """
    fields : List[Tuple[str, LuaNode]]
    items : List[LuaNode]

    def __init__(self, fields : List[Tuple[str, LuaNode]], items : List[LuaNode]):
        self.fields = fields
        self.items = items

    def get(self, key : str) -> LuaNode | None:
        for k, v in self.fields:
            if k == key:
                return v
        return None

    def keys(self) -> List[str]:
        return [k for k, _ in self.fields]

    def tables(self) -> List['LuaTable']:
        """ The positional entries that are tables themselves """
        return [i for i in self.items if type(i) is LuaTable]

    def to_python(self) -> 'LuaTable':
        return self

    @classmethod
    def Deserialize(cls, stream: StringIO) -> 'LuaTable':
        if stream.read(1) != '{':
            raise _error(stream, "Expected '{'")

        fields = []
        items = []
        while True:
            skip_ws(stream)
            c = _peek(stream)
            if c == '':
                raise _error(stream, "Unexpected EOF")
            if c == '}':
                stream.read(1)
                break

            is_long_string = False
            if c == '[':
                pos = stream.tell()
                is_long_string = _long_bracket_level(stream) is not None
                stream.seek(pos)

            if c == '[' and not is_long_string:
                # ["key"] = value
                stream.read(1)
                skip_ws(stream)
                key = deserialize_value(stream).to_python()
                skip_ws(stream)
                if stream.read(1) != ']':
                    raise _error(stream, "Expected ']'")
                skip_ws(stream)
                if stream.read(1) != '=':
                    raise _error(stream, "Expected '='")
                skip_ws(stream)
                fields.append((key, deserialize_value(stream)))
            else:
                value = deserialize_value(stream)
                skip_ws(stream)
                if type(value) is LuaName and _peek(stream) == '=':
                    # Name = value
                    stream.read(1)
                    skip_ws(stream)
                    fields.append((value.name, deserialize_value(stream)))
                else:
                    items.append(value)

            skip_ws(stream)
            c = stream.read(1)
            if c == '}':
                break
            if c not in (',', ';'):
                raise _error(stream, f"Parsing error, unexpected '{c}'")
        return LuaTable(fields, items)


def identify_luanode(char : str) -> Type | None:
    if char == "{":
        return LuaTable
    if char in whitespace:
        return None
    if char in '"\'[':
        return LuaString
    if char in digits + '-.':
        return LuaNumber
    if char in ascii_letters + '_':
        return LuaName
    return None


def deserialize_value(stream : StringIO) -> LuaNode:
    skip_ws(stream)
    c = _peek(stream)
    node_type = identify_luanode(c)
    if node_type is None:
        raise _error(stream, f"Unexpected token '{c}'")
    return node_type.Deserialize(stream)


def parse_documentation_file(txt : str) -> LuaTable | None:
    """
    Finds the `local Name = { ... }` statement of a documentation file and
    parses its table. Gives None when the file holds no such statement.
    """
    stream = StringIO(txt)

    while True:
        skip_ws(stream)
        c = _peek(stream)
        if c == '':
            return None

        if c not in ascii_letters + '_':
            stream.read(1)
            continue

        word = LuaName.Deserialize(stream)
        if type(word) is not LuaName or word.name != "local":
            continue

        skip_ws(stream)
        name = LuaName.Deserialize(stream)
        skip_ws(stream)
        if type(name) is not LuaName or _peek(stream) != '=':
            continue
        stream.read(1)
        skip_ws(stream)

        if _peek(stream) != '{':
            continue
        return LuaTable.Deserialize(stream)
