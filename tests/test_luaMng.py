from io import StringIO

import pytest

from wowdecl.luaMng import (
    LuaString, LuaNumber, LuaBool, LuaNil, LuaName, LuaTable, LuaParseError,
    deserialize_value, parse_documentation_file, identify_luanode
)


def parse(txt : str):
    return deserialize_value(StringIO(txt))


@pytest.mark.parametrize("txt,expected", [
    ('"hello"', "hello"),
    ("'it\\'s'", "it's"),
    ('"a\\nb"', "a\nb"),
    ("[[long\nstring]]", "long\nstring"),
    ("[==[with ]] inside]==]", "with ]] inside"),
])
def test_strings(txt, expected):
    node = parse(txt)
    assert type(node) is LuaString
    assert node.contents == expected


@pytest.mark.parametrize("txt,expected", [
    ("42", 42),
    ("-7", -7),
    ("3.5", 3.5),
    ("0x1F", 31),
    ("1e3", 1000.0),
])
def test_numbers(txt, expected):
    node = parse(txt)
    assert type(node) is LuaNumber
    assert node.to_python() == expected


def test_names_and_keywords():
    assert type(parse("true")) is LuaBool and parse("true").value
    assert type(parse("false")) is LuaBool and not parse("false").value
    assert type(parse("nil")) is LuaNil
    name = parse("Enum.PowerType")
    assert type(name) is LuaName
    assert name.name == "Enum.PowerType"


def test_table_entries():
    tbl = parse("""{
        Name = "Foo", -- trailing comment
        ["Quoted key"] = 1;
        [2] = false,
        --[[ a long
        comment ]]
        "positional",
        { Nested = true },
    }""")

    assert type(tbl) is LuaTable
    assert tbl.keys() == ["Name", "Quoted key", 2]
    assert tbl.get("Name").contents == "Foo"
    assert tbl.get("Quoted key").to_python() == 1
    assert tbl.get("Missing") is None
    assert [type(i) for i in tbl.items] == [LuaString, LuaTable]
    assert tbl.tables()[0].get("Nested").value is True


def test_empty_table():
    tbl = parse("{}")
    assert tbl.fields == [] and tbl.items == []


def test_number_stops_at_comment():
    tbl = parse("{ Value = 5-- five\n }")
    assert tbl.get("Value").to_python() == 5


@pytest.mark.parametrize("txt", [
    '"unterminated',
    "{ Name = 1",
    "{ Name = 1 2 }",
    "0xZZ",
    '"bad \\q escape"',
])
def test_parse_errors(txt):
    with pytest.raises(LuaParseError):
        parse(txt)


def test_identify_luanode():
    assert identify_luanode("{") is LuaTable
    assert identify_luanode('"') is LuaString
    assert identify_luanode("-") is LuaNumber
    assert identify_luanode("N") is LuaName
    assert identify_luanode(" ") is None
    assert identify_luanode("}") is None


def test_parse_documentation_file(map_documentation):
    tbl = parse_documentation_file(map_documentation)

    assert tbl is not None
    assert tbl.get("Name").contents == "Map"
    assert tbl.get("Namespace").contents == "C_Map"
    functions = tbl.get("Functions").tables()
    assert functions[0].get("Name").contents == "GetBestMapForUnit"


def test_parse_documentation_file_without_table():
    assert parse_documentation_file("-- nothing to see\nlocal x = 5\n") is None


def test_string_requires_a_quote():
    with pytest.raises(LuaParseError):
        LuaString.Deserialize(StringIO("Name"))
