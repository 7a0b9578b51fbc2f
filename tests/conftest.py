import pytest

from wowdecl.api import API, APIFunction, VariableSignature
from wowdecl.version import SemVer


MAP_DOCUMENTATION = """
-- Generated file, do not edit
local MapDocumentation =
{
	Name = "Map",
	Type = "System",
	Namespace = "C_Map",

	Functions =
	{
		{
			Name = "GetBestMapForUnit",
			Type = "Function",
			Documentation = { "Returns the best map for a unit" },

			Arguments =
			{
				{ Name = "unitToken", Type = "cstring", Nilable = false },
			},

			Returns =
			{
				{ Name = "uiMapID", Type = "number", Nilable = true },
			},
		},
	},

	Events =
	{
		{
			Name = "NewWmoChunk",
			Type = "Event",
			LiteralName = "NEW_WMO_CHUNK",
			SynchronousEvent = true,
		},
	},

	Tables =
	{
		{
			Name = "UIMapType",
			Type = "Enumeration",
			NumValues = 2,
			MinValue = 0,
			MaxValue = 1,
			Fields =
			{
				{ Name = "Cosmic", Type = "UIMapType", EnumValue = 0 },
				{ Name = "World", Type = "UIMapType", EnumValue = 1 },
			},
		},
	},
};

APIDocumentation:AddDocumentationTable(MapDocumentation);
"""


def _page(title : str, sections : str, intro : str = "") -> str:
    return f"""<!DOCTYPE html>
<html><body>
<h1 id="firstHeading">{title}</h1>
<div id="mw-content-text"><div class="mw-parser-output">
<p>{intro}</p>
{sections}
</div></div>
</body></html>
"""


def _section(section_id : str, content : str) -> str:
    return f'<div class="mw-heading mw-heading2"><h2 id="{section_id}">{section_id.replace("_", " ")}</h2></div>\n{content}\n'


FUNCTION_PAGE = _page(
    "API C_Map.GetBestMapForUnit",
    _section("Arguments", "<dl><dd><dl><dt>unitToken</dt><dd>string - The unit to query</dd></dl></dd></dl>")
    + _section("Returns", "<dl><dd><dl><dt>uiMapID</dt><dd>number? - The map, nil if unknown</dd></dl></dd></dl>")
    + _section("Triggers_events", "<ul><li>PLAYER_ENTERING_WORLD - Fires on login</li></ul>")
    + _section("Patch_changes", "<ul><li>Patch 8.0.1 (2018-07-17): Added.</li></ul>"),
    "Returns the current UI map for the given unit.",
)

EVENT_PAGE = _page(
    "PLAYER_ENTERING_WORLD",
    _section("Payload", "<dl><dd><dl><dt>isInitialLogin</dt><dd>boolean</dd>"
                        "<dt>isReloadingUi</dt><dd>boolean</dd></dl></dd></dl>"),
    "Fires when the player logs in or sees a loading screen.",
)

INDEX_PAGE = _page(
    "World of Warcraft API",
    """<dl><dd><a href="/wiki/API_C_Map.GetBestMapForUnit">C_Map.GetBestMapForUnit</a>(unitToken) : uiMapID</dd>
<dd><a href="/wiki/API_GetTime#Details">GetTime</a>() : seconds</dd>
<dd>No link here</dd>
<dd><a href="https://example.com/elsewhere">external</a></dd></dl>""",
)

BLOCKED_PAGE = "<html><body><h1>Sorry, you have been blocked</h1></body></html>"


@pytest.fixture
def map_documentation() -> str:
    return MAP_DOCUMENTATION


@pytest.fixture
def function_page() -> str:
    return FUNCTION_PAGE


@pytest.fixture
def event_page() -> str:
    return EVENT_PAGE


@pytest.fixture
def index_page() -> str:
    return INDEX_PAGE


@pytest.fixture
def blocked_page() -> str:
    return BLOCKED_PAGE


@pytest.fixture
def foobar_1() -> API:
    return API([APIFunction("FooBar", SemVer(1, 0, 0))])


@pytest.fixture
def foobar_2_with_param() -> API:
    return API([APIFunction("FooBar", SemVer(2, 0, 0), parameters=[VariableSignature("foo", "string", True)])])


@pytest.fixture
def foobar_2() -> API:
    return API([APIFunction("FooBar", SemVer(2, 0, 0))])
