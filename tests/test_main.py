import os

import pytest

from wowdecl.__main__ import main
from wowdecl.api import API, APIFunction
from wowdecl.version import SemVer, Range


def write(path, api : API):
    path.write_text(api.serialize(), encoding="utf-8")


@pytest.fixture
def scrapes(tmp_path):
    write(tmp_path / "ui-source-live.json", API([APIFunction("GetTime", SemVer(1, 0, 0))]))
    write(tmp_path / "wiki-2.0.0.json", API([
        APIFunction("GetTime", SemVer(2, 0, 0)),
        APIFunction("UnitHealth", Range.From_str(">=2.0.0")),
    ]))
    return tmp_path


def test_merge_per_version(scrapes):
    main(["merge", "1.0.0", "2.0.0", "--in-dir", str(scrapes)])

    v1 = API.From_json((scrapes / "merged-1.0.0.json").read_text(encoding="utf-8"))
    v2 = API.From_json((scrapes / "merged-2.0.0.json").read_text(encoding="utf-8"))

    assert [f.name for f in v1.functions] == ["GetTime"]
    assert [f.name for f in v2.functions] == ["GetTime", "UnitHealth"]
    assert v2.functions[0].version.format() == "1.0.0||2.0.0"


def test_merge_without_versions(scrapes):
    main(["merge", "--in-dir", str(scrapes)])
    merged = API.From_json((scrapes / "merged.json").read_text(encoding="utf-8"))
    assert len(merged.functions) == 2


def test_merge_without_scrapes(tmp_path):
    with pytest.raises(SystemExit) as e:
        main(["merge", "--in-dir", str(tmp_path)])
    assert e.value.code == 1


def test_emit(scrapes, tmp_path):
    main(["merge", "2.0.0", "--in-dir", str(scrapes)])
    out = tmp_path / "dist"
    main(["emit", "--in-dir", str(scrapes), "--out-dir", str(out)])

    assert os.path.exists(out / "2.0.0" / "index.d.ts")
    assert os.path.exists(out / "2.0.0" / "unit" / "2.0.0.d.ts")


def test_invalid_version_exits(scrapes):
    with pytest.raises(SystemExit) as e:
        main(["merge", "1.2", "--in-dir", str(scrapes)])
    assert e.value.code == 1


def test_clear_cache(tmp_path):
    (tmp_path / "leftover").write_text("x")
    main(["clear-cache", "--cache-dir", str(tmp_path)])
    assert os.listdir(tmp_path) == []
