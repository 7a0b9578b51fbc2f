import pytest

from wowdecl.version import (
    SemVer, Range, Comparator, VersionError,
    parse_version, format_version, version_test, extend_version, coerce_version, valid
)


def v(txt : str) -> SemVer:
    return SemVer.From_str(txt)


def test_semver_parse_and_order():
    assert v("1.2.3") == SemVer(1, 2, 3)
    assert v("v10.0.2").format() == "10.0.2"
    assert v("1.2.3") < v("1.10.0") < v("2.0.0")


@pytest.mark.parametrize("txt", ["1.2", "a.b.c", "", "1.2.3.4"])
def test_semver_invalid(txt):
    assert not valid(txt)
    with pytest.raises(VersionError):
        SemVer.From_str(txt)


def test_coerce_version():
    assert coerce_version("Patch 1.13.2 (2019-08-26): Added.") == SemVer(1, 13, 2)
    assert coerce_version("Patch 8.0: Removed") == SemVer(8, 0, 0)
    assert coerce_version("nothing here") is None
    assert coerce_version(None) is None


def test_point_version_tests_only_itself():
    assert version_test(v("1.0.0"), v("1.0.0"))
    assert not version_test(v("1.0.0"), v("1.0.1"))


@pytest.mark.parametrize("rng,inside,outside", [
    (">1.0.0", "1.0.1", "1.0.0"),
    (">=1.0.0 <2.0.0", "1.9.9", "2.0.0"),
    ("1.0.0 || 3.0.0", "3.0.0", "2.0.0"),
    ("~1.2.3", "1.2.9", "1.3.0"),
    ("^1.2.3", "1.9.0", "2.0.0"),
    ("^0.2.3", "0.2.9", "0.3.0"),
    ("1.x", "1.5.0", "2.0.0"),
    ("1.2.3 - 2.3.4", "2.3.4", "2.3.5"),
    (">= 2.0.0", "2.0.0", "1.9.9"),
])
def test_range_membership(rng, inside, outside):
    r = Range.From_str(rng)
    assert r.test(v(inside))
    assert not r.test(v(outside))


def test_empty_range_matches_everything():
    r = Range.From_str("")
    assert r.is_any()
    assert r.test(v("0.0.1"))
    assert r.test(v("99.0.0"))
    assert r.format() == ""


def test_range_format():
    assert Range.From_str(">=1.0.0 <2.0.0").format() == ">=1.0.0 <2.0.0"
    assert Range.From_str("1.0.0 || 2.0.0").format() == "1.0.0||2.0.0"
    assert Range.From_str("~1.2").format() == ">=1.2.0 <1.3.0"


def test_range_invalid():
    with pytest.raises(VersionError):
        Range.From_str(">=1.a")


def test_parse_version_falls_back_to_range():
    assert parse_version("1.2.3") == SemVer(1, 2, 3)
    assert isinstance(parse_version(">1.2.3"), Range)
    assert isinstance(parse_version(""), Range)


def test_format_round_trip():
    for txt in ("1.2.3", ">1.0.0", "1.0.0||2.0.0", ">=1.0.0 <2.0.0", ""):
        assert format_version(parse_version(txt)) == txt


def test_subset():
    assert Range.From_str(">2.0.0").subset(Range.From_str(">1.0.0"))
    assert not Range.From_str(">1.0.0").subset(Range.From_str(">2.0.0"))
    assert Range.From_str("<1.0.0").subset(Range.From_str("<=1.0.0"))
    assert Range.From_str("1.0.0").subset(Range.From_str(""))
    assert not Range.From_str("").subset(Range.From_str("<1.0.0"))


class TestExtend:
    def test_point_point(self):
        r = extend_version(v("1.0.0"), v("2.0.0"))
        assert r.format() == "1.0.0||2.0.0"
        assert r.test(v("1.0.0")) and r.test(v("2.0.0"))
        assert not r.test(v("1.5.0"))

    def test_point_point_equal_is_not_collapsed(self):
        r = extend_version(v("1.0.0"), v("1.0.0"))
        assert r.format() == "1.0.0||1.0.0"
        assert r.test(v("1.0.0"))
        assert not r.test(v("1.0.1"))
        assert extend_version(r, v("1.0.0")) is r

    def test_range_point_already_satisfied(self):
        rng = Range.From_str(">1.0.0")
        assert extend_version(rng, v("2.0.0")) is rng
        assert extend_version(v("2.0.0"), rng) is rng

    def test_range_point_widened(self):
        r = extend_version(Range.From_str(">2.0.0"), v("1.0.0"))
        assert r.format() == ">2.0.0||1.0.0"
        r = extend_version(v("1.0.0"), Range.From_str(">2.0.0"))
        assert r.format() == "1.0.0||>2.0.0"

    def test_range_range_subset(self):
        wide = Range.From_str(">1.0.0")
        narrow = Range.From_str(">2.0.0")
        assert extend_version(wide, narrow) is wide
        assert extend_version(narrow, wide) is wide

    def test_range_range_disjoint_is_or(self):
        r = extend_version(Range.From_str("<1.0.0"), Range.From_str(">2.0.0"))
        assert r.format() == "<1.0.0||>2.0.0"
        assert r.test(v("0.5.0"))
        assert r.test(v("3.0.0"))
        assert not r.test(v("1.5.0"))

    def test_extend_is_idempotent(self):
        r = extend_version(v("1.0.0"), v("2.0.0"))
        assert extend_version(r, v("1.0.0")) is r
        assert extend_version(r, r) is r

    def test_extended_keeps_both(self):
        pairs = [
            (v("1.0.0"), v("3.0.0")),
            (Range.From_str("<1.0.0"), v("5.0.0")),
            (Range.From_str("~1.2.0"), Range.From_str("^3.0.0")),
        ]
        samples = [v("0.5.0"), v("1.0.0"), v("1.2.4"), v("3.0.0"), v("3.1.0"), v("5.0.0")]
        for left, right in pairs:
            extended = extend_version(left, right)
            for s in samples:
                if version_test(left, s) or version_test(right, s):
                    assert extended.test(s)


def test_comparator_format():
    assert Comparator("", SemVer(1, 0, 0)).format() == "1.0.0"
    assert Comparator(">=", SemVer(1, 0, 0)).format() == ">=1.0.0"
