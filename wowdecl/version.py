"""
Version values for API entities: a single release (SemVer) or a set of
constraints (Range), and the rules for widening one by another.

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

import re
from typing import *
from dataclasses import dataclass


class VersionError(ValueError):
    pass


SEMVER_RE = re.compile(r'^v?(\d+)\.(\d+)\.(\d+)$')
PARTIAL_RE = re.compile(r'^v?(\d+|[xX*])(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?$')
COMPARATOR_RE = re.compile(r'^(<=|>=|<|>|=|~|\^)?(.*)$')
COERCE_RE = re.compile(r'(\d+)\.(\d+)(?:\.(\d+))?')
HYPHEN_RE = re.compile(r'^(\S+)\s+-\s+(\S+)$')

WILDCARDS = ('x', 'X', '*')


@dataclass(frozen=True, order=True)
class SemVer:
    major : int
    minor : int
    patch : int

    @classmethod
    def From_str(cls, txt : str) -> 'SemVer':
        m = SEMVER_RE.match(txt.strip())
        if m is None:
            raise VersionError(f"Invalid version: \"{txt}\"")
        return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    def format(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def __str__(self) -> str:
        return self.format()


def valid(txt : str) -> bool:
    return SEMVER_RE.match(txt.strip()) is not None


def coerce_version(txt : str | None) -> SemVer | None:
    """ Pulls the first `x.y[.z]` out of free text such as 'Patch 1.13.2 (2019-08-26): Added.' """
    if not txt:
        return None
    m = COERCE_RE.search(txt)
    if m is None:
        return None
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3) or 0))


@dataclass(frozen=True)
class Comparator:
    # '' means exact match, same as '='
    operator : str
    semver : SemVer

    def test(self, version : SemVer) -> bool:
        match self.operator:
            case '' | '=':
                return version == self.semver
            case '<':
                return version < self.semver
            case '<=':
                return version <= self.semver
            case '>':
                return version > self.semver
            case '>=':
                return version >= self.semver
        raise VersionError(f"Unknown operator: {self.operator}")

    def format(self) -> str:
        return self.operator + self.semver.format()


# (version, inclusive), None for unbounded
Bound = Tuple[SemVer, bool] | None


def _interval(comparators : Tuple[Comparator, ...]) -> Tuple[Bound, Bound]:
    """
    Collapses an AND-set of comparators into its tightest [lower, upper] bounds.
    """
    lower : Bound = None
    upper : Bound = None
    for c in comparators:
        if c.operator in ('', '=', '>', '>='):
            bound = (c.semver, c.operator != '>')
            if lower is None or bound[0] > lower[0] or (bound[0] == lower[0] and not bound[1]):
                lower = bound
        if c.operator in ('', '=', '<', '<='):
            bound = (c.semver, c.operator != '<')
            if upper is None or bound[0] < upper[0] or (bound[0] == upper[0] and not bound[1]):
                upper = bound
    return lower, upper


def _is_empty(lower : Bound, upper : Bound) -> bool:
    if lower is None or upper is None:
        return False
    if lower[0] != upper[0]:
        return lower[0] > upper[0]
    return not (lower[1] and upper[1])


def _lower_within(inner : Bound, outer : Bound) -> bool:
    if outer is None:
        return True
    if inner is None:
        return False
    if inner[0] != outer[0]:
        return inner[0] > outer[0]
    return outer[1] or not inner[1]


def _upper_within(inner : Bound, outer : Bound) -> bool:
    if outer is None:
        return True
    if inner is None:
        return False
    if inner[0] != outer[0]:
        return inner[0] < outer[0]
    return outer[1] or not inner[1]


def _partial(txt : str) -> List[int | None]:
    m = PARTIAL_RE.match(txt)
    if m is None:
        raise VersionError(f"Invalid version in range: \"{txt}\"")
    parts = []
    for g in m.groups():
        if g is None or g in WILDCARDS:
            break
        parts.append(int(g))
    return parts + [None] * (3 - len(parts))


def _next_after(parts : List[int | None]) -> SemVer:
    """ The first version past a partial version, e.g. 1.2 -> 1.3.0 """
    major, minor, _ = parts
    if minor is None:
        return SemVer(major + 1, 0, 0)
    return SemVer(major, minor + 1, 0)


def _floor(parts : List[int | None]) -> SemVer:
    return SemVer(*(p or 0 for p in parts))


def _desugar(token : str) -> List[Comparator]:
    m = COMPARATOR_RE.match(token)
    operator, rest = m.group(1) or '', m.group(2)

    parts = _partial(rest)
    major, minor, patch = parts

    if major is None:
        # '*', 'x', '>=*' ...
        if operator in ('<', '>'):
            raise VersionError(f"Range matches nothing: \"{token}\"")
        return []

    if operator == '~':
        return [Comparator('>=', _floor(parts)), Comparator('<', _next_after([major, minor, None]))]
    if operator == '^':
        if major != 0 or minor is None:
            upper = SemVer(major + 1, 0, 0)
        elif minor != 0 or patch is None:
            upper = SemVer(0, minor + 1, 0)
        else:
            upper = SemVer(0, 0, patch + 1)
        return [Comparator('>=', _floor(parts)), Comparator('<', upper)]

    if patch is not None:
        return [Comparator(operator, SemVer(major, minor, patch))]

    # Partial versions
    match operator:
        case '' | '=':
            return [Comparator('>=', _floor(parts)), Comparator('<', _next_after(parts))]
        case '>':
            return [Comparator('>=', _next_after(parts))]
        case '>=':
            return [Comparator('>=', _floor(parts))]
        case '<':
            return [Comparator('<', _floor(parts))]
        case '<=':
            return [Comparator('<', _next_after(parts))]
    raise VersionError(f"Unknown operator in \"{token}\"")


def _parse_set(txt : str) -> Tuple[Comparator, ...]:
    txt = txt.strip()

    hyphen = HYPHEN_RE.match(txt)
    if hyphen is not None:
        low = _partial(hyphen.group(1))
        high = _partial(hyphen.group(2))
        comparators = []
        if low[0] is not None:
            comparators.append(Comparator('>=', _floor(low)))
        if high[0] is not None:
            comparators.append(Comparator('<=', _floor(high)) if high[2] is not None else Comparator('<', _next_after(high)))
        return tuple(comparators)

    # '>= 1.0.0' -> '>=1.0.0'
    txt = re.sub(r'(<=|>=|<|>|=|~|\^)\s+', r'\1', txt)

    comparators = []
    for token in txt.split():
        comparators.extend(_desugar(token))
    return tuple(comparators)


@dataclass(frozen=True)
class Range:
    """
    A disjunction (||) of comparator sets, each set being a conjunction.
    A set without comparators accepts every version.
    """
    sets : Tuple[Tuple[Comparator, ...], ...]

    @classmethod
    def From_str(cls, txt : str) -> 'Range':
        return Range(tuple(_parse_set(part) for part in txt.split('||')))

    def test(self, version : SemVer) -> bool:
        return any(
            all(c.test(version) for c in comparators)
            for comparators in self.sets
        )

    def is_any(self) -> bool:
        return any(len(comparators) == 0 for comparators in self.sets)

    def subset(self, other : 'Range') -> bool:
        """
        True if every version accepted by self is accepted by other.

        Each comparator set is an interval, so this checks that every interval of
        self fits in one interval of other. An interval covered only by the union
        of several intervals of other is reported as not a subset.
        """
        if other.is_any():
            return True

        outer = [_interval(comparators) for comparators in other.sets]
        for comparators in self.sets:
            lower, upper = _interval(comparators)
            if _is_empty(lower, upper):
                continue
            if not any(
                _lower_within(lower, o_lower) and _upper_within(upper, o_upper)
                for o_lower, o_upper in outer
            ):
                return False
        return True

    def format(self) -> str:
        if self.is_any():
            return ''
        return '||'.join(
            ' '.join(c.format() for c in comparators)
            for comparators in self.sets
        )

    def __str__(self) -> str:
        return self.format()


VersionOrRange = SemVer | Range


def parse_version(txt : str) -> VersionOrRange:
    """
    Reads the persisted form of a version: a point version when the text is a
    valid one, a range otherwise.
    """
    if valid(txt):
        return SemVer.From_str(txt)
    return Range.From_str(txt)


def format_version(version : VersionOrRange) -> str:
    return version.format()


def version_test(version : VersionOrRange, target : SemVer) -> bool:
    match version:
        case SemVer():
            return version == target
        case Range():
            return version.test(target)
    raise TypeError(f"Not a version: {version!r}")


def extend_version(left : VersionOrRange, right : VersionOrRange) -> Range:
    """
    Widens left so that it also covers right.

    Two ranges where neither holds the other are joined with '||', the result
    is not guaranteed to be the smallest equivalent range.
    """
    match (left, right):
        case (SemVer(), SemVer()):
            return Range.From_str(f"{left.format()} || {right.format()}")
        case (Range(), SemVer()):
            if left.test(right):
                return left
            return Range.From_str(f"{left.format()} || {right.format()}")
        case (SemVer(), Range()):
            if right.test(left):
                return right
            return Range.From_str(f"{left.format()} || {right.format()}")
        case (Range(), Range()):
            if left.subset(right):
                return right
            if right.subset(left):
                return left
            return Range.From_str(f"{left.format()} || {right.format()}")
    raise TypeError(f"Cannot extend {left!r} with {right!r}")
