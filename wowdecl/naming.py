"""
Identifier case conversions shared by the scrapers and the emitter.

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


# 'flyoutID' -> ['flyout', 'ID'], 'UIParent' -> ['UI', 'Parent'], 'UNIT_AURA' -> ['UNIT', 'AURA']
WORD_RE = re.compile(r'[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|\d+')


def words(txt : str) -> List[str]:
    return WORD_RE.findall(txt)


def camel_case(txt : str) -> str:
    w = words(txt)
    if not w:
        return ""
    return w[0].lower() + "".join(x.capitalize() for x in w[1:])


def pascal_case(txt : str) -> str:
    return "".join(x.capitalize() for x in words(txt))


def kebab_case(txt : str) -> str:
    return "-".join(x.lower() for x in words(txt))
