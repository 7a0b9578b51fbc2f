"""
A tool for pulling the function and event documentation out of the
World of Warcraft API pages of the community wiki.

Wiki url: https://warcraft.wiki.gg/wiki/World_of_Warcraft_API

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
import time
import random
import logging
from typing import *
from dataclasses import dataclass, field

import requests
from bs4 import BeautifulSoup, Tag

from wowdecl.api import API, APIFunction, APIEvent, VariableSignature, ListItemDescription
from wowdecl.version import SemVer, Range, coerce_version
from wowdecl.naming import camel_case, pascal_case


logger = logging.getLogger(__name__)

WIKI_ORIGIN = "https://warcraft.wiki.gg"
INDEX_PAGES = ["/wiki/World_of_Warcraft_API", "/wiki/Events"]

# Cloudflare answers with a splash page instead of the content when it
# thinks we are a bot
BLOCKED_MARKERS = ("Sorry, you have been blocked", "challenge-error-text")

EVENT_NAME_RE = re.compile(r'([A-Z_]+)(.*)', re.S)


class BlockedError(Exception):
    pass


class PageFormatError(Exception):
    pass


@dataclass(frozen=True)
class PageOverride:
    """ Selectors for pages that do not follow the usual layout """
    title_selector : str
    title_format : Callable[[str], str]
    description_selector : str
    description_format : Callable[[str], str]


OVERRIDES = {
    # CloseAllBags redirects to OpenAllBags where it and two other functions are
    # listed in a bullet list
    "CloseAllBags": PageOverride(
        ".mw-parser-output > ul:first-of-type > li:nth-child(2)",
        lambda txt: txt.split("()")[0],
        ":scope > ul:first-of-type > li:nth-child(2)",
        lambda txt: " ".join(txt.split(" ")[1:]),
    ),
}


def is_blocked_notice(content : str) -> bool:
    return any(marker in content for marker in BLOCKED_MARKERS)


def split_namespace(title : str) -> Tuple[str | None, str]:
    """
    'C_Map.GetBestMapForUnit' -> ('C_Map', 'GetBestMapForUnit')
    'GetTime' -> (None, 'GetTime'), the entity picks the default namespace
    """
    title = title.removeprefix("API ").strip()
    ns, _, name = title.partition(".")
    if not name:
        return None, ns
    return ns, name


def parse_variable(name_txt : str, details_txt : str) -> VariableSignature:
    """
    Reads a <dt>/<dd> pair of an argument list, ex:
        <dt>unitToken</dt><dd>string? - The unit to query</dd>
    """
    name = camel_case(name_txt.strip())
    if not name:
        raise PageFormatError("Failed to extract variable name")

    type_txt, _, description = details_txt.strip().partition(" - ")
    t, question, _ = type_txt.partition("?")

    return VariableSignature(
        name,
        t.strip(),
        question == "?",
        description.strip(),
    )


def extract_semantic_range(since : str | None, until : str | None) -> Range:
    """
    Builds the range a page is valid for from its 'Patch changes' entries,
    ex: 'Patch 1.13.2 (2019-08-26): Added.' and 'Patch 8.0.1: Removed.'
    """
    lower = coerce_version(since)
    upper = coerce_version(until)

    comparators = []
    if lower is not None:
        comparators.append(f">={lower.format()}")
    if upper is not None:
        comparators.append(f"<{upper.format()}")
    return Range.From_str(" ".join(comparators))


@dataclass
class WikiRecord:
    """ What one wiki page documents, before it gets a version """
    name : str
    ns : str | None
    description : str

    parameters : List[VariableSignature] = field(default_factory=list)
    returns : List[VariableSignature] = field(default_factory=list)
    payload : List[VariableSignature] = field(default_factory=list)
    events : List[ListItemDescription] = field(default_factory=list)
    patchChanges : List[str] = field(default_factory=list)

    def available_range(self) -> Range:
        since = next((t for t in self.patchChanges if re.search("added", t, re.I)), None)
        until = next((t for t in self.patchChanges if re.search("removed", t, re.I)), None)
        return extract_semantic_range(since, until)

    def to_function(self, version : SemVer) -> APIFunction:
        return APIFunction(
            self.name,
            version,
            self.ns,
            self.description,
            self.parameters,
            self.returns,
            self.events,
        )

    def to_event(self, version : SemVer) -> APIEvent:
        return APIEvent(
            pascal_case(self.name),
            self.name,
            version,
            self.ns,
            self.description,
            self.payload or self.parameters,
        )


def _section(body : Tag, section_id : str) -> Tag | None:
    """ The top level heading of a section, old (span id) and new (h2 id) markup alike """
    anchor = body.find(id=section_id)
    if anchor is None:
        return None
    node = anchor
    while node.parent is not None and node.parent is not body:
        node = node.parent
    return node if node.parent is body else None


def _is_heading(tag : Tag) -> bool:
    return tag.name in ("h2", "h3") or "mw-heading" in (tag.get("class") or [])


def _section_sibling(body : Tag, section_id : str, name : str) -> Tag | None:
    heading = _section(body, section_id)
    if heading is None:
        return None
    for sibling in heading.find_next_siblings():
        if _is_heading(sibling):
            return None
        if sibling.name == name:
            return sibling
    return None


def _variables(body : Tag, section_id : str) -> List[VariableSignature]:
    dl = _section_sibling(body, section_id, "dl")
    if dl is None:
        return []

    out = []
    for inner in dl.select(":scope > dd > dl"):
        names = inner.find_all("dt", recursive=False)
        details = inner.find_all("dd", recursive=False)
        for dt, dd in zip(names, details):
            out.append(parse_variable(dt.get_text(), dd.get_text()))
    return out


def _list_items(body : Tag, section_id : str) -> List[str]:
    ul = _section_sibling(body, section_id, "ul")
    if ul is None:
        return []
    return [li.get_text().strip() for li in ul.find_all("li", recursive=False)]


def _event_triggers(body : Tag) -> List[ListItemDescription]:
    out = []
    for txt in _list_items(body, "Triggers_events"):
        m = EVENT_NAME_RE.match(txt)
        if m is None or not m.group(1).strip("_"):
            continue
        out.append(ListItemDescription(m.group(1), m.group(2).strip(" -:\n")))
    return out


def parse_page(html : str, resource : str = "") -> WikiRecord:
    soup = BeautifulSoup(html, "html.parser")

    override = next((o for key, o in OVERRIDES.items() if key in resource), None)

    title_tag = soup.select_one(override.title_selector if override else "h1")
    body = soup.select_one("#mw-content-text > .mw-parser-output")
    if title_tag is None or body is None:
        raise PageFormatError(f"Cannot find the title or body of {resource}")

    title = title_tag.get_text().strip()
    if override:
        title = override.title_format(title).strip()

    description_tag = body.select_one(override.description_selector if override else ":scope > p")
    description = description_tag.get_text().strip() if description_tag is not None else ""
    if override and description:
        description = override.description_format(description).strip()

    if not title or not description:
        raise PageFormatError(f"Page {resource} needs special handling")

    ns, name = split_namespace(title)

    return WikiRecord(
        name,
        ns,
        description,
        _variables(body, "Arguments"),
        _variables(body, "Returns"),
        _variables(body, "Payload"),
        _event_triggers(body),
        _list_items(body, "Patch_changes"),
    )


def extract_index_links(html : str) -> List[str]:
    """
    The first link of every definition following the headings of an index page,
    effectively the link of every function/event.
    """
    soup = BeautifulSoup(html, "html.parser")
    links = []
    for dd in soup.select("#mw-content-text > .mw-parser-output > dl > dd"):
        a = dd.find("a", recursive=False)
        if a is None:
            continue
        href = a.get("href")
        if not href or not href.startswith("/"):
            continue
        links.append(href.split("#")[0])
    return links


class WikiScraper:
    cache_dir : str
    origin : str
    max_attempts : int

    def __init__(self, cache_dir : str, origin : str = WIKI_ORIGIN,
                 session : requests.Session | None = None, max_attempts : int = 10):
        self.cache_dir = cache_dir
        self.origin = origin.rstrip("/")
        self.max_attempts = max_attempts

        self.session = session if session is not None else requests.Session()
        self.session.headers.setdefault("User-Agent", "wowdecl (+https://github.com/Gethe/wow-ui-source)")

    def page_path(self, resource : str) -> str:
        return os.path.join(self.cache_dir, resource.lstrip("/") + ".html")

    def list_pages(self) -> List[str]:
        wiki_dir = os.path.join(self.cache_dir, "wiki")
        if not os.path.isdir(wiki_dir):
            return []
        pages = sorted(
            "/" + os.path.relpath(os.path.join(root, p), self.cache_dir).replace(os.sep, "/").removesuffix(".html")
            for root, _, files in os.walk(wiki_dir)
            for p in files if p.endswith(".html")
        )
        return [p for p in pages if p not in INDEX_PAGES]

    def fetch(self, resource : str) -> str:
        path = self.page_path(resource)

        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                html = f.read()
            if not is_blocked_notice(html):
                return html
            # A splash page made it into the cache
            os.remove(path)

        logger.info(f"Visiting {self.origin}{resource}")
        resp = self.session.get(self.origin + resource, timeout=30)
        html = resp.text
        if is_blocked_notice(html):
            raise BlockedError(f"Blocked while fetching {resource}")
        resp.raise_for_status()

        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(html)
        print(f"Stored: {path}")
        return html

    def visit_page(self, resource : str) -> str:
        for _ in range(self.max_attempts):
            try:
                return self.fetch(resource)
            except BlockedError:
                time.sleep(1 + random.random() * 5)
        raise BlockedError(f"Still blocked after {self.max_attempts} attempts: {resource}")

    def download_pages(self) -> List[str]:
        subpages = []
        for entry in INDEX_PAGES:
            links = extract_index_links(self.visit_page(entry))
            for link in links:
                logger.debug(f"Found {link}")
            subpages.extend(links)

        for subpage in subpages:
            self.visit_page(subpage)

        print("Page download completed!")
        return subpages

    def scrape(self, version : SemVer, force_download : bool = False) -> API:
        """
        Reads every cached page (downloading them first if there are none) into
        an API tagged with version. Pages whose patch notes place them outside
        of version are left out.
        """
        if force_download or not self.list_pages():
            self.download_pages()

        api = API()
        for page in self.list_pages():
            try:
                record = parse_page(self.visit_page(page), page)
            except PageFormatError as e:
                logger.warning(f"{e}. Intervention required!")
                continue

            if not record.available_range().test(version):
                logger.debug(f"Skipped {page}, not available in {version}")
                continue

            if "wiki/API" in page:
                api.add_function(record.to_function(version))
            else:
                api.add_event(record.to_event(version))

        print("Scraping completed")
        return api
