"""
Command line entry point.

usage: python -m wowdecl [-v] [mode] [operands]

    scrape-wiki VERSION             Scrape warcraft.wiki.gg into .tmp/wiki-VERSION.json
    scrape-ui-source REF VERSION    Scrape a wow-ui-source branch/tag into .tmp/ui-source-REF.json
    merge [VERSION ...]             Merge every scrape into .tmp/merged-VERSION.json
    emit                            Emit declarations for every merged-VERSION.json
    clear-cache                     Remove the downloaded pages and archives

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
import logging
import argparse
from typing import *

from wowdecl.api import API, APIBuilder
from wowdecl.version import SemVer
from wowdecl.storage import ensure_storage_dir, clear_storage_dir, cache_path
from wowdecl.uiSource import UI_SOURCE_REMOTE, download_ui_source, scrape_directory
from wowdecl.wikiMiner import WIKI_ORIGIN, WikiScraper, BlockedError
from wowdecl.declEmitter import emit_declarations


MERGED_RE = re.compile(r'^merged-(\d+\.\d+\.\d+)\.json$')


def save(api : API, out_dir : str, file_name : str) -> str:
    os.makedirs(out_dir, exist_ok=True)
    output = os.path.join(out_dir, file_name)
    with open(output, "w", encoding="utf-8") as f:
        f.write(api.serialize())
    print(f"Saved results to {output}")
    return output


def load(path : str) -> API:
    with open(path, "r", encoding="utf-8") as f:
        return API.From_json(f.read())


def scrape_wiki(args : argparse.Namespace):
    version = SemVer.From_str(args.version)
    scraper = WikiScraper(cache_path("wiki", args.cache_dir), args.origin)
    api = scraper.scrape(version, args.force_download)
    save(api, args.out_dir, f"wiki-{version}.json")


def scrape_ui_source(args : argparse.Namespace):
    version = SemVer.From_str(args.version)
    doc_dir = download_ui_source(args.ref, cache_path("ui-source", args.cache_dir), args.remote)
    api = scrape_directory(doc_dir, version)
    save(api, args.out_dir, f"ui-source-{args.ref.replace('/', '_')}.json")


def merge(args : argparse.Namespace):
    versions = [SemVer.From_str(v) for v in args.versions]

    files = sorted(
        f for f in os.listdir(args.in_dir)
        if f.endswith(".json") and not f.startswith("merged")
    )
    if not files:
        print(f"ERROR: no scrapes found in {args.in_dir}")
        exit(1)

    builder = APIBuilder()
    for file in files:
        logging.info(f"Loading {file}")
        builder.add(load(os.path.join(args.in_dir, file)))
    api = builder.merge()

    out_dir = args.out_dir or args.in_dir
    if not versions:
        save(api, out_dir, "merged.json")
        return
    for version in versions:
        save(api.filter_for_version(version), out_dir, f"merged-{version}.json")


def emit(args : argparse.Namespace):
    found = sorted(
        (m.group(1), m.group(0))
        for m in map(MERGED_RE.match, os.listdir(args.in_dir)) if m is not None
    )
    if not found:
        print(f"ERROR: no merged-VERSION.json in {args.in_dir}, run merge with versions first")
        exit(1)

    for version, file in found:
        api = load(os.path.join(args.in_dir, file))
        emit_declarations(api, [SemVer.From_str(version)], args.out_dir)


def clear_cache(args : argparse.Namespace):
    path = ensure_storage_dir(args.cache_dir)
    clear_storage_dir(path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wowdecl", description="World of Warcraft API declaration generator")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="mode", required=True)

    p = sub.add_parser("scrape-wiki", help="Scrape warcraft.wiki.gg")
    p.add_argument("version", help="Version the scraped entities are tagged with, ex: 11.0.2")
    p.add_argument("--cache-dir", default=None, help="Overrides the cache directory")
    p.add_argument("--out-dir", default=".tmp")
    p.add_argument("--origin", default=WIKI_ORIGIN)
    p.add_argument("--force-download", action="store_true", help="Download the pages even if cached")
    p.set_defaults(func=scrape_wiki)

    p = sub.add_parser("scrape-ui-source", help="Scrape the generated documentation of wow-ui-source")
    p.add_argument("ref", help="Branch or tag, ex: live")
    p.add_argument("version", help="Version the scraped entities are tagged with")
    p.add_argument("--remote", default=UI_SOURCE_REMOTE)
    p.add_argument("--cache-dir", default=None, help="Overrides the cache directory")
    p.add_argument("--out-dir", default=".tmp")
    p.set_defaults(func=scrape_ui_source)

    p = sub.add_parser("merge", help="Merge every scrape of the input directory")
    p.add_argument("versions", nargs="*", help="Versions to write a filtered merge for")
    p.add_argument("--in-dir", default=".tmp")
    p.add_argument("--out-dir", default=None, help="Defaults to the input directory")
    p.set_defaults(func=merge)

    p = sub.add_parser("emit", help="Emit TypeScript declarations")
    p.add_argument("--in-dir", default=".tmp")
    p.add_argument("--out-dir", default="dist")
    p.set_defaults(func=emit)

    p = sub.add_parser("clear-cache", help="Remove everything in the cache directory")
    p.add_argument("--cache-dir", default=None, help="Overrides the cache directory")
    p.set_defaults(func=clear_cache)

    return parser


def main(argv : List[str] | None = None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        args.func(args)
    except (ValueError, OSError, RuntimeError, BlockedError) as e:
        # VersionError, APILoadError, LuaParseError are ValueErrors, network failures OSErrors
        print(f"ERROR: {e}")
        exit(1)


if __name__ == "__main__":
    main()
