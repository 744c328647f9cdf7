#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from epubweave.env import load_reader_options, log_level, parse_link_matching
from epubweave.epub import read_epub_file
from epubweave.errors import ConfigError, EpubReadError
from epubweave.media import MediaBag
from epubweave.models import document_to_dict


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Merge the spine of an EPUB into one JSON document tree."
    )
    parser.add_argument("input", help="Input EPUB file path")
    parser.add_argument("-o", "--output", help="Output JSON file path")
    parser.add_argument("--media-dir", help="Directory to extract referenced images into")
    parser.add_argument(
        "--link-matching",
        choices=["boundary", "prefix"],
        help="How links into other chapters are recognised",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log each chapter")
    return parser.parse_args(argv)


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else log_level(),
        format="%(levelname)s %(name)s: %(message)s",
    )
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Input file not found: {input_path}", file=sys.stderr)
        return 1

    try:
        options = load_reader_options()
        if args.link_matching:
            options = replace(options, link_matching=parse_link_matching(args.link_matching))
    except ConfigError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1

    media = MediaBag()
    try:
        document = read_epub_file(input_path, options, media)
    except EpubReadError as exc:
        print(f"Failed to read {input_path}: {exc}", file=sys.stderr)
        return 1

    output_path = Path(args.output) if args.output else input_path.with_suffix(".json")
    output_path.write_text(
        json.dumps(document_to_dict(document), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    print(f"Document saved to: {output_path}")
    if args.media_dir:
        written = media.write_to(args.media_dir)
        print(f"Extracted {len(written)} media files to: {args.media_dir}")
    return 0


def cli() -> int:
    return main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
