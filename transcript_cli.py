#!/usr/bin/env python3
"""
Command-line access to transcripts.

  python transcript_cli.py list VIDEO_ID
  python transcript_cli.py fetch VIDEO_ID --languages de en --format json
  python transcript_cli.py info VIDEO_ID
"""

import argparse
import json
import sys
from typing import List, Optional

from logging_setup import configure_logging
from timedtext_parser import LINK_TEMPLATES
from transcript_config import get_config
from transcript_errors import CookieError, InvalidProxyConfig, TranscriptError
from transcript_service import TranscriptService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="List and fetch YouTube transcripts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python transcript_cli.py list dQw4w9WgXcQ
  python transcript_cli.py fetch dQw4w9WgXcQ --languages de en
  python transcript_cli.py fetch dQw4w9WgXcQ --translate fr --format json
        """
    )
    parser.add_argument("--cookies", metavar="COOKIES_FILE", help="Netscape cookies.txt to send with requests")

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List available transcripts")
    list_parser.add_argument("video_id")

    fetch_parser = subparsers.add_parser("fetch", help="Fetch one transcript")
    fetch_parser.add_argument("video_id")
    fetch_parser.add_argument("--languages", nargs="+", metavar="CODE",
                              help="Preferred language codes, most preferred first")
    fetch_parser.add_argument("--translate", metavar="CODE", help="Translate the transcript into this language")
    fetch_parser.add_argument("--preserve-formatting", action="store_true", default=None,
                              help="Keep inline formatting tags and line breaks (default from config)")
    fetch_parser.add_argument("--link-format", choices=sorted(LINK_TEMPLATES), default=None,
                              help="How links are rendered when formatting is preserved (default from config)")
    fetch_parser.add_argument("--format", choices=("text", "json"), default="text", dest="output_format")

    info_parser = subparsers.add_parser("info", help="Show video details and available transcripts")
    info_parser.add_argument("video_id")

    return parser


def _run(args, service: TranscriptService) -> str:
    if args.command == "list":
        return str(service.list_transcripts(args.video_id))

    if args.command == "info":
        return json.dumps(service.fetch_video_infos(args.video_id).to_dict(), indent=2, ensure_ascii=False)

    fetched = service.fetch_transcript(
        args.video_id,
        languages=args.languages,
        preserve_formatting=args.preserve_formatting,
        link_template=args.link_format,
        translate_to=args.translate,
    )

    if args.output_format == "json":
        return json.dumps(fetched.to_dict(), indent=2, ensure_ascii=False)
    return fetched.text()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = get_config()
    configure_logging(log_level=config.log_level, use_json=config.log_json)

    try:
        service = TranscriptService(config=config, cookie_path=args.cookies)
        print(_run(args, service))
    except (TranscriptError, CookieError, InvalidProxyConfig) as e:
        print(str(e), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
