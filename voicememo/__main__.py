#!/usr/bin/env python3
"""
Command line entry point.

  python -m voicememo serve [--host HOST] [--port PORT]
  python -m voicememo parse FILE [--model openai|claude] [--raw]
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from voicememo.config import get_config
from voicememo.llm_client import normalize_model_tag
from voicememo.utils.insight_parser import parse_insights
from voicememo.utils.markdown_normalizer import post_process_insights


def _configure_logging(level: str) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
    )


def _serve(args: argparse.Namespace) -> int:
    from voicememo.app import create_app
    from voicememo.app.sockets import socketio

    cfg = get_config()
    host = args.host or cfg.web.host
    port = args.port or cfg.web.port
    app = create_app(cfg)
    logger.info(f"Serving on http://{host}:{port}")
    socketio.run(app, host=host, port=port, debug=cfg.web.debug, allow_unsafe_werkzeug=True)
    return 0


def _parse(args: argparse.Namespace) -> int:
    path = Path(args.file)
    if not path.is_file():
        logger.error(f"File not found: {path}")
        return 1

    model = normalize_model_tag(args.model)
    insights = post_process_insights(path.read_text(encoding="utf-8"), model)
    if args.raw:
        print(insights)
    else:
        print(json.dumps(parse_insights(insights).dict(), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="voicememo", description="Voice memo transcription and insights")
    parser.add_argument("--log-level", type=str, default="INFO", help="Log level (default: INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP + Socket.IO server")
    serve.add_argument("--host", type=str, default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(func=_serve)

    parse = sub.add_parser("parse", help="Normalize and parse an insights markdown file")
    parse.add_argument("file", type=str, help="Path to a markdown file")
    parse.add_argument("--model", type=str, default="openai", help="Model tag that produced the file")
    parse.add_argument("--raw", action="store_true", help="Print normalized markdown instead of JSON")
    parse.set_defaults(func=_parse)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.log_level.upper())
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
