"""
tactile-code command line

    tactile-code scan FILE
    tactile-code search FILE QUERY
    tactile-code braille FILE [--grade grade1]
    tactile-code serve
"""

import argparse
import json
import sys
from pathlib import Path

from loguru import logger

from .braille import transliterate, wrap_braille
from .config import configure_logging, settings
from .navigator import build_index, search_elements
from .scanner import scan
from .settings import CoreSettings


def _read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _print_json(data):
    print(json.dumps(data, indent=2, ensure_ascii=False))


def cmd_scan(args) -> int:
    elements = scan(_read_source(args.file))
    if args.sort or args.kinds or args.group or args.query:
        core = CoreSettings.from_mapping({
            "sortBy": args.sort or "line",
            "sortOrder": "desc" if args.desc else "asc",
            "filterKinds": args.kinds.split(",") if args.kinds else [],
            "groupByType": args.group,
        })
        elements = build_index(elements, core, args.query)
    _print_json([e.to_dict() for e in elements])
    return 0


def cmd_search(args) -> int:
    results = search_elements(scan(_read_source(args.file)), args.query, args.limit)
    _print_json([r.to_dict() for r in results])
    return 0


def cmd_braille(args) -> int:
    core = CoreSettings.from_mapping({
        "grade": args.grade,
        "showLineNumbers": not args.no_line_numbers,
        "computerBraille": not args.no_computer_braille,
        "cellsPerLine": args.cells,
    })
    braille, stats = transliterate(_read_source(args.file), core)
    print(wrap_braille(braille, core.cells_per_line) if args.wrap else braille)
    if args.stats:
        _print_json(stats.to_dict())
    return 0


def cmd_serve(args) -> int:
    import uvicorn

    logger.info(f"Serving tactile-code API on {args.host}:{args.port}")
    uvicorn.run("tactile_code.api:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tactile-code",
        description="Structural navigation, audio cues and braille for source code",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s scan app.js --kinds function,class --sort name
  %(prog)s search app.js handler
  %(prog)s braille app.js --grade grade1 --stats
  cat app.js | %(prog)s braille -
        """
    )
    parser.add_argument("--log-level", default=None, help="Override TACTILE_CODE_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser("scan", help="List structural elements")
    scan_parser.add_argument("file", help="Source file, or - for stdin")
    scan_parser.add_argument("--kinds", help="Comma-separated kinds to keep")
    scan_parser.add_argument("--sort", choices=["name", "line", "complexity", "type"])
    scan_parser.add_argument("--desc", action="store_true", help="Descending order")
    scan_parser.add_argument("--group", action="store_true", help="Group by kind")
    scan_parser.add_argument("--query", help="Filter on name or description")
    scan_parser.set_defaults(func=cmd_scan)

    search_parser = subparsers.add_parser("search", help="Ranked element search")
    search_parser.add_argument("file", help="Source file, or - for stdin")
    search_parser.add_argument("query")
    search_parser.add_argument("--limit", type=int, default=settings.search_result_limit)
    search_parser.set_defaults(func=cmd_search)

    braille_parser = subparsers.add_parser("braille", help="Transliterate to braille")
    braille_parser.add_argument("file", help="Source file, or - for stdin")
    braille_parser.add_argument("--grade", choices=["grade1", "grade2"], default="grade2")
    braille_parser.add_argument("--cells", type=int, default=40, help="Cells per display line (default: 40)")
    braille_parser.add_argument("--wrap", action="store_true", help="Wrap output at --cells")
    braille_parser.add_argument("--no-line-numbers", action="store_true")
    braille_parser.add_argument("--no-computer-braille", action="store_true")
    braille_parser.add_argument("--stats", action="store_true", help="Print statistics as JSON")
    braille_parser.set_defaults(func=cmd_braille)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=settings.host)
    serve_parser.add_argument("--port", type=int, default=settings.port)
    serve_parser.add_argument("--reload", action="store_true")
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    try:
        return args.func(args)
    except OSError as e:
        logger.error(f"Cannot read {getattr(args, 'file', '')}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
