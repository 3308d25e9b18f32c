import argparse
import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

from sheetmatch.errors import SheetMatchError
from sheetmatch.models import ImportRequest, SourceFile
from sheetmatch_service.backend.process import DEFAULT_ANALYSIS_PROFILE, analyze_file, build_importer


def parse_sheet_pins(pins: List[str]) -> Dict[str, str]:
    """``["t1=Hoja 1", ...]`` -> ``{"t1": "Hoja 1"}``; malformed items are reported and skipped."""
    out: Dict[str, str] = {}
    for raw in pins:
        table_id, sep, sheet = raw.partition("=")
        if not sep or not table_id.strip() or not sheet.strip():
            print(f"[warn] ignoring sheet pin: {raw}", file=sys.stderr)
            continue
        out[table_id.strip()] = sheet.strip()
    return out


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sheetmatch",
        description="Map spreadsheet/CSV exports onto target tables.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Score every sheet against the known template tables.")
    analyze.add_argument("file", help="CSV/XLSX/XLS file.")
    analyze.add_argument(
        "--profile",
        default=DEFAULT_ANALYSIS_PROFILE,
        help="Template profile to analyse against.",
    )

    imp = sub.add_parser("import", help="Import a file into one or more target tables.")
    imp.add_argument("file", help="CSV/XLSX/XLS file.")
    imp.add_argument("--tables", nargs="+", required=True, help="Target table ids.")
    imp.add_argument("--preview", action="store_true", help="Show mappings and sample rows without writing.")
    imp.add_argument(
        "--sheet",
        action="append",
        default=[],
        metavar="TABLE=SHEET",
        help="Pin a sheet for a table (repeatable).",
    )
    imp.add_argument("--schema", default=None, help="Schema YAML (default: SHEETMATCH_SCHEMA_PATH).")
    imp.add_argument("--db", default=None, help="SQLite file (default: SHEETMATCH_DB_PATH).")
    imp.add_argument("--bucket", default=None, help="Record rows under this storage bucket.")
    imp.add_argument("--path", default=None, help="Record rows under this storage path (enables re-import overwrite).")

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development).")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.command == "serve":
        import uvicorn

        uvicorn.run("sheetmatch_service.api:app", host=args.host, port=args.port, reload=args.reload)
        return 0

    path = Path(args.file).expanduser()
    if not path.is_file():
        print(f"[error] input not found: {args.file}", file=sys.stderr)
        return 1

    try:
        if args.command == "analyze":
            result = analyze_file(str(path), profile=args.profile)
            print(json.dumps(result, ensure_ascii=False, indent=2))
            return 0

        importer = build_importer(schema_path=args.schema, db_path=args.db)
        request = ImportRequest(
            table_ids=args.tables,
            file=SourceFile(filename=path.name, content=path.read_bytes()),
            existing_bucket=args.bucket,
            existing_path=args.path,
            existing_file_name=path.name if args.path else None,
            sheet_assignments=parse_sheet_pins(args.sheet),
            preview=args.preview,
        )
        response = importer.run(request)
    except SheetMatchError as e:
        print(f"[error] {e}", file=sys.stderr)
        return 1

    print(json.dumps(response.model_dump(mode="json"), ensure_ascii=False, indent=2))
    return 0 if response.ok else 2


if __name__ == "__main__":
    raise SystemExit(main())
