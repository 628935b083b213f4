# ============================================================================
# src/medical_insight/cli.py
# ============================================================================
"""
Command-line entry point.

Usage:
    medical-insight analyze report.pdf
    medical-insight analyze labs.png --insight --json
    medical-insight analyze note.docx --db data/analyses.db
    medical-insight show <record_id> --db data/analyses.db
"""

import argparse
import asyncio
import json
import logging
import sys
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import logging_settings
from .core.document_pipeline import DocumentAnalysisPipeline
from .core.document_store import SQLiteAnalysisStore
from .utils.exceptions import AuthError, PipelineError, StoreError
from .utils.file_utils import load_document
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


def _print_analysis(output: Dict[str, Any]) -> None:
    analysis = output["analysis"]
    print(f"File:        {output['filename']}")
    print(f"Category:    {analysis['category']}")
    print(f"Tags:        {', '.join(analysis['tags']) or '-'}")
    print(f"Confidence:  {analysis['confidence']:.2f} ({output['strategy']})")

    for name, entities in analysis["entities"].items():
        if entities:
            print(f"  {name:<13} {', '.join(e['text'] for e in entities)}")

    report = output.get("insight")
    if report:
        print()
        print(f"Insight ({report['category']}, confidence {report['confidence']:.2f})")
        print(f"  {report['summary']}")
        for finding in report["keyFindings"]:
            print(f"  * {finding}")
        for recommendation in report["recommendations"]:
            print(f"  - {recommendation}")

    if output.get("record_id"):
        print(f"\nSaved as {output['record_id']}")


async def _request_insight(service, document, document_text: str):
    try:
        return await service.analyze_document(document, document_text=document_text)
    finally:
        await service.client.close()


def run_analyze(args: argparse.Namespace) -> int:
    path = Path(args.path)
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        return 2

    document = load_document(path, mime_type=args.mime_type)
    pipeline = DocumentAnalysisPipeline()

    try:
        result = pipeline.run(document)
    except PipelineError:
        print(f"{document.filename}: could not process this document", file=sys.stderr)
        return 1

    output: Dict[str, Any] = {
        "filename": document.filename,
        "strategy": result.strategy,
        "analysis": result.analysis.to_dict(),
    }

    store = SQLiteAnalysisStore(Path(args.db)) if args.db else None
    if store is not None:
        record_id = str(uuid.uuid4())
        try:
            store.save(record_id, result.analysis)
        except StoreError as e:
            print(f"Could not save analysis: {e}", file=sys.stderr)
            return 1
        output["record_id"] = record_id

    if args.insight:
        from .insight.service import InsightService

        try:
            outcome = asyncio.run(_request_insight(
                InsightService(store=store), document, result.analysis.extracted_text
            ))
        except AuthError as e:
            print(f"Insight unavailable: {e}", file=sys.stderr)
            return 1
        output["insight"] = outcome.report.to_dict()
        if outcome.record_id:
            output["insight_record_id"] = outcome.record_id

    if args.json:
        print(json.dumps(output, indent=2, ensure_ascii=False))
    else:
        _print_analysis(output)
    return 0


def run_show(args: argparse.Namespace) -> int:
    store = SQLiteAnalysisStore(Path(args.db))
    record = store.get(args.record_id)
    if record is None:
        print(f"Record not found: {args.record_id}", file=sys.stderr)
        return 1
    print(json.dumps(record, indent=2, ensure_ascii=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="medical-insight",
        description="Analyze medical documents and request insight reports"
    )
    parser.add_argument(
        "--log-level",
        default=logging_settings.LOG_LEVEL,
        help="Logging level (default: %(default)s)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Analyze a document")
    analyze.add_argument("path", help="Document to analyze")
    analyze.add_argument("--mime-type", help="Declared MIME type (guessed when omitted)")
    analyze.add_argument("--insight", action="store_true", help="Also request an insight report")
    analyze.add_argument("--db", help="Save results to this SQLite store")
    analyze.add_argument("--json", action="store_true", help="Print JSON output")
    analyze.set_defaults(func=run_analyze)

    show = subparsers.add_parser("show", help="Print a saved record")
    show.add_argument("record_id")
    show.add_argument("--db", required=True, help="SQLite store to read from")
    show.set_defaults(func=run_show)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(
        level=args.log_level,
        log_file=logging_settings.LOG_FILE,
        format_json=logging_settings.LOG_FORMAT_JSON,
        stream=sys.stderr
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
