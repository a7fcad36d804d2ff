#!/usr/bin/env python3
"""
Command line tools for MMR workbooks.

    mmr-processor parse <file> [--output json]
    mmr-processor analyze <file>
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from openpyxl.utils import get_column_letter

from mmr_processor.config.config_manager import ConfigManager
from mmr_processor.exceptions import WorkbookLoadError
from mmr_processor.models.report_models import ParseResult
from mmr_processor.processors.mmr_processor import MMRProcessor
from mmr_processor.processors.value_parsers import is_blank
from mmr_processor.processors.workbook_loader import Sheet, load_workbook

ANALYZE_ROWS = 10
ANALYZE_COLS = 5
KEY_PATTERNS = [
    'project', 'month', 'budget', 'expenditure', 'progress',
    'annexure', 'summary', 'manpower', 'equipment', 'material'
]


def output_path_for(file_path: str) -> str:
    """<name>_parsed.json next to the input workbook"""
    path = Path(file_path)
    return str(path.with_name(f"{path.stem}_parsed.json"))


def print_result(result: ParseResult) -> None:
    if result.success and result.data:
        report = result.data
        summary = report.annexures.summary
        print("✅ File parsed successfully")
        print(f"📊 Confidence: {result.confidence}%\n")
        print("📋 Summary:")
        print(f"  Project: {summary.project_name if summary else 'Unknown'} ({report.project_id})")
        print(f"  Period: {report.month} {report.year}")
        print(f"  Physical Progress: {report.summary.physical_progress}%")
        print(f"  Financial Progress: {report.summary.financial_progress}%")
        print(f"  Annexures: {', '.join(a.value for a in report.annexures.present_types())}\n")
        print("✅ Validation passed" if not result.errors else "⚠️ Validation issues found")
    else:
        print("❌ Failed to parse file")

    if result.errors:
        print("\n❌ Errors:")
        for error in result.errors:
            location = f" ({error.cell})" if error.cell else ""
            print(f"  - [{error.annexure}] {error.message}{location} [{error.severity.value}]")

    if result.warnings:
        print("\n⚠️ Warnings:")
        for warning in result.warnings:
            print(f"  - [{warning.annexure}] {warning.message}")
            if warning.suggestion:
                print(f"    💡 {warning.suggestion}")


def parse_command(args: argparse.Namespace) -> int:
    config = ConfigManager(args.config).get_config()
    processor = MMRProcessor(config)
    result = processor.parse_file(args.file, file_name=os.path.basename(args.file))

    if args.output == 'json':
        print(json.dumps(result.to_json_dict(), indent=2, ensure_ascii=False))
    else:
        print(f"\nParsing MMR file: {args.file}\n")
        print_result(result)

    if result.success and result.data:
        output_path = output_path_for(args.file)
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(result.data.model_dump(mode='json'), f, indent=2, ensure_ascii=False)
        if args.output != 'json':
            print(f"\n💾 Parsed data saved to: {output_path}")
        return 0
    return 1


def print_config_summary(summary: dict) -> None:
    print("⚙️ Configuration:")
    print(f"   Classifier profile: {summary['active_profile'] or 'default'} "
          f"({summary['name_patterns']} name patterns)")
    window = summary['search_window']
    print(f"   Search window: {window['max_rows']} rows x {window['max_cols']} columns")


def print_preview(sheet: Sheet) -> None:
    """Top-left corner of the sheet, blank cells omitted"""
    frame = sheet.to_dataframe(max_rows=ANALYZE_ROWS).iloc[:, :ANALYZE_COLS]
    frame = frame.astype(object).where(frame.notna(), None)
    print("   First few cells:")
    for row, values in frame.iterrows():
        cells = [
            f"{get_column_letter(col)}{row}: {str(value).strip()[:20]}"
            for col, value in values.items()
            if not is_blank(value)
        ]
        if cells:
            print(f"   Row {row}: {' | '.join(cells)}")


def analyze_command(args: argparse.Namespace) -> int:
    config_manager = ConfigManager(args.config)
    processor = MMRProcessor(config_manager.get_config())
    workbook = load_workbook(args.file)

    print(f"\n📊 Analyzing: {os.path.basename(args.file)}")
    print("=" * 50)
    print_config_summary(config_manager.get_config_summary())
    print(f"📋 Sheets found: {len(workbook)}")

    for index, sheet in enumerate(workbook, start=1):
        entry = processor.inventory_entry(sheet)
        print(f"\n📄 Sheet {index}: \"{sheet.name}\" -> {entry.annexure.value}")
        print(f"   Rows: {sheet.max_row}, Columns: {sheet.max_column}")
        print_preview(sheet)

        found = {}
        for row, col, value in sheet.iter_cells():
            text = str(value).lower()
            for pattern in KEY_PATTERNS:
                if pattern not in found and pattern in text:
                    found[pattern] = f"{get_column_letter(col)}{row}"
        if found:
            print("\n   Key patterns found:")
            for pattern in KEY_PATTERNS:
                if pattern in found:
                    print(f"   ✓ \"{pattern}\" found at {found[pattern]}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='mmr-processor', description='MMR workbook tools')
    parser.add_argument('--config', type=str, default=None, help='Path to the configuration file')
    parser.add_argument('--verbose', action='store_true', help='Show processor log output')
    subparsers = parser.add_subparsers(dest='command', required=True)

    parse_parser = subparsers.add_parser('parse', help='Parse a workbook and save the normalized report')
    parse_parser.add_argument('file', help='Path to the MMR workbook')
    parse_parser.add_argument('--output', choices=['text', 'json'], default='text',
                              help='Print a readable summary or the full JSON result')
    parse_parser.set_defaults(func=parse_command)

    analyze_parser = subparsers.add_parser('analyze', help='Describe sheets and their classification')
    analyze_parser.add_argument('file', help='Path to the MMR workbook')
    analyze_parser.set_defaults(func=analyze_command)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if not os.path.exists(args.file):
        print(f"❌ Error: File not found - {args.file}")
        return 1

    try:
        return args.func(args)
    except WorkbookLoadError as e:
        print(f"❌ Error reading workbook: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
