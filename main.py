#!/usr/bin/env python3
"""
EDI Purchase Order Regenerator - Command Line Tool

Rewrites 850/875 purchase order files with new control numbers, header values,
selected PO1 lines and shifted dates.

Usage:
    python main.py order.edi                                   # Regenerate with fresh control numbers
    python main.py order.edi --sender-id NEWSEND --include 1 3 # Override ISA sender, keep PO1 lines 1 and 3
    python main.py a.edi b.edi c.edi --po-number PO900         # Bulk mode: PO900T1, PO900T2, PO900T3
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List

# Try importing from installed package first, fallback to src path
try:
    from batch_service import EdiBatchService
    from edi_errors import EdiProcessingError
except ImportError:
    # Add src to path for imports when not installed
    sys.path.insert(0, str(Path(__file__).parent / "src"))
    from batch_service import EdiBatchService
    from edi_errors import EdiProcessingError

HEADER_FLAGS = {
    "sender_qualifier": "sender_id_qualifier",
    "sender_id": "sender_id",
    "receiver_qualifier": "receiver_id_qualifier",
    "receiver_id": "receiver_id",
    "gs_sender_id": "gs_sender_id",
    "gs_receiver_id": "gs_receiver_id",
    "po_number": "purchase_order_number",
    "po_date": "purchase_date",
}


def parse_line_edits(values: List[str]) -> Dict[int, str]:
    """Turns ['2=PO1*2*5*EA...'] into {1: 'PO1*2*5*EA...'} (1-based on the command line)."""
    edits: Dict[int, str] = {}
    for value in values:
        number, sep, text = value.partition("=")
        if not sep or not number.strip().isdigit():
            raise argparse.ArgumentTypeError(f"Invalid --edit value '{value}', expected N=TEXT")
        edits[int(number) - 1] = text
    return edits


def regenerate_files(args: argparse.Namespace) -> int:
    """Load, edit and regenerate the requested files."""

    service = EdiBatchService(max_workers=args.workers)
    output_dir = Path(args.output_dir)

    print(f"EDI Regenerator - Processing {len(args.input_files)} file(s)")
    print("=" * 50)

    load_result = service.load_documents(args.input_files)
    for failure in load_result.failures:
        print(f"Error: {failure.message}")
    if load_result.transaction_set_numbers:
        print(f"Type: {', '.join(load_result.transaction_set_numbers)} TX")

    # Mode and batch index follow the inputs as given; unreadable files are skipped at generation.
    file_names = [Path(f).name for f in args.input_files]
    session = service.open_session(load_result, file_names)
    if session.mode == "bulk":
        print("(Bulk mode)")

    header_updates = {field: getattr(args, flag) for flag, field in HEADER_FLAGS.items() if getattr(args, flag)}
    if header_updates:
        session.update_header(**header_updates)

    try:
        edits = parse_line_edits(args.edit)
        for number in [*args.include, *(index + 1 for index in edits)]:
            if not 1 <= number <= len(session.po1_groups):
                print(f"Error: PO1 line {number} does not exist ({len(session.po1_groups)} available)")
                return 1
        for number in args.include:
            session.set_include(number - 1, True)
        for index, text in edits.items():
            session.edit_line(index, text)
        if args.include or edits:
            session.save_po1_edits()

        for _ in range(abs(args.date_offset)):
            if args.date_offset > 0:
                session.increment_dates()
            else:
                session.decrement_dates()
        if args.shift_days:
            session.shift_stored_dates(args.shift_days)

        generated = session.generate()
    except argparse.ArgumentTypeError as e:
        print(f"Error: {e}")
        return 1
    except EdiProcessingError as e:
        print(f"Error: {e}")
        return 1

    output_dir.mkdir(parents=True, exist_ok=True)
    for generated_file in generated:
        target = output_dir / generated_file.name
        target.write_text(generated_file.content, encoding="utf-8")
        print(f"Saved {target} (control number {generated_file.control_number})")

    return 0 if generated and not load_result.failures else 1


def main():
    """Main entry point with command line argument parsing."""

    parser = argparse.ArgumentParser(
        description="Regenerate EDI purchase order files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py order.edi --po-number PO123 --po-date 20240101
  python main.py order.edi --include 2 --edit 2=PO1*2*20*EA*5*PP*VP*ITEM2
  python main.py order.edi --date-offset 3            # move registry dates forward 3 days
  python main.py a.edi b.edi --shift-days -1          # bulk: move every DTM/G62 back a day
        """
    )

    parser.add_argument('input_files', nargs='+', help='Input EDI file(s); more than one enables bulk mode')
    parser.add_argument('--output-dir', default='.', help='Directory for generated files (default: current)')
    parser.add_argument('--sender-qualifier', help='ISA05 sender id qualifier')
    parser.add_argument('--sender-id', help='ISA06 sender id')
    parser.add_argument('--receiver-qualifier', help='ISA07 receiver id qualifier')
    parser.add_argument('--receiver-id', help='ISA08 receiver id')
    parser.add_argument('--gs-sender-id', help='GS02 application sender code')
    parser.add_argument('--gs-receiver-id', help='GS03 application receiver code')
    parser.add_argument('--po-number', help='BEG03 purchase order number')
    parser.add_argument('--po-date', help='BEG05 purchase order date')
    parser.add_argument('--include', type=int, nargs='*', default=[],
                        help='1-based PO1 lines to keep (single mode only)')
    parser.add_argument('--edit', action='append', default=[], metavar='N=TEXT',
                        help='Replacement text for an included PO1 line')
    parser.add_argument('--date-offset', type=int, default=0,
                        help='Days added to the header dates, counted from the original values (single mode)')
    parser.add_argument('--shift-days', type=int, default=0,
                        help='Days added to every DTM/G62 date in the stored documents')
    parser.add_argument('--workers', type=int, default=5, help='Concurrent file reads in bulk mode')
    parser.add_argument('--log-level', default='WARNING', help='Logging level (default: WARNING)')

    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="[%(asctime)s] [%(levelname)s] [%(name)s:%(lineno)d] - %(message)s",
    )

    missing = [f for f in args.input_files if not Path(f).exists()]
    if len(missing) == len(args.input_files):
        print(f"Error: Input file not found: {', '.join(missing)}")
        return 1

    return regenerate_files(args)


if __name__ == "__main__":
    exit(main())
