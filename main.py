#!/usr/bin/env python3
"""
Main entry point for iOS backup extraction.

Run from inside (or point at) the folder a backup created. Copies camera
media and message attachments, exports contacts, and writes one transcript
per conversation into the output folder.
"""
from typing import List, Optional
import argparse
import sys
import logging
from pathlib import Path

from backup_extract.config import get_config
from backup_extract.errors import ExtractionError
from backup_extract.filters import DEFAULT_FILTERS
from backup_extract.logger_config import setup_logging
from backup_extract.pipeline import (
    run_artifact_pipeline,
    run_contact_export,
    run_correlation_pipeline,
)
from backup_extract.utils import Colors, format_count


def print_section(title: str) -> None:
    """Print a formatted section title."""
    print(f"\n{Colors.BOLD}{Colors.HEADER}{'=' * 60}{Colors.ENDC}")
    print(f"{Colors.BOLD}{Colors.HEADER}{title}{Colors.ENDC}")
    print(f"{Colors.BOLD}{Colors.HEADER}{'=' * 60}{Colors.ENDC}\n")


def _parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extract media, contacts and messages from an unencrypted iOS backup."
    )
    parser.add_argument(
        "--backup-root",
        default=None,
        help="Backup folder containing Manifest.db (default: current directory).",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Where to write extracted files (default: <backup-root>/files).",
    )
    parser.add_argument(
        "--skip-files",
        action="store_true",
        help="Do not copy camera media or message attachments.",
    )
    parser.add_argument(
        "--skip-messages",
        action="store_true",
        help="Do not write conversation transcripts.",
    )
    parser.add_argument(
        "--skip-contacts",
        action="store_true",
        help="Do not write the flat contact export (names are still resolved).",
    )
    parser.add_argument(
        "--stop-on-error",
        action="store_true",
        help="Stop copying remaining domains after the first failed domain.",
    )
    parser.add_argument(
        "--use-memory",
        action="store_true",
        help="Load each backup database into RAM before querying it.",
    )
    parser.add_argument(
        "--report",
        default=None,
        help="Write an HTML summary chart to this path.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write logs to this file.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main function. Returns the process exit status."""
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    setup_logging(log_file=args.log_file)
    config = get_config(backup_root=args.backup_root, output_dir=args.output_dir)

    if not config.validate():
        print(f"{Colors.FAIL}Error: Manifest.db not found or not readable.{Colors.ENDC}")
        print("Run this inside the folder the backup created, or pass --backup-root:")
        print(f"  {config.manifest_db_path}")
        return 1

    print(f"{Colors.OKGREEN}Using backup: {config.backup_root}{Colors.ENDC}")
    print(f"{Colors.OKGREEN}Writing to: {config.output_dir}{Colors.ENDC}")

    failed = False
    artifact_result = None
    correlation_result = None

    if not args.skip_messages:
        print_section("Contacts and Messages")
        correlation_result = run_correlation_pipeline(
            config,
            export_contacts_table=not args.skip_contacts,
            use_memory=args.use_memory,
        )
        print(correlation_result)
        if correlation_result.success:
            print(f"{Colors.OKGREEN}SMS messages saved.{Colors.ENDC}")
        else:
            failed = True
            print(f"{Colors.FAIL}Not all conversations may have been saved.{Colors.ENDC}")
    elif not args.skip_contacts:
        print_section("Contacts")
        try:
            exported = run_contact_export(config, use_memory=args.use_memory)
            print(f"{Colors.OKGREEN}Exported {format_count(exported, 'contact')}.{Colors.ENDC}")
        except (ExtractionError, OSError) as e:
            failed = True
            print(f"{Colors.FAIL}Contacts could not be exported: {e}{Colors.ENDC}")

    if not args.skip_files:
        print_section("Camera Media and Attachments")
        artifact_result = run_artifact_pipeline(
            config,
            DEFAULT_FILTERS,
            stop_on_error=args.stop_on_error,
            use_memory=args.use_memory,
        )
        print(artifact_result)
        if artifact_result.success:
            print(
                f"{Colors.OKGREEN}Backed up {format_count(artifact_result.files_copied, 'file')} "
                f"successfully!{Colors.ENDC}"
            )
        else:
            failed = True
            print(
                f"{Colors.FAIL}An error has occurred. Not all camera images/videos and "
                f"attachments may have been saved.{Colors.ENDC}"
            )

    if args.report:
        from backup_extract.visualization import (
            build_artifact_figure,
            build_transcript_figure,
            write_report,
        )

        report_path = Path(args.report)
        if artifact_result is not None:
            write_report(build_artifact_figure(artifact_result), report_path)
        if correlation_result is not None:
            transcript_report = report_path.with_name(
                f"{report_path.stem}_messages{report_path.suffix or '.html'}"
            )
            write_report(build_transcript_figure(correlation_result.correlation), transcript_report)

    if failed:
        logging.getLogger(__name__).error("Extraction finished with errors")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
