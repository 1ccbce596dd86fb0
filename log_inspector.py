"""CLI log inspector — list, read, and search a log file and its backups."""

import argparse
import os
import sys

from rotalog.inspector import list_log_files, read_file, search_files


def _format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def main(argv=None):
    parser = argparse.ArgumentParser(description="Inspect a rotated log and its backups")
    parser.add_argument("--base-path", default=os.environ.get("LOG_BASE_PATH", "./logs/application.log"),
                        help="Path of the live log file")
    parser.add_argument("--naming", choices=("timestamp", "index"),
                        default=os.environ.get("BACKUP_NAMING", "timestamp"),
                        help="Backup naming scheme used by the writer")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--list", action="store_true", help="List the live file and its backups")
    group.add_argument("--read", metavar="FILENAME", help="Read a specific log file")
    group.add_argument("--search", metavar="TEXT", help="Search text across all log files")
    args = parser.parse_args(argv)

    directory = os.path.dirname(args.base_path) or "."

    if args.list:
        files = list_log_files(args.base_path, args.naming)
        if not files:
            print("No log files found.")
            return
        for name in files:
            size = os.path.getsize(os.path.join(directory, name))
            print(f"  {name}  ({_format_size(size)})")

    elif args.read:
        try:
            sys.stdout.write(read_file(args.base_path, args.read))
        except FileNotFoundError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

    elif args.search:
        results = search_files(args.base_path, args.search, args.naming)
        if not results:
            print(f"No matches found for '{args.search}'.")
            return
        for filename, line_num, line in results:
            print(f"  [{filename}:{line_num}] {line}")


if __name__ == "__main__":
    main()
