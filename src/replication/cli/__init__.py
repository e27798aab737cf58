"""
Command-line interface for MySQL replication.

Available commands:
- run: Execute a one-time replication
- schedule: Set up periodic replication jobs
- report: Render reports from previous runs
"""

import sys

from src.utils.logging import setup_logging

from .commands import cmd_report, cmd_run, cmd_schedule
from .credentials import build_config, get_urls_from_vault
from .parser import create_parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the mysql-replicate CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level=args.log_level,
        log_file=args.log_file,
        json_format=args.log_json,
    )

    if args.command == 'run':
        cmd_run(args)
    elif args.command == 'schedule':
        cmd_schedule(args)
    elif args.command == 'report':
        cmd_report(args)
    else:
        parser.print_help()
        sys.exit(1)


__all__ = [
    'main',
    'build_config',
    'get_urls_from_vault',
    'cmd_run',
    'cmd_schedule',
    'cmd_report',
    'create_parser',
]


if __name__ == '__main__':
    main()
