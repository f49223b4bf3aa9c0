#!/usr/bin/env python
"""
Command-line interface for Memopad
"""

import argparse
import sys
from pathlib import Path

from memopad.core.config import CONFIG_FILE_NAME, DEFAULT_DATA_DIR, load_config
from memopad.core.logging_config import setup_logging
from memopad.version_info import __version__, __build_timestamp__, __build_type__


def print_version():
    """Print version information."""
    print(f"Memopad v{__version__}")
    print(f"Build: {__build_timestamp__}")
    print(f"Build Type: {__build_type__}")


def resolve_config(args):
    """Load the config file, then apply command-line overrides."""
    config_path = Path(args.config) if args.config else None
    if config_path is None and args.data_dir:
        config_path = Path(args.data_dir) / CONFIG_FILE_NAME
    config = load_config(config_path)

    if args.data_dir:
        config.data_dir = str(args.data_dir)
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.debug:
        config.debug = True
    return config


def start_server(args):
    """Start the Flask server."""
    from memopad.app import create_app

    config = resolve_config(args)
    log_file = setup_logging(config.log_path, debug_mode=config.debug,
                             component_levels=config.log_levels)
    app = create_app(config)

    print(f"Starting Memopad v{__version__}")
    print(f"Server: http://{config.host}:{config.port}")
    print(f"Data: {config.data_path}")
    print(f"Log: {log_file}")
    print("Press Ctrl+C to stop")
    print()

    app.run(host=config.host, port=config.port, debug=config.debug)


def build_parser():
    parser = argparse.ArgumentParser(
        description=f'Memopad v{__version__}',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  memopad --version              Show version information
  memopad start                  Start server on 127.0.0.1:8000
  memopad start --port 8080      Start server on port 8080
  memopad --data-dir ./notes     Keep the note and history in ./notes
        """
    )

    parser.add_argument(
        '--version', '-v',
        action='store_true',
        help='Show version information'
    )
    parser.add_argument(
        '--host',
        type=str,
        default=None,
        help='Host to bind to (default: from config, 127.0.0.1)'
    )
    parser.add_argument(
        '--port', '-p',
        type=int,
        default=None,
        help='Port to bind to (default: from config, 8000)'
    )
    parser.add_argument(
        '--debug', '-d',
        action='store_true',
        help='Run in debug mode'
    )
    parser.add_argument(
        '--config', '-c',
        type=str,
        default=None,
        help=f'Path to config file (default: {DEFAULT_DATA_DIR / CONFIG_FILE_NAME})'
    )
    parser.add_argument(
        '--data-dir',
        type=str,
        default=None,
        help=f'Directory for the note, history and logs (default: {DEFAULT_DATA_DIR})'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')
    subparsers.add_parser('start', help='Start the editor server')
    return parser


def main(argv=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    if args.version:
        print_version()
        return 0

    if args.command == 'start' or args.command is None:
        try:
            start_server(args)
            return 0
        except KeyboardInterrupt:
            print("\nServer stopped.")
            return 0
        except Exception as e:
            if args.debug:
                import traceback
                traceback.print_exc()
            print(f"Error starting server: {e}", file=sys.stderr)
            return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
