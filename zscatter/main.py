#!/usr/bin/env python3
"""
zscatter - Main Entry Points

Two tools share this module:
- gen:    write gaussian point clouds to a binary record file
- stream: serve a record file over HTTP as a chunked octet stream

Usage:
    python -m zscatter.main gen --count 3 --points 100000 --out clouds.bin
    python -m zscatter.main stream --file clouds.bin --addr :8080
"""

import argparse
import logging
import signal
import sys
from typing import List, Optional

from zscatter.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CLOUD_COUNT,
    DEFAULT_LISTEN_ADDRESS,
    DEFAULT_POINTS_PER_CLOUD,
    GeneratorConfig,
    StreamerConfig,
)
from zscatter.errors import ConfigurationError, ZScatterError
from zscatter.generator import CloudGenerator
from zscatter.web.server import create_app, run_server

logger = logging.getLogger(__name__)


def configure_logging(debug: bool = False):
    """Send log output to standard error."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )


def add_gen_arguments(parser: argparse.ArgumentParser):
    parser.add_argument(
        '--count',
        type=int,
        default=DEFAULT_CLOUD_COUNT,
        help=f'Number of gaussian clouds (default: {DEFAULT_CLOUD_COUNT})'
    )
    parser.add_argument(
        '--points',
        type=int,
        default=DEFAULT_POINTS_PER_CLOUD,
        help=f'Points per cloud (default: {DEFAULT_POINTS_PER_CLOUD})'
    )
    parser.add_argument(
        '--out',
        type=str,
        default='',
        help='Output file path (required)'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed (default: wall clock time)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )


def add_stream_arguments(parser: argparse.ArgumentParser):
    parser.add_argument(
        '--addr',
        type=str,
        default=DEFAULT_LISTEN_ADDRESS,
        help=f'Address to listen on (default: {DEFAULT_LISTEN_ADDRESS})'
    )
    parser.add_argument(
        '--file',
        type=str,
        default='',
        help='Binary data file to stream (required)'
    )
    parser.add_argument(
        '--chunk',
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        help=f'Stream chunk size in bytes (default: {DEFAULT_CHUNK_SIZE})'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )


def run_gen(args: argparse.Namespace) -> int:
    """Generate clouds into the output file. Returns the exit status."""
    try:
        config = GeneratorConfig(
            cloud_count=args.count,
            points_per_cloud=args.points,
            output_path=args.out,
            seed=args.seed,
        ).validate()
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    try:
        CloudGenerator(config).generate_file()
    except ZScatterError as e:
        logger.error(str(e))
        return 1

    return 0


def run_stream(args: argparse.Namespace) -> int:
    """Serve the data file until interrupted. Returns the exit status."""
    try:
        config = StreamerConfig(
            source_path=args.file,
            listen_address=args.addr,
            chunk_size=args.chunk,
        ).validate()
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    setup_signal_handlers()
    app = create_app(config)

    try:
        run_server(app, config.listen_address)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except OSError as e:
        logger.error(f"server error: {e}")
        return 1

    return 0


def setup_signal_handlers():
    """Treat SIGTERM like Ctrl+C so the server shuts down cleanly."""
    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        raise KeyboardInterrupt

    signal.signal(signal.SIGTERM, signal_handler)


def gen_main(argv: Optional[List[str]] = None) -> int:
    """Entry point for zscatter-gen."""
    parser = argparse.ArgumentParser(
        description='Generate gaussian point clouds as 24-byte binary records'
    )
    add_gen_arguments(parser)
    args = parser.parse_args(argv)
    configure_logging(args.debug)
    return run_gen(args)


def stream_main(argv: Optional[List[str]] = None) -> int:
    """Entry point for zscatter-stream."""
    parser = argparse.ArgumentParser(
        description='Stream a binary record file over HTTP'
    )
    add_stream_arguments(parser)
    args = parser.parse_args(argv)
    configure_logging(args.debug)
    return run_stream(args)


def main(argv: Optional[List[str]] = None) -> int:
    """Dispatch to the gen or stream tool."""
    parser = argparse.ArgumentParser(
        description='zscatter - point cloud generator and stream server',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Write 3 clouds of 1000 points
    python -m zscatter.main gen --count 3 --points 1000 --out clouds.bin

    # Serve it on port 8080 in 64 KiB chunks
    python -m zscatter.main stream --file clouds.bin --chunk 65536
        """
    )
    subparsers = parser.add_subparsers(dest='command', required=True)
    add_gen_arguments(subparsers.add_parser('gen', help='Generate a record file'))
    add_stream_arguments(subparsers.add_parser('stream', help='Serve a record file'))

    args = parser.parse_args(argv)
    configure_logging(args.debug)

    if args.command == 'gen':
        return run_gen(args)
    return run_stream(args)


if __name__ == '__main__':
    sys.exit(main())
