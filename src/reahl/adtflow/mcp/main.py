import argparse
import logging
import sys

from reahl.adtflow.mcp.server import create_server


def configure_logging(log_level):
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, log_level),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def run_application():
    parser = argparse.ArgumentParser(
        description='Run AdtFlowMCP server.'
    )
    parser.add_argument(
        '--transport',
        default='stdio',
        choices=['stdio'],
        help='MCP transport type.',
    )
    parser.add_argument(
        '--allow-write',
        action='store_true',
        help=(
            'Enable create, lock, update, unlock and activate tools '
            '(disabled by default).'
        ),
    )
    parser.add_argument(
        '--allow-delete',
        action='store_true',
        help='Enable delete tools (requires --allow-write).',
    )
    parser.add_argument(
        '--log-level',
        default='WARNING',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level for messages written to stderr.',
    )
    arguments = parser.parse_args()
    if arguments.allow_delete and not arguments.allow_write:
        parser.error('--allow-delete requires --allow-write.')
    configure_logging(arguments.log_level)
    mcp_server = create_server(
        allow_write=arguments.allow_write,
        allow_delete=arguments.allow_delete,
    )
    mcp_server.run(transport=arguments.transport)


if __name__ == '__main__':
    run_application()
