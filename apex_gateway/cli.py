#!/usr/bin/env python3
"""
apex-gateway command line.

Usage:
    apex-gateway create <name> [description] [cloneFrom] [-f]
    apex-gateway update [--stdout]
    apex-gateway -c path/to/project.json update

Exit status: 0 on success, 1 on a fatal error or a refused create,
2 on bad usage, 3 when the API was deployed but some permission grants
failed.
"""

import argparse
import logging
import re
import sys

from dotenv import find_dotenv, load_dotenv

from apex_gateway import __version__, commands
from apex_gateway.config import DEFAULT_CONFIG
from apex_gateway.errors import ApexGatewayError, RemoteError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_PARTIAL = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='apex-gateway',
        description='Publish Apex functions through AWS API Gateway')
    parser.add_argument('-c', '--config', default=DEFAULT_CONFIG,
                        help=f'Apex project JSON file location (default: {DEFAULT_CONFIG})')
    parser.add_argument('--region',
                        help='AWS region (default: project region, then AWS_REGION)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')
    parser.add_argument('--version', action='version',
                        version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', metavar='<command>')
    subparsers.required = True

    create_parser = subparsers.add_parser(
        'create', help='Create a new REST API on AWS API Gateway')
    create_parser.add_argument('name', help='REST API name')
    create_parser.add_argument('description', nargs='?', default=None,
                               help='REST API description')
    create_parser.add_argument('clone_from', nargs='?', default=None, metavar='cloneFrom',
                               help='Id of an existing REST API to clone')
    create_parser.add_argument('-f', '--force', action='store_true',
                               help='Force creating REST API overriding existing configuration')

    update_parser = subparsers.add_parser(
        'update', help='Update the REST API with the new Swagger definitions')
    update_parser.add_argument('--stdout', action='store_true',
                               help='Write swagger.json locally without deploying')
    update_parser.add_argument('--output', default=commands.DEFAULT_OUTPUT,
                               help=f'File written by --stdout (default: {commands.DEFAULT_OUTPUT})')
    update_parser.add_argument('--functions-dir',
                               help='Directory holding the function folders (default: ./functions)')
    update_parser.add_argument('--strict', action='store_true',
                               help='Fail when two functions declare the same path and method')

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    load_dotenv(find_dotenv(usecwd=True))

    try:
        if args.command == 'create':
            ok = commands.create(
                args.name,
                description=args.description,
                clone_from=args.clone_from,
                config_path=args.config,
                force=args.force,
                region=args.region,
            )
            return EXIT_OK if ok else EXIT_FAILED

        ok = commands.update(
            config_path=args.config,
            stdout=args.stdout,
            functions_dir=args.functions_dir,
            output=args.output,
            region=args.region,
            strict=args.strict,
        )
        return EXIT_OK if ok else EXIT_PARTIAL

    except re.error as e:
        logger.error(f"❌ Invalid path pattern in x-api-gateway.paths: {e}")
        return EXIT_FAILED
    except RemoteError:
        # already logged with its traceback where the call failed
        return EXIT_FAILED
    except ApexGatewayError as e:
        logger.error(f"❌ {e}")
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
