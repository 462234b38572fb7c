"""httpdoc - Main entry point.

Ties together the CLI, the document parser and the transport.
"""

import json
import logging
import sys

import requests

from httpdoc.cli import log_level, parse_cli, parse_var_items
from httpdoc.context import Context
from httpdoc.engine import print_report, send_request
from httpdoc.errors import SyntaxTreeError
from httpdoc.parser import get_request, get_request_names, parse_document
from httpdoc.syntax import load_document


def main(argv: list[str] | None = None) -> int:
    """Run the httpdoc tool.

    Args:
        argv: Optional argument list (defaults to sys.argv).

    Returns:
        Exit code (0 = success, 1 = an error response, 2 = error).
    """
    args = parse_cli(argv)
    logging.basicConfig(
        level=log_level(args),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        document = load_document(args.file)
    except (FileNotFoundError, IOError) as exc:
        print(f"Error reading document: {exc}", file=sys.stderr)
        return 2
    except SyntaxTreeError as exc:
        print(f"Error parsing document: {exc}", file=sys.stderr)
        return 2

    if args.list_names:
        for name in get_request_names(document):
            print(name)
        return 0

    context = Context()
    if args.env_file:
        context.load_env_file(args.env_file)
    context.env.update(parse_var_items(args.var))

    if args.name:
        request = get_request(document, args.name, context)
        if request is None:
            print(f"Error: no request named '{args.name}'", file=sys.stderr)
            return 2
        selected = [request]
    else:
        selected = parse_document(document, context).requests
        if not args.send_all:
            selected = selected[:1]

    if not selected:
        print(f"Error: no requests found in '{args.file}'", file=sys.stderr)
        return 2

    if args.dry_run:
        print(json.dumps([r.to_dict() for r in selected], indent=2))
        return 0

    exit_code = 0
    for request in selected:
        print(f"[*] Sending {request.method} {request.url}")
        try:
            result = send_request(
                request,
                base_dir=document.base_dir,
                timeout=args.timeout,
                proxy=args.proxy,
                verify=args.verify,
            )
        except (requests.RequestException, OSError) as exc:
            print(f"Error sending request: {exc}", file=sys.stderr)
            return 2

        print_report(request, result)
        if not result.ok:
            exit_code = 1

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
