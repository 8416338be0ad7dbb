# Copyright 2025 jiangyouhua
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Command-line interface for JYHNet.

A small consumer of NetworkClient, useful for poking at an endpoint and as
a worked example of checking both result layers.

Commands:

    categories: List categories from the demo backend
    get: GET an address and print the JSON response
    post: POST parameters as JSON and print the JSON response
    download: Download an address to a file

Example:
    List categories:
        ```bash
        $ jyhnet categories
        ```

    Query with parameters and pick a field:
        ```bash
        $ jyhnet get https://muutr.com/back -p table=category -p handle=get --select 'Data[*].name'
        ```

    Download with a shorter timeout:
        ```bash
        $ jyhnet download https://example.com/file.zip --output file.zip --timeout 10
        ```

Exit Codes:

- 0: Success
- 1: Error (configuration, network, response or backend status)

Note:
    A ``.env`` file in the working directory is loaded first. JYHNET_CONFIG
    names a YAML config file and JYHNET_TIMEOUT overrides the timeout; the
    --config and --timeout flags win over both.
"""

from __future__ import annotations

import argparse
from concurrent.futures import wait
import json
import os
from pathlib import Path
import shutil
import sys
from typing import Any

from dotenv import find_dotenv, load_dotenv
from jsonpath_ng import parse as jsonpath_parse

from jyhnet import __version__
from jyhnet.client import NetworkClient
from jyhnet.config import load_client_config
from jyhnet.dispatch import Dispatcher, QueueDispatcher
from jyhnet.exceptions import ConfigError, JYHNetError
from jyhnet.logging import get_logger, set_global_logger
from jyhnet.models import Back, Category

DEFAULT_CATEGORY_ADDRESS = "https://muutr.com/back"
CATEGORY_PARAMS = {"table": "category", "handle": "get"}


def _parse_param(raw: str) -> tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {raw!r}")
    return key, value


def _build_client(
    args: argparse.Namespace, dispatcher: Dispatcher | None = None
) -> NetworkClient:
    """Create a client from --config/--timeout and the environment.

    Raises:
        ConfigError: If the config file or timeout value is invalid.
        FileNotFoundError: If the config file does not exist.
    """
    load_dotenv(find_dotenv(usecwd=True))

    config_path = args.config or os.environ.get("JYHNET_CONFIG")
    overrides: dict[str, Any] = {}
    timeout = args.timeout
    if timeout is None and os.environ.get("JYHNET_TIMEOUT"):
        raw = os.environ["JYHNET_TIMEOUT"]
        try:
            timeout = float(raw)
        except ValueError as err:
            raise ConfigError(f"JYHNET_TIMEOUT must be a number, got {raw!r}") from err
    if timeout is not None:
        overrides["timeout"] = timeout

    config = load_client_config(
        Path(config_path) if config_path else None, overrides=overrides
    )
    return NetworkClient(config, dispatcher=dispatcher)


def _select(data: Any, expression: str | None) -> Any:
    """Apply a JSONPath expression, returning one value or a list of values."""
    if not expression:
        return data
    try:
        matches = jsonpath_parse(expression).find(data)
    except Exception as err:
        raise ConfigError(f"invalid --select expression {expression!r}: {err}") from err
    values = [match.value for match in matches]
    return values[0] if len(values) == 1 else values


def _report_error(args: argparse.Namespace, err: BaseException) -> int:
    print(f"Error: {err}")
    if args.verbose or args.debug:
        import traceback

        traceback.print_exception(type(err), err, err.__traceback__)
    return 1


def cmd_categories(args: argparse.Namespace) -> int:
    """Handler for 'jyhnet categories' command.

    Fetches the Back[Category] envelope and prints one line per category.
    A transport success with a non-zero envelope status is reported as a
    failure.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    try:
        with _build_client(args) as client:
            result = client.get(
                args.address,
                CATEGORY_PARAMS,
                decoder=Back.decoder(Category),
            ).result()
    except (JYHNetError, FileNotFoundError) as err:
        return _report_error(args, err)

    if result.is_failure:
        return _report_error(args, result.error)

    back = result.value
    if not back.ok:
        print(f"Error: backend returned status {back.status}")
        return 1

    for category in back.data:
        print(f"{category.name or '-':<20} {category.info or ''}")
    print()
    print(f"{len(back.data)} categor{'y' if len(back.data) == 1 else 'ies'}")
    return 0


def cmd_request(args: argparse.Namespace) -> int:
    """Handler for 'jyhnet get' and 'jyhnet post' commands.

    Args:
        args: Parsed command-line arguments containing the address,
            parameters and an optional JSONPath selection.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    params = dict(args.param) if args.param else None
    try:
        with _build_client(args) as client:
            send = client.get if args.command == "get" else client.post
            result = send(args.address, params).result()
        if result.is_failure:
            return _report_error(args, result.error)
        output = _select(result.value, args.select)
    except (JYHNetError, FileNotFoundError) as err:
        return _report_error(args, err)

    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


def cmd_download(args: argparse.Namespace) -> int:
    """Handler for 'jyhnet download' command.

    Downloads to a temporary file, then moves it to --output when given.
    Progress is queued by the worker and printed from the main thread.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 for failure).
    """

    def show_progress(fraction: float) -> None:
        print(f"download progress: {int(fraction * 100)}%", end="\r")

    dispatcher = QueueDispatcher()
    try:
        with _build_client(args, dispatcher) as client:
            future = client.download(args.address, progress=show_progress)
            while not future.done():
                dispatcher.drain()
                wait([future], timeout=0.1)
            # Drain before close() invalidates the progress handle.
            dispatcher.drain()
            result = future.result()
    except (JYHNetError, FileNotFoundError) as err:
        return _report_error(args, err)

    if result.is_failure:
        print()
        return _report_error(args, result.error)

    path = result.value
    if args.output:
        target = Path(args.output)
        target.parent.mkdir(parents=True, exist_ok=True)
        path = Path(shutil.move(str(path), str(target)))

    print()
    print(f"download complete: {path}")
    return 0


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=None,
        help="YAML config file (default: $JYHNET_CONFIG, else built-in defaults)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Request timeout in seconds (default: 60)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show requests and responses",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jyhnet",
        description="JYHNet - minimal HTTP client with classified results",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"jyhnet {__version__}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'categories' command
    parser_categories = subparsers.add_parser(
        "categories",
        help="List categories from the demo backend",
        description="Fetch the category envelope and print each category.",
    )
    parser_categories.add_argument(
        "address",
        nargs="?",
        default=DEFAULT_CATEGORY_ADDRESS,
        help=f"Backend address (default: {DEFAULT_CATEGORY_ADDRESS})",
    )
    _add_common_arguments(parser_categories)
    parser_categories.set_defaults(func=cmd_categories)

    # 'get' and 'post' commands
    for name, help_text in (
        ("get", "GET an address; parameters become query items"),
        ("post", "POST to an address; parameters become a JSON body"),
    ):
        parser_request = subparsers.add_parser(name, help=help_text, description=help_text)
        parser_request.add_argument("address", help="Target URL")
        parser_request.add_argument(
            "-p",
            "--param",
            type=_parse_param,
            action="append",
            metavar="KEY=VALUE",
            help="Request parameter (repeatable)",
        )
        parser_request.add_argument(
            "--select",
            default=None,
            metavar="JSONPATH",
            help="Print only the values matching this JSONPath expression",
        )
        _add_common_arguments(parser_request)
        parser_request.set_defaults(func=cmd_request)

    # 'download' command
    parser_download = subparsers.add_parser(
        "download",
        help="Download an address to a file",
        description="Stream an address to a temporary file, showing progress.",
    )
    parser_download.add_argument("address", help="Target URL")
    parser_download.add_argument(
        "-o",
        "--output",
        default=None,
        help="Move the downloaded file here (default: leave it in the temp dir)",
    )
    _add_common_arguments(parser_download)
    parser_download.set_defaults(func=cmd_download)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the jyhnet CLI.

    This function is registered as the 'jyhnet' console script in pyproject.toml.
    """
    args = build_parser().parse_args(argv)

    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
