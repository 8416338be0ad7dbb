"""
JYHNet - minimal HTTP client convenience layer

JYHNet wraps ``requests`` with three operations, GET, POST and download,
that never raise on request failure. Every outcome is delivered as a
Result: the decoded payload, or a NetError classified as one of
NO_NETWORK, INVALID_URL, REQUEST_ERROR, INVALID_RESPONSE, RESPONSE_ERROR,
EMPTY_DATA, PARSING_FAILED or CANCELLED.

JYHNet provides:
  - A local reachability pre-flight so offline requests fail immediately
  - Query-string GET and JSON-body POST with typed decoders
  - Streaming downloads with main-context progress reporting
  - Layered YAML configuration
  - An example CLI that lists categories from the demo backend

Quick Start
-----------
    $ jyhnet categories
    $ jyhnet get https://muutr.com/back --param table=category --param handle=get

Package Structure
-----------------
client : module
    NetworkClient, CancellationToken and the shared client accessors.
request_builder : module
    URL validation and request construction.
reachability : module
    Default-route reachability check.
results : module
    Success / Failure result envelope.
models : module
    Back envelope and Category record decoders.
dispatch : module
    Main-context dispatchers for progress callbacks.
config : package
    ClientConfig and YAML configuration loading.
exceptions : module
    JYHNetError hierarchy and NetErrorKind.
logging : module
    Verbosity-aware logger protocol and global logger.
cli : module
    Example command-line consumer.

Public API
----------
    from jyhnet import NetworkClient, Back, Category, NetErrorKind
"""

__version__ = "0.1.0"
__author__ = "jiangyouhua"
__license__ = "Apache-2.0"
__description__ = "Minimal HTTP client layer with classified results"

from jyhnet.client import (
    CancellationToken,
    NetworkClient,
    get_shared_client,
    set_shared_client,
)
from jyhnet.config import ClientConfig, load_client_config
from jyhnet.exceptions import ConfigError, JYHNetError, NetError, NetErrorKind
from jyhnet.models import Back, Category
from jyhnet.results import Failure, Result, Success

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "__description__",
    "NetworkClient",
    "CancellationToken",
    "get_shared_client",
    "set_shared_client",
    "ClientConfig",
    "load_client_config",
    "JYHNetError",
    "ConfigError",
    "NetError",
    "NetErrorKind",
    "Back",
    "Category",
    "Result",
    "Success",
    "Failure",
]
