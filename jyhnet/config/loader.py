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

"""
Client configuration loading for JYHNet.

This module turns built-in defaults, an optional YAML file and an optional
overrides mapping into a single immutable ClientConfig.

Configuration Layers
--------------------
1. **Built-in defaults** (DEFAULTS below)
   - 60 second timeout, TLS verification on, system temp dir for downloads

2. **YAML file** (e.g. jyhnet.yaml)
   - Everything lives under a top-level ``client:`` mapping
   - Optional; omitted when no path is given

3. **Overrides** (mapping passed by the caller, e.g. from CLI flags)
   - Applied last

Merge Behavior
--------------
The loader performs deep merging with "last wins" semantics:
  - **Dicts**: Recursively merged (keys from overlay override base)
  - **Lists**: Completely replaced (NOT appended/extended)
  - **Scalars**: Overwritten (strings, numbers, booleans)

Path Resolution
---------------
A relative ``download_dir`` in the YAML file is resolved against the
directory holding that file, so config files stay relocatable.

Example YAML
------------
    client:
      timeout: 30
      user_agent: "my-app/1.0"
      headers:
        Accept-Language: "zh-CN"
      download_dir: "./downloads"
      reachability_probe:
        host: "223.5.5.5"
        port: 53

Error Handling
--------------
- FileNotFoundError: Config file doesn't exist
- ConfigError: YAML parse errors, unknown keys, invalid values
- All errors are chained with "from err" for better debugging

Examples
--------
    >>> from pathlib import Path
    >>> from jyhnet.config import load_client_config
    >>> cfg = load_client_config(Path("jyhnet.yaml"), overrides={"timeout": 10})
    >>> cfg.timeout
    10.0
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from jyhnet.exceptions import ConfigError

DEFAULT_TIMEOUT = 60.0
DEFAULT_USER_AGENT = "jyhnet/0.1 (+https://github.com/jiangyouhua/JYHNet)"
DEFAULT_CHUNK = 64 * 1024

# Public resolver used only to pick a route; nothing is sent to it.
DEFAULT_PROBE_HOST = "8.8.8.8"
DEFAULT_PROBE_PORT = 53

DEFAULTS: dict[str, Any] = {
    "timeout": DEFAULT_TIMEOUT,
    "user_agent": DEFAULT_USER_AGENT,
    "headers": {},
    "verify_tls": True,
    "download_dir": None,
    "chunk_size": DEFAULT_CHUNK,
    "max_workers": 4,
    "reachability_probe": {
        "host": DEFAULT_PROBE_HOST,
        "port": DEFAULT_PROBE_PORT,
    },
}


# -------------------------------
# Data types
# -------------------------------


@dataclass(frozen=True)
class ClientConfig:
    """
    Settings shared by every request a NetworkClient issues.

    Attributes:
        timeout: Per-request timeout in seconds.
        user_agent: User-Agent header sent with every request.
        headers: Extra headers sent with every request.
        verify_tls: Whether to verify TLS certificates.
        download_dir: Where downloads land; None means the system temp dir.
        chunk_size: Stream chunk size for downloads, in bytes.
        max_workers: Size of the worker pool running asynchronous requests.
        probe_host: Address used to select the default route.
        probe_port: Port paired with probe_host.
    """

    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    headers: dict[str, str] = field(default_factory=dict)
    verify_tls: bool = True
    download_dir: Path | None = None
    chunk_size: int = DEFAULT_CHUNK
    max_workers: int = 4
    probe_host: str = DEFAULT_PROBE_HOST
    probe_port: int = DEFAULT_PROBE_PORT

    def with_timeout(self, timeout: float) -> ClientConfig:
        """Return a copy with a different timeout, validated."""
        return replace(self, timeout=_positive_number("timeout", timeout))


# -------------------------------
# YAML helpers
# -------------------------------


def _load_yaml_file(p: Path) -> dict[str, Any]:
    """
    Load the ``client:`` section of a YAML config file.

    Raises:
      FileNotFoundError      - when file does not exist
      ConfigError            - for invalid YAML or a non-mapping document
    """
    if not p.exists():
        raise FileNotFoundError(f"config file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"error parsing YAML: {p}: {err}") from err

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file must contain a mapping: {p}")

    section = data.get("client", {})
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'client' section must be a mapping: {p}")
    return section


# -------------------------------
# Merge logic
# -------------------------------


def _deep_merge_dicts(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """
    Deep-merge two dicts with "overlay wins".

    This function does not mutate inputs; returns a new dict.
    """
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge_dicts(result[k], v)
        else:
            result[k] = v
    return result


# -------------------------------
# Validation
# -------------------------------


def _positive_number(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return float(value)


def _positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{name} must be a positive integer, got {value!r}")
    return value


def _build_config(merged: dict[str, Any], base_dir: Path | None) -> ClientConfig:
    unknown = sorted(set(merged) - set(DEFAULTS))
    if unknown:
        raise ConfigError(f"unknown config keys: {', '.join(unknown)}")

    headers = merged["headers"] or {}
    if not isinstance(headers, dict):
        raise ConfigError("headers must be a mapping")

    user_agent = merged["user_agent"]
    if not isinstance(user_agent, str) or not user_agent.strip():
        raise ConfigError("user_agent must be a non-empty string")

    if not isinstance(merged["verify_tls"], bool):
        raise ConfigError("verify_tls must be true or false")

    probe = merged["reachability_probe"]
    if not isinstance(probe, dict):
        raise ConfigError("reachability_probe must be a mapping")
    probe_host = probe.get("host")
    if not isinstance(probe_host, str) or not probe_host:
        raise ConfigError("reachability_probe.host must be a non-empty string")
    probe_port = _positive_int("reachability_probe.port", probe.get("port"))
    if probe_port > 65535:
        raise ConfigError(f"reachability_probe.port out of range: {probe_port}")

    download_dir: Path | None = None
    raw_dir = merged["download_dir"]
    if raw_dir is not None:
        if not isinstance(raw_dir, (str, Path)):
            raise ConfigError("download_dir must be a path string")
        download_dir = Path(raw_dir)
        # Resolve only if the path is relative
        if not download_dir.is_absolute() and base_dir is not None:
            download_dir = (base_dir / download_dir).resolve()

    return ClientConfig(
        timeout=_positive_number("timeout", merged["timeout"]),
        user_agent=user_agent,
        headers={str(k): str(v) for k, v in headers.items()},
        verify_tls=merged["verify_tls"],
        download_dir=download_dir,
        chunk_size=_positive_int("chunk_size", merged["chunk_size"]),
        max_workers=_positive_int("max_workers", merged["max_workers"]),
        probe_host=probe_host,
        probe_port=probe_port,
    )


# -------------------------------
# Public API
# -------------------------------


def load_client_config(
    path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> ClientConfig:
    """Load the effective client configuration.

    Args:
        path: Optional YAML file whose ``client:`` section overrides the
            built-in defaults.
        overrides: Optional mapping applied on top of the file, using the
            same keys as the ``client:`` section.

    Returns:
        The merged and validated configuration.

    Raises:
        FileNotFoundError: If path is given but does not exist.
        ConfigError: If the YAML is invalid or a value fails validation.
    """
    from jyhnet.logging import get_global_logger

    logger = get_global_logger()
    merged = dict(DEFAULTS)
    base_dir: Path | None = None

    if path is not None:
        path = Path(path)
        logger.verbose("CONFIG", f"Loading config file: {path}")
        merged = _deep_merge_dicts(merged, _load_yaml_file(path))
        base_dir = path.resolve().parent

    if overrides:
        logger.debug("CONFIG", f"Applying overrides: {sorted(overrides)}")
        merged = _deep_merge_dicts(merged, overrides)

    config = _build_config(merged, base_dir)
    logger.debug("CONFIG", f"Effective config: {config}")
    return config
