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

"""Configuration loading for JYHNet.

This module loads client settings with a layered approach:

  - Built-in defaults
  - An optional YAML file (``client:`` section)
  - Caller overrides

Public API:

- ClientConfig: Immutable settings consumed by NetworkClient
- load_client_config: Merge and validate the layers into a ClientConfig

Example:
    Basic usage:

        from pathlib import Path
        from jyhnet.config import load_client_config

        config = load_client_config(Path("jyhnet.yaml"))
        print(config.timeout)  # 60.0 unless overridden

"""

from .loader import ClientConfig, load_client_config

__all__ = ["ClientConfig", "load_client_config"]
