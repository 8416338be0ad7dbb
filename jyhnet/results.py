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

"""Result envelope for JYHNet requests.

Every request completes with exactly one of two frozen dataclasses:

- Success: carries the decoded payload (or a Path for downloads).
- Failure: carries a NetError classifying what went wrong.

Result is the union of both, so callers can branch on the type or on the
is_success / is_failure flags.

Example:
    Handling a result:
        ```python
        from jyhnet.results import Failure, Success

        def on_done(result):
            if isinstance(result, Success):
                print(result.value)
            else:
                print(f"failed: {result.error}")
        ```

Note:
    A Success only means the transport and decoding layers succeeded. An
    application envelope such as Back may still report a non-zero status.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from jyhnet.exceptions import NetError

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful completion.

    Attributes:
        value: The decoded payload.
    """

    value: T

    @property
    def is_success(self) -> bool:
        return True

    @property
    def is_failure(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Return the payload."""
        return self.value


@dataclass(frozen=True)
class Failure:
    """Failed completion.

    Attributes:
        error: The classified failure.
    """

    error: NetError

    @property
    def is_success(self) -> bool:
        return False

    @property
    def is_failure(self) -> bool:
        return True

    def unwrap(self) -> Any:
        """Raise the carried NetError."""
        raise self.error


Result = Union[Success[Any], Failure]
