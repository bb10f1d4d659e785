# Copyright 2025 Roger Cibrian
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

"""Exception hierarchy for CMPD.

Every error CMPD raises on purpose is one of:

- ConfigError: Settings errors (YAML parse, missing fields, bad values)
- BatchError: Batch file errors (missing, unreadable, malformed records)
- AdminAPIError: Failures talking to the ConfigMgr administration service
- NotificationError: Failures sending the summary email

All of them derive from CMPDError, which is what the CLI catches to turn a
failure into exit code 1.

ConfigError and BatchError are fatal: they abort a run before any
application is touched. AdminAPIError is fatal only while establishing the
session; once a run is underway it is caught per application or per
collection and recorded in the run results.

Example:
    Catching specific error types:
        ```python
        from cmpostdeploy.core import run_batch
        from cmpostdeploy.exceptions import BatchError, ConfigError

        try:
            result = run_batch(Path("batch.json"), settings, client)
        except ConfigError as e:
            print(f"Configuration error: {e}")
        except BatchError as e:
            print(f"Batch error: {e}")
        ```
"""

from __future__ import annotations

__all__ = [
    "CMPDError",
    "ConfigError",
    "BatchError",
    "AdminAPIError",
    "NotificationError",
]


class CMPDError(Exception):
    """Base exception for all CMPD errors.

    Catch this to handle any error raised by CMPD itself.
    """

    pass


class ConfigError(CMPDError):
    """Raised when settings cannot be loaded or make no sense.

    Typical causes:

    - YAML parsing (syntax errors, invalid structure)
    - Missing required settings (site code, SMS provider)
    - Invalid enum values (deploy purpose, user experience)
    - Unknown administration client names

    Example:
        Catching configuration errors:
            ```python
            from cmpostdeploy.exceptions import ConfigError

            try:
                settings = load_settings(Path("settings.yaml"))
            except ConfigError as e:
                print(f"Config error: {e}")
            ```
    """

    pass


class BatchError(CMPDError):
    """Raised when the batch file cannot be read or parsed.

    A batch error aborts the run before any content is distributed.
    """

    pass


class AdminAPIError(CMPDError):
    """Raised for failures of the ConfigMgr administration service.

    Typical causes:

    - HTTP errors and connection failures against the SMS provider
    - Request timeouts (a timeout counts as a failed call)
    - Objects the provider cannot find (application, collection)
    - Responses the client cannot interpret

    Attributes:
        status_code: HTTP status code when the failure came from a response,
            None otherwise.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotificationError(CMPDError):
    """Raised when the summary email cannot be sent."""

    pass
