# /*
# Copyright 2026 The Grove Authors.
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
# */

"""Error classes raised by cctl workflows.

Only two loops retry anything: the secret wait and the VM deletion
confirmation. Every other error propagates to the caller immediately, and each
layer prefixes the message with the operation it was performing so the final
message reads from intent down to the failing call.
"""

from __future__ import annotations


class CctlError(Exception):
    """Base exception for cctl."""

    def with_operation(self, operation: str) -> CctlError:
        """Prefix the message with *operation* and return the same error.

        Args:
            operation: Short description of the step that failed.

        Returns:
            This error, so callers can ``raise err.with_operation(...)``.
        """
        message = self.args[0] if self.args else ""
        self.args = (f"{operation}: {message}", *self.args[1:])
        return self


class ValidationError(CctlError):
    """Bad input or configuration. Never retried."""


class NotFoundError(CctlError):
    """A distinguishable miss, used to drive fallback logic."""


class NotCachedError(NotFoundError):
    """No schematic ID is cached locally."""


class WaitTimeoutError(CctlError):
    """A polling deadline elapsed."""


class CancelledError(CctlError):
    """A poll loop observed an external cancellation."""


class TransportError(CctlError):
    """Network or process failure."""


class CommandError(TransportError):
    """An external command exited unsuccessfully.

    Attributes:
        command: The command line that failed.
        stderr: Captured standard error, stripped.
    """

    def __init__(self, message: str, command: str = "", stderr: str = "") -> None:
        super().__init__(message)
        self.command = command
        self.stderr = stderr


class ApiError(TransportError):
    """A remote API answered with a non-2xx status.

    Attributes:
        status_code: HTTP status code returned by the server.
        body: Truncated response body.
    """

    def __init__(self, message: str, status_code: int = 0, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class FactoryError(TransportError):
    """The Talos image factory rejected a schematic or returned no ID."""


class DownloadError(TransportError):
    """An image download failed."""


class UploadError(TransportError):
    """An upload into hypervisor storage failed."""


class ConflictError(CctlError):
    """Remote state prevents the requested transition."""


class DecodeError(CctlError):
    """A secret payload could not be decoded."""
