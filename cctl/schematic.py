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

"""Locally cached Talos schematic ID."""

from __future__ import annotations

from pathlib import Path

from cctl import logger
from cctl.errors import CctlError, NotCachedError, ValidationError
from cctl.factory import TalosFactory
from cctl.utils import write_private_file


class SchematicCache:
    """Single-value cache of the schematic ID returned by the image factory.

    The cache is never invalidated automatically: after editing the
    schematic YAML, run ``clear`` or ``refresh``. Concurrent refreshes are
    not locked; the last writer wins, which is harmless because the ID is
    derived from the schematic content.

    Args:
        path: Cache file location.
        schematic_yaml: Schematic definition uploaded on refresh.
        factory: Image factory client.
    """

    def __init__(self, path: str | Path, schematic_yaml: str | Path, factory: TalosFactory) -> None:
        self.path = Path(path)
        self.schematic_yaml = Path(schematic_yaml)
        self.factory = factory

    def read(self) -> str:
        """Return the cached ID, or an empty string when the cache is absent."""
        try:
            return self.path.read_text().strip()
        except FileNotFoundError:
            return ""
        except OSError as err:
            raise ValidationError(f"read schematic cache: {err}") from err

    def ensure(self) -> str:
        """Return the cached ID, refreshing from the factory only on a miss."""
        cached = self.read()
        if cached:
            logger.debug("Using cached schematic ID %s from %s", cached, self.path)
            return cached
        return self.refresh()

    def refresh(self) -> str:
        """Upload the schematic YAML and cache the returned ID.

        Raises:
            ValidationError: If the schematic YAML cannot be read or the cache cannot be written.
            FactoryError: If the factory rejects the schematic or returns no ID.
        """
        try:
            definition = self.schematic_yaml.read_bytes()
        except OSError as err:
            raise ValidationError(f"read schematic yaml: {err}") from err

        schematic_id = self.factory.create_schematic(definition)
        try:
            write_private_file(self.path, schematic_id.encode(), mode=0o644)
        except OSError as err:
            raise ValidationError(f"write schematic cache: {err}") from err
        logger.info("Cached Talos schematic ID", extra={"schematic_id": schematic_id, "path": str(self.path)})
        return schematic_id

    def show(self) -> str:
        """Return the cached ID.

        Raises:
            NotCachedError: If nothing is cached.
        """
        cached = self.read()
        if not cached:
            raise NotCachedError("no cached schematic ID; run refresh first")
        return cached

    def clear(self) -> None:
        """Remove the cache file; an absent file is not an error."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as err:
            raise CctlError(f"remove schematic cache: {err}") from err
        logger.info("Cleared cached schematic ID", extra={"path": str(self.path)})
