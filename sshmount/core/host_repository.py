"""
Host Repository - ordered list of saved host profiles with JSON persistence.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from sshmount.core.exceptions import HostStoreError
from sshmount.models import HostProfile


class HostRepository:
    """
    In-memory list of HostProfile objects backed by a JSON file.

    The file looks like `{"hosts": [{...}, ...]}`. Profiles are addressed by
    their position in the list, since display names are not unique.
    """

    def __init__(self, file_path: Path):
        self._file_path = Path(file_path)
        self._hosts: List[HostProfile] = []
        self._lock = asyncio.Lock()

    @property
    def file_path(self) -> Path:
        return self._file_path

    async def load(self) -> int:
        """
        Replace the in-memory list with the file contents.

        A missing file is an empty store. Returns the number of hosts loaded.

        Raises:
            HostStoreError: if the file cannot be read or is not a valid hosts document.
        """
        async with self._lock:
            if not await aiofiles.os.path.exists(self._file_path):
                self._hosts = []
                logging.info(f"No existing hosts file at {self._file_path}, starting fresh")
                return 0

            try:
                async with aiofiles.open(self._file_path, "r", encoding="utf-8") as f:
                    raw = await f.read()
            except OSError as e:
                raise HostStoreError(str(self._file_path), f"Cannot read hosts file ({e})")

            try:
                document = json.loads(raw)
            except json.JSONDecodeError:
                raise HostStoreError(str(self._file_path), "Invalid JSON format in hosts file")

            if not isinstance(document, dict) or not isinstance(document.get("hosts", []), list):
                raise HostStoreError(str(self._file_path), "Invalid JSON format in hosts file")

            hosts = []
            for index, entry in enumerate(document.get("hosts", [])):
                try:
                    hosts.append(HostProfile.model_validate(entry))
                except ValidationError as e:
                    raise HostStoreError(
                        str(self._file_path), f"Invalid host entry #{index} ({e.error_count()} error(s))"
                    )

            self._hosts = hosts
            logging.info(f"Loaded {len(hosts)} host(s) from {self._file_path}")
            return len(hosts)

    async def save(self) -> None:
        """
        Write the current list to disk, creating the parent directory if needed.

        Raises:
            HostStoreError: if the file cannot be written.
        """
        async with self._lock:
            document = {
                "hosts": [host.model_dump(mode="json", by_alias=True) for host in self._hosts]
            }
            try:
                await aiofiles.os.makedirs(self._file_path.parent, exist_ok=True)
                async with aiofiles.open(self._file_path, "w", encoding="utf-8") as f:
                    await f.write(json.dumps(document, indent=4))
            except OSError as e:
                raise HostStoreError(str(self._file_path), f"Cannot write hosts file ({e})")

            logging.info(f"Saved {len(self._hosts)} host(s) to {self._file_path}")

    async def get_all(self) -> List[HostProfile]:
        async with self._lock:
            return list(self._hosts)

    async def get(self, index: int) -> Optional[HostProfile]:
        async with self._lock:
            if 0 <= index < len(self._hosts):
                return self._hosts[index]
            return None

    async def add(self, host: HostProfile) -> int:
        """Append a host and return its index."""
        async with self._lock:
            self._hosts.append(host)
            return len(self._hosts) - 1

    async def update(self, index: int, host: HostProfile) -> bool:
        async with self._lock:
            if 0 <= index < len(self._hosts):
                self._hosts[index] = host
                return True
            logging.warning(f"Host index {index} does not exist. Cannot update.")
            return False

    async def remove(self, index: int) -> bool:
        async with self._lock:
            if 0 <= index < len(self._hosts):
                del self._hosts[index]
                return True
            return False

    async def count(self) -> int:
        async with self._lock:
            return len(self._hosts)
