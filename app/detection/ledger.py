"""
Per-request resource ledger.

Resources are recorded as they are acquired and released in reverse order
when the `async with` block exits:

  * temp files are always unlinked (an already-missing file is fine)
  * remote objects are deleted unless `commit()` was called, i.e. the
    request did not complete successfully

Release failures are logged and swallowed so the error that ended the request
(if any) keeps propagating unchanged.
"""

import logging
import os
from typing import Optional

from app.core.file_validator import sanitize_log_message

logger = logging.getLogger(__name__)


class RequestLedger:
    def __init__(self, store=None):
        self._store = store
        self._entries: list[tuple[str, str, Optional[str]]] = []
        self._committed = False
        self._released = False

    @property
    def committed(self) -> bool:
        return self._committed

    def add_temp_file(self, path: str) -> str:
        self._entries.append(("temp_file", path, None))
        return path

    def add_remote_object(self, public_id: str, resource_type: Optional[str] = None) -> str:
        self._entries.append(("remote_object", public_id, resource_type))
        return public_id

    def commit(self) -> None:
        """Mark the request successful: remote objects outlive it."""
        self._committed = True

    async def release(self) -> None:
        if self._released:
            return
        self._released = True

        for kind, ref, extra in reversed(self._entries):
            if kind == "temp_file":
                self._remove_temp_file(ref)
            elif not self._committed:
                await self._remove_remote_object(ref, extra)

    def _remove_temp_file(self, path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(sanitize_log_message(f"[CLEANUP] Unable to remove temp file {path}: {e}"))

    async def _remove_remote_object(self, public_id: str, resource_type: Optional[str]) -> None:
        if self._store is None:
            logger.warning(f"[CLEANUP] No store available to delete {public_id}")
            return
        try:
            await self._store.remove(public_id, resource_type)
            logger.info(f"[CLEANUP] Compensating delete issued for {public_id}")
        except Exception as e:
            logger.warning(f"[CLEANUP] Unable to delete remote object {public_id}: {e}")

    async def __aenter__(self) -> "RequestLedger":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        await self.release()
        return False
