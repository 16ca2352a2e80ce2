"""StorageClient - the typed operation façade.

Each call builds one operation from :mod:`evalbridge.templates` and runs it
through the dispatcher; binary writes stage their payload first.
"""

from __future__ import annotations

import logging

from evalbridge.config import BridgeConfig
from evalbridge.dispatcher import OperationDispatcher
from evalbridge.errors import EvaluationError
from evalbridge.interfaces.storage import (
    EntryKind,
    FileEntry,
    FileReadResult,
    StorageBackend,
    StorageEstimate,
)
from evalbridge.staging import BinaryStagingChannel
from evalbridge.templates import OperationTemplates

logger = logging.getLogger(__name__)

ENTRY_KINDS = ("file", "directory")


class StorageClient(StorageBackend):
    """Storage operations carried out inside a target context.

    Usage:
        client = create_bridge(BridgeConfig.load("local"))
        await client.write("notes/today.md", "# hi")
        text = await client.read("notes/today.md")
    """

    def __init__(
        self,
        dispatcher: OperationDispatcher,
        config: BridgeConfig | None = None,
        staging: BinaryStagingChannel | None = None,
    ):
        self.config = config or BridgeConfig()
        self.dispatcher = dispatcher
        self.staging = staging or BinaryStagingChannel(dispatcher, self.config.staging)
        self.templates = OperationTemplates(self.config)

    async def list(self, path: str = "") -> list[FileEntry]:
        records = await self.dispatcher.run(self.templates.list(path))
        return [FileEntry.from_record(record) for record in records]

    async def read(self, path: str) -> str:
        return await self.dispatcher.run(self.templates.read(path))

    async def read_with_meta(self, path: str, *, force_text: bool = False) -> FileReadResult:
        record = await self.dispatcher.run(self.templates.read_with_meta(path, force_text=force_text))
        return FileReadResult.from_record(record)

    async def write(self, path: str, content: str, is_binary: bool = False) -> None:
        if not is_binary:
            await self.dispatcher.run(self.templates.write_text(path, content))
            return
        payload = await self.staging.stage(content)
        logger.debug("writing %s from %d staged chunks", path, payload.chunk_count)
        # write_staged drops the chunks itself once it runs in the target
        try:
            await self.dispatcher.run(self.templates.write_staged(path, payload.key, payload.chunk_count))
        except EvaluationError:
            # @@@staged-leak - the write never ran, so nothing else will drop the chunks.
            # A timeout is left alone: the write may still be reading them.
            await self.staging.discard(payload)
            raise

    async def rename(self, path: str, new_name: str) -> None:
        await self.dispatcher.run(self.templates.rename(path, new_name))

    async def move(self, old_path: str, new_path: str) -> None:
        await self.dispatcher.run(self.templates.move(old_path, new_path))

    async def create(self, path: str, kind: EntryKind) -> None:
        if kind not in ENTRY_KINDS:
            raise ValueError(f"kind must be one of {ENTRY_KINDS}, got {kind!r}")
        await self.dispatcher.run(self.templates.create(path, kind))

    async def delete(self, path: str) -> None:
        await self.dispatcher.run(self.templates.delete(path))

    async def download(self, path: str) -> None:
        saved_to = await self.dispatcher.run(self.templates.download(path))
        logger.info("downloaded %s to %s", path, saved_to)

    async def get_storage_estimate(self) -> StorageEstimate:
        record = await self.dispatcher.run(self.templates.storage_estimate())
        return StorageEstimate(usage=int(record["usage"]), quota=int(record["quota"]))

    async def exists(self, path: str) -> bool:
        return bool(await self.dispatcher.run(self.templates.exists(path)))
