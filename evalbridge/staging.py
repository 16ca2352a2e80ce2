"""Binary staging channel.

Large base64 payloads are never embedded as one literal. They are cut into
fixed-size chunks, each stored by its own small operation into the target's
session-long staging dict, and reassembled by the final write operation.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass

from evalbridge import templates
from evalbridge.config import StagingConfig
from evalbridge.dispatcher import OperationDispatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagedBinaryPayload:
    key: str
    chunk_count: int

    def chunk_keys(self) -> list[str]:
        return [chunk_key(self.key, index) for index in range(self.chunk_count)]


def chunk_key(key: str, index: int) -> str:
    return f"{key}_{index}"


def chunk(data: str, size: int) -> list[str]:
    """Split ``data`` into ``size``-character slices; empty input gives one empty slice."""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    count = max(1, math.ceil(len(data) / size))
    return [data[index * size : (index + 1) * size] for index in range(count)]


class BinaryStagingChannel:
    def __init__(self, dispatcher: OperationDispatcher, config: StagingConfig | None = None):
        self.dispatcher = dispatcher
        self.config = config or StagingConfig()

    async def stage(self, data: str, key: str | None = None) -> StagedBinaryPayload:
        """Store ``data`` chunk by chunk; on failure remove what was stored and re-raise."""
        key = key or f"stage_{uuid.uuid4().hex}"
        chunks = chunk(data, self.config.chunk_size)
        staged = 0
        try:
            for index, piece in enumerate(chunks):
                await self.dispatcher.run(templates.stage_chunk(chunk_key(key, index), piece))
                staged += 1
        except Exception:
            logger.warning("staging %s failed at chunk %d/%d, discarding", key, staged, len(chunks))
            await self._discard_keys([chunk_key(key, index) for index in range(staged)])
            raise
        logger.debug("staged %s in %d chunks", key, len(chunks))
        return StagedBinaryPayload(key=key, chunk_count=len(chunks))

    async def discard(self, payload: StagedBinaryPayload) -> None:
        await self._discard_keys(payload.chunk_keys())

    async def _discard_keys(self, keys: list[str]) -> None:
        for key in keys:
            try:
                await self.dispatcher.run(templates.discard_chunk(key))
            except Exception as exc:
                logger.warning("failed to discard staged chunk %s: %s", key, exc)
