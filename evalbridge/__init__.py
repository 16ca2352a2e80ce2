"""evalbridge - async storage operations over a synchronous evaluate primitive.

Usage:
    from evalbridge import BridgeConfig, create_bridge

    config = BridgeConfig.load("local")
    client = create_bridge(config)

    await client.write("a/b.txt", "hello")
    await client.read("a/b.txt")
"""

from __future__ import annotations

from pathlib import Path

from evalbridge.client import StorageClient
from evalbridge.config import BridgeConfig, resolve_host_name
from evalbridge.dispatcher import OperationDispatcher
from evalbridge.errors import BridgeError, EvaluationError, OperationError, OperationTimeoutError
from evalbridge.host import EvalAdapter, HostConvention, HostPrimitive
from evalbridge.staging import BinaryStagingChannel


def create_bridge(
    config: BridgeConfig | None = None,
    host: HostPrimitive | None = None,
    convention: HostConvention | str | None = None,
) -> StorageClient:
    """Factory: wire adapter, dispatcher, staging channel and client.

    Args:
        config: BridgeConfig (from BridgeConfig.load() or inline)
        host: Evaluate primitive of the target context; required unless
            ``config.host`` is "local"
        convention: Force the host calling convention instead of detecting it
    """
    config = config or BridgeConfig()

    if host is None:
        if config.host != "local":
            raise ValueError(f"No host primitive given for host '{config.host}'")
        from evalbridge.local import LocalTarget

        Path(config.storage_root).expanduser().mkdir(parents=True, exist_ok=True)
        host = LocalTarget(name=config.name).host(convention or HostConvention.AWAITABLE)

    adapter = EvalAdapter(host, convention=convention)
    dispatcher = OperationDispatcher(adapter, config.polling)
    staging = BinaryStagingChannel(dispatcher, config.staging)
    return StorageClient(dispatcher, config=config, staging=staging)


__all__ = [
    "BridgeConfig",
    "BridgeError",
    "EvaluationError",
    "OperationError",
    "OperationTimeoutError",
    "StorageClient",
    "create_bridge",
    "resolve_host_name",
]
