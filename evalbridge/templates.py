"""Code templates for storage operations.

Each façade call compiles to one :class:`Operation`. Operations that touch
storage ship the target library (``evalbridge/target``) as an escaped source
literal and execute it into a private namespace on the worker thread, so
nothing but the scratch slot and staging dict lands in the target's globals.
"""

from __future__ import annotations

from functools import lru_cache
from importlib import resources

from evalbridge.config import BridgeConfig
from evalbridge.dispatcher import Operation
from evalbridge.escaping import quote

STAGING_GLOBAL = "_evalbridge_staging"


@lru_cache(maxsize=None)
def target_source(module: str) -> str:
    return resources.files("evalbridge.target").joinpath(f"{module}.py").read_text(encoding="utf-8")


def library_prelude(*modules: str) -> str:
    """Statements that build ``_lib`` from the given target modules."""
    lines = ["_lib = __import__('types').ModuleType('_evalbridge_lib')"]
    for module in modules:
        source = quote(target_source(module))
        filename = quote(f"<evalbridge:{module}>")
        lines.append(f"exec(compile({source}, {filename}, 'exec'), _lib.__dict__)")
    return "\n".join(lines)


def staging_dict() -> str:
    return f"globals().setdefault({STAGING_GLOBAL!r}, {{}})"


def stage_chunk(chunk_key: str, chunk: str) -> Operation:
    return Operation(
        prelude=f"{staging_dict()}[{quote(chunk_key)}] = {quote(chunk)}",
        expression="True",
        name=f"stage {chunk_key}",
    )


def discard_chunk(chunk_key: str) -> Operation:
    return Operation(
        expression=f"globals().get({STAGING_GLOBAL!r}, {{}}).pop({quote(chunk_key)}, None) is not None",
        name=f"discard {chunk_key}",
    )


class OperationTemplates:
    """Builds the code for each façade operation from a :class:`BridgeConfig`."""

    def __init__(self, config: BridgeConfig):
        self.config = config

    @property
    def _root(self) -> str:
        return quote(self.config.storage_root)

    def _storage_call(self, name: str, call: str, *, classify: bool = False) -> Operation:
        modules = ("classify", "storage") if classify else ("storage",)
        return Operation(prelude=library_prelude(*modules), expression=f"_lib.{call}", name=name)

    def _classifier_args(self) -> str:
        options = self.config.classifier.model_dump()
        return f"_lib.classify, _lib.guess_mime_type, classifier_options={options!r}"

    def list(self, path: str) -> Operation:
        return self._storage_call("list", f"list_entries({self._root}, {quote(path)})")

    def read(self, path: str) -> Operation:
        limits = self.config.previews
        return self._storage_call(
            "read",
            f"read_text({self._root}, {quote(path)}, {self._classifier_args()}, text_limit={limits.text_bytes})",
            classify=True,
        )

    def read_with_meta(self, path: str, force_text: bool = False) -> Operation:
        limits = self.config.previews
        return self._storage_call(
            "readWithMeta",
            f"read_with_meta({self._root}, {quote(path)}, {self._classifier_args()}, "
            f"force_text={bool(force_text)!r}, text_limit={limits.text_bytes}, image_limit={limits.image_bytes})",
            classify=True,
        )

    def write_text(self, path: str, content: str) -> Operation:
        return self._storage_call("write", f"write_text({self._root}, {quote(path)}, {quote(content)})")

    def write_staged(self, path: str, key: str, chunk_count: int) -> Operation:
        return self._storage_call(
            "write",
            f"write_staged({self._root}, {quote(path)}, {staging_dict()}, {quote(key)}, {int(chunk_count)})",
        )

    def rename(self, path: str, new_name: str) -> Operation:
        return self._storage_call("rename", f"rename({self._root}, {quote(path)}, {quote(new_name)})")

    def move(self, old_path: str, new_path: str) -> Operation:
        return self._storage_call("move", f"move({self._root}, {quote(old_path)}, {quote(new_path)})")

    def create(self, path: str, kind: str) -> Operation:
        return self._storage_call("create", f"create({self._root}, {quote(path)}, {quote(kind)})")

    def delete(self, path: str) -> Operation:
        return self._storage_call("delete", f"delete({self._root}, {quote(path)})")

    def download(self, path: str) -> Operation:
        return self._storage_call(
            "download",
            f"download({self._root}, {quote(path)}, {quote(self.config.download_dir)})",
        )

    def storage_estimate(self) -> Operation:
        return self._storage_call("getStorageEstimate", f"storage_estimate({self._root})")

    def exists(self, path: str) -> Operation:
        return self._storage_call("exists", f"exists({self._root}, {quote(path)})")
