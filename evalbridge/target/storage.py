"""Storage operations, executed inside the target context.

Shipped into the target as source text alongside ``classify``; standard
library only. Paths are ``/``-separated and relative to the storage root.
Every failure raises with a message meant to be shown as-is.
"""

import base64
import os
import shutil
from pathlib import Path

MB = 1024 * 1024


def _root(root):
    path = Path(os.path.expanduser(root))
    if not path.is_dir():
        raise RuntimeError(f"Storage root is not available: {root}")
    return path


def _parts(path):
    parts = [part for part in (path or "").split("/") if part]
    for part in parts:
        if part in (".", "..") or "\\" in part or "\0" in part:
            raise ValueError(f"Invalid path: {path}")
    return parts


def _resolve_dir(root, parts, path):
    current = root
    for part in parts:
        current = current / part
        if not current.is_dir():
            raise FileNotFoundError(f"Directory not found: {path}")
    return current


def _split(root, path, label="File path"):
    if not path:
        raise ValueError(f"{label} required")
    parts = _parts(path)
    if not parts:
        raise ValueError(f"Invalid {label.lower()}: {path}")
    directory = _resolve_dir(root, parts[:-1], path)
    return directory, parts[-1]


def _file(root, path):
    directory, name = _split(root, path)
    target = directory / name
    if not target.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    return target


def _sampler(target):
    def read_sample(size):
        with open(target, "rb") as handle:
            return handle.read(size)

    return read_sample


def _mb(size):
    return f"{size / MB:.2f}"


def list_entries(root, path=""):
    base = _root(root)
    try:
        directory = _resolve_dir(base, _parts(path), path)
        entries = []
        for child in directory.iterdir():
            entry = {
                "name": child.name,
                "kind": "directory" if child.is_dir() else "file",
                "path": f"{path}/{child.name}" if path else child.name,
            }
            if entry["kind"] == "file":
                try:
                    stat = child.stat()
                    entry["size"] = stat.st_size
                    entry["lastModified"] = int(stat.st_mtime * 1000)
                except OSError:
                    pass
            entries.append(entry)
    except (OSError, ValueError) as exc:
        raise RuntimeError(f"Could not list directory: {path}") from exc
    entries.sort(key=lambda item: (item["kind"] != "directory", item["name"].casefold(), item["name"]))
    return entries


def read_text(root, path, classify, guess_mime_type, text_limit=MB, classifier_options=None):
    target = _file(_root(root), path)
    size = target.stat().st_size
    if size > text_limit:
        return f"[BINARY_OR_LARGE] File is too large to preview ({_mb(size)} MB). Please download to view."
    mime_type = guess_mime_type(target.name)
    detected = classify(target.name, "", size, _sampler(target), **(classifier_options or {}))
    if detected == "text":
        return target.read_bytes().decode("utf-8", errors="replace")
    return f"[BINARY_OR_LARGE] Type: {mime_type}, Size: {size} bytes."


def read_with_meta(
    root,
    path,
    classify,
    guess_mime_type,
    force_text=False,
    text_limit=MB,
    image_limit=5 * MB,
    classifier_options=None,
):
    target = _file(_root(root), path)
    size = target.stat().st_size
    mime_type = guess_mime_type(target.name)
    detected = classify(target.name, "", size, _sampler(target), **(classifier_options or {}))
    result = {
        "content": "",
        "mimeType": mime_type,
        "size": size,
        "isBase64": False,
        "detectedType": detected,
        "isLargeText": False,
    }

    if detected == "image" and not force_text:
        if size > image_limit:
            result["content"] = f"[TOO_LARGE] Image is too large to preview ({_mb(size)} MB)"
            return result
        encoded = base64.b64encode(target.read_bytes()).decode("ascii")
        result["content"] = f"data:{mime_type};base64,{encoded}"
        result["isBase64"] = True
        return result

    if detected == "text" or force_text:
        result["isLargeText"] = size > text_limit
        if result["isLargeText"] and not force_text:
            result["content"] = f"[TOO_LARGE] File is too large to preview ({_mb(size)} MB)"
            return result
        result["content"] = target.read_bytes().decode("utf-8", errors="replace")
        return result

    if detected == "binary":
        result["content"] = f"[BINARY] Type: {mime_type}, Size: {size} bytes"
    else:
        result["content"] = f"[UNKNOWN] Type: {mime_type}, Size: {size} bytes. Open as text to view anyway."
    return result


def write_text(root, path, content):
    directory, name = _split(_root(root), path, "Path")
    (directory / name).write_text(content, encoding="utf-8", newline="")
    return None


def write_staged(root, path, staging, key, chunk_count):
    """Reassemble staged base64 chunks, write the bytes, drop the chunks."""
    names = [f"{key}_{index}" for index in range(chunk_count)]
    try:
        missing = [name for name in names if name not in staging]
        if missing:
            raise RuntimeError(f"Staged data is incomplete: missing {missing[0]}")
        payload = "".join(staging[name] for name in names)
        data = base64.b64decode(payload, validate=True)
        directory, name = _split(_root(root), path, "Path")
        (directory / name).write_bytes(data)
    finally:
        for name in names:
            staging.pop(name, None)
    return None


def rename(root, path, new_name):
    if not path or not new_name:
        raise ValueError("Path and new name required")
    if "/" in new_name or new_name in (".", ".."):
        raise ValueError(f"Invalid name: {new_name}")
    directory, name = _split(_root(root), path, "Path")
    source = directory / name
    if not source.exists():
        raise FileNotFoundError(f"Not found: {path}")
    destination = directory / new_name
    if destination.exists():
        raise FileExistsError(f"An entry named {new_name} already exists")
    source.rename(destination)
    return None


def move(root, old_path, new_path):
    if not old_path or not new_path:
        raise ValueError("Old path and new path required")
    base = _root(root)
    old_directory, old_name = _split(base, old_path, "Old path")
    source = old_directory / old_name
    if not source.exists():
        raise FileNotFoundError(f"Not found: {old_path}")
    new_directory, new_name = _split(base, new_path, "New path")
    destination = new_directory / new_name
    if source.is_dir() and (destination == source or source in destination.parents):
        raise ValueError(f"Cannot move {old_path} into itself")
    if destination.is_dir() and not source.is_dir():
        raise IsADirectoryError(f"A directory named {new_name} already exists")
    if destination.exists() and source.is_dir():
        raise FileExistsError(f"An entry named {new_name} already exists")
    shutil.move(str(source), str(destination))
    return None


def create(root, path, kind):
    directory, name = _split(_root(root), path, "Path")
    target = directory / name
    if kind == "directory":
        if target.is_file():
            raise FileExistsError(f"A file named {name} already exists")
        target.mkdir(exist_ok=True)
    elif kind == "file":
        if target.is_dir():
            raise IsADirectoryError(f"A directory named {name} already exists")
        target.touch(exist_ok=True)
    else:
        raise ValueError(f"Unknown entry kind: {kind}")
    return None


def delete(root, path):
    directory, name = _split(_root(root), path, "Path")
    target = directory / name
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    elif target.exists() or target.is_symlink():
        target.unlink()
    else:
        raise FileNotFoundError(f"Not found: {path}")
    return None


def download(root, path, download_dir):
    source = _file(_root(root), path)
    destination_dir = Path(os.path.expanduser(download_dir))
    destination_dir.mkdir(parents=True, exist_ok=True)
    destination = destination_dir / source.name
    counter = 1
    while destination.exists():
        destination = destination_dir / f"{source.stem} ({counter}){source.suffix}"
        counter += 1
    shutil.copyfile(source, destination)
    return str(destination)


def storage_estimate(root):
    base = _root(root)
    usage = 0
    for current, _, files in os.walk(base):
        for name in files:
            try:
                usage += os.path.getsize(os.path.join(current, name))
            except OSError:
                continue
    free = shutil.disk_usage(base).free
    return {"usage": usage, "quota": usage + free}


def exists(root, path):
    base = _root(root)
    try:
        parts = _parts(path)
    except ValueError:
        return False
    if not parts:
        return True
    return base.joinpath(*parts).exists()
