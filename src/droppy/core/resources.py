import gzip
import hashlib
import json
import mimetypes
from pathlib import Path

from droppy.core.errors import ResourceBuildError
from droppy.core.utils.logging import get_logger

logger = get_logger("droppy.resources")

COMPRESSIBLE = frozenset({".html", ".css", ".js", ".svg", ".json", ".txt", ".map"})
MANIFEST_NAME = "resources.json"


def _etag(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()[:16]


def iter_resources(root: Path):
    for path in sorted(root.rglob("*")):
        if path.is_file() and not path.name.startswith("."):
            yield path


def build(paths) -> int:
    """
    Precompute client resources into the cache directory.

    Writes one manifest entry per file (etag, mime, size) and a gzip copy for
    compressible types. Returns the number of resources built.
    """
    source = Path(paths.client)
    if not source.is_dir():
        raise ResourceBuildError(f"Client resource directory not found: {source}")

    cache = Path(paths.cache)
    try:
        cache.mkdir(parents=True, exist_ok=True)
        manifest: dict[str, dict[str, object]] = {}
        for path in iter_resources(source):
            rel = path.relative_to(source).as_posix()
            data = path.read_bytes()
            entry: dict[str, object] = {
                "etag": _etag(data),
                "mime": mimetypes.guess_type(path.name)[0] or "application/octet-stream",
                "size": len(data),
            }
            if path.suffix.lower() in COMPRESSIBLE:
                gz_name = rel.replace("/", "_") + ".gz"
                (cache / gz_name).write_bytes(gzip.compress(data, compresslevel=9, mtime=0))
                entry["gzip"] = gz_name
            manifest[rel] = entry
        with open(cache / MANIFEST_NAME, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=2, sort_keys=True)
            f.write("\n")
    except OSError as e:
        raise ResourceBuildError(f"Unable to write resource cache {cache}: {e}") from e

    logger.debug("resources built", count=len(manifest), cache=str(cache))
    return len(manifest)
