# bibnet/graph/io.py

"""
Pickle snapshots of a GraphStore.

The engine does not mandate any storage format; these helpers only let the
CLI carry a built store between `build`, `analyze` and `query` runs.
"""

from __future__ import annotations

import pickle
from pathlib import Path
from typing import Optional, Union

from bibnet.config.settings import settings
from bibnet.graph.store import GraphStore

PathLike = Union[str, Path]

SNAPSHOT_SUFFIX = ".gpickle"


def save_store(
    store: GraphStore,
    path: PathLike,
    overwrite: bool = True,
) -> Path:
    """
    Serialize a GraphStore to disk using pickle.

    - If `path` has no suffix, `.gpickle` is appended.
    - Creates parent directories if needed.
    - If `overwrite` is False and the file already exists, raises FileExistsError.
    """
    output_path = Path(path)
    if output_path.suffix == "":
        output_path = output_path.with_suffix(SNAPSHOT_SUFFIX)

    output_path.parent.mkdir(parents=True, exist_ok=True)

    if output_path.exists() and not overwrite:
        raise FileExistsError(f"Store file already exists and overwrite=False: {output_path}")

    with store.locked(), output_path.open("wb") as f:
        pickle.dump(store, f, protocol=pickle.HIGHEST_PROTOCOL)

    return output_path


def load_store(path: PathLike) -> GraphStore:
    """
    Load a GraphStore from a pickle file.
    """
    p = Path(path)
    with p.open("rb") as f:
        store = pickle.load(f)

    if not isinstance(store, GraphStore):
        raise TypeError(f"{p} does not contain a GraphStore (got {type(store).__name__})")
    return store


def load_latest_store(directory: Optional[PathLike] = None) -> Optional[GraphStore]:
    """
    Load the most recently modified snapshot in `directory` (default:
    settings.graph_dir). Returns None if there is none.
    """
    directory = Path(directory) if directory is not None else settings.graph_dir
    if not directory.is_dir():
        return None

    candidates = [p for p in directory.glob(f"*{SNAPSHOT_SUFFIX}") if p.is_file()]
    if not candidates:
        return None

    latest = max(candidates, key=lambda p: p.stat().st_mtime)
    return load_store(latest)
