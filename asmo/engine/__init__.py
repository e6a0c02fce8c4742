from .channel import SnapshotChannel
from .resolver import PathNotFoundError, enumerate_endpoints, normalize_floats, resolve, to_f32, to_tree

__all__ = [
    "SnapshotChannel",
    "PathNotFoundError",
    "enumerate_endpoints",
    "normalize_floats",
    "resolve",
    "to_f32",
    "to_tree",
]
