"""Build-graph description types."""

from .state import (
    CacheMount,
    Constraints,
    Copy,
    ExecOp,
    ExecState,
    FileOp,
    GitOp,
    HttpOp,
    ImageOp,
    LocalOp,
    MergeOp,
    Mkdir,
    Mkfile,
    Mount,
    NetworkMode,
    RunDirective,
    ScratchOp,
    State,
    add_mount,
    merge_at_path,
    network,
    persistent_cache,
    run_dir,
    sh_args,
    with_run_options,
)

__all__ = [
    "CacheMount",
    "Constraints",
    "Copy",
    "ExecOp",
    "ExecState",
    "FileOp",
    "GitOp",
    "HttpOp",
    "ImageOp",
    "LocalOp",
    "MergeOp",
    "Mkdir",
    "Mkfile",
    "Mount",
    "NetworkMode",
    "RunDirective",
    "ScratchOp",
    "State",
    "add_mount",
    "merge_at_path",
    "network",
    "persistent_cache",
    "run_dir",
    "sh_args",
    "with_run_options",
]
