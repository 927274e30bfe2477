import inspect
from pathlib import Path
from typing import Optional, Union

_PACKAGE_ROOT = Path(__file__).resolve().parent.parent


def _caller_file() -> Optional[Path]:
    """First frame on the stack that lives outside this package"""
    for frame_info in inspect.stack()[1:]:
        filename = frame_info.filename
        if filename.startswith('<'):
            continue
        path = Path(filename).resolve()
        if _PACKAGE_ROOT not in path.parents:
            return path
    return None


def resolve_feature_path(feature_path: Union[str, Path], caller_file: Optional[Union[str, Path]] = None) -> Path:
    """
    Resolve a feature document reference to an absolute path.

    Args:
        feature_path: Absolute path, or a path relative to the caller
        caller_file: File the reference is relative to; detected from the
            call stack when omitted

    Returns:
        Absolute path (existence is not checked)
    """
    path = Path(feature_path)
    if path.is_absolute():
        return path

    base = Path(caller_file).resolve() if caller_file else _caller_file()
    if base is not None:
        return (base.parent / path).resolve()

    return (Path.cwd() / path).resolve()
