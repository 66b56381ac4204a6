"""Small helpers shared by the pipeline stages."""

import asyncio
from typing import Awaitable, Iterable, Mapping, Optional, Sequence, TypeVar

from pydantic import ValidationError as PydanticValidationError

from models import ChangeItem, Operation

T = TypeVar("T")


def chunk(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive lists of at most ``size`` elements."""
    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


async def gather_or_cancel(*aws: Awaitable[T]) -> list[T]:
    """
    Run ``aws`` concurrently and return their results in order.

    Unlike a bare ``asyncio.gather``, the first failure cancels every
    sibling still running and waits for it to finish before the error is
    raised, so no request is issued after the failure surfaces. Cancelling
    the caller cancels the children as well.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []

    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    finally:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    errors = [
        task.exception() for task in tasks
        if task in done and not task.cancelled() and task.exception() is not None
    ]
    if errors:
        raise errors[0]
    return [task.result() for task in tasks]


def group_by_operation(items: Iterable[ChangeItem]) -> dict[Operation, list[ChangeItem]]:
    """Group change items by create/update/delete, keeping input order."""
    grouped: dict[Operation, list[ChangeItem]] = {op: [] for op in Operation}
    for item in items:
        grouped[item.operation].append(item)
    return grouped


def _is_missing(obj: Mapping, dotted_key: str) -> bool:
    current = obj
    for part in dotted_key.split("."):
        if not isinstance(current, Mapping):
            return True
        current = current.get(part)
    # 0, False and empty lists count as present
    return current is None or current == ""


def find_missing_keys(obj: Mapping, required: Iterable[str]) -> list[str]:
    """
    Return the required keys missing from ``obj``.

    Keys may be dotted to reach nested mappings, e.g. ``data.instanceId``.
    A key is missing when absent, None or an empty string.
    """
    return [key for key in required if _is_missing(obj, key)]


def missing_inputs_message(obj: Mapping, required: Iterable[str]) -> Optional[str]:
    """Human readable message for missing keys, or None when nothing is missing."""
    missing = find_missing_keys(obj, required)
    if not missing:
        return None
    return f"missing parameter(s) '{','.join(missing)}'"


def format_validation_errors(error: PydanticValidationError) -> str:
    """Flatten pydantic errors to ``/loc/path message; ...``."""
    return "; ".join(
        f"/{'/'.join(str(p) for p in err['loc'])} {err['msg']}" for err in error.errors()
    )
