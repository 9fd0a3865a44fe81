"""
Optimistic update helper: snapshot, apply, run the remote effect, revert on failure
"""
from typing import Awaitable, Callable, TypeVar

S = TypeVar("S")
T = TypeVar("T")


async def apply_or_revert(
    read: Callable[[], S],
    write: Callable[[S], None],
    tentative: S,
    effect: Callable[[], Awaitable[T]],
) -> T:
    """
    Install `tentative` via `write`, then await `effect()`.

    If the effect raises, the value returned by `read()` before the call is written
    back and the exception propagates. `write` receives whole values only, so
    observers never see a half-applied state.

    Example:
        await apply_or_revert(
            lambda: state.items,
            state.set_items,
            state.items + (item,),
            lambda: store.insert(item),
        )
    """
    snapshot = read()
    write(tentative)
    try:
        return await effect()
    except BaseException:
        write(snapshot)
        raise
