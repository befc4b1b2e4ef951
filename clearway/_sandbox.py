"""Sandboxed evaluation of challenge scripts in a throwaway V8 isolate.

Each script gets a fresh MiniRacer context on a worker thread. V8's own
watchdog terminates execution at the deadline; the caller races the worker
against the same deadline (plus a grace period) and never polls. A worker
stuck in native code is abandoned rather than killed.
"""

import asyncio
import concurrent.futures
import logging
import math
import time

from py_mini_racer import JSEvalException, JSTimeoutException, MiniRacer

from clearway._errors import MalformedAnswer, ScriptTimeout

logger = logging.getLogger("clearway")

DEFAULT_SCRIPT_TIMEOUT = 5.0

# Extra wait on top of the V8 deadline before the caller gives up on a
# worker that has not reported back.
_GRACE = 0.5

_executor = concurrent.futures.ThreadPoolExecutor(
    max_workers=4, thread_name_prefix="clearway-sandbox"
)


def _to_float(result) -> float:
    """Coerce a JS completion value to a finite float."""
    if isinstance(result, bool):
        # float(True) would pass as 1.0
        raise MalformedAnswer(f"boolean result {result!r}")
    try:
        value = float(result)
    except (TypeError, ValueError):
        raise MalformedAnswer(f"non-numeric result {result!r}") from None
    if not math.isfinite(value):
        raise MalformedAnswer(f"non-finite result {value!r}")
    return value


def _run(script: str, timeout: float) -> float:
    """Worker body: evaluate in a fresh isolate, translate engine errors.

    The isolate is torn down on this thread before returning; leaving it
    to the garbage collector lets V8 be destroyed from an arbitrary thread.
    """
    ctx = MiniRacer()
    start = time.monotonic()
    try:
        result = ctx.eval(script, timeout=int(timeout * 1000))
    except JSTimeoutException:
        raise ScriptTimeout(timeout) from None
    except JSEvalException as e:
        raise MalformedAnswer(str(e).strip() or type(e).__name__) from e
    finally:
        ctx.close()
    logger.debug(
        "Sandbox finished in %.3fs", time.monotonic() - start
    )
    return _to_float(result)


def _abandon(timeout: float) -> ScriptTimeout:
    logger.warning(
        "Sandbox worker still running %.1fs past its %.1fs deadline, "
        "abandoning",
        _GRACE,
        timeout,
    )
    return ScriptTimeout(timeout)


def evaluate(script: str, timeout: float = DEFAULT_SCRIPT_TIMEOUT) -> float:
    """Run an arithmetic challenge script and return its numeric result.

    Blocks the calling thread until the script completes or the deadline
    passes, whichever comes first.

    Raises:
        ScriptTimeout: the script did not finish within ``timeout`` seconds.
        MalformedAnswer: the script failed to parse or run, or produced
            something other than a finite number.
    """
    logger.debug("Evaluating challenge script (timeout=%.1fs)", timeout)
    future = _executor.submit(_run, script, timeout)
    done, _ = concurrent.futures.wait([future], timeout=timeout + _GRACE)
    if not done:
        future.cancel()
        raise _abandon(timeout)
    return future.result()


async def evaluate_async(
    script: str, timeout: float = DEFAULT_SCRIPT_TIMEOUT
) -> float:
    """Async variant of evaluate(); suspends only the calling task."""
    logger.debug("Evaluating challenge script (timeout=%.1fs)", timeout)
    loop = asyncio.get_running_loop()
    future = loop.run_in_executor(_executor, _run, script, timeout)
    done, _ = await asyncio.wait({future}, timeout=timeout + _GRACE)
    if not done:
        future.cancel()
        raise _abandon(timeout)
    return future.result()
