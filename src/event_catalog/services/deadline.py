"""Operation deadlines."""
import asyncio
from contextlib import asynccontextmanager

from ..exceptions import OperationTimeoutError
from ..logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def deadline(operation: str, seconds: float):
    """Bound the enclosed block to ``seconds``.

    Only wrap stages that can be abandoned without effect. Commit stages stay
    outside so a timeout never reports failure for a write that landed.

    Raises:
        OperationTimeoutError: when the block did not finish in time
    """
    try:
        async with asyncio.timeout(seconds):
            yield
    except TimeoutError:
        logger.error("operation_timed_out", operation=operation, timeout_seconds=seconds)
        raise OperationTimeoutError(
            message=f"{operation} did not complete within {seconds:g} seconds.",
            details={"operation": operation, "timeout_seconds": seconds},
        )
