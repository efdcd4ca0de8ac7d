"""
Utility for retrying file operations.
"""
import logging
import time
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from ..config import MAX_RETRIES

# Type variable for generic function
T = TypeVar('T')

logger = logging.getLogger(__name__)


def retry_call(
    func: Callable[..., T],
    *args: Any,
    max_retries: int = MAX_RETRIES,
    delay: float = 0.0,
    backoff_factor: float = 1.0,
    exceptions: Tuple[Type[BaseException], ...] = (OSError,),
    before_retry: Optional[Callable[[], None]] = None,
    **kwargs: Any,
) -> T:
    """
    Call func, retrying on failure.
    
    Args:
        func: Function to call
        max_retries: Number of retries after the first attempt
        delay: Seconds to wait before the first retry
        backoff_factor: Multiplier applied to delay on every further retry
        exceptions: Tuple of exceptions to catch and retry on
        before_retry: Called before each retry, e.g. to clear a read-only flag
        
    Returns:
        Result of func

    Raises:
        The exception of the last attempt once all retries failed
    """
    attempt = 0
    
    while True:
        try:
            return func(*args, **kwargs)
        except exceptions as e:
            attempt += 1
            func_name = getattr(func, '__name__', 'function')
            
            if attempt > max_retries:
                logger.debug(f"Max retries ({max_retries}) exceeded for {func_name}")
                raise
            
            wait = delay * backoff_factor ** (attempt - 1)
            logger.warning(
                f"Attempt {attempt}/{max_retries + 1} failed for {func_name}: "
                f"{e.__class__.__name__}: {str(e)}. Retrying in {wait:.2f}s"
            )
            
            if wait > 0:
                time.sleep(wait)
            if before_retry is not None:
                before_retry()
