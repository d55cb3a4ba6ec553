# src/dam_overtopping/parallel.py
import concurrent.futures
import logging
import time
from tqdm import tqdm

logger = logging.getLogger(__name__)


def process_in_parallel(items, process_func, max_workers=None, desc="Processing", on_error=None):
    """
    Process a list of items in parallel, returning results in input order.

    Args:
        items: List of items to process
        process_func: Picklable function to apply to each item
        max_workers: Maximum number of worker processes (None uses all available)
        desc: Description for the progress bar
        on_error: Optional callable (item, exception) -> result used when an item
            raises; if None the exception propagates

    Returns:
        List of results, results[i] belonging to items[i]
    """
    start_time = time.time()
    results = [None] * len(items)

    with concurrent.futures.ProcessPoolExecutor(max_workers=max_workers) as executor:
        # Tag every future with the index of its item
        futures = {executor.submit(process_func, item): i for i, item in enumerate(items)}

        # Collect results as they complete with a progress bar
        for future in tqdm(concurrent.futures.as_completed(futures), total=len(futures), desc=desc):
            i = futures[future]
            try:
                results[i] = future.result()
            except Exception as e:
                logger.error(f"Error processing item {i}: {type(e).__name__}: {e}")
                if on_error is None:
                    raise
                results[i] = on_error(items[i], e)

    end_time = time.time()
    logger.info(f"Parallel processing completed in {end_time - start_time:.2f} seconds")

    return results
