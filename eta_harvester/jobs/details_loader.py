"""Fetch line items for many records in small batches."""
import asyncio
import logging
from typing import Optional

from eta_harvester.config import config
from eta_harvester.harvester import InvoiceHarvester
from eta_harvester.parse.models import InvoiceRecord

logger = logging.getLogger(__name__)


async def _with_details(harvester: InvoiceHarvester, record: InvoiceRecord) -> InvoiceRecord:
    try:
        result = await harvester.get_record_details(record.electronic_number)
    except Exception as e:
        logger.warning(f"Failed to load details for {record.electronic_number}: {e}")
        return record
    if not result.success:
        logger.warning(f"No details for {record.electronic_number}: {result.error}")
        return record
    return record.model_copy(update={"details": result.line_items})


async def load_record_details(
    harvester: InvoiceHarvester,
    records: list[InvoiceRecord],
    batch_size: Optional[int] = None,
    batch_delay: Optional[float] = None,
) -> list[InvoiceRecord]:
    """
    Attach line items to each record, preserving order.

    Lookups run concurrently within a batch; each batch completes before the
    next starts. A failed lookup leaves the record without details.
    """
    batch_size = batch_size or config.DETAILS_BATCH_SIZE
    if batch_delay is None:
        batch_delay = harvester.timings.details_batch_delay

    detailed: list[InvoiceRecord] = []
    for i in range(0, len(records), batch_size):
        batch = records[i : i + batch_size]
        logger.info(f"Loading details {i + 1}-{i + len(batch)} of {len(records)}")
        detailed.extend(await asyncio.gather(*(_with_details(harvester, r) for r in batch)))
        if i + batch_size < len(records):
            await asyncio.sleep(batch_delay)
    return detailed
