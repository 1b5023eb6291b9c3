"""
Celery tasks for scheduled collection.

Beat triggers `collect_sources` weekly (see config/celery.py); the task
runs the same sequential batch as the collect_draw_data command.
"""

import logging
from typing import Any, Dict, List, Optional

from asgiref.sync import async_to_sync
from celery import shared_task

from drawdata.services.batch_runner import BatchRunner, render_summary
from drawdata.services.store import RegulatoryStore

logger = logging.getLogger(__name__)


@shared_task(name="drawdata.tasks.collect_sources")
def collect_sources(source_ids: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Collect the given sources (all when None) and return the batch summary.

    Store configuration errors and unknown identifiers propagate so the
    task is marked failed.
    """
    store = RegulatoryStore()
    summary = async_to_sync(BatchRunner(store).run)(source_ids)

    logger.info(render_summary(summary))
    if summary.failed:
        logger.error("Collection batch finished with unproductive sources")

    return summary.to_dict()
