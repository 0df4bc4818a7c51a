"""
Global OSINT Dashboard — Webhook delivery.

All network I/O isolated here. Deliveries are best-effort: one attempt,
bounded timeout, no retry. Failures come back as a failed WorkflowTrigger
instead of an exception.
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable

import requests

from automation import Webhook, WorkflowTrigger
from config import WEBHOOK_MAX_WORKERS, WEBHOOK_TIMEOUT
from events import utcnow

logger = logging.getLogger(__name__)

_background = ThreadPoolExecutor(max_workers=WEBHOOK_MAX_WORKERS, thread_name_prefix="webhook")


def deliver(webhook: Webhook, payload: dict, timeout=WEBHOOK_TIMEOUT) -> WorkflowTrigger:
    """POST ``payload`` as JSON to one webhook. Safe to call from threads."""
    started = time.monotonic()
    error = None
    try:
        resp = requests.post(webhook.url, json=payload, timeout=timeout)
        success = resp.ok
        if not success:
            error = f"HTTP {resp.status_code}"
    except requests.RequestException as e:
        success = False
        error = str(e) or e.__class__.__name__
    elapsed_ms = (time.monotonic() - started) * 1000

    if success:
        logger.info("Webhook %s delivered in %.0f ms", webhook.name, elapsed_ms)
    else:
        logger.warning("Webhook %s failed: %s", webhook.name, error)

    return WorkflowTrigger(
        webhook_id=webhook.id,
        event_data=payload,
        timestamp=utcnow(),
        success=success,
        error=error,
        response_ms=round(elapsed_ms, 1),
    )


def deliver_many(jobs: list[tuple[Webhook, dict]], timeout=WEBHOOK_TIMEOUT) -> list[WorkflowTrigger]:
    """Deliver several payloads in parallel; results come back in job order."""
    if not jobs:
        return []

    done: dict[Future, WorkflowTrigger] = {}
    with ThreadPoolExecutor(max_workers=min(len(jobs), WEBHOOK_MAX_WORKERS)) as pool:
        futures = [pool.submit(deliver, hook, payload, timeout) for hook, payload in jobs]
        for fut in as_completed(futures):
            done[fut] = fut.result()
    results = [done[f] for f in futures]

    ok = sum(1 for r in results if r.success)
    logger.info("Delivered %d/%d webhook payloads", ok, len(results))
    return results


def dispatch_in_background(webhook: Webhook, payload: dict,
                           on_done: Callable[[WorkflowTrigger], None] | None = None,
                           timeout=WEBHOOK_TIMEOUT) -> Future:
    """Fire-and-forget delivery. ``on_done`` runs on the worker thread."""
    future = _background.submit(deliver, webhook, payload, timeout)
    if on_done is not None:
        future.add_done_callback(lambda f: on_done(f.result()))
    return future
