"""Helpers for assembling complete datasets from paged list endpoints."""

import logging
from concurrent.futures import ThreadPoolExecutor

from core import config
from .base import ApiError

logger = logging.getLogger(__name__)


def fetch_all(fetch_page, page_size=None, max_pages=None, **params):
    """
    Page through a list endpoint and return every item.

    Args:
        fetch_page: client method accepting ``page``, ``limit`` and filters,
            e.g. ``client.get_schedules``
        page_size: items per request (defaults to EXPORT_PAGE_SIZE)
        max_pages: hard stop on the number of requests (defaults to
            EXPORT_MAX_PAGES)
        **params: filters forwarded on every request

    Returns:
        list of item dicts in backend order

    Raises:
        ApiError: if any page request fails
    """
    page_size = page_size or config.EXPORT_PAGE_SIZE
    max_pages = max_pages or config.EXPORT_MAX_PAGES

    items = []
    page_number = 1
    while True:
        response = fetch_page(page=page_number, limit=page_size, **params)
        response.raise_for_error()

        page = response.page
        if page is None:
            raise ApiError('Unexpected list response from server', response.status_code)

        items.extend(page.items)

        if not page.items or page_number >= (page.total_pages or 1):
            break
        # Endpoints that return a bare array have no pagination at all
        if page.total and len(items) >= page.total:
            break
        if page_number >= max_pages:
            logger.warning(
                f"Stopped paging after {max_pages} pages "
                f"({len(items)} of {page.total} items fetched)"
            )
            break
        page_number += 1

    return items


def fetch_concurrently(**calls):
    """
    Run independent zero-argument callables in parallel.

    Usage:
        results = fetch_concurrently(
            courses=lambda: client.get_courses(limit=200),
            departments=lambda: client.get_departments(limit=100),
        )
        results['courses']  # ApiResponse

    Exceptions raised by a callable propagate to the caller.
    """
    if not calls:
        return {}

    workers = min(len(calls), config.EXPORT_WORKERS)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {name: executor.submit(call) for name, call in calls.items()}
        return {name: future.result() for name, future in futures.items()}
