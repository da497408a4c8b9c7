"""Reads real member ids from the paginated Members API.

The Members API pages with ``page`` (1-based) and ``perPage``.  The page size
is fixed for a whole read so page offsets stay aligned, and the last page is
truncated to hit the requested count exactly.
"""

import logging
import time
from typing import Any, Callable, Dict, List

from .config import MAX_PAGE_SIZE
from .errors import APIError, DirectoryExhaustedError
from .http_client import APIClient
from .models import Member, USER

logger = logging.getLogger(__name__)


class DirectoryReader:
    """Page-by-page reader over the Members API.

    Args:
        client:     ``APIClient`` bound to the Members API URL
        page_size:  Records per page, capped at 100
        page_delay: Seconds to wait between pages, to go easy on a shared service
        sleep:      Sleep function, injectable for tests
    """

    def __init__(
        self,
        client: APIClient,
        page_size: int = MAX_PAGE_SIZE,
        page_delay: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        self.page_delay = page_delay
        self._sleep = sleep

    def get_members(self, page: int, per_page: int) -> List[Dict[str, Any]]:
        """Fetch one page of member records (only the ``userId`` field).

        Raises:
            APIError: on any non-200 response, or a body that is not a JSON array.
        """
        resp = self.client.get("", params={"page": page, "perPage": per_page, "fields": "userId"})
        if resp.status_code != 200:
            raise APIError(
                f"Failed to read members page {page}: HTTP {resp.status_code}",
                status_code=resp.status_code,
                body=resp.body,
            )
        try:
            data = resp.json()
        except ValueError:
            data = None
        if not isinstance(data, list):
            raise APIError(
                f"Members page {page} is not a JSON array",
                status_code=resp.status_code,
                body=resp.body,
            )
        return data

    def get_n_members(self, n: int) -> List[Member]:
        """Read exactly ``n`` members, as ``user`` members.

        Raises:
            APIError: a page request failed.
            DirectoryExhaustedError: the directory ran out before ``n``.
        """
        logger.info("Reading %d members from Members API...", n)
        per_page = min(n, self.page_size)
        members: List[Member] = []
        page = 1
        while len(members) < n:
            if page > 1 and self.page_delay:
                self._sleep(self.page_delay)
            logger.info("Reading page %d... members %d/%d", page, len(members), n)
            records = self.get_members(page, per_page)
            if not records:
                raise DirectoryExhaustedError(n, len(members))
            for record in records[: n - len(members)]:
                if not isinstance(record, dict) or record.get("userId") is None:
                    raise APIError(f"Members page {page} has a record without userId: {record!r}")
                members.append(Member(str(record["userId"]), USER))
            page += 1
        return members
