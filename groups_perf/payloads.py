"""Generates request bodies and test members for the perf run.

Test groups are named ``TestGroup-<uuid4>`` so leftovers from an aborted run
are easy to spot and never collide with real groups.
"""

import random
import uuid
from typing import Any, Dict, Iterable, List, Optional

from .models import Member, USER


TEST_GROUP_PREFIX = "TestGroup-"

# Synthetic member ids are 8-digit numbers, the same shape as real user ids
SYNTHETIC_ID_MIN = 9999999
SYNTHETIC_ID_MAX = 99999999


def make_group(extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Generate a public, non-self-register test group with a unique name."""
    payload: Dict[str, Any] = {
        "name": f"{TEST_GROUP_PREFIX}{uuid.uuid4()}",
        "description": "Test group for perf test",
        "privateGroup": False,
        "selfRegister": False,
    }
    if extra:
        payload.update(extra)
    return payload


def make_old_id_patch() -> Dict[str, Any]:
    """Generate the PATCH body that sets a random ``oldId`` on a group.

    The bulk-add endpoint validates that the group carries an ``oldId``.
    """
    return {"oldId": str(uuid.uuid4())}


def make_bulk_add(members: Iterable[Member]) -> Dict[str, Any]:
    """Wrap members in the bulk-add request body."""
    return {"members": [m.to_dict() for m in members]}


def synthetic_members(n: int, rng: Optional[random.Random] = None) -> List[Member]:
    """Generate ``n`` user members with random 8-digit ids.  Ids may repeat."""
    rng = rng or random.Random()
    return [
        Member(str(rng.randint(SYNTHETIC_ID_MIN, SYNTHETIC_ID_MAX)), USER)
        for _ in range(n)
    ]
