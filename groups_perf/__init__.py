"""groups-perf: load test for a group-membership HTTP service.

Authenticates with an M2M token, creates a temporary test group, bulk-adds
members to it in timed chunks against a latency budget, and always deletes
the group afterwards.  The ``groups-perf`` command is the entry point.
"""

__version__ = "0.1.0"
