"""CounterStore protocol: atomic click and usage counters keyed by resource id."""

from typing import Protocol


class CounterStore(Protocol):
    async def increment_domain_clicks(self, domain_id: str) -> int: ...

    async def increment_link_clicks(self, link_id: str) -> int: ...

    async def increment_project_usage(self, link_id: str) -> int: ...
