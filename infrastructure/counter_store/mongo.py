"""MongoDB implementation of CounterStore.

Every write is a single ``$inc`` / ``$currentDate`` update so concurrent
clicks never lose increments and ``last_clicked`` is stamped by the server.

The project usage counter is addressed through the link: the link document's
``project_id`` is looked up, then the project is incremented. The counter
itself is still only touched by an atomic ``$inc``.
"""

from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from errors import CounterStoreError

DOMAINS = "domains"
LINKS = "links"
PROJECTS = "projects"


class MongoCounterStore:
    def __init__(self, db: AsyncDatabase) -> None:
        self._db = db

    async def _increment_clicks(self, collection: str, resource_id: str) -> int:
        try:
            result = await self._db[collection].update_one(
                {"_id": resource_id},
                {"$inc": {"clicks": 1}, "$currentDate": {"last_clicked": True}},
            )
        except PyMongoError as e:
            raise CounterStoreError(
                f"failed to increment {collection} clicks",
                details={"resource_id": resource_id, "error_type": type(e).__name__},
            ) from e
        return result.modified_count

    async def increment_domain_clicks(self, domain_id: str) -> int:
        return await self._increment_clicks(DOMAINS, domain_id)

    async def increment_link_clicks(self, link_id: str) -> int:
        return await self._increment_clicks(LINKS, link_id)

    async def increment_project_usage(self, link_id: str) -> int:
        try:
            link = await self._db[LINKS].find_one(
                {"_id": link_id}, projection={"project_id": 1}
            )
            if not link or not link.get("project_id"):
                return 0
            result = await self._db[PROJECTS].update_one(
                {"_id": link["project_id"]}, {"$inc": {"usage": 1}}
            )
        except PyMongoError as e:
            raise CounterStoreError(
                "failed to increment project usage",
                details={"link_id": link_id, "error_type": type(e).__name__},
            ) from e
        return result.modified_count
