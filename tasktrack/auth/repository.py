import dataclasses
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from tasktrack.auth.models import Identity

logger = logging.getLogger(__name__)


class IdentityRepositoryInterface(ABC):
    """Abstract interface for the credential store.

    Every operation is atomic for a single record; nothing here spans
    records. Implementations return detached copies, so callers mutate an
    Identity and hand it back through ``save``.
    """

    @abstractmethod
    async def create(self, identity: Identity) -> Identity:
        """Insert a new identity."""
        pass

    @abstractmethod
    async def save(self, identity: Identity) -> Identity:
        """Replace the stored record with ``identity`` and bump ``updated_at``."""
        pass

    @abstractmethod
    async def get_by_id(self, identity_id: str) -> Optional[Identity]:
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[Identity]:
        """Get the oldest identity registered with this email, ignoring case."""
        pass

    @abstractmethod
    async def get_by_federated_id(self, federated_id: str) -> Optional[Identity]:
        pass

    @abstractmethod
    async def get_by_verification_token(self, token: str) -> Optional[Identity]:
        pass

    @abstractmethod
    async def get_by_refresh_token(self, refresh_token: str) -> Optional[Identity]:
        pass

    @abstractmethod
    async def compare_and_set_refresh_token(
        self,
        identity_id: str,
        expected: Optional[str],
        new: Optional[str],
    ) -> bool:
        """Write ``new`` into the refresh slot only if it still holds ``expected``.

        Returns False when another writer changed the slot first.
        """
        pass


class MongoIdentityRepository(IdentityRepositoryInterface):
    """MongoDB implementation of the credential store."""

    COLLECTION_NAME = "identities"

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[self.COLLECTION_NAME]

    async def create(self, identity: Identity) -> Identity:
        await self.collection.insert_one(identity.to_dict())
        logger.info("Identity created: id=%s federated=%s", identity.id, identity.federated_id is not None)
        return identity

    async def save(self, identity: Identity) -> Identity:
        identity.updated_at = datetime.now(timezone.utc)
        await self.collection.replace_one({"_id": identity.id}, identity.to_dict())
        return identity

    async def _find_one(self, query: dict, **kwargs) -> Optional[Identity]:
        doc = await self.collection.find_one(query, **kwargs)
        if doc is None:
            return None
        return Identity.from_dict(doc)

    async def get_by_id(self, identity_id: str) -> Optional[Identity]:
        return await self._find_one({"_id": identity_id})

    async def get_by_email(self, email: str) -> Optional[Identity]:
        return await self._find_one({"email": email.lower()}, sort=[("created_at", ASCENDING)])

    async def get_by_federated_id(self, federated_id: str) -> Optional[Identity]:
        return await self._find_one({"federated_id": federated_id})

    async def get_by_verification_token(self, token: str) -> Optional[Identity]:
        return await self._find_one({"verification_token": token})

    async def get_by_refresh_token(self, refresh_token: str) -> Optional[Identity]:
        return await self._find_one({"refresh_token": refresh_token})

    async def compare_and_set_refresh_token(
        self,
        identity_id: str,
        expected: Optional[str],
        new: Optional[str],
    ) -> bool:
        # A missing field matches {"refresh_token": None} in MongoDB.
        query = {"_id": identity_id, "refresh_token": expected}
        now = datetime.now(timezone.utc)
        if new is None:
            update = {"$unset": {"refresh_token": ""}, "$set": {"updated_at": now}}
        else:
            update = {"$set": {"refresh_token": new, "updated_at": now}}
        result = await self.collection.update_one(query, update)
        return result.matched_count == 1


class InMemoryIdentityRepository(IdentityRepositoryInterface):
    """
    In-memory implementation for CI-safe testing.
    """

    def __init__(self):
        self._identities: Dict[str, Identity] = {}

    def clear(self) -> None:
        self._identities.clear()

    def _first(self, predicate) -> Optional[Identity]:
        # dict preserves insertion order, so the first match is the oldest
        for identity in self._identities.values():
            if predicate(identity):
                return dataclasses.replace(identity)
        return None

    async def create(self, identity: Identity) -> Identity:
        self._identities[identity.id] = dataclasses.replace(identity)
        return identity

    async def save(self, identity: Identity) -> Identity:
        identity.updated_at = datetime.now(timezone.utc)
        self._identities[identity.id] = dataclasses.replace(identity)
        return identity

    async def get_by_id(self, identity_id: str) -> Optional[Identity]:
        return self._first(lambda i: i.id == identity_id)

    async def get_by_email(self, email: str) -> Optional[Identity]:
        return self._first(lambda i: i.email == email.lower())

    async def get_by_federated_id(self, federated_id: str) -> Optional[Identity]:
        return self._first(lambda i: i.federated_id == federated_id)

    async def get_by_verification_token(self, token: str) -> Optional[Identity]:
        return self._first(lambda i: i.verification_token == token)

    async def get_by_refresh_token(self, refresh_token: str) -> Optional[Identity]:
        return self._first(lambda i: i.refresh_token == refresh_token)

    async def compare_and_set_refresh_token(
        self,
        identity_id: str,
        expected: Optional[str],
        new: Optional[str],
    ) -> bool:
        stored = self._identities.get(identity_id)
        if stored is None or stored.refresh_token != expected:
            return False
        stored.refresh_token = new
        stored.updated_at = datetime.now(timezone.utc)
        return True

    def count(self) -> int:
        return len(self._identities)
