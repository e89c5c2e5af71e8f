"""Persistence backends for check-in documents.

The local cache is synchronous and must work offline; the remote store is an
asynchronous document mirror shared across devices. Both hold one
JSON-serialized ``CheckIn`` per (user id, day id).
"""

import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple

import httpx
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from shield.models import DailyCheckin

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


class LocalStorageError(Exception):
    """The local cache could not be read or written."""


class RemoteStorageError(Exception):
    """The remote document store is unreachable or rejected the request."""


class LocalCheckInCache(Protocol):
    def get(self, user_id: str, day_id: str) -> Optional[Document]:
        ...

    def put(self, user_id: str, day_id: str, document: Document) -> None:
        ...

    def insert_if_absent(self, user_id: str, day_id: str, document: Document) -> Tuple[Document, bool]:
        ...

    def list_since(self, user_id: str, since_day_id: str) -> List[Document]:
        ...

    def delete_all(self, user_id: str) -> int:
        ...


class RemoteCheckInStore(Protocol):
    async def get(self, user_id: str, day_id: str) -> Optional[Document]:
        ...

    async def set(self, user_id: str, day_id: str, document: Document) -> None:
        ...

    async def delete_all(self, user_id: str) -> None:
        ...


# ============== Local cache ==============

class SqlCheckInCache:
    """Local cache on the ``daily_checkins`` table, one transaction per write."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _query(db, user_id: str, day_id: str):
        return db.query(DailyCheckin).filter(
            DailyCheckin.user_id == int(user_id),
            DailyCheckin.day_id == day_id,
        )

    def get(self, user_id: str, day_id: str) -> Optional[Document]:
        try:
            with self.session_factory() as db:
                row = self._query(db, user_id, day_id).first()
                return dict(row.payload) if row else None
        except SQLAlchemyError as e:
            raise LocalStorageError(f"Could not read check-in {day_id}") from e

    def put(self, user_id: str, day_id: str, document: Document) -> None:
        """Replace the whole document for the day."""
        try:
            with self.session_factory() as db:
                row = self._query(db, user_id, day_id).first()
                if row is None:
                    db.add(DailyCheckin(user_id=int(user_id), day_id=day_id, payload=document))
                else:
                    row.payload = document
                db.commit()
        except SQLAlchemyError as e:
            raise LocalStorageError(f"Could not write check-in {day_id}") from e

    def insert_if_absent(self, user_id: str, day_id: str, document: Document) -> Tuple[Document, bool]:
        """
        Store ``document`` unless the day already has one.

        Returns the stored document and whether it was created by this call.
        A concurrent insert for the same day loses on the unique constraint
        and gets the winner's document back.
        """
        try:
            with self.session_factory() as db:
                row = self._query(db, user_id, day_id).first()
                if row is not None:
                    return dict(row.payload), False
                db.add(DailyCheckin(user_id=int(user_id), day_id=day_id, payload=document))
                try:
                    db.commit()
                except IntegrityError:
                    db.rollback()
                    row = self._query(db, user_id, day_id).first()
                    if row is None:
                        raise
                    return dict(row.payload), False
                return document, True
        except SQLAlchemyError as e:
            raise LocalStorageError(f"Could not create check-in {day_id}") from e

    def list_since(self, user_id: str, since_day_id: str) -> List[Document]:
        try:
            with self.session_factory() as db:
                rows = (
                    db.query(DailyCheckin)
                    .filter(DailyCheckin.user_id == int(user_id), DailyCheckin.day_id >= since_day_id)
                    .order_by(DailyCheckin.day_id.desc())
                    .all()
                )
                return [dict(row.payload) for row in rows]
        except SQLAlchemyError as e:
            raise LocalStorageError("Could not list check-ins") from e

    def delete_all(self, user_id: str) -> int:
        try:
            with self.session_factory() as db:
                deleted = (
                    db.query(DailyCheckin)
                    .filter(DailyCheckin.user_id == int(user_id))
                    .delete(synchronize_session=False)
                )
                db.commit()
                return deleted
        except SQLAlchemyError as e:
            raise LocalStorageError("Could not delete check-ins") from e


# ============== Remote stores ==============

class HttpDocumentStore:
    """Remote mirror over a REST document API."""

    def __init__(self, base_url: str, api_key: str = "", timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _collection_url(self, user_id: str) -> str:
        return f"{self.base_url}/users/{user_id}/dailyCheckIns"

    async def get(self, user_id: str, day_id: str) -> Optional[Document]:
        url = f"{self._collection_url(user_id)}/{day_id}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, headers=self._headers())
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise RemoteStorageError(f"GET {url} failed: {e}") from e

    async def set(self, user_id: str, day_id: str, document: Document) -> None:
        url = f"{self._collection_url(user_id)}/{day_id}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.put(url, json=document, headers=self._headers())
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise RemoteStorageError(f"PUT {url} failed: {e}") from e

    async def delete_all(self, user_id: str) -> None:
        url = self._collection_url(user_id)
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.delete(url, headers=self._headers())
                if response.status_code != 404:
                    response.raise_for_status()
        except httpx.HTTPError as e:
            raise RemoteStorageError(f"DELETE {url} failed: {e}") from e


class InMemoryDocumentStore:
    """Process-local remote store, selected with ``REMOTE_STORE_URL=memory://``."""

    def __init__(self):
        self.documents: Dict[Tuple[str, str], Document] = {}

    async def get(self, user_id: str, day_id: str) -> Optional[Document]:
        document = self.documents.get((user_id, day_id))
        return dict(document) if document is not None else None

    async def set(self, user_id: str, day_id: str, document: Document) -> None:
        self.documents[(user_id, day_id)] = dict(document)

    async def delete_all(self, user_id: str) -> None:
        for key in [k for k in self.documents if k[0] == user_id]:
            del self.documents[key]


def build_remote_store(url: str, api_key: str = "", timeout: float = 5.0) -> Optional[RemoteCheckInStore]:
    """Remote store for the configured URL; None means local-only."""
    if not url:
        logger.info("No remote store configured, check-ins stay local-only")
        return None
    if url.startswith("memory://"):
        return InMemoryDocumentStore()
    return HttpDocumentStore(url, api_key=api_key, timeout=timeout)
