import uuid
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

from src.domain.errors import PersistenceError
from src.domain.repositories import (
    FILTER_OPERATORS,
    QUIZZES,
    SUBMISSIONS,
    USERS,
    Filter,
    IPersistenceGateway,
)
from qi_utils.logger_utils import logger
from qi_utils.retry_utils import gateway_retry

_MONGO_OPERATORS = {
    "==": "$eq",
    "!=": "$ne",
    "<": "$lt",
    "<=": "$lte",
    ">": "$gt",
    ">=": "$gte",
}


def build_mongo_filter(filters: List[Filter]) -> Dict[str, Any]:
    """
    Translate [(field, op, value), ...] into a Mongo filter document.

    Several conditions on the same field are merged, e.g.
    [("created_at", ">=", a), ("created_at", "<", b)].

    A tuple of field names becomes an ``$or`` over those names, e.g.
    (("created_by", "createdBy"), "==", uid) also finds legacy documents.
    """
    query: Dict[str, Any] = {}
    alternatives: List[Dict[str, Any]] = []
    for field, op, value in filters:
        if op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {op}")
        condition = {_MONGO_OPERATORS[op]: value}
        if isinstance(field, tuple):
            alternatives.append({"$or": [{name: condition} for name in field]})
        else:
            query.setdefault(field, {}).update(condition)
    if alternatives:
        query["$and"] = alternatives
    return query


class MongoGateway(IPersistenceGateway):
    """MongoDB implementation of the persistence gateway."""

    def __init__(self, db: Database, retry_attempts: int = 3):
        self.db = db
        self._retry = gateway_retry(retry_attempts)

    def ensure_indexes(self) -> None:
        try:
            self.db[QUIZZES].create_index([("created_by", ASCENDING), ("created_at", ASCENDING)])
            self.db[QUIZZES].create_index([("created_by", ASCENDING), ("responses", ASCENDING)])
            self.db[SUBMISSIONS].create_index([("quiz_id", ASCENDING)])
            self.db[USERS].create_index([("email", ASCENDING)], unique=True)
        except PyMongoError:
            logger.warning("Failed to create indexes on MongoDB", exc_info=True)

    def _call(self, action: str, collection: str, fn, *args, **kwargs):
        try:
            return self._retry(fn)(*args, **kwargs)
        except PyMongoError as exc:
            logger.error(
                f"MongoGateway.{action}.failed",
                extra={"collection": collection, "error": str(exc)},
                exc_info=True,
            )
            raise PersistenceError("The data store is unavailable. Please try again.") from exc

    def insert(self, collection: str, document: Dict[str, Any]) -> str:
        doc = dict(document)
        # Ensure we always have a string _id in Mongo
        doc.setdefault("_id", str(uuid.uuid4()))
        self._call("insert", collection, self.db[collection].insert_one, doc)
        logger.debug("MongoGateway.insert.ok", extra={"collection": collection, "doc_id": doc["_id"]})
        return str(doc["_id"])

    def get_by_id(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        doc = self._call("get_by_id", collection, self.db[collection].find_one, {"_id": doc_id})
        if not doc:
            logger.debug("MongoGateway.get_by_id.missing", extra={"collection": collection, "doc_id": doc_id})
            return None
        return doc

    def query(self, collection: str, filters: List[Filter]) -> List[Dict[str, Any]]:
        mongo_filter = build_mongo_filter(filters)
        return self._call("query", collection, lambda: list(self.db[collection].find(mongo_filter)))

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        result = self._call(
            "update", collection, self.db[collection].update_one, {"_id": doc_id}, {"$set": fields}
        )
        if result.matched_count == 0:
            logger.warning("MongoGateway.update.not_found", extra={"collection": collection, "doc_id": doc_id})

    def delete(self, collection: str, doc_id: str) -> None:
        result = self._call("delete", collection, self.db[collection].delete_one, {"_id": doc_id})
        if result.deleted_count == 0:
            logger.debug("MongoGateway.delete.already_gone", extra={"collection": collection, "doc_id": doc_id})

    def increment_field(self, collection: str, doc_id: str, field: str, delta: int = 1) -> None:
        result = self._call(
            "increment_field", collection, self.db[collection].update_one, {"_id": doc_id}, {"$inc": {field: delta}}
        )
        if result.matched_count == 0:
            logger.warning(
                "MongoGateway.increment_field.not_found",
                extra={"collection": collection, "doc_id": doc_id, "field": field},
            )

    def ping(self) -> bool:
        try:
            self.db.command("ping")
            return True
        except PyMongoError as exc:
            logger.error(f"MongoDB ping failed: {exc}", exc_info=True)
            return False
