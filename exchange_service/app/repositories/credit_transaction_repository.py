"""크레딧 이체 원장 레포지토리 (append-only)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pymongo import ASCENDING, DESCENDING, IndexModel
from pymongo.client_session import ClientSession
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from common.mongo.types import ensure_utc_datetime, is_object_id, to_object_id
from common.schemas.pagination import normalize_page

from .aggregation import lookup_field, paginate_stages
from .documents.credit_transaction_document import CreditTransactionDocument
from .interfaces import CreditTransactionRepositoryInterface
from ..exceptions import DuplicateTransferError
from ..models.credit_transaction import CreditTransaction, CreditTransactionStatus
from ..models.ledger import LedgerEntry


def _user_completed_match(user_id: str) -> dict[str, Any]:
    oid = to_object_id(user_id)
    return {
        "$or": [{"from_user_id": oid}, {"to_user_id": oid}],
        "status": CreditTransactionStatus.COMPLETED.value,
    }


class CreditTransactionRepository(CreditTransactionRepositoryInterface):
    """credit_transactions 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["credit_transactions"]
        self._col.create_indexes(
            [
                # 예약당 이체 한 건. 완료 재시도가 두 번 기록하지 못하게 막는다.
                IndexModel(
                    [
                        ("booking_id", ASCENDING),
                        ("from_user_id", ASCENDING),
                        ("to_user_id", ASCENDING),
                    ],
                    name="uniq_booking_transfer",
                    unique=True,
                ),
                IndexModel(
                    [("from_user_id", ASCENDING), ("performed_at", DESCENDING)],
                    name="idx_from_performed",
                ),
                IndexModel(
                    [("to_user_id", ASCENDING), ("performed_at", DESCENDING)],
                    name="idx_to_performed",
                ),
            ]
        )

    def insert(
        self, tx: CreditTransaction, *, session: ClientSession
    ) -> CreditTransaction:
        record = CreditTransactionDocument.from_domain(tx).to_mongo_record()
        try:
            result = self._col.insert_one(record, session=session)
        except DuplicateKeyError as exc:
            raise DuplicateTransferError(
                f"transfer for booking {tx.booking_id} already recorded"
            ) from exc
        return tx.model_copy(update={"id": str(result.inserted_id)})

    def find_by_booking(self, booking_id: str) -> CreditTransaction | None:
        if not is_object_id(booking_id):
            return None
        doc = self._col.find_one({"booking_id": to_object_id(booking_id)})
        if not doc:
            return None
        return CreditTransactionDocument.model_validate(doc).to_domain()

    def get_totals(self, user_id: str) -> tuple[int, int]:
        oid = to_object_id(user_id)
        pipeline = [
            {"$match": _user_completed_match(user_id)},
            {
                "$group": {
                    "_id": None,
                    "income": {
                        "$sum": {
                            "$cond": [
                                {"$eq": ["$to_user_id", oid]},
                                "$amount_credits",
                                0,
                            ]
                        }
                    },
                    "outcome": {
                        "$sum": {
                            "$cond": [
                                {"$eq": ["$from_user_id", oid]},
                                "$amount_credits",
                                0,
                            ]
                        }
                    },
                }
            },
        ]
        for doc in self._col.aggregate(pipeline):
            return int(doc.get("income", 0)), int(doc.get("outcome", 0))
        return 0, 0

    def list_entries(
        self, user_id: str, page: int, page_size: int
    ) -> tuple[list[LedgerEntry], int]:
        page, page_size = normalize_page(page, page_size)
        match = _user_completed_match(user_id)

        total = self._col.count_documents(match)
        pipeline = [
            {"$match": match},
            *paginate_stages({"performed_at": -1, "_id": -1}, page, page_size),
            *lookup_field("users", "from_user_id", "name", "from_name"),
            *lookup_field("users", "to_user_id", "name", "to_name"),
            *lookup_field("bookings", "booking_id", "offer_id", "booking_offer_id"),
            *lookup_field("offers", "booking_offer_id", "title", "offer_title"),
        ]

        items: list[LedgerEntry] = []
        for raw in self._col.aggregate(pipeline):
            received = str(raw["to_user_id"]) == str(user_id)
            amount = int(raw["amount_credits"])
            items.append(
                LedgerEntry(
                    transaction_id=str(raw["_id"]),
                    booking_id=str(raw["booking_id"]),
                    amount=amount if received else -amount,
                    counterpart_id=str(
                        raw["from_user_id"] if received else raw["to_user_id"]
                    ),
                    counterpart_name=raw.get("from_name" if received else "to_name"),
                    offer_title=raw.get("offer_title"),
                    performed_at=ensure_utc_datetime(raw["performed_at"]),
                )
            )
        return items, total

    def list_since(self, user_id: str, since: datetime) -> list[CreditTransaction]:
        match = _user_completed_match(user_id)
        match["performed_at"] = {"$gte": since}
        cursor = self._col.find(match, sort=[("performed_at", ASCENDING)])
        return [CreditTransactionDocument.model_validate(raw).to_domain() for raw in cursor]
