from __future__ import annotations

from common.mongo.types import (
    BaseDocument,
    MongoDateTime,
    PyObjectId,
    build_document_data_from_domain,
    from_object_id,
)

from ...models.credit_transaction import CreditTransaction, CreditTransactionStatus


class CreditTransactionDocument(BaseDocument):
    """MongoDB credit_transactions 컬렉션 도큐먼트 모델."""

    booking_id: PyObjectId
    from_user_id: PyObjectId
    to_user_id: PyObjectId
    amount_credits: int
    status: CreditTransactionStatus = CreditTransactionStatus.COMPLETED
    performed_at: MongoDateTime

    @classmethod
    def from_domain(cls, tx: CreditTransaction) -> "CreditTransactionDocument":
        data = build_document_data_from_domain(
            tx, object_id_fields=("booking_id", "from_user_id", "to_user_id")
        )
        return cls.model_validate(data)

    def to_domain(self) -> CreditTransaction:
        return CreditTransaction(
            id=from_object_id(self.id),
            booking_id=str(self.booking_id),
            from_user_id=str(self.from_user_id),
            to_user_id=str(self.to_user_id),
            amount_credits=self.amount_credits,
            status=self.status,
            performed_at=self.performed_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
