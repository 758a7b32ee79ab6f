"""users 컬렉션 도큐먼트 (원장/평점 필드)."""

from __future__ import annotations

from common.mongo.types import BaseDocument, from_object_id

from ...models.account import Account


class AccountDocument(BaseDocument):
    """users 도큐먼트 중 exchange-service 가 다루는 필드.

    오래된 도큐먼트에는 reserved_credits/rating_sum 이 없을 수 있어 기본값을 둔다.
    """

    name: str = ""
    credits: int = 0
    reserved_credits: int = 0
    rating_sum: int = 0
    reviews_count: int = 0
    rating_avg: float = 0.0

    def to_domain(self) -> Account:
        return Account(
            id=from_object_id(self.id),
            name=self.name,
            credits=self.credits,
            reserved_credits=self.reserved_credits,
            rating_sum=self.rating_sum,
            reviews_count=self.reviews_count,
            rating_avg=self.rating_avg,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
