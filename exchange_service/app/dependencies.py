"""FastAPI DI 공용 팩토리.

여러 서비스가 함께 쓰는 레포지토리와, lifespan 에서 app.state 에 올려 둔
프로세스 단위 객체(설정, 알림 싱크, 통계 재계산 발행기)를 꺼내 준다.
"""

from __future__ import annotations

from fastapi import Depends, Request
from pymongo.database import Database

from common.mongo.client import get_client, get_database

from .config import ExchangeConfig
from .messaging.notification_sink import NotificationSink
from .messaging.stats_publisher import StatsReconcilePublisherInterface
from .repositories.account_repository import AccountRepository
from .repositories.booking_query_repository import BookingQueryRepository
from .repositories.booking_repository import BookingRepository
from .repositories.credit_transaction_repository import CreditTransactionRepository
from .repositories.interfaces import (
    AccountRepositoryInterface,
    BookingQueryRepositoryInterface,
    BookingRepositoryInterface,
    CreditTransactionRepositoryInterface,
    OfferRepositoryInterface,
    ReviewRepositoryInterface,
    TransactionRunnerInterface,
)
from .repositories.offer_repository import OfferRepository
from .repositories.review_repository import ReviewRepository
from .repositories.transaction_runner import MongoTransactionRunner


def get_account_repository(
    db: Database = Depends(get_database),
) -> AccountRepositoryInterface:
    return AccountRepository(db)


def get_offer_repository(
    db: Database = Depends(get_database),
) -> OfferRepositoryInterface:
    return OfferRepository(db)


def get_booking_repository(
    db: Database = Depends(get_database),
) -> BookingRepositoryInterface:
    return BookingRepository(db)


def get_booking_query_repository(
    db: Database = Depends(get_database),
) -> BookingQueryRepositoryInterface:
    return BookingQueryRepository(db)


def get_credit_transaction_repository(
    db: Database = Depends(get_database),
) -> CreditTransactionRepositoryInterface:
    return CreditTransactionRepository(db)


def get_review_repository(
    db: Database = Depends(get_database),
) -> ReviewRepositoryInterface:
    return ReviewRepository(db)


def get_transaction_runner() -> TransactionRunnerInterface:
    return MongoTransactionRunner(get_client())


def get_exchange_config(request: Request) -> ExchangeConfig:
    return request.app.state.exchange_config


def get_notification_sink(request: Request) -> NotificationSink:
    return request.app.state.notification_sink


def get_stats_publisher(request: Request) -> StatsReconcilePublisherInterface:
    return request.app.state.stats_publisher
