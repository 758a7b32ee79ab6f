"""MongoDB 다중 도큐먼트 트랜잭션 실행기."""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from pymongo import MongoClient
from pymongo.client_session import ClientSession
from pymongo.errors import ConnectionFailure, PyMongoError
from pymongo.read_concern import ReadConcern
from pymongo.write_concern import WriteConcern

from .interfaces import TransactionRunnerInterface
from ..exceptions import TransientStoreError


logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_LABEL = "TransientTransactionError"
UNKNOWN_COMMIT_LABEL = "UnknownTransactionCommitResult"


class MongoTransactionRunner(TransactionRunnerInterface):
    """callback 을 하나의 트랜잭션 안에서 실행한다.

    재시도는 하지 않는다. 재시도 정책은 호출하는 쪽(완료 코디네이터)이 가진다.
    """

    def __init__(self, client: MongoClient) -> None:
        self._client = client

    def run(self, callback: Callable[[ClientSession], T]) -> T:
        try:
            with self._client.start_session() as session:
                with session.start_transaction(
                    read_concern=ReadConcern("snapshot"),
                    write_concern=WriteConcern("majority"),
                ):
                    return callback(session)
        except PyMongoError as exc:
            if exc.has_error_label(UNKNOWN_COMMIT_LABEL):
                logger.warning("transaction commit result unknown: %s", exc)
                raise TransientStoreError(str(exc), commit_uncertain=True) from exc
            if exc.has_error_label(TRANSIENT_LABEL) or isinstance(
                exc, ConnectionFailure
            ):
                logger.warning("transient transaction error: %s", exc)
                raise TransientStoreError(str(exc)) from exc
            raise
