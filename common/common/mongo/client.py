from __future__ import annotations

import logging
import threading
from typing import Optional, cast

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from .config import get_mongo_db_name, get_mongo_uri


logger = logging.getLogger(__name__)


_client: Optional[MongoClient] = None
_db: Optional[Database] = None
_lock = threading.Lock()


def get_client() -> MongoClient:
    """프로세스 전역 MongoClient 싱글톤을 반환한다.

    - MONGO_URI 로 연결하고 ping 으로 연결을 검증한다.
    - MONGO_DB_NAME 이 없고 URI 에도 기본 DB 가 없으면 에러를 발생시킨다.
    - users / offers 컬렉션의 공용 인덱스를 한 번만 생성한다.
    """

    global _client, _db

    if _client is not None:
        return _client

    with _lock:
        if _client is not None:
            return _client

        uri = get_mongo_uri()
        client = MongoClient(uri)

        try:
            client.admin.command("ping")
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(f"failed to connect to MongoDB: {exc}") from exc

        db_name = get_mongo_db_name()
        try:
            if db_name:
                db = client[db_name]
            else:
                db = client.get_default_database()
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(
                "MongoDB database name must be specified via MONGO_DB_NAME or in MONGO_URI (mongodb://.../db_name)",
            ) from exc

        _client = client
        _db = db

        try:
            _ensure_indexes(_db)
        except Exception as exc:  # noqa: BLE001
            logger.error("failed to ensure MongoDB indexes: %s", exc)
            raise

        safe_db = cast(Database, _db)
        logger.info("MongoDB connected and indexes ensured (db=%s)", safe_db.name)
        return _client


def get_database() -> Database:
    """전역 기본 Database 객체를 반환한다."""

    global _db

    if _db is None:
        get_client()
    assert _db is not None  # get_client 가 실패했다면 이미 예외가 발생했다.
    return _db


def close_client() -> None:
    """애플리케이션 종료 시 전역 클라이언트를 닫는다."""

    global _client, _db

    with _lock:
        if _client is not None:
            _client.close()
        _client = None
        _db = None


def _ensure_indexes(db: Database) -> None:
    """여러 레포지토리가 공유하는 컬렉션의 인덱스를 생성한다.

    컬렉션 전용 인덱스(유니크 제약 등)는 각 레포지토리 생성자에서 만든다.
    create_index 는 동일 정의에 대해 idempotent 하다.
    """

    users = db["users"]

    # 소셜/이메일 가입은 범위 밖이지만 email 은 유일해야 한다.
    users.create_index(
        [("email", ASCENDING)],
        name="uniq_email",
        unique=True,
        sparse=True,
    )

    offers = db["offers"]

    offers.create_index(
        [("owner_id", ASCENDING), ("status", ASCENDING)],
        name="idx_owner_status",
    )

    offers.create_index(
        [("owner_id", ASCENDING), ("avg_rating", DESCENDING)],
        name="idx_owner_avg_rating",
    )
