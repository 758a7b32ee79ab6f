from __future__ import annotations

import os


MONGO_URI_ENV = "MONGO_URI"
MONGO_DB_NAME_ENV = "MONGO_DB_NAME"


def get_mongo_uri() -> str:
    """MongoDB 연결 URI 를 환경 변수에서 읽는다.

    설정되지 않았으면 서비스가 기동 단계에서 바로 실패하도록 RuntimeError 를 던진다.
    트랜잭션(완료 처리)을 사용하므로 URI 는 replica set 또는 mongos 를 가리켜야 한다.
    """

    value = os.getenv(MONGO_URI_ENV)
    if not value:
        raise RuntimeError(
            f"{MONGO_URI_ENV} environment variable is required for MongoDB",
        )
    return value


def get_mongo_db_name() -> str | None:
    """사용할 데이터베이스 이름. 비어 있으면 URI 의 기본 DB 를 쓴다."""

    value = os.getenv(MONGO_DB_NAME_ENV, "").strip()
    return value or None
