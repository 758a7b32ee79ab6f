"""표시용 조회에서 쓰는 $lookup 헬퍼."""

from __future__ import annotations

from typing import Any


def lookup_field(
    collection: str, local_field: str, field: str, as_field: str
) -> list[dict[str, Any]]:
    """참조 도큐먼트의 단일 필드를 as_field 로 붙이는 스테이지 목록.

    참조 대상이 없으면 as_field 는 비어 있다(누락).
    """

    tmp = f"_{as_field}_joined"
    return [
        {
            "$lookup": {
                "from": collection,
                "localField": local_field,
                "foreignField": "_id",
                "as": tmp,
            }
        },
        {"$addFields": {as_field: {"$arrayElemAt": [f"${tmp}.{field}", 0]}}},
        {"$project": {tmp: 0}},
    ]


def paginate_stages(sort: dict[str, int], page: int, page_size: int) -> list[dict[str, Any]]:
    return [
        {"$sort": sort},
        {"$skip": (page - 1) * page_size},
        {"$limit": page_size},
    ]

