from __future__ import annotations

from .core import Topic


# 실시간 게이트웨이(소켓 fan-out)가 구독하는 사용자 알림 토픽
TOPIC_NOTIFICATION = Topic("skill-exchange.notification")
# 커밋 이후 실패한 통계 갱신을 다시 계산하기 위한 토픽
TOPIC_STATS = Topic("skill-exchange.stats")
