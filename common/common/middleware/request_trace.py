import logging
import time
import uuid
from urllib.parse import parse_qs

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response


REQUEST_ID_HEADER = "X-Request-Id"
SPAN_ID_HEADER = "X-Span-Id"
# 게이트웨이가 인증 후 넘겨주는 행위자 ID
USER_ID_HEADER = "X-User-Id"

IGNORED_LOG_PATHS: set[str] = {"/health"}

MAX_LOGGED_BODY_LENGTH = 1024


class RequestTraceMiddleware(BaseHTTPMiddleware):
    """공통 Request/Span ID 로그 미들웨어.

    - X-Request-Id, X-Span-Id 를 읽고, request_id 가 없으면 새로 만든다.
    - request.state 에 request_id, span_id 를 저장하고 응답 헤더에도 되돌려준다.
    - 요청 완료/실패 시 한 줄씩 구조화 로그를 남긴다.
    """

    def __init__(self, app, logger: logging.Logger | None = None) -> None:  # type: ignore[override]
        super().__init__(app)
        self._logger = logger or logging.getLogger("request_trace")

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id, span_id = self._extract_trace_ids(request)
        request.state.request_id = request_id
        request.state.span_id = span_id

        raw_body: str | None = None
        if request.method in {"POST", "PUT", "PATCH", "DELETE"}:
            try:
                body_bytes = await request.body()
            except Exception:  # noqa: BLE001
                body_bytes = b""
            if body_bytes:
                raw_body = body_bytes.decode("utf-8", errors="replace")[
                    :MAX_LOGGED_BODY_LENGTH
                ]
        request.state.request_body = raw_body

        should_log = request.url.path not in IGNORED_LOG_PATHS
        start = time.monotonic()

        try:
            response = await call_next(request)
        except Exception:
            if should_log:
                self._logger.exception(
                    "request failed",
                    extra=self._build_log_extra(
                        request,
                        request_id,
                        span_id,
                        duration=time.monotonic() - start,
                    ),
                )
            raise

        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        response.headers.setdefault(SPAN_ID_HEADER, span_id)

        if should_log:
            self._logger.info(
                "completed request",
                extra=self._build_log_extra(
                    request,
                    request_id,
                    span_id,
                    status=response.status_code,
                    duration=time.monotonic() - start,
                ),
            )

        return response

    def _extract_trace_ids(self, request: Request) -> tuple[str, str]:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        span_id = request.headers.get(SPAN_ID_HEADER) or "0"
        return request_id, span_id

    def _build_log_extra(
        self,
        request: Request,
        request_id: str,
        span_id: str,
        status: int | None = None,
        duration: float | None = None,
    ) -> dict[str, object]:
        extra: dict[str, object] = {
            "request_id": request_id,
            "span_id": span_id,
            "method": request.method,
            "path": request.url.path,
        }

        user_id = request.headers.get(USER_ID_HEADER)
        if user_id:
            extra["user_id"] = user_id

        query = request.url.query
        if query:
            parsed = parse_qs(query, keep_blank_values=True)
            if parsed:
                extra["query_params"] = {
                    key: values[0] if len(values) == 1 else values
                    for key, values in parsed.items()
                }

        body = getattr(request.state, "request_body", None)
        if body:
            extra["body"] = body

        if status is not None:
            extra["status"] = status

        if duration is not None:
            extra["duration"] = f"{duration * 1000:.3f}ms"

        return extra
