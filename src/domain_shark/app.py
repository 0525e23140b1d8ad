"""
HTTP surface of the Domain Shark gateway.

Exposes two endpoints on a FastAPI application:
- POST /v1/premium-check: paid availability lookup behind rate limit,
  monthly circuit breaker and per-client quota
- POST /v1/whois-check: free WHOIS lookup for a fixed set of ccTLDs

Error bodies are ``{"error": code, "message"?: text}``. Every response
carries permissive CORS headers and any OPTIONS request gets an empty 204.
"""

import json
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .admission import AdmissionPipeline
from .audit_logger import AuditLogger
from .circuit_breaker import CircuitBreaker
from .config import ServiceConfig, load_config_from_env
from .counter_store import CounterStore, MemoryCounterStore, RedisCounterStore, utc_now
from .enums import LogLevel
from .exceptions import (
    DomainSharkError,
    EndpointNotFoundError,
    InternalServiceError,
    ValidationError,
)
from .notifications import AlertChannel, AlertNotifier
from .orchestrator import PremiumLookupOrchestrator, WHOISLookupOrchestrator
from .premium_client import PremiumClient
from .quota_tracker import QuotaTracker
from .rate_limiter import RateLimiter
from .whois_client import WHOISClient

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

UNKNOWN_CLIENT = "unknown"


def client_identity(request: Request, header_name: str) -> str:
    """
    Resolve the opaque client identity for counters.

    Prefers the edge header, then the socket peer address. The header is
    client-supplied unless a trusted proxy sets or strips it; an empty
    ``header_name`` uses the peer address only.
    """
    if header_name:
        forwarded = request.headers.get(header_name, "").strip()
        if forwarded:
            return forwarded
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


async def read_json_body(request: Request) -> dict:
    """
    Parse the request body as a JSON object.

    Non-object JSON values are treated as an empty object, so they surface
    as a missing ``domain`` field.

    Raises:
        ValidationError: On a wrong content type or malformed JSON
    """
    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type.lower():
        raise ValidationError("Content-Type must be application/json")

    raw = await request.body()
    try:
        body = json.loads(raw)
    except (ValueError, RecursionError):
        # Deeply nested arrays exhaust the parser's recursion limit
        raise ValidationError("Request body is not valid JSON")

    return body if isinstance(body, dict) else {}


def error_response(error: DomainSharkError) -> JSONResponse:
    return JSONResponse(
        error.to_response_body(),
        status_code=error.http_status,
        headers=CORS_HEADERS,
    )


def build_store(config: ServiceConfig) -> CounterStore:
    """Select the counter store backend from configuration."""
    if config.store.redis_url:
        return RedisCounterStore(url=config.store.redis_url)
    return MemoryCounterStore()


def create_app(
    config: Optional[ServiceConfig] = None,
    store: Optional[CounterStore] = None,
    whois_client: Optional[WHOISClient] = None,
    premium_client: Optional[PremiumClient] = None,
    notifier: Optional[AlertChannel] = None,
    logger: Optional[AuditLogger] = None,
    clock: Callable[[], datetime] = utc_now,
) -> FastAPI:
    """
    Build the gateway application.

    Every collaborator can be injected; anything omitted is built from
    ``config`` (which itself defaults to the process environment).
    """
    config = config or load_config_from_env()
    logger = logger or AuditLogger.from_config(
        config.logging.level, config.logging.output_format
    )
    store = store if store is not None else build_store(config)
    notifier = notifier or AlertNotifier(config.webhook, logger=logger)
    premium_client = premium_client or PremiumClient(config.upstream, logger=logger)
    whois_client = whois_client or WHOISClient(
        timeout=config.whois.timeout_seconds,
        max_response_bytes=config.whois.max_response_bytes,
        port=config.whois.port,
        logger=logger,
    )

    circuit_breaker = CircuitBreaker(store, notifier=notifier, clock=clock, logger=logger)
    admission = AdmissionPipeline(
        rate_limiter=RateLimiter(store, clock=clock, logger=logger),
        circuit_breaker=circuit_breaker,
        quota_tracker=QuotaTracker(store, clock=clock, logger=logger),
        config=config.admission,
        logger=logger,
    )
    premium = PremiumLookupOrchestrator(admission, premium_client, logger=logger)
    whois = WHOISLookupOrchestrator(admission, whois_client, logger=logger)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.log(
            LogLevel.INFO,
            "App",
            "Domain Shark gateway starting",
            {
                "version": __version__,
                "store": type(store).__name__,
                "premium_configured": premium_client.has_credentials,
                "alerts_configured": bool(config.webhook.url),
            },
        )
        yield
        await circuit_breaker.wait_for_alerts()
        await premium_client.close()
        if isinstance(store, RedisCounterStore):
            await store.close()

    app = FastAPI(
        title="Domain Shark",
        description="Domain availability gateway with paid and WHOIS lookups",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.store = store
    app.state.logger = logger

    @app.middleware("http")
    async def envelope(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=CORS_HEADERS)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.log_error("App", "Unhandled error while serving request", error=e)
            return error_response(InternalServiceError())

        response.headers.update(CORS_HEADERS)
        logger.log(
            LogLevel.DEBUG,
            "App",
            "Request served",
            {
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return response

    @app.exception_handler(DomainSharkError)
    async def handle_gateway_error(request: Request, exc: DomainSharkError):
        return error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def handle_routing_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return error_response(EndpointNotFoundError())
        return JSONResponse(
            {"error": "http_error", "message": str(exc.detail)},
            status_code=exc.status_code,
            headers=CORS_HEADERS,
        )

    @app.post("/v1/premium-check")
    async def premium_check(request: Request):
        client = client_identity(request, config.client_ip_header)
        ticket = await premium.admit(client)
        body = await read_json_body(request)
        result = await premium.lookup(ticket, body.get("domain"))
        return JSONResponse(result.to_dict())

    @app.post("/v1/whois-check")
    async def whois_check(request: Request):
        client = client_identity(request, config.client_ip_header)
        await whois.admit(client)
        body = await read_json_body(request)
        result = await whois.lookup(body.get("domain"))
        return JSONResponse(result.to_dict())

    return app
