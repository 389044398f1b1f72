"""FastAPI application entry point"""

from contextlib import asynccontextmanager
from typing import Literal, Optional
import logging

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse

from changelog_api.config.settings import Settings, settings
from changelog_api.dependencies import AppServices, build_services, get_services
from changelog_api.errors import AuthRequired, ChangelogError, RateLimited, ValidationError
from changelog_api.github.errors import GitHubError
from changelog_api.github.repositories import DEFAULT_MAX_REPOS, RepositoryLister
from changelog_api.log_sanitizer import sanitize_log_extra
from changelog_api.orchestrator import NO_PULL_REQUESTS_MESSAGE, ChangelogPlan
from changelog_api.schemas import AnonymousChangelogRequestBody, ChangelogRequestBody, EmailRequestBody
from changelog_api.services.auth import Session
from changelog_api.services.rate_limiter import RateLimiter, rate_limit_key

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"

router = APIRouter()


@router.get("/")
async def root(services: AppServices = Depends(get_services)):
    """Root endpoint"""
    return {
        "service": services.settings.APP_NAME,
        "version": services.settings.APP_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/api/health",
            "generate_changelog": "POST /api/generate-changelog",
            "generate_changelog_auth": "POST /api/generate-changelog-auth",
            "generate_email": "POST /api/generate-email",
            "repositories": "GET /api/repositories",
            "user": "GET /api/auth/user",
        }
    }


@router.get("/api/health")
async def health_check(services: AppServices = Depends(get_services)):
    """Health check endpoint for serverless platforms"""
    return {
        "status": "healthy",
        "service": "changelog-generator",
        "version": services.settings.APP_VERSION
    }


@router.post("/api/generate-changelog")
async def generate_changelog(
    body: AnonymousChangelogRequestBody,
    services: AppServices = Depends(get_services),
):
    """Generate a changelog for a public repository (fingerprint rate-limited)"""
    changelog_request = services.orchestrator.validate(
        repository=body.repository,
        date_mode=body.date_mode,
        days=body.days,
        start_date=body.start_date,
        end_date=body.end_date,
    )
    if not body.identifier:
        raise ValidationError("Fingerprint identifier is required")

    await _enforce_rate_limit(
        services.anonymous_limiter,
        rate_limit_key(body.identifier, "anonymous"),
        audience="Anonymous users",
        hint=" Sign in with GitHub for higher limits.",
        window_seconds=services.settings.RATE_LIMIT_WINDOW_SECONDS,
    )

    logger.info(
        f"Fetching PRs for {changelog_request.repository} from "
        f"{changelog_request.date_range.start.isoformat()} to {changelog_request.date_range.end.isoformat()}"
    )
    plan = await services.orchestrator.prepare(changelog_request)
    return _changelog_response(services, plan)


@router.post("/api/generate-changelog-auth")
async def generate_changelog_authenticated(
    body: ChangelogRequestBody,
    request: Request,
    services: AppServices = Depends(get_services),
):
    """Generate a changelog with the signed-in user's GitHub token (private repos allowed)"""
    changelog_request = services.orchestrator.validate(
        repository=body.repository,
        date_mode=body.date_mode,
        days=body.days,
        start_date=body.start_date,
        end_date=body.end_date,
    )
    session = await _require_session(request, services)

    await _enforce_rate_limit(
        services.authenticated_limiter,
        rate_limit_key(session.user_id, "authenticated"),
        audience="Authenticated users",
        window_seconds=services.settings.RATE_LIMIT_WINDOW_SECONDS,
    )
    access_token = await _require_access_token(session, services)

    logger.info(
        f"Fetching PRs for {changelog_request.repository} from "
        f"{changelog_request.date_range.start.isoformat()} to "
        f"{changelog_request.date_range.end.isoformat()} (authenticated)"
    )
    plan = await services.orchestrator.prepare(changelog_request, access_token=access_token)
    return _changelog_response(services, plan)


@router.post("/api/generate-email")
async def generate_email(
    body: EmailRequestBody,
    request: Request,
    services: AppServices = Depends(get_services),
):
    """Turn a generated changelog into a marketing email"""
    logger.debug(
        "Email request received",
        extra=sanitize_log_extra(
            repository=body.repository,
            date_range=body.date_range,
            content_length=len(body.changelog_content or ""),
        ),
    )
    if not body.changelog_content:
        raise ValidationError("Changelog content is required")

    session = await _require_session(request, services)
    await _enforce_rate_limit(
        services.email_limiter,
        rate_limit_key(session.user_id, "authenticated"),
        audience="Email generation",
        window_seconds=services.settings.RATE_LIMIT_WINDOW_SECONDS,
    )

    stream = services.orchestrator.stream_email(
        body.changelog_content,
        repository=body.repository,
        date_range=body.date_range,
    )
    return StreamingResponse(stream, media_type=STREAM_MEDIA_TYPE)


@router.get("/api/repositories")
async def list_repositories(
    request: Request,
    type: Literal["all", "public", "private"] = "all",
    sort: Literal["created", "updated", "pushed", "full_name"] = "updated",
    direction: Literal["asc", "desc"] = "desc",
    max_repos: int = Query(default=DEFAULT_MAX_REPOS, alias="maxRepos", ge=1),
    services: AppServices = Depends(get_services),
):
    """List repositories the signed-in user can generate changelogs for"""
    session = await _require_session(request, services)
    access_token = await _require_access_token(session, services)

    async with services.github_client_factory(access_token) as client:
        lister = RepositoryLister.from_settings(client, services.settings)
        repositories = await lister.list_all(type=type, sort=sort, direction=direction, max_repos=max_repos)

    return {
        "repositories": [repository.to_dict() for repository in repositories],
        "count": len(repositories),
    }


@router.get("/api/auth/user")
async def current_user(request: Request, services: AppServices = Depends(get_services)):
    """Return the signed-in user"""
    session = await _require_session(request, services)
    return {"user": session.to_dict()}


async def _require_session(request: Request, services: AppServices) -> Session:
    session = await services.sessions.get_session(request)
    if session is None:
        raise AuthRequired("Authentication required")
    return session


async def _require_access_token(session: Session, services: AppServices) -> str:
    access_token = await services.tokens.get_access_token(session.user_id)
    if not access_token:
        raise AuthRequired("GitHub access token not found or expired. Please login again.")
    return access_token


async def _enforce_rate_limit(
    limiter: RateLimiter,
    key: str,
    *,
    audience: str,
    window_seconds: int,
    hint: str = "",
) -> None:
    result = await limiter.limit(key)
    if result.success:
        return
    raise RateLimited(
        f"Rate limit exceeded. {audience} can make {result.limit} requests per {window_seconds} seconds. "
        f"Try again after {result.reset.strftime('%H:%M:%S UTC')}.{hint}",
        reset=result.reset,
        limit=result.limit,
    )


def _changelog_response(services: AppServices, plan: ChangelogPlan):
    if not plan.has_pull_requests:
        return PlainTextResponse(NO_PULL_REQUESTS_MESSAGE)
    return StreamingResponse(services.orchestrator.stream_changelog(plan), media_type=STREAM_MEDIA_TYPE)


async def _changelog_error_handler(request: Request, exc: ChangelogError) -> JSONResponse:
    logger.info(f"Rejected {request.url.path}: {exc.message}")
    return JSONResponse(exc.to_payload(), status_code=exc.status_code)


async def _github_error_handler(request: Request, exc: GitHubError) -> JSONResponse:
    logger.warning(
        f"GitHub error on {request.url.path}: {exc.kind.value}",
        extra=sanitize_log_extra(error=exc.message, status_code=exc.status),
    )
    return JSONResponse(exc.to_payload(), status_code=exc.http_status)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"Invalid value for '{location}': {errors[0].get('msg', 'invalid')}"
    else:
        message = "Invalid request"
    return JSONResponse({"error": message}, status_code=400)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse({"error": "An unexpected error occurred"}, status_code=500)


def create_app(config: Optional[Settings] = None, services: Optional[AppServices] = None) -> FastAPI:
    """
    Build the application

    Args:
        config: settings to build services from; defaults to the environment
        services: prebuilt collaborators (tests); owned by the caller, not closed here
    """
    app_settings = config or (services.settings if services else settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.services = services or build_services(app_settings)
        try:
            yield
        finally:
            if services is None:
                await app.state.services.aclose()

    app = FastAPI(
        title=app_settings.APP_NAME,
        description="AI changelog generation from merged GitHub pull requests",
        version=app_settings.APP_VERSION,
        lifespan=lifespan,
    )

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ChangelogError, _changelog_error_handler)
    app.add_exception_handler(GitHubError, _github_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "changelog_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
