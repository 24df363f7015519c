# main.py - 애플리케이션 진입점
import logging
from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import parse_qs

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from api_routes import api_router
from database.store import SocialStore
from media_uploader import MediaUploader
from rendering import render_response
from utils.config import AppConfig, get_config
from utils.database_manager import DatabaseManager
from utils.error_handler import SocialAppError, handle_error, setup_logging

logger = logging.getLogger(__name__)

OVERRIDABLE_METHODS = {"PUT", "PATCH", "DELETE"}


class MethodOverrideMiddleware:
    """HTML 폼의 POST ?_method=PUT|DELETE 를 해당 메서드로 변환"""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and scope["method"] == "POST":
            query = parse_qs(scope.get("query_string", b"").decode("latin-1"))
            override = query.get("_method", [""])[0].upper()
            if override in OVERRIDABLE_METHODS:
                scope = dict(scope, method=override)
        await self.app(scope, receive, send)


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """설정 검증 → 로깅 → 앱 구성. 저장소 연결은 lifespan에서 열고 닫는다."""
    config = config or get_config()
    setup_logging(config.get_log_level(), config.get_log_file())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"🚀 {config.get_app_name()} 시작 {config.get_feature_status()}")
        db_manager = DatabaseManager(
            config.get_database_path(),
            pool_size=config.get_database_pool_size(),
            timeout=config.get_database_timeout(),
        )
        # 저장소에 연결할 수 없으면 여기서 예외가 나며 서버가 시작되지 않는다
        db_manager.initialize_database()
        uploader = MediaUploader.from_config(config)

        app.state.config = config
        app.state.store = SocialStore(db_manager)
        app.state.uploader = uploader
        try:
            yield
        finally:
            uploader.close()
            db_manager.close()
            logger.info("👋 종료")

    app = FastAPI(title=config.get_app_name(), lifespan=lifespan, debug=config.debug)
    app.add_middleware(MethodOverrideMiddleware)
    app.include_router(api_router)

    @app.exception_handler(SocialAppError)
    async def social_error_handler(request: Request, exc: SocialAppError):
        handle_error(exc, {'method': request.method, 'path': request.url.path})
        return render_response('error', status_code=exc.status_code,
                               code=exc.status_code, message=exc.user_message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # /profile/abc 처럼 경로 값이 잘못되면 없는 페이지로 취급
        errors = exc.errors()
        if errors and all(error.get('loc', ('',))[0] == 'path' for error in errors):
            status_code, message = 404, "Page not found"
        else:
            status_code, message = 400, "Invalid request"
        logger.info(f"⚠️ 요청 검증 실패 {request.method} {request.url.path}: {errors}")
        return render_response('error', status_code=status_code, code=status_code, message=message)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        handle_error(exc, {'method': request.method, 'path': request.url.path})
        return render_response('error', status_code=500, code=500,
                               message="Something went wrong. Please try again later.")

    return app


if __name__ == "__main__":
    config = get_config()
    print(f"🚀 {config.get_app_name()}")
    print(f"📱 http://{config.get_host()}:{config.get_port()}/login")
    uvicorn.run(
        "main:create_app",
        factory=True,
        host=config.get_host(),
        port=config.get_port(),
        reload=config.get_reload(),
    )
