# api_routes.py - 페이지 및 폼 라우트
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool

from database.store import SocialStore
from database_models import LoginForm, PostForm, RegisterForm
from media_uploader import MediaUploader
from rendering import render_response
from utils.config import AppConfig
from utils.error_handler import DuplicateEmail, ValidationError

logger = logging.getLogger(__name__)

api_router = APIRouter()

SESSION_COOKIE = "access_token"


# 의존성
def get_store(request: Request) -> SocialStore:
    return request.app.state.store


def get_uploader(request: Request) -> MediaUploader:
    return request.app.state.uploader


def get_app_config(request: Request) -> AppConfig:
    return request.app.state.config


# 세션 토큰
def create_access_token(user_id: int, config: AppConfig) -> str:
    """JWT 세션 토큰 생성"""
    now = datetime.now(timezone.utc)
    payload = {
        "user_id": user_id,
        "iat": now,
        "exp": now + timedelta(hours=config.get_access_token_expire_hours()),
    }
    return jwt.encode(payload, config.get_secret_key(), algorithm=config.get_jwt_algorithm())


def get_session_user_id(request: Request) -> Optional[int]:
    """쿠키의 세션 사용자 ID, 없거나 유효하지 않으면 None"""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    config = get_app_config(request)
    try:
        payload = jwt.decode(token, config.get_secret_key(), algorithms=[config.get_jwt_algorithm()])
    except jwt.PyJWTError:
        return None
    return payload.get("user_id")


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def _feed_redirect(request: Request, form_user_id: Optional[str]) -> RedirectResponse:
    """수정/삭제 후 이동할 피드. 폼의 userId는 이동 대상 선택에만 쓰인다."""
    user_id = get_session_user_id(request) or form_user_id
    if not user_id:
        return _redirect("/login")
    return _redirect(f"/users/{user_id}/posts")


def _first_error(error: PydanticValidationError) -> str:
    message = error.errors()[0]['msg']
    return message.replace("Value error, ", "")


def _validate_post_content(content: str) -> str:
    try:
        return PostForm(content=content).content
    except PydanticValidationError as e:
        raise ValidationError(_first_error(e), field="content")


@api_router.get("/")
def index():
    return _redirect("/login")


# 🔐 로그인 / 회원가입
@api_router.get("/login")
def login_page():
    return render_response('login')


@api_router.post("/login")
def login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    store: SocialStore = Depends(get_store),
):
    # 가입 때와 같은 방식으로 이메일 정규화
    try:
        form = LoginForm(email=email.strip(), password=password)
        user = store.authenticate(form.email, form.password)
    except PydanticValidationError:
        user = None
    if user is None:
        logger.info(f"로그인 실패: {email}")
        return render_response('login', status_code=401, error="Invalid email or password", email=email)

    response = _redirect(f"/users/{user.id}/posts")
    config = get_app_config(request)
    response.set_cookie(
        key=SESSION_COOKIE,
        value=create_access_token(user.id, config),
        httponly=True,
        max_age=config.get_access_token_expire_hours() * 3600,
        samesite="lax",
    )
    return response


@api_router.get("/logout")
def logout():
    response = _redirect("/login")
    response.delete_cookie(SESSION_COOKIE)
    return response


@api_router.get("/register")
@api_router.get("/new-guy-page")
def register_page():
    return render_response('register')


@api_router.post("/register")
def register(
    username: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    store: SocialStore = Depends(get_store),
):
    try:
        form = RegisterForm(username=username, email=email.strip(), password=password)
    except PydanticValidationError as e:
        return render_response('register', status_code=400, error=_first_error(e),
                               username=username, email=email)

    try:
        store.create_user(form.username, form.email, form.password)
    except DuplicateEmail as e:
        return render_response('register', status_code=409, error=e.user_message,
                               username=username, email=email)
    return _redirect("/login")


# 📰 피드 / 게시물
@api_router.get("/users/{user_id}/posts")
def feed(user_id: int, store: SocialStore = Depends(get_store)):
    return render_response('feed', posts=store.list_feed(), user_id=user_id)


@api_router.post("/users/{user_id}/posts")
async def create_post(
    user_id: int,
    content: str = Form(""),
    image: Optional[UploadFile] = File(None),
    store: SocialStore = Depends(get_store),
    uploader: MediaUploader = Depends(get_uploader),
):
    content = _validate_post_content(content)
    await run_in_threadpool(store.get_user, user_id)

    url = await uploader.stage_and_upload(image, folder="posts")
    await run_in_threadpool(store.create_post, user_id, content, url)
    return _redirect(f"/profile/{user_id}")


@api_router.get("/posts/{post_id}")
def post_detail(post_id: str, store: SocialStore = Depends(get_store)):
    return render_response('post_detail', post=store.get_post(post_id))


@api_router.put("/posts/{post_id}")
def edit_post(
    post_id: str,
    request: Request,
    content: str = Form(""),
    userId: Optional[str] = Form(None),
    store: SocialStore = Depends(get_store),
):
    store.update_post_content(post_id, _validate_post_content(content))
    return _feed_redirect(request, userId)


@api_router.delete("/posts/{post_id}")
def delete_post(
    post_id: str,
    request: Request,
    userId: Optional[str] = Form(None),
    store: SocialStore = Depends(get_store),
):
    store.delete_post(post_id)
    return _feed_redirect(request, userId)


# 👤 프로필
@api_router.get("/profile/{user_id}")
def profile(user_id: int, store: SocialStore = Depends(get_store)):
    user = store.get_user(user_id)
    posts = store.list_posts_by_user(user_id)
    return render_response('profile', user=user, posts=posts)


@api_router.post("/profile/{user_id}")
def update_bio(user_id: int, bio: str = Form(""), store: SocialStore = Depends(get_store)):
    store.update_bio(user_id, bio.strip())
    return _redirect(f"/profile/{user_id}")


@api_router.post("/profile/{user_id}/photo")
async def update_photo(
    user_id: int,
    photo: Optional[UploadFile] = File(None),
    store: SocialStore = Depends(get_store),
    uploader: MediaUploader = Depends(get_uploader),
):
    await run_in_threadpool(store.get_user, user_id)

    url = await uploader.stage_and_upload(photo, folder="profiles")
    if url:
        await run_in_threadpool(store.update_profile_photo, user_id, url)
    return _redirect(f"/profile/{user_id}")


@api_router.get("/health")
def health_check(store: SocialStore = Depends(get_store)):
    """시스템 상태 확인"""
    database = store.db.health_check()
    status_code = 200 if database['status'] == 'healthy' else 503
    return JSONResponse({"status": database['status'], "database": database}, status_code=status_code)
