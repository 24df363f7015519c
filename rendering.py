# rendering.py - Jinja2 HTML 렌더링
from pathlib import Path

from fastapi.responses import HTMLResponse
from jinja2 import Environment, FileSystemLoader, select_autoescape

from utils.helpers import time_ago

TEMPLATE_DIR = Path(__file__).parent / "templates"

VIEWS = {
    'login': 'login.html',
    'register': 'register.html',
    'feed': 'feed.html',
    'profile': 'profile.html',
    'post_detail': 'post_detail.html',
    'error': 'error.html',
}

env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(['html']),
)
env.filters['time_ago'] = time_ago


def render_view(view: str, **data) -> str:
    """뷰 이름과 데이터로 HTML 생성 (사용자 입력은 모두 자동 이스케이프)"""
    try:
        template_name = VIEWS[view]
    except KeyError:
        raise ValueError(f"Unknown view: {view}")
    return env.get_template(template_name).render(**data)


def render_response(view: str, status_code: int = 200, **data) -> HTMLResponse:
    return HTMLResponse(render_view(view, **data), status_code=status_code)
