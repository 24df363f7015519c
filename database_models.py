# 데이터베이스 모델 및 폼 모델
from typing import Optional

from pydantic import BaseModel, EmailStr, field_validator

# bcrypt는 72바이트까지만 해싱한다
MAX_PASSWORD_BYTES = 72


class User(BaseModel):
    id: int
    username: str
    email: str
    bio: Optional[str] = None
    profile_url: Optional[str] = None
    created_at: Optional[str] = None


class Post(BaseModel):
    id: str
    user_id: int
    content: str
    url: Optional[str] = None
    created_at: Optional[str] = None


class FeedPost(Post):
    """피드용: 작성자 이름 포함"""
    username: str


class PostDetail(FeedPost):
    """상세 페이지용: 작성자 정보 포함"""
    email: str
    bio: Optional[str] = None
    joined: Optional[str] = None


class RegisterForm(BaseModel):
    username: str
    email: EmailStr
    password: str

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Username is required')
        if len(v) > 80:
            raise ValueError('Username must be at most 80 characters')
        return v

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if len(v) < 4:
            raise ValueError('Password must be at least 4 characters')
        if len(v.encode('utf-8')) > MAX_PASSWORD_BYTES:
            raise ValueError(f'Password must be at most {MAX_PASSWORD_BYTES} bytes')
        return v


class LoginForm(BaseModel):
    email: EmailStr
    password: str


class PostForm(BaseModel):
    content: str

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        if not v.strip():
            raise ValueError('Post content cannot be empty')
        return v
