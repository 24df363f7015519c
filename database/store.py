# database/store.py - users / posts 저장소
import logging
import sqlite3
from datetime import datetime
from typing import List, Optional

import bcrypt

from database_models import MAX_PASSWORD_BYTES, User, Post, FeedPost, PostDetail
from utils.database_manager import DatabaseManager
from utils.error_handler import DuplicateEmail, NotFound, StoreError, ValidationError
from utils.helpers import format_timestamp, get_current_time, new_post_id

logger = logging.getLogger(__name__)

USER_COLUMNS = "id, username, email, bio, profile_url, created_at"


def hash_password(password: str) -> str:
    """비밀번호 해싱"""
    encoded = password.encode('utf-8')
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes", field="password")
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, hashed: str) -> bool:
    """비밀번호 검증 (너무 긴 비밀번호나 손상된 해시는 불일치로 처리)"""
    encoded = password.encode('utf-8')
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed.encode('utf-8'))
    except ValueError:
        logger.warning("⚠️ 저장된 비밀번호 해시 형식이 올바르지 않습니다.")
        return False


class SocialStore:
    """📚 users / posts 에 대한 타입 있는 CRUD"""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    # 👤 users
    def create_user(self, username: str, email: str, password: str) -> int:
        try:
            with self.db.get_transaction() as cursor:
                cursor.execute(
                    "INSERT INTO users (username, email, password, created_at) VALUES (?, ?, ?, ?)",
                    (username, email, hash_password(password), format_timestamp(get_current_time()))
                )
                user_id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            if 'users.email' in str(e):
                raise DuplicateEmail(email) from e
            raise StoreError(f"User insert failed: {e}") from e
        except sqlite3.Error as e:
            raise StoreError(f"User insert failed: {e}") from e

        logger.info(f"✅ 사용자 생성: id={user_id}")
        return user_id

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """일치하지 않으면 None (예외 아님)"""
        row = self.db.execute_query(
            f"SELECT {USER_COLUMNS}, password FROM users WHERE email = ?",
            (email,), fetch_one=True
        )
        if not row or not verify_password(password, row.pop('password')):
            return None
        return User(**row)

    def get_user(self, user_id: int) -> User:
        row = self.db.execute_query(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,), fetch_one=True
        )
        if not row:
            raise NotFound("User", user_id)
        return User(**row)

    def update_bio(self, user_id: int, bio: str) -> None:
        if not self.db.execute_command("UPDATE users SET bio = ? WHERE id = ?", (bio, user_id)):
            raise NotFound("User", user_id)

    def update_profile_photo(self, user_id: int, url: str) -> None:
        if not self.db.execute_command("UPDATE users SET profile_url = ? WHERE id = ?", (url, user_id)):
            raise NotFound("User", user_id)

    # 📝 posts
    def list_feed(self) -> List[FeedPost]:
        rows = self.db.execute_query("""
            SELECT posts.*, users.username
            FROM posts
            JOIN users ON posts.user_id = users.id
            ORDER BY posts.created_at DESC, posts.rowid DESC
        """)
        return [FeedPost(**row) for row in rows]

    def list_posts_by_user(self, user_id: int) -> List[Post]:
        rows = self.db.execute_query(
            "SELECT * FROM posts WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
            (user_id,)
        )
        return [Post(**row) for row in rows]

    def get_post(self, post_id: str) -> PostDetail:
        row = self.db.execute_query("""
            SELECT posts.*, users.username, users.email, users.bio,
                   users.created_at AS joined
            FROM posts
            JOIN users ON posts.user_id = users.id
            WHERE posts.id = ?
        """, (post_id,), fetch_one=True)
        if not row:
            raise NotFound("Post", post_id)
        return PostDetail(**row)

    def create_post(
        self,
        user_id: int,
        content: str,
        media_url: Optional[str] = None,
        post_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> str:
        post_id = post_id or new_post_id()
        created_at = format_timestamp(created_at or get_current_time())
        try:
            self.db.execute_command(
                "INSERT INTO posts (id, user_id, content, url, created_at) VALUES (?, ?, ?, ?, ?)",
                (post_id, user_id, content, media_url, created_at)
            )
        except sqlite3.IntegrityError as e:
            if 'FOREIGN KEY' in str(e):
                raise NotFound("User", user_id) from e
            raise StoreError(f"Post insert failed: {e}") from e

        logger.info(f"✅ 게시물 생성: id={post_id} user={user_id}")
        return post_id

    def update_post_content(self, post_id: str, content: str) -> None:
        if not self.db.execute_command("UPDATE posts SET content = ? WHERE id = ?", (content, post_id)):
            raise NotFound("Post", post_id)

    def delete_post(self, post_id: str) -> None:
        if not self.db.execute_command("DELETE FROM posts WHERE id = ?", (post_id,)):
            raise NotFound("Post", post_id)
        logger.info(f"🗑️ 게시물 삭제: id={post_id}")
