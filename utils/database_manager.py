# utils/database_manager.py - 커넥션 풀 기반 데이터베이스 관리자
import sqlite3
import logging
import queue
import threading
from contextlib import contextmanager
from typing import Dict, Any
from datetime import datetime
from pathlib import Path

from database import SCHEMA_STATEMENTS, INDEX_STATEMENTS
from utils.error_handler import StoreError

logger = logging.getLogger(__name__)


class DatabaseManager:
    """🗄️ 요청 간 공유되는 유일한 상태: 크기가 제한된 커넥션 풀"""

    def __init__(self, db_path: str, pool_size: int = 5, timeout: int = 30):
        self.db_path = db_path
        self.pool_size = pool_size
        self.timeout = timeout
        self._pool = queue.LifoQueue(maxsize=pool_size)
        self._created = 0
        self._lock = threading.Lock()
        self._closed = False
        self._ensure_database_directory()

    def _ensure_database_directory(self):
        db_dir = Path(self.db_path).parent
        if not db_dir.is_dir():
            try:
                db_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StoreError(f"Cannot create database directory {db_dir}: {e}") from e
            logger.info(f"📁 데이터베이스 디렉토리 생성: {db_dir}")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def _acquire(self) -> sqlite3.Connection:
        if self._closed:
            raise StoreError("Connection pool is closed")
        try:
            return self._pool.get_nowait()
        except queue.Empty:
            pass

        with self._lock:
            if self._created < self.pool_size:
                self._created += 1
                create = True
            else:
                create = False

        if create:
            try:
                return self._connect()
            except sqlite3.Error as e:
                with self._lock:
                    self._created -= 1
                raise StoreError(f"Database connection failed: {e}") from e

        # 풀이 가득 찼으면 반납될 때까지 대기
        try:
            return self._pool.get(timeout=self.timeout)
        except queue.Empty:
            raise StoreError(
                "Timed out waiting for a database connection",
                details={'pool_size': self.pool_size, 'timeout': self.timeout}
            )

    def _release(self, conn: sqlite3.Connection):
        if self._closed:
            conn.close()
            return
        self._pool.put_nowait(conn)

    def _discard(self, conn: sqlite3.Connection):
        """망가진 커넥션은 풀에 돌려놓지 않고 버린다"""
        try:
            conn.close()
        except sqlite3.Error:
            pass
        with self._lock:
            self._created -= 1
        logger.warning("⚠️ 사용할 수 없는 커넥션을 풀에서 제거했습니다.")

    @staticmethod
    def _safe_rollback(conn: sqlite3.Connection) -> bool:
        """롤백 실패가 원래 예외를 가리지 않도록 한다"""
        try:
            conn.rollback()
            return True
        except sqlite3.Error as e:
            logger.warning(f"⚠️ 롤백 실패: {e}")
            return False

    @contextmanager
    def get_connection(self):
        """
        🔗 풀에서 커넥션을 빌려오는 컨텍스트 매니저

        Usage:
            with db_manager.get_connection() as conn:
                conn.execute("SELECT * FROM users")
        """
        conn = self._acquire()
        reusable = True
        try:
            yield conn
        except Exception:
            reusable = self._safe_rollback(conn)
            raise
        finally:
            if reusable:
                self._release(conn)
            else:
                self._discard(conn)

    @contextmanager
    def get_transaction(self):
        """
        🔄 트랜잭션 컨텍스트 매니저 (자동 commit / rollback)

        Usage:
            with db_manager.get_transaction() as cursor:
                cursor.execute("INSERT INTO posts ...")
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            try:
                yield cursor
                conn.commit()
            except Exception as e:
                self._safe_rollback(conn)
                logger.debug(f"🔄 트랜잭션 롤백: {e}")
                raise
            finally:
                try:
                    cursor.close()
                except sqlite3.Error:
                    pass

    def execute_query(self, query: str, params: tuple = (), fetch_one: bool = False) -> Any:
        """
        📝 SELECT 실행

        Returns:
            fetch_one이면 dict 또는 None, 아니면 dict 리스트
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.execute(query, params)
                try:
                    if fetch_one:
                        row = cursor.fetchone()
                        return dict(row) if row else None
                    return [dict(row) for row in cursor.fetchall()]
                finally:
                    cursor.close()
        except sqlite3.Error as e:
            logger.error(f"❌ 쿼리 실행 오류: {e}")
            logger.error(f"   쿼리: {query}")
            raise StoreError(f"Query failed: {e}", query=query) from e

    def execute_command(self, query: str, params: tuple = ()) -> int:
        """
        ⚡ INSERT / UPDATE / DELETE 실행

        Returns:
            영향받은 행 수

        sqlite3.IntegrityError는 호출자가 도메인 오류로 변환하도록 그대로 전달.
        """
        try:
            with self.get_transaction() as cursor:
                cursor.execute(query, params)
                return cursor.rowcount
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as e:
            logger.error(f"❌ 명령 실행 오류: {e}")
            logger.error(f"   쿼리: {query}")
            raise StoreError(f"Command failed: {e}", query=query) from e

    def initialize_database(self):
        """🏗️ 테이블 및 인덱스 생성"""
        try:
            with self.get_transaction() as cursor:
                for statement in SCHEMA_STATEMENTS:
                    cursor.execute(statement)
                for index_sql in INDEX_STATEMENTS:
                    cursor.execute(index_sql)
            logger.info(f"✅ 데이터베이스 테이블 초기화 완료: {self.db_path}")
        except sqlite3.Error as e:
            logger.error(f"❌ 데이터베이스 초기화 오류: {e}")
            raise StoreError(f"Database initialisation failed: {e}") from e

    def health_check(self) -> Dict[str, Any]:
        """🏥 데이터베이스 상태 확인"""
        start_time = datetime.now()
        try:
            with self.get_connection() as conn:
                conn.execute("SELECT 1").fetchone()
        except (sqlite3.Error, StoreError) as e:
            return {
                'status': 'unhealthy',
                'error': str(e),
                'timestamp': datetime.now().isoformat()
            }

        return {
            'status': 'healthy',
            'response_time_seconds': (datetime.now() - start_time).total_seconds(),
            'pool_size': self.pool_size,
            'open_connections': self._created,
            'timestamp': datetime.now().isoformat()
        }

    def close(self):
        """풀의 모든 커넥션 종료"""
        self._closed = True
        closed = 0
        while True:
            try:
                conn = self._pool.get_nowait()
            except queue.Empty:
                break
            conn.close()
            closed += 1
        logger.info(f"🔌 데이터베이스 커넥션 {closed}개 종료")
