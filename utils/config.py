# utils/config.py - 환경변수 기반 설정 관리
import os
import secrets
from dotenv import load_dotenv
from typing import Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_IMAGEKIT_UPLOAD_URL = "https://upload.imagekit.io/api/v1/files/upload"
DEFAULT_DATABASE_URL = "sqlite:///./social_posts.db"


class AppConfig:
    """⚙️ 애플리케이션 설정 관리 클래스"""

    def __init__(self, load_env_file: bool = True):
        """환경변수 로드 및 검증"""
        self.load_environment(load_env_file)
        self.validate_critical_settings()

    def load_environment(self, load_env_file: bool = True):
        """환경변수 로드"""
        if load_env_file:
            if load_dotenv():
                logger.info("✅ .env 파일이 로드되었습니다.")
            else:
                logger.info("ℹ️ .env 파일 없음, 프로세스 환경변수를 사용합니다.")

        self.environment = os.getenv('ENVIRONMENT', 'development')
        self.debug = os.getenv('DEBUG', 'False').lower() == 'true'
        self._secret_key = None

    def validate_critical_settings(self):
        """🔒 필수 설정값 검증 (시작 시점에 실패)"""
        errors = []

        if self.environment == 'production' and self.debug:
            errors.append("DEBUG must be False in production")

        try:
            secret_key = self.get_secret_key()
            if len(secret_key) < 32:
                errors.append("SECRET_KEY must be at least 32 characters")
        except ValueError as e:
            errors.append(str(e))

        try:
            database_url = self.get_database_url()
            if not database_url.startswith('sqlite:///'):
                errors.append(f"Unsupported DATABASE_URL scheme: {database_url}")
        except ValueError as e:
            errors.append(str(e))

        for name in ('IMAGEKIT_PUBLIC_KEY', 'IMAGEKIT_PRIVATE_KEY', 'IMAGEKIT_URL_ENDPOINT'):
            if not os.getenv(name, '').strip():
                errors.append(f"{name} is not set")

        if self.get_database_pool_size() < 1:
            errors.append("DATABASE_POOL_SIZE must be at least 1")

        if errors:
            logger.error("❌ 설정 오류:")
            for error in errors:
                logger.error(f"   - {error}")
            raise ValueError("Invalid configuration: " + "; ".join(errors))

        logger.info("✅ 설정 검증 완료")

    # 🔒 보안 관련 설정
    def get_secret_key(self) -> str:
        """세션 JWT 서명용 비밀키"""
        if self._secret_key:
            return self._secret_key
        secret_key = os.getenv('SECRET_KEY')
        if not secret_key:
            if self.environment == 'development':
                secret_key = secrets.token_urlsafe(32)
                logger.warning("⚠️ SECRET_KEY가 자동 생성되었습니다. 재시작하면 세션이 무효화됩니다.")
            else:
                raise ValueError("SECRET_KEY is not set")
        self._secret_key = secret_key
        return secret_key

    def get_jwt_algorithm(self) -> str:
        return os.getenv('JWT_ALGORITHM', 'HS256')

    def get_access_token_expire_hours(self) -> int:
        return int(os.getenv('ACCESS_TOKEN_EXPIRE_HOURS', '24'))

    # 🖼️ ImageKit 설정
    def get_imagekit_public_key(self) -> str:
        return os.getenv('IMAGEKIT_PUBLIC_KEY', '').strip()

    def get_imagekit_private_key(self) -> str:
        return os.getenv('IMAGEKIT_PRIVATE_KEY', '').strip()

    def get_imagekit_url_endpoint(self) -> str:
        return os.getenv('IMAGEKIT_URL_ENDPOINT', '').strip()

    def get_imagekit_upload_url(self) -> str:
        return os.getenv('IMAGEKIT_UPLOAD_URL', DEFAULT_IMAGEKIT_UPLOAD_URL)

    def get_imagekit_timeout(self) -> int:
        """업로드 요청 타임아웃 (초)"""
        return int(os.getenv('IMAGEKIT_TIMEOUT', '30'))

    def get_upload_dir(self) -> str:
        """업로드 임시 저장 디렉토리"""
        return os.getenv('UPLOAD_DIR', 'uploads')

    # 🗄️ 데이터베이스 설정
    def get_database_url(self) -> str:
        database_url = os.getenv('DATABASE_URL')
        if not database_url:
            if self.environment == 'development':
                return DEFAULT_DATABASE_URL
            raise ValueError("DATABASE_URL is not set")
        return database_url

    def get_database_path(self) -> str:
        return self.get_database_url()[len('sqlite:///'):]

    def get_database_pool_size(self) -> int:
        return int(os.getenv('DATABASE_POOL_SIZE', '5'))

    def get_database_timeout(self) -> int:
        return int(os.getenv('DATABASE_TIMEOUT', '30'))

    # 🌐 서버 설정
    def get_host(self) -> str:
        return os.getenv('HOST', '0.0.0.0')

    def get_port(self) -> int:
        return int(os.getenv('PORT', '8080'))

    def get_reload(self) -> bool:
        return os.getenv('RELOAD', 'False').lower() == 'true'

    # 📊 로깅 설정
    def get_log_level(self) -> str:
        return os.getenv('LOG_LEVEL', 'INFO')

    def get_log_file(self) -> Optional[str]:
        """로그 파일 경로 (빈 값이면 파일 로깅 안 함)"""
        return os.getenv('LOG_FILE', 'logs/app.log') or None

    def get_app_name(self) -> str:
        return os.getenv('APP_NAME', 'Cyber Thread')

    def get_feature_status(self) -> dict:
        """설정 상태 요약"""
        return {
            'environment': self.environment,
            'debug_mode': self.debug,
            'database_url': self.get_database_url(),
            'pool_size': self.get_database_pool_size(),
            'media_host': self.get_imagekit_url_endpoint(),
        }


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """설정 인스턴스 반환 (최초 호출 시 로드 및 검증)"""
    global _config
    if _config is None:
        _config = AppConfig()
    return _config
