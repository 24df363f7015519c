# utils/error_handler.py - 통합 에러 처리 시스템
import logging
import sys
import traceback
from datetime import datetime
from typing import Dict, Any, Optional
from enum import Enum
from pathlib import Path

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """로거 설정 (stdout + 선택적 파일 핸들러)"""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding='utf-8'))

    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, handlers=handlers, force=True)


class ErrorType(Enum):
    """에러 타입 분류"""
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    DUPLICATE_EMAIL = "duplicate_email"
    STORE_ERROR = "store_error"
    UPLOAD_ERROR = "upload_error"
    SYSTEM_ERROR = "system_error"


class ErrorSeverity(Enum):
    """에러 심각도"""
    LOW = "low"           # 사용자 입력 문제
    MEDIUM = "medium"     # 외부 서비스 문제
    HIGH = "high"         # 저장소 장애


class SocialAppError(Exception):
    """🚨 커스텀 베이스 예외 클래스"""

    status_code = 500

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.SYSTEM_ERROR,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None
    ):
        self.message = message
        self.error_type = error_type
        self.severity = severity
        self.details = details or {}
        self.user_message = user_message or "Something went wrong. Please try again later."
        self.timestamp = datetime.now().isoformat()

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'message': self.message,
            'error_type': self.error_type.value,
            'severity': self.severity.value,
            'details': self.details,
            'user_message': self.user_message,
            'timestamp': self.timestamp
        }


class ValidationError(SocialAppError):
    """입력 검증 오류"""
    status_code = 400

    def __init__(self, message: str, field: str = None, details: Optional[Dict[str, Any]] = None):
        details = details or {}
        if field:
            details['field'] = field
        super().__init__(
            message=message,
            error_type=ErrorType.VALIDATION_ERROR,
            severity=ErrorSeverity.LOW,
            details=details,
            user_message=message,
        )


class NotFound(SocialAppError):
    """참조한 사용자/게시물 없음"""
    status_code = 404

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            message=f"{resource} {identifier} not found",
            error_type=ErrorType.NOT_FOUND,
            severity=ErrorSeverity.LOW,
            details={'resource': resource, 'id': str(identifier)},
            user_message=f"{resource} not found",
        )


class DuplicateEmail(SocialAppError):
    """이메일 중복 (unique 제약 위반)"""
    status_code = 409

    def __init__(self, email: str):
        super().__init__(
            message=f"Email already registered: {email}",
            error_type=ErrorType.DUPLICATE_EMAIL,
            severity=ErrorSeverity.LOW,
            details={'email': email},
            user_message="Email already exists",
        )


class StoreError(SocialAppError):
    """저장소 연결/쿼리 오류"""
    status_code = 500

    def __init__(self, message: str, query: str = None, details: Optional[Dict[str, Any]] = None):
        details = details or {}
        if query:
            details['query'] = query
        super().__init__(
            message=message,
            error_type=ErrorType.STORE_ERROR,
            severity=ErrorSeverity.HIGH,
            details=details,
        )


class UploadError(SocialAppError):
    """외부 미디어 호스트 오류"""
    status_code = 502

    def __init__(self, message: str, status_code: int = None, details: Optional[Dict[str, Any]] = None):
        details = details or {}
        if status_code:
            details['status_code'] = status_code
        super().__init__(
            message=message,
            error_type=ErrorType.UPLOAD_ERROR,
            severity=ErrorSeverity.MEDIUM,
            details=details,
            user_message="The image could not be uploaded. Please try again.",
        )


class ErrorHandler:
    """🛡️ 통합 에러 처리기"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def handle_error(self, error: Exception, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        🚨 에러를 분류하고 로그를 남긴 뒤 응답용 정보를 반환

        Args:
            error: 발생한 예외
            context: 요청 경로 등 발생 컨텍스트
        """
        context = context or {}

        if isinstance(error, SocialAppError):
            error_info = error.to_dict()
            error_info['status_code'] = error.status_code
        else:
            error_info = {
                'message': str(error),
                'error_type': ErrorType.SYSTEM_ERROR.value,
                'severity': ErrorSeverity.HIGH.value,
                'details': {'exception_type': type(error).__name__},
                'user_message': "Something went wrong. Please try again later.",
                'timestamp': datetime.now().isoformat(),
                'status_code': 500,
            }
            error_info['traceback'] = ''.join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )

        error_info['context'] = context
        self._log_error(error_info)
        return error_info

    def _log_error(self, error_info: Dict[str, Any]):
        severity = error_info.get('severity', ErrorSeverity.MEDIUM.value)
        log_message = f"[{error_info['error_type'].upper()}] {error_info['message']} {error_info['context']}"

        if severity == ErrorSeverity.HIGH.value:
            self.logger.error(log_message)
            if 'traceback' in error_info:
                self.logger.error(error_info['traceback'])
        elif severity == ErrorSeverity.MEDIUM.value:
            self.logger.warning(log_message)
        else:
            self.logger.info(log_message)


error_handler = ErrorHandler()


def handle_error(error: Exception, context: Dict[str, Any] = None) -> Dict[str, Any]:
    """에러 처리 함수"""
    return error_handler.handle_error(error, context)
