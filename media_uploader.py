# media_uploader.py - ImageKit 이미지 업로드
import logging
import os
import uuid
from pathlib import Path
from typing import Optional

import aiofiles
import requests
from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from utils.config import AppConfig
from utils.error_handler import UploadError, ValidationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class MediaUploader:
    """🖼️ 외부 이미지 호스트(ImageKit)로 파일을 전달하고 공개 URL을 반환"""

    def __init__(
        self,
        private_key: str,
        url_endpoint: str,
        upload_url: str,
        upload_dir: str = "uploads",
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        self.private_key = private_key
        self.url_endpoint = url_endpoint.rstrip('/')
        self.upload_url = upload_url
        self.upload_dir = Path(upload_dir)
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: AppConfig) -> "MediaUploader":
        return cls(
            private_key=config.get_imagekit_private_key(),
            url_endpoint=config.get_imagekit_url_endpoint(),
            upload_url=config.get_imagekit_upload_url(),
            upload_dir=config.get_upload_dir(),
            timeout=config.get_imagekit_timeout(),
        )

    def upload(self, data: bytes, filename: str, folder: Optional[str] = None) -> str:
        """바이너리를 업로드하고 공개 URL 반환"""
        form = {'fileName': filename, 'useUniqueFileName': 'true'}
        if folder:
            form['folder'] = folder

        try:
            response = self.session.post(
                self.upload_url,
                auth=(self.private_key, ''),
                files={'file': (filename, data)},
                data=form,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"❌ 이미지 업로드 전송 오류: {e}")
            raise UploadError(f"Upload transport failed: {e}") from e

        if not response.ok:
            logger.error(f"❌ 이미지 업로드 실패: {response.status_code} {response.text[:200]}")
            raise UploadError(
                f"Media host rejected upload of {filename}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UploadError("Media host returned a non-JSON response") from e

        url = payload.get('url')
        if not url and payload.get('filePath') and self.url_endpoint:
            url = f"{self.url_endpoint}/{payload['filePath'].lstrip('/')}"
        if not url:
            raise UploadError("Media host response did not include a URL", details={'response': payload})

        logger.info(f"✅ 이미지 업로드 성공: {url}")
        return url

    def upload_path(self, path: str, filename: str, folder: Optional[str] = None) -> str:
        """로컬 임시 파일을 업로드하고, 성공/실패와 관계없이 삭제"""
        try:
            with open(path, 'rb') as f:
                data = f.read()
            return self.upload(data, filename, folder)
        finally:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass

    async def stage_and_upload(self, upload_file: Optional[UploadFile], folder: Optional[str] = None) -> Optional[str]:
        """
        멀티파트 파일을 임시 디렉토리에 기록한 뒤 업로드

        Returns:
            공개 URL, 파일이 없으면 None
        """
        if upload_file is None or not upload_file.filename:
            return None

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        staged_path = self.upload_dir / uuid.uuid4().hex
        try:
            async with aiofiles.open(staged_path, 'wb') as out:
                while True:
                    chunk = await upload_file.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    await out.write(chunk)

            if staged_path.stat().st_size == 0:
                return None
            await run_in_threadpool(self._verify_image, staged_path)
            return await run_in_threadpool(
                self.upload_path, str(staged_path), upload_file.filename, folder
            )
        finally:
            if staged_path.exists():
                staged_path.unlink()

    @staticmethod
    def _verify_image(path: Path):
        try:
            with Image.open(path) as image:
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise ValidationError("Uploaded file is not a valid image", field="file") from e

    def close(self):
        self.session.close()
