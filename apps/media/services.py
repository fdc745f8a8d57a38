import ftplib
import logging
import posixpath
from urllib.parse import urlparse

from django.conf import settings

from apps.utils.exceptions import BusinessLogicException, UpstreamServiceError
from apps.utils.utils import timestamp_ms, random_suffix

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")
ALLOWED_EXTENSIONS = ("jpg", "jpeg", "png", "webp", "gif")
INVALID_TYPE_MESSAGE = "Invalid file type. Only JPEG, PNG, WebP, and GIF are allowed"


class ImageStorageService:
    """
    Product images live on the shared web host, reached over FTP.
    One connection per call, no retries.
    """

    @staticmethod
    def validate(upload):
        if upload is None:
            raise BusinessLogicException("No file provided", code="no_file")

        # The stored name keeps the client extension, so both must look like an image
        if (
            upload.content_type not in ALLOWED_CONTENT_TYPES
            or ImageStorageService.file_extension(upload.name) not in ALLOWED_EXTENSIONS
        ):
            raise BusinessLogicException(INVALID_TYPE_MESSAGE, code="invalid_file_type")

        if upload.size > settings.MAX_IMAGE_UPLOAD_SIZE:
            raise BusinessLogicException("File size exceeds 5MB limit", code="file_too_large")

    @staticmethod
    def file_extension(original_name: str) -> str:
        _, dot, extension = (original_name or "").rpartition(".")
        return extension.lower() if dot and extension else "jpg"

    @staticmethod
    def generate_filename(original_name: str) -> str:
        # img_<ms>_<6 chars>.<ext>
        extension = ImageStorageService.file_extension(original_name)
        return f"img_{timestamp_ms()}_{random_suffix(6)}.{extension}"

    @staticmethod
    def filename_from_url(url: str) -> str:
        name = posixpath.basename(urlparse(url).path)
        if not name or name in (".", ".."):
            raise BusinessLogicException("Invalid image URL", code="invalid_url")
        return name

    @staticmethod
    def public_url(filename: str) -> str:
        return f"{settings.IMAGE_BASE_URL}{filename}"

    @staticmethod
    def _connect():
        ftp = ftplib.FTP(settings.FTP_HOST, timeout=settings.FTP_TIMEOUT)
        ftp.login(settings.FTP_USER, settings.FTP_PASSWORD)
        return ftp

    @staticmethod
    def upload(upload) -> dict:
        ImageStorageService.validate(upload)
        filename = ImageStorageService.generate_filename(upload.name)

        try:
            with ImageStorageService._connect() as ftp:
                try:
                    ftp.cwd(settings.FTP_IMAGE_DIR)
                except ftplib.error_perm:
                    logger.info(f"Creating image directory {settings.FTP_IMAGE_DIR}")
                    ftp.mkd(settings.FTP_IMAGE_DIR)
                    ftp.cwd(settings.FTP_IMAGE_DIR)

                upload.seek(0)
                ftp.storbinary(f"STOR {filename}", upload)
        except ftplib.all_errors as e:
            logger.error(f"Image upload of {filename} failed: {e}")
            raise UpstreamServiceError("Failed to upload image") from e

        logger.info(f"Uploaded image {filename} ({upload.size} bytes)")
        return {"url": ImageStorageService.public_url(filename), "filename": filename}

    @staticmethod
    def delete(url: str) -> str:
        if not url:
            raise BusinessLogicException("No image URL provided", code="no_url")
        filename = ImageStorageService.filename_from_url(url)

        try:
            with ImageStorageService._connect() as ftp:
                ftp.cwd(settings.FTP_IMAGE_DIR)
                ftp.delete(filename)
        except ftplib.all_errors as e:
            logger.error(f"Image delete of {filename} failed: {e}")
            raise UpstreamServiceError("Failed to delete image") from e

        logger.info(f"Deleted image {filename}")
        return filename
