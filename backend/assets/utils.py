# assets/utils.py
from itsdangerous import TimestampSigner, BadSignature, SignatureExpired
from django.conf import settings

MB = 1024 * 1024
PROJECT_FILE_MAX_BYTES = 25 * MB
INLINE_UPLOAD_MAX_BYTES = 10 * MB
DOWNLOAD_TOKEN_MAX_AGE = 3600

PROJECT_FILE_MIME_TYPES = frozenset([
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/svg+xml",
    "application/pdf",
    "text/plain",
    "text/csv",
    "application/json",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/zip",
    "application/x-rar-compressed",
    "video/mp4",
    "video/quicktime",
    "audio/mpeg",
    "audio/wav",
])

INLINE_UPLOAD_MIME_TYPES = frozenset([
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "text/plain",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
])

signer = TimestampSigner(settings.SECRET_KEY, salt="workbench.project-file")


def generate_signed_token(file_id):
    """Generate a signed token for the given file ID"""
    return signer.sign(str(file_id)).decode()


def verify_signed_token(token, max_age=DOWNLOAD_TOKEN_MAX_AGE):
    """
    Verify a signed token (valid for 1 hour by default).

    Returns the file id as a string, or ``None`` when the token is invalid
    or expired.
    """
    if not token:
        return None
    try:
        return signer.unsign(token, max_age=max_age).decode()
    except (BadSignature, SignatureExpired):
        return None


def detect_mime_type(upload, default=""):
    """Content type sent by the client, sniffed from the first bytes when missing."""
    mime_type = getattr(upload, "content_type", None)
    if mime_type:
        return mime_type
    import magic

    head = upload.read(2048)
    upload.seek(0)
    return magic.from_buffer(head, mime=True) if head else default


def file_extension(name):
    if "." not in (name or ""):
        return ""
    return name.rsplit(".", 1)[-1].lower()


def format_file_size(size_bytes: int) -> str:
    """
    Automatically converts the number of bytes to B/KB/MB/GB and returns a friendly string.
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 ** 2:
        return f"{size_bytes / 1024:.2f} KB"
    elif size_bytes < 1024 ** 3:
        return f"{size_bytes / (1024 ** 2):.2f} MB"
    return f"{size_bytes / (1024 ** 3):.2f} GB"
