import re
from urllib.parse import quote


def sanitize_filename(filename: str) -> str:
    """
    Замена символов, недопустимых в именах файлов.
    """
    return re.sub(r'[<>:"/\\|?*]', '_', filename)


def attachment_header(filename: str) -> dict:
    """
    Заголовок Content-Disposition для скачивания файла.

    Значения заголовков уходят в latin-1, поэтому имя с не-ASCII символами
    передается в `filename*` (RFC 5987), а в `filename` остается ASCII-замена.
    """
    filename = sanitize_filename(filename)
    ascii_name = sanitize_filename(filename.encode("ascii", "replace").decode("ascii"))
    if ascii_name == filename:
        return {"Content-Disposition": f'attachment; filename="{filename}"'}
    return {
        "Content-Disposition": f"attachment; filename=\"{ascii_name}\"; filename*=utf-8''{quote(filename)}"
    }
