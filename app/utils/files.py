import os
from uuid import uuid4

from flask import current_app, url_for
from werkzeug.utils import secure_filename


def is_allowed_file(filename, allowed_extensions):
    if "." not in filename:
        return False
    ext = filename.rsplit(".", 1)[1].lower()
    return ext in allowed_extensions


def _has_expected_signature(file_storage, ext):
    ext = (ext or "").lower()
    # Keep current pointer to avoid side effects for Flask file handlers.
    stream = file_storage.stream
    pos = stream.tell()
    try:
        stream.seek(0)
        head = stream.read(64)
    finally:
        stream.seek(pos)

    if ext in {"jpg", "jpeg"}:
        return head.startswith(b"\xff\xd8\xff")
    if ext == "png":
        return head.startswith(b"\x89PNG\r\n\x1a\n")
    if ext == "webp":
        return len(head) >= 12 and head[:4] == b"RIFF" and head[8:12] == b"WEBP"
    return False


def save_uploaded_file(file_storage, upload_dir, allowed_extensions):
    if not file_storage or file_storage.filename == "":
        return None

    if not is_allowed_file(file_storage.filename, allowed_extensions):
        raise ValueError("File type not allowed.")

    original = secure_filename(file_storage.filename)
    if not original or "." not in original:
        raise ValueError("Invalid file name.")

    ext = original.rsplit(".", 1)[1].lower()
    if not _has_expected_signature(file_storage, ext):
        raise ValueError("File content does not match its extension.")

    filename = f"{uuid4().hex}.{ext}"
    os.makedirs(upload_dir, exist_ok=True)

    upload_dir_abs = os.path.abspath(upload_dir)
    path = os.path.abspath(os.path.join(upload_dir_abs, filename))
    if not path.startswith(upload_dir_abs + os.sep):
        raise ValueError("Invalid destination path.")

    file_storage.save(path)
    return filename


def save_image_upload(file_storage):
    """Store an uploaded image under static/ and return its public URL (or None)."""
    subdir = current_app.config["IMAGE_UPLOAD_SUBDIR"]
    upload_dir = os.path.join(current_app.static_folder, subdir)
    saved = save_uploaded_file(file_storage, upload_dir, current_app.config["ALLOWED_IMAGE_EXTENSIONS"])
    if not saved:
        return None
    return url_for("static", filename=f"{subdir}/{saved}")
