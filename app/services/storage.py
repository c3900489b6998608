import time

from werkzeug.utils import secure_filename

from app.firebase_init import get_bucket


def upload_file(file_data, destination_path, content_type=None):
    """Upload file bytes to Firebase Storage.

    Args:
        file_data: bytes or file-like object
        destination_path: path in the bucket (e.g. 'photos/1700000000000_party.jpg')
        content_type: MIME type

    Returns:
        The storage path (same as destination_path)
    """
    bucket = get_bucket()
    blob = bucket.blob(destination_path)
    if content_type:
        blob.content_type = content_type
    if isinstance(file_data, bytes):
        blob.upload_from_string(file_data, content_type=content_type)
    else:
        blob.upload_from_file(file_data, content_type=content_type)
    return destination_path


def delete_file(storage_path):
    """Delete a file from Firebase Storage."""
    bucket = get_bucket()
    blob = bucket.blob(storage_path)
    if blob.exists():
        blob.delete()


def photo_path(filename):
    """Gallery object path: ``photos/<epoch millis>_<filename>``."""
    return f'photos/{int(time.time() * 1000)}_{secure_filename(filename)}'


def upload_photo(file_data, filename, content_type=None):
    """Upload a gallery photo.

    Returns:
        (storage_path, public_url)
    """
    path = upload_file(file_data, photo_path(filename), content_type)
    blob = get_bucket().blob(path)
    blob.make_public()
    return path, blob.public_url


def announcement_path(filename):
    return f'announcements/{int(time.time() * 1000)}_{secure_filename(filename)}'


def upload_announcement_media(file_data, filename, content_type=None):
    """Upload an announcement image or video; returns (storage_path, public_url)."""
    path = upload_file(file_data, announcement_path(filename), content_type)
    blob = get_bucket().blob(path)
    blob.make_public()
    return path, blob.public_url
