"""
Firebase Admin bootstrap.

One Firebase app per process. Firestore, Storage and Auth handles are kept
in module globals so the rest of the code (and the tests) reach them only
through ``get_db``, ``get_bucket`` and ``get_auth``.
"""

import os
import logging

import firebase_admin
from firebase_admin import credentials, firestore, storage, auth

from app.errors import PhotoServiceError, OPERATION_FAILED

logger = logging.getLogger(__name__)

DEFAULT_CREDENTIALS_PATH = './serviceAccountKey.json'

_app = None
_db = None
_bucket = None
_auth = auth


def _setting(app_config, key, default=''):
    value = app_config.get(key) if app_config else None
    return value or os.environ.get(key, default)


def _credentials(app_config):
    """Service-account key file when present, Application Default Credentials otherwise."""
    path = (_setting(app_config, 'FIREBASE_CREDENTIALS')
            or os.environ.get('GOOGLE_APPLICATION_CREDENTIALS')
            or DEFAULT_CREDENTIALS_PATH)
    if os.path.exists(path):
        logger.info('Using Firebase service account %s', path)
        return credentials.Certificate(path)
    logger.info('No service account file at %s; using application default credentials', path)
    return credentials.ApplicationDefault()


def init_firebase(app_config=None):
    global _app, _db, _bucket

    if _app is not None:
        return

    options = {}
    bucket_name = _setting(app_config, 'FIREBASE_STORAGE_BUCKET')
    if bucket_name:
        options['storageBucket'] = bucket_name
    project_id = _setting(app_config, 'FIREBASE_PROJECT_ID')
    if project_id:
        options['projectId'] = project_id

    _app = firebase_admin.initialize_app(_credentials(app_config), options=options or None)
    _db = firestore.client()

    if bucket_name:
        _bucket = storage.bucket()
    else:
        logger.warning('FIREBASE_STORAGE_BUCKET is not set; photo uploads are disabled')


def get_db():
    if _db is None:
        init_firebase()
    return _db


def get_bucket():
    if _bucket is None:
        init_firebase()
    if _bucket is None:
        raise PhotoServiceError('Photo storage is not configured.', OPERATION_FAILED, 'storage.bucket')
    return _bucket


def get_auth():
    return _auth
