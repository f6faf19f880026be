"""Firebase Admin SDK access (ID-token verification and Firestore)"""

import threading
from typing import Any, Dict

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials, firestore

from app.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

_init_lock = threading.Lock()


class FirebaseTokenError(Exception):
    """The ID token is malformed, expired, revoked or for another project"""


def get_firebase_app() -> firebase_admin.App:
    """
    Initialise the default Firebase app on first use.

    Raises:
        RuntimeError: If neither FIREBASE_CREDENTIALS_PATH nor FIREBASE_PROJECT_ID is set
    """
    if not settings.firebase_enabled:
        raise RuntimeError("Firebase is not configured")

    with _init_lock:
        if not firebase_admin._apps:
            options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
            if settings.FIREBASE_CREDENTIALS_PATH:
                cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
                firebase_admin.initialize_app(cred, options)
            else:
                firebase_admin.initialize_app(options=options)
            logger.info("Firebase app initialised", extra={"project_id": settings.FIREBASE_PROJECT_ID or None})
        return firebase_admin.get_app()


def verify_firebase_token(id_token: str) -> Dict[str, Any]:
    """
    Verify a Firebase ID token and return its decoded claims (uid, email, ...).

    Raises:
        RuntimeError: Firebase not configured
        FirebaseTokenError: Token rejected
    """
    app = get_firebase_app()
    try:
        return firebase_auth.verify_id_token(id_token, app=app)
    except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError,
            firebase_auth.RevokedIdTokenError, firebase_auth.CertificateFetchError) as e:
        logger.info(f"Firebase token rejected: {e}")
        raise FirebaseTokenError(str(e)) from e


def get_firestore_client() -> Any:
    return firestore.client(app=get_firebase_app())
