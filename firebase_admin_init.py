import os
import json
import logging

import firebase_admin
from firebase_admin import auth, credentials, firestore
from google.auth.credentials import AnonymousCredentials

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_ID = "demo-project"
DEFAULT_FIRESTORE_EMULATOR_HOST = "localhost:8080"
DEFAULT_AUTH_EMULATOR_HOST = "localhost:9099"


class EmulatorCredential(credentials.Base):
    """Credential for the Emulator Suite, which accepts unauthenticated calls."""

    def get_credential(self):
        return AnonymousCredentials()


class FirebaseServices:
    """Handles to the two Firebase services the seeder talks to."""

    def __init__(self, app, auth_client, db):
        self.app = app
        self.auth = auth_client
        self.db = db


def env_flag(name, environ=None):
    environ = os.environ if environ is None else environ
    return environ.get(name, "").strip().lower() in ("1", "true", "yes")


def configure_emulators(environ=None):
    """Point the SDK at the local emulators unless hosts are already set."""
    environ = os.environ if environ is None else environ
    environ.setdefault("FIRESTORE_EMULATOR_HOST", DEFAULT_FIRESTORE_EMULATOR_HOST)
    environ.setdefault("FIREBASE_AUTH_EMULATOR_HOST", DEFAULT_AUTH_EMULATOR_HOST)

    logger.info("Seeding against Firebase Emulator Suite")
    logger.info(" - Firestore: %s", environ["FIRESTORE_EMULATOR_HOST"])
    logger.info(" - Auth:      %s", environ["FIREBASE_AUTH_EMULATOR_HOST"])


def select_credential(use_emulator, environ=None):
    environ = os.environ if environ is None else environ
    if use_emulator:
        return EmulatorCredential()

    # Hosted deployments ship the service account as a JSON string
    firebase_config_env = environ.get("FIREBASE_CONFIG")
    if firebase_config_env:
        return credentials.Certificate(json.loads(firebase_config_env))

    service_account_path = environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    if not service_account_path:
        logger.warning(
            "GOOGLE_APPLICATION_CREDENTIALS not set. For production seeding, "
            "set this to a service account JSON."
        )
    elif os.path.exists(service_account_path):
        return credentials.Certificate(service_account_path)
    else:
        logger.warning(
            "Service account file %s not found, using application default credentials",
            service_account_path,
        )
    return credentials.ApplicationDefault()


def init_firebase(use_emulator=False, project_id=None, environ=None):
    environ = os.environ if environ is None else environ
    if use_emulator:
        configure_emulators(environ)

    project_id = project_id or environ.get("FIREBASE_PROJECT_ID") or DEFAULT_PROJECT_ID

    if not firebase_admin._apps:
        cred = select_credential(use_emulator, environ)
        app = firebase_admin.initialize_app(cred, {"projectId": project_id})
        logger.debug("Initialized Firebase app for project %s", project_id)
    else:
        app = firebase_admin.get_app()
        logger.debug("Reusing already initialized Firebase app %s", app.name)

    return FirebaseServices(app, auth.Client(app), firestore.client(app))
