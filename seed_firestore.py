"""Seed Firebase Auth and Firestore with the attendance fixture.

- Seeds users (Auth + users collection)
- Sets custom claims: role = 'teacher' | 'student'
- Seeds classes, sessions, attendance

Every Firestore write is a merge, so the script can be re-run safely.

Usage:
    python seed_firestore.py --emulator   # use local emulators
    python seed_firestore.py              # use the production project
"""
import os
import sys
import json
import logging
import argparse
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
SEED_FILE = BASE_DIR / "seed_data.json"
ENV_FILE = BASE_DIR / ".env"

COLLECTIONS = ("users", "classes", "sessions", "attendance")

INSTALL_HINT = "  pip install firebase-admin python-dotenv"


class SeedFileError(Exception):
    """The fixture file is unreadable or does not have the expected shape."""


def load_seed(path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            seed_data = json.load(f)
    except OSError as e:
        raise SeedFileError(f"Cannot read seed file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SeedFileError(f"Seed file {path} is not valid JSON: {e}") from e

    if not isinstance(seed_data, dict):
        raise SeedFileError(f"Seed file {path} must contain a JSON object")

    for name in COLLECTIONS:
        records = seed_data.get(name)
        if not isinstance(records, list):
            raise SeedFileError(f"Seed file {path} is missing the '{name}' list")
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise SeedFileError(f"{name}[{index}] must be a JSON object")

    return seed_data


def parse_timestamp(value):
    """Parse an ISO-8601 date or date-time into an aware datetime.

    Firestore stores aware datetimes as native timestamps. Values without an
    offset are taken as UTC. Numbers are milliseconds since the epoch.
    Empty values give None.
    """
    if not value:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Invalid timestamp: {value!r}") from e
    if not isinstance(value, str):
        raise ValueError(f"Invalid timestamp: {value!r}")

    text = value.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# --- Document builders: (document id, fields) per fixture record ---

def user_document(u):
    return u["uid"], {
        "email": u["email"],
        "name": u["name"],
        "role": u["role"],
        "classIds": u.get("classIds") or [],
    }


def class_document(c):
    return c["id"], {
        "name": c["name"],
        "code": c["code"],
        "ownerId": c["ownerId"],
    }


def session_document(s):
    return s["id"], {
        "classId": s["classId"],
        "date": s["date"],
        "startTime": s["startTime"],
        "endTime": s["endTime"],
        "ownerId": s["ownerId"],
        # Only the JSON literal true opens a session
        "open": s.get("open") is True,
    }


def attendance_document(a):
    return a["id"], {
        "sessionId": a["sessionId"],
        "studentId": a["studentId"],
        "status": a.get("status") or "present",
        "markedAt": parse_timestamp(a.get("markedAt")),
    }


BUILDERS = {
    "users": user_document,
    "classes": class_document,
    "sessions": session_document,
    "attendance": attendance_document,
}


def lookup_user(auth_client, uid):
    # Any lookup failure counts as "absent", not only NOT_FOUND.
    # A transient error here ends up as a create_user call that may
    # fail with a duplicate uid.
    try:
        return auth_client.get_user(uid)
    except Exception as e:
        if getattr(e, "code", None) == "NOT_FOUND":
            logger.debug("Auth user %s not found", uid)
        else:
            logger.warning("Lookup of auth user %s failed, treating as absent: %s", uid, e)
        return None


def upsert_user_auth(auth_client, user):
    uid = user["uid"]
    try:
        existing = lookup_user(auth_client, uid)
        if existing is None:
            auth_client.create_user(
                uid=uid,
                email=user["email"],
                email_verified=True,
                display_name=user["name"],
            )
            logger.info("Created auth user %s", uid)
        else:
            auth_client.update_user(uid, email=user["email"], display_name=user["name"])
            logger.info("Updated auth user %s", uid)

        # Replaces whatever claims the user had before
        auth_client.set_custom_user_claims(uid, {"role": user["role"]})
        logger.info("Set custom claims for %s -> role=%s", uid, user["role"])
    except Exception as e:
        logger.error("Auth error for %s: %s", uid, e)
        raise


def upsert_document(db, collection, doc_id, data):
    db.collection(collection).document(doc_id).set(data, merge=True)
    logger.info("Wrote %s/%s", collection, doc_id)


def build_document(collection, index, record):
    try:
        return BUILDERS[collection](record)
    except KeyError as e:
        raise SeedFileError(f"{collection}[{index}] is missing field {e}") from e
    except ValueError as e:
        raise SeedFileError(f"{collection}[{index}]: {e}") from e


def seed(services, seed_data):
    """Write every fixture record, users first; stop at the first failure.

    Returns the number of records written per collection.
    """
    written = {}
    for collection in COLLECTIONS:
        written[collection] = 0
        for index, record in enumerate(seed_data[collection]):
            doc_id, data = build_document(collection, index, record)
            if collection == "users":
                upsert_user_auth(services.auth, record)
            upsert_document(services.db, collection, doc_id, data)
            written[collection] += 1
    return written


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Seed Firebase Auth and Firestore with attendance fixture data."
    )
    parser.add_argument(
        "--emulator",
        action="store_true",
        help="use the local Firebase Emulator Suite (same as USE_FIREBASE_EMULATOR=true)",
    )
    parser.add_argument(
        "--seed-file",
        help=f"fixture JSON to load (default: $SEED_FILE or {SEED_FILE.name})",
    )
    parser.add_argument(
        "--project-id",
        help="Firebase project id (default: $FIREBASE_PROJECT_ID or demo-project)",
    )
    return parser.parse_args(argv)


def configure_logging():
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv=None):
    args = parse_args(argv)

    try:
        from dotenv import find_dotenv, load_dotenv
        from firebase_admin_init import env_flag, init_firebase
    except ImportError as e:
        print(f"Missing dependency: {e.name or e}. Please install it in your environment:", file=sys.stderr)
        print(INSTALL_HINT, file=sys.stderr)
        return 1

    # Real environment variables win over .env entries
    load_dotenv(ENV_FILE)
    load_dotenv(find_dotenv(usecwd=True))
    configure_logging()

    use_emulator = args.emulator or env_flag("USE_FIREBASE_EMULATOR")
    seed_path = args.seed_file or os.environ.get("SEED_FILE") or SEED_FILE

    try:
        seed_data = load_seed(seed_path)
        services = init_firebase(use_emulator=use_emulator, project_id=args.project_id)
        written = seed(services, seed_data)
    except Exception:
        logger.exception("Seeding failed")
        return 1

    logger.info(
        "Seeding complete. %s",
        ", ".join(f"{name}={count}" for name, count in written.items()),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
