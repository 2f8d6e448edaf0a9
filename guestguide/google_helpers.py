import logging
import os

from dotenv import load_dotenv
from google.cloud import secretmanager
from google.oauth2 import service_account
from google.auth import default as google_auth_default
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

load_dotenv()

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s | %(levelname)s | %(name)s\n%(message)s\n"
)

logger = logging.getLogger("guestguide_backend")

# --- Configuration ---
PROJECT_ID = os.getenv("GOOGLE_CLOUD_PROJECT", "your-project-id")
REGION = os.getenv("GOOGLE_CLOUD_REGION", "us-central1")

GUIDE_LLM_MODEL     = os.getenv("GUIDE_LLM_MODEL", "gemini-2.5-flash")
CONCIERGE_LLM_MODEL = os.getenv("CONCIERGE_LLM_MODEL", GUIDE_LLM_MODEL)
LLM_TIMEOUT         = float(os.getenv("LLM_TIMEOUT", "120"))

# keep | omit | default  (see placeholder_codec.MissingImagePolicy)
MISSING_IMAGE_POLICY = os.getenv("MISSING_IMAGE_POLICY", "keep")
DEFAULT_IMAGE_URL    = os.getenv(
    "DEFAULT_IMAGE_URL",
    "https://images.unsplash.com/photo-1512917774080-9991f1c4c750?auto=format&fit=crop&q=80&w=800",
)

DATABASE_URL        = os.getenv("DATABASE_URL", "")
DB_HOST             = os.environ.get("DB_HOST", "localhost")
DB_PORT             = int(os.environ.get("DB_PORT", "5432"))
DB_NAME             = os.environ.get("DB_NAME", "guestguide")
DB_USER             = os.environ.get("DB_USER", "postgres")
DB_PASSWORD         = os.environ.get("DB_PASSWORD")
DB_SECRET_ID        = os.environ.get("DB_SECRET_ID")

IS_LOCAL_DB = (not DATABASE_URL and DB_HOST == "localhost")


def _build_creds():
    key_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    scopes = ["https://www.googleapis.com/auth/cloud-platform"]
    if key_path and os.path.exists(key_path):
        return service_account.Credentials.from_service_account_file(key_path, scopes=scopes)
    creds, _ = google_auth_default(scopes=scopes)
    return creds


def get_db_password() -> str:
    global DB_PASSWORD

    if DB_PASSWORD:
        return DB_PASSWORD

    if DB_SECRET_ID:
        creds = _build_creds()
        client = secretmanager.SecretManagerServiceClient(credentials=creds)
        name = client.secret_version_path(PROJECT_ID, DB_SECRET_ID, "latest")
        resp = client.access_secret_version(request={"name": name})
        DB_PASSWORD = resp.payload.data.decode("utf-8")
        return DB_PASSWORD

    raise RuntimeError("No DB_PASSWORD and no Secret Manager configured")


def get_db_engine(url: str | None = None):
    url = url or DATABASE_URL
    if url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every session sees an empty database
        return create_engine(
            url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url:
        logger.info(f"[DB] Using DATABASE_URL: {url.split('@')[-1]}")
        return create_engine(url, future=True, pool_pre_ping=True)

    if IS_LOCAL_DB:
        url = "sqlite:///guestguide.db"
        logger.info(f"[DB] Using SQLite URL: {url}")
        return create_engine(url, future=True)

    password = get_db_password()
    url = f"postgresql+pg8000://{DB_USER}:{password}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
    logger.info(f"[DB] Connecting to Postgres at {DB_HOST}:{DB_PORT}/{DB_NAME}")

    # pg8000 supports 'timeout' in seconds
    return create_engine(
        url,
        connect_args={"timeout": 10},  # fail in 10s instead of hanging forever
        pool_pre_ping=True,
    )


def create_session_factory(url: str | None = None) -> sessionmaker:
    from guestguide.entities import Base

    engine = get_db_engine(url)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, future=True)
