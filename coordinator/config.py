"""Configuration settings for the upload coordinator."""

import os

from common.constants import DEFAULT_PRESIGN_EXPIRY_SECONDS


DATABASE_PATH = os.environ.get("VAULT_DATABASE_PATH", "/var/lib/vaultline/vaultline.db")

S3_ENDPOINT = os.environ.get("VAULT_S3_ENDPOINT") or None

S3_REGION = os.environ.get("VAULT_S3_REGION", "us-east-1")

S3_BUCKET = os.environ.get("VAULT_S3_BUCKET", "")

S3_ACCESS_KEY = os.environ.get("VAULT_S3_ACCESS_KEY") or None

S3_SECRET_KEY = os.environ.get("VAULT_S3_SECRET_KEY") or None

GATEWAY_URL = os.environ.get("VAULT_GATEWAY_URL", "https://ipfs.filebase.io").rstrip("/")

UPLOAD_TOKEN = os.environ.get("VAULT_UPLOAD_TOKEN", "")

DEFAULT_UPLOADER = os.environ.get("VAULT_DEFAULT_UPLOADER", "system")

PRESIGN_EXPIRY_SECONDS = int(os.environ.get("VAULT_PRESIGN_EXPIRY_SECONDS", str(DEFAULT_PRESIGN_EXPIRY_SECONDS)))

SESSION_TTL_SECONDS = int(os.environ.get("VAULT_SESSION_TTL_SECONDS", str(24 * 3600)))

REAPER_INTERVAL_SECONDS = int(os.environ.get("VAULT_REAPER_INTERVAL_SECONDS", str(3600)))

COORDINATOR_HOST = os.environ.get("VAULT_HOST", "0.0.0.0")

COORDINATOR_PORT = int(os.environ.get("VAULT_PORT", "3000"))
