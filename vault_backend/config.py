import os

from dotenv import load_dotenv

# Read .env before the Config class body is evaluated
load_dotenv()


class Config:
    SECRET_KEY = os.environ.get("OTP_VAULT_SECRET_KEY", "otp_vault_dev_secret_key")

    # sqlite file holding credentials and backups
    DATABASE = os.environ.get("OTP_VAULT_DATABASE", os.path.join("database", "otp_vault.db"))

    # Issuer shown for secrets generated by the tools endpoints
    DEFAULT_ISSUER = os.environ.get("OTP_VAULT_ISSUER", "otp-vault")

    CORS_ORIGINS = os.environ.get("OTP_VAULT_CORS_ORIGINS", "*")

    QR_BOX_SIZE = int(os.environ.get("OTP_VAULT_QR_BOX_SIZE", "10"))
    QR_BORDER = 4
