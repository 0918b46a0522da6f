import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    cron_secret: str
    cron_platform_header: str
    csrf_enabled: bool

    mail_enabled: bool
    smtp_server: str
    smtp_port: str
    smtp_use_tls: bool
    smtp_username: str
    smtp_password: str
    email_from: str

    platform_name: str
    platform_address: str
    currency: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getflag(name: str, default: str = "1") -> bool:
    return _getenv(name, default).lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///gymsaas.db"),
        cron_secret=_getenv("CRON_SECRET", ""),
        cron_platform_header=_getenv("CRON_PLATFORM_HEADER", "X-Cron-Trigger"),
        csrf_enabled=_getflag("CSRF_ENABLED", "1"),
        mail_enabled=_getflag("MAIL_ENABLED", "0"),
        smtp_server=_getenv("SMTP_SERVER", ""),
        smtp_port=_getenv("SMTP_PORT", "587"),
        smtp_use_tls=_getflag("SMTP_USE_TLS", "1"),
        smtp_username=_getenv("SMTP_USERNAME", ""),
        smtp_password=_getenv("SMTP_PASSWORD", ""),
        email_from=_getenv("EMAIL_FROM", ""),
        platform_name=_getenv("PLATFORM_NAME", "Gym SaaS"),
        platform_address=_getenv("PLATFORM_ADDRESS", "123 Business Street|City, State 12345|United States"),
        currency=_getenv("CURRENCY", "PKR"),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "CRON_SECRET": s.cron_secret,
        "CRON_PLATFORM_HEADER": s.cron_platform_header,
        "CSRF_ENABLED": s.csrf_enabled,
        "MAIL_ENABLED": s.mail_enabled,
        "SMTP_SERVER": s.smtp_server,
        "SMTP_PORT": s.smtp_port,
        "SMTP_USE_TLS": s.smtp_use_tls,
        "SMTP_USERNAME": s.smtp_username,
        "SMTP_PASSWORD": s.smtp_password,
        "EMAIL_FROM": s.email_from,
        "PLATFORM_NAME": s.platform_name,
        # "|" separates address lines on invoices
        "PLATFORM_ADDRESS": [line.strip() for line in s.platform_address.split("|") if line.strip()],
        "CURRENCY": s.currency,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        "MAX_CONTENT_LENGTH": 5 * 1024 * 1024,
    }
