import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-insecure-change-me")
DEBUG = os.environ.get("DJANGO_DEBUG", "false").lower() == "true"

ALLOWED_HOSTS = [host.strip() for host in os.environ.get("DJANGO_ALLOWED_HOSTS", "*").split(",") if host.strip()]
if "*" not in ALLOWED_HOSTS and "kotsadm" not in ALLOWED_HOSTS:
    ALLOWED_HOSTS.append("kotsadm")

# Respect proxy headers from the ingress so generated links use https.
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
USE_X_FORWARDED_HOST = True

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "corsheaders",
    "app_versions.apps.AppVersionsConfig",
]

MIDDLEWARE = [
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "kotsadm.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

WSGI_APPLICATION = "kotsadm.wsgi.application"

if os.environ.get("POSTGRES_HOST", "").strip():
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ.get("POSTGRES_DB", "kotsadm"),
            "USER": os.environ.get("POSTGRES_USER", "kotsadm"),
            "PASSWORD": os.environ.get("POSTGRES_PASSWORD", "kotsadm"),
            "HOST": os.environ.get("POSTGRES_HOST"),
            "PORT": os.environ.get("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.environ.get("KOTSADM_SQLITE_PATH", str(BASE_DIR / "db.sqlite3")),
            # file-backed so threads in TransactionTestCase share one database
            "TEST": {"NAME": os.environ.get("KOTSADM_TEST_SQLITE_PATH", str(BASE_DIR / "test_db.sqlite3"))},
        }
    }

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("DJANGO_TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ALLOWED_ORIGINS", "http://localhost:8800").split(",")
    if origin.strip()
]

KOTSADM_INTERNAL_TOKEN = os.environ.get("KOTSADM_INTERNAL_TOKEN", "").strip()

KOTSADM_ARCHIVE_STORAGE = {
    "storage": {
        "primary": {"name": os.environ.get("KOTSADM_ARCHIVE_PROVIDER", "local").strip() or "local"},
        "providers": [
            {
                "name": "local",
                "type": "local",
                "local": {"base_path": os.environ.get("KOTSADM_ARCHIVE_LOCAL_PATH", "/tmp/kotsadm-archives")},
            },
            {
                "name": "s3",
                "type": "s3",
                "s3": {
                    "bucket": os.environ.get("KOTSADM_ARCHIVE_S3_BUCKET", ""),
                    "prefix": os.environ.get("KOTSADM_ARCHIVE_S3_PREFIX", "kotsadm"),
                },
            },
        ],
    }
}

KOTSADM_GITHUB_API_URL = os.environ.get("KOTSADM_GITHUB_API_URL", "https://api.github.com").rstrip("/")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "loggers": {
        "app_versions": {
            "handlers": ["console"],
            "level": os.environ.get("KOTSADM_LOG_LEVEL", "INFO").upper(),
            "propagate": False,
        },
    },
}
