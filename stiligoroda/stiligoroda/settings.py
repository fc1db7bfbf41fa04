"""
Base settings for the Stiligoroda storefront project.

Переменные окружения загружаются из файла, указанного в DJANGO_ENV_FILE
(manage.py подставляет его автоматически), затем из .env рядом с проектом.
"""

from pathlib import Path
import os

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

_explicit_env_file = os.environ.get('DJANGO_ENV_FILE')
if _explicit_env_file:
    load_dotenv(_explicit_env_file)
else:
    load_dotenv(BASE_DIR / '.env')


def _env_bool(name, default='false'):
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes')


SECRET_KEY = os.environ.get('SECRET_KEY', 'django-insecure-stiligoroda-dev-key')
DEBUG = _env_bool('DEBUG', 'true')

_allowed_hosts_env = os.environ.get('ALLOWED_HOSTS')
if _allowed_hosts_env:
    ALLOWED_HOSTS = [h.strip() for h in _allowed_hosts_env.split(',') if h.strip()]
else:
    ALLOWED_HOSTS = ['localhost', '127.0.0.1', 'testserver']

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'storefront',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'stiligoroda.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'stiligoroda.wsgi.application'

# База данных: DB_ENGINE=mysql (через PyMySQL), иначе SQLite как фолбэк
DB_ENGINE = os.environ.get('DB_ENGINE', '').lower()
if os.environ.get('DB_NAME') and os.environ.get('DB_USER') and DB_ENGINE.startswith('mysql'):
    import pymysql

    # Настройка PyMySQL для работы с MySQL
    pymysql.install_as_MySQLdb()

    _options = {
        'charset': 'utf8mb4',
        'use_unicode': True,
        'init_command': "SET NAMES 'utf8mb4' COLLATE 'utf8mb4_unicode_ci'",
        'sql_mode': os.environ.get(
            'DB_SQL_MODE',
            'STRICT_TRANS_TABLES,ERROR_FOR_DIVISION_BY_ZERO,NO_ZERO_DATE,NO_ZERO_IN_DATE,NO_ENGINE_SUBSTITUTION',
        ),
    }
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.mysql',
            'NAME': os.environ['DB_NAME'],
            'USER': os.environ['DB_USER'],
            'PASSWORD': os.environ.get('DB_PASSWORD', ''),
            'HOST': os.environ.get('DB_HOST', 'localhost'),
            'PORT': os.environ.get('DB_PORT', '3306'),
            'CONN_MAX_AGE': int(os.environ.get('DB_CONN_MAX_AGE', '60')),
            'OPTIONS': _options,
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'ru'
TIME_ZONE = 'Europe/Moscow'
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

MEDIA_URL = '/media/'
MEDIA_ROOT = BASE_DIR / 'media'

DATA_UPLOAD_MAX_MEMORY_SIZE = 100 * 1024 * 1024
FILE_UPLOAD_MAX_MEMORY_SIZE = 10 * 1024 * 1024

# ---------------------------------------------------------------------------
# Синхронизация каталога
# ---------------------------------------------------------------------------

# Эндпоинты карточки Wildberries, перебираются по порядку
WILDBERRIES_CARD_URLS = [
    'https://card.wb.ru/cards/v2/detail?appType=1&curr=rub&dest=-1257786&spp=30&nm={product_id}',
    'https://card.wb.ru/cards/v1/detail?appType=1&curr=rub&dest=-1257786&spp=30&nm={product_id}',
    'https://card.wb.ru/cards/detail?appType=1&curr=rub&dest=-1257786&spp=30&nm={product_id}',
    'https://card.wb.ru/cards/detail?nm={product_id}',
]
WILDBERRIES_REQUEST_TIMEOUT = int(os.environ.get('WILDBERRIES_REQUEST_TIMEOUT', '10'))
# Пауза между товарами при пакетном импорте (секунды)
WILDBERRIES_BATCH_DELAY = float(os.environ.get('WILDBERRIES_BATCH_DELAY', '0.15'))

CATALOG_MEDIA_DOWNLOAD_TIMEOUT = int(os.environ.get('CATALOG_MEDIA_DOWNLOAD_TIMEOUT', '15'))
CATALOG_UPLOADS_ROOT = Path(os.environ.get('CATALOG_UPLOADS_ROOT', MEDIA_ROOT / 'uploads'))
CATALOG_UPLOADS_URL = os.environ.get('CATALOG_UPLOADS_URL', MEDIA_URL + 'uploads/')

# Лимиты загружаемых файлов (байты)
CATALOG_UPLOAD_LIMITS = {
    'csv': 10 * 1024 * 1024,
    'json': 20 * 1024 * 1024,
    'zip': 100 * 1024 * 1024,
}

CATALOG_EXPORT_SITE_SETTINGS = {
    'siteName': os.environ.get('SITE_NAME', 'Стили Города'),
    'siteDescription': 'Интернет-магазин домашнего текстиля',
    'contactEmail': os.environ.get('CONTACT_EMAIL', 'info@stiligoroda.ru'),
    'contactPhone': os.environ.get('CONTACT_PHONE', '+7 (800) 000-00-00'),
    'address': os.environ.get('CONTACT_ADDRESS', 'Москва'),
    'workingHours': 'Пн-Пт 9:00-18:00',
    'socialLinks': {
        'vk': os.environ.get('SOCIAL_VK', ''),
        'telegram': os.environ.get('SOCIAL_TELEGRAM', ''),
    },
    'deliverySettings': {
        'freeDeliveryFrom': 5000,
        'defaultDeliveryPrice': 300,
    },
}

LOG_DIR = Path(os.environ.get('LOG_DIR', BASE_DIR / 'logs'))
LOG_DIR.mkdir(parents=True, exist_ok=True)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
        'file': {
            'level': 'INFO',
            'class': 'logging.FileHandler',
            'filename': LOG_DIR / 'storefront.log',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': True,
        },
        'storefront': {
            'handlers': ['console', 'file'],
            'level': os.environ.get('STOREFRONT_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}

LOGIN_URL = '/admin/login/'
