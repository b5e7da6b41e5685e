"""
Django settings for backend project.

Values come from the environment; a local ``.env`` file is loaded first so
that development setups only need to edit that file.
"""

import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env')


def env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-dev-only-change-me')

DEBUG = env_bool('DJANGO_DEBUG', False)

ALLOWED_HOSTS = [h for h in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h]


INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'products',
    'discounts',
    'coupons',
    'orders',
    'payment',
    'refunds',
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

ROOT_URLCONF = 'backend.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'backend.wsgi.application'


# Database: SQLite for local development, PostgreSQL when DB_NAME is set
if os.getenv('DB_NAME'):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.getenv('DB_NAME'),
            'USER': os.getenv('DB_USER', ''),
            'PASSWORD': os.getenv('DB_PASSWORD', ''),
            'HOST': os.getenv('DB_HOST', 'localhost'),
            'PORT': os.getenv('DB_PORT', '5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }


AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('TIME_ZONE', 'Asia/Kolkata')
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Django REST Framework
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'EXCEPTION_HANDLER': 'api.exceptions.exception_handler',
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(hours=int(os.getenv('JWT_ACCESS_HOURS', '12'))),
    'AUTH_HEADER_TYPES': ('Bearer',),
}


# Payment gateway
PAYMENT_GATEWAY = {
    'BACKEND': os.getenv('PAYMENT_GATEWAY_BACKEND', 'payment.gateway.RazorpayGateway'),
    'KEY_ID': os.getenv('RAZORPAY_KEY_ID', ''),
    'KEY_SECRET': os.getenv('RAZORPAY_KEY_SECRET', ''),
    'BASE_URL': os.getenv('RAZORPAY_BASE_URL', 'https://api.razorpay.com/v1'),
    'CURRENCY': os.getenv('PAYMENT_CURRENCY', 'INR'),
    # (connect, read) seconds
    'TIMEOUT': (
        float(os.getenv('PAYMENT_GATEWAY_CONNECT_TIMEOUT', '5')),
        float(os.getenv('PAYMENT_GATEWAY_TIMEOUT', '15')),
    ),
    'MAX_RETRIES': int(os.getenv('PAYMENT_GATEWAY_MAX_RETRIES', '2')),
}


# Chat notifications (WhatsApp Business API or compatible provider)
WHATSAPP = {
    'ENABLED': env_bool('WHATSAPP_ENABLED', False),
    'API_URL': os.getenv('WHATSAPP_API_URL', ''),
    'API_KEY': os.getenv('WHATSAPP_API_KEY', ''),
    'ADMIN_NUMBER': os.getenv('ADMIN_WHATSAPP_NUMBER', ''),
    'DEFAULT_COUNTRY_CODE': os.getenv('WHATSAPP_COUNTRY_CODE', '+91'),
    'TIMEOUT': float(os.getenv('WHATSAPP_TIMEOUT', '10')),
}

STORE_NAME = os.getenv('STORE_NAME', 'Parika Jewels')
FRONTEND_URL = os.getenv('FRONTEND_URL', 'http://localhost:5173')
ORDER_NUMBER_PREFIX = os.getenv('ORDER_NUMBER_PREFIX', 'ELG')


LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        name: {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False}
        for name in ('api', 'discounts', 'coupons', 'orders', 'payment', 'refunds', 'notifications')
    },
}
