from .settings import *  # noqa: F401,F403

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

STRIPE_SECRET_KEY = 'sk_test_fake_key_for_testing'
STRIPE_WEBHOOK_SECRET = 'whsec_fake_secret_for_testing'
STRIPE_USE_STUB = False
EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
FRONTEND_URL = 'https://app.test'
PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
