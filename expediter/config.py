import os


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class BaseConfig:
    SECRET_KEY = os.getenv('SECRET_KEY', 'change-me')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///expediter.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = False

    # Domain store
    SEED_DATA = _env_bool('SEED_DATA', 'true')
    COUNTER_BACKEND = os.getenv('COUNTER_BACKEND', 'persistent')  # or 'memory'

    # Transient PDF cache
    PDF_CACHE_MAX_ENTRIES = int(os.getenv('PDF_CACHE_MAX_ENTRIES', '10'))
    PDF_CACHE_TTL = float(os.getenv('PDF_CACHE_TTL', '60'))

    # Documents
    LOGO_PATH = os.getenv('LOGO_PATH', '')
    COMPANY_NAME = os.getenv('COMPANY_NAME', 'IRH Smart LLC')
    COMPANY_CONTACT = os.getenv('COMPANY_CONTACT', 'Irina Perez, Permit Expediter')
    COMPANY_PHONE = os.getenv('COMPANY_PHONE', '(305) 859-1549')
    COMPANY_DIRECT_PHONE = os.getenv('COMPANY_DIRECT_PHONE', '(786) 208-6889')
    COMPANY_EMAIL = os.getenv('COMPANY_EMAIL', 'irina@irhsmart.com')
    COMPANY_TAGLINE = os.getenv('COMPANY_TAGLINE', 'Permit Expediting Services')

    # Mail relay
    SMTP_HOST = os.getenv('SMTP_HOST', 'smtp.gmail.com')
    SMTP_PORT = int(os.getenv('SMTP_PORT', '587'))
    SMTP_SECURE = _env_bool('SMTP_SECURE')
    SMTP_USER = os.getenv('SMTP_USER', '')
    SMTP_PASSWORD = os.getenv('SMTP_PASSWORD', '')
    EMAIL_FROM = os.getenv('EMAIL_FROM', '')
    MAIL_TIMEOUT = float(os.getenv('MAIL_TIMEOUT', '30'))


class DevConfig(BaseConfig):
    DEBUG = True
    ENV = 'development'


class ProdConfig(BaseConfig):
    DEBUG = False
    ENV = 'production'
    SESSION_COOKIE_SECURE = True


class TestConfig(BaseConfig):
    TESTING = True
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SEED_DATA = False
    COUNTER_BACKEND = 'persistent'
    EMAIL_FROM = 'office@example.com'


CONFIGS = {
    'development': DevConfig,
    'production': ProdConfig,
    'testing': TestConfig,
}
