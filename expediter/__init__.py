import os
import logging
from flask import Flask, jsonify, redirect, url_for
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from dotenv import load_dotenv

from .config import CONFIGS, ProdConfig

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()


def create_app(config_name: str | None = None) -> Flask:
    """Application factory with environment based configuration."""
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)
    os.makedirs(app.instance_path, exist_ok=True)

    # Pick configuration
    env = config_name or os.getenv('ENV') or os.getenv('FLASK_ENV') or 'production'
    app.config.from_object(CONFIGS.get(env, ProdConfig))

    # Initialise logging
    logging.basicConfig(level=logging.DEBUG if app.debug else logging.INFO)

    db.init_app(app)
    migrate.init_app(app, db)

    from expediter import models  # noqa
    from expediter.mail import MailRelay
    from expediter.pdf_cache import TransientPdfCache
    from expediter.storage import SqlKeyValueStore, make_counter_store
    from expediter.store import DomainStore

    kv = SqlKeyValueStore()
    store = DomainStore(
        kv,
        make_counter_store(app.config['COUNTER_BACKEND'], kv),
        seed=app.config['SEED_DATA'],
        company_name=app.config['COMPANY_NAME'],
    )
    app.extensions['domain_store'] = store
    app.extensions['pdf_cache'] = TransientPdfCache(
        max_entries=app.config['PDF_CACHE_MAX_ENTRIES'],
        ttl_after_read=app.config['PDF_CACHE_TTL'],
    )
    app.extensions['mail_relay'] = MailRelay.from_config(app.config)

    with app.app_context():
        db.create_all()
        store.load()

    @app.route('/')
    def index():
        return redirect(url_for('dashboard'))

    @app.route('/dashboard')
    def dashboard():
        return jsonify(store.dashboard_summary())

    from expediter.errors import ExpediterError

    @app.errorhandler(ExpediterError)
    def domain_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def not_found(_):
        return jsonify(error='Not found'), 404

    @app.errorhandler(500)
    def server_error(_):
        return jsonify(error='Internal server error'), 500

    from expediter.checklists.routes import bp as checklists_bp
    from expediter.clients.routes import bp as clients_bp
    from expediter.downloads.routes import bp as downloads_bp
    from expediter.permits.routes import bp as permits_bp
    from expediter.proposals.routes import bp as proposals_bp
    from expediter.cli import store_cli

    app.register_blueprint(clients_bp, url_prefix='/clients')
    app.register_blueprint(permits_bp, url_prefix='/permits')
    app.register_blueprint(checklists_bp, url_prefix='/checklists')
    app.register_blueprint(proposals_bp, url_prefix='/proposals')
    app.register_blueprint(downloads_bp, url_prefix='/api')
    app.cli.add_command(store_cli)

    return app
