import os
import logging
import click
from logging.handlers import RotatingFileHandler
from flask import Flask, jsonify
from config import config
from extensions import db, migrate, login_manager, csrf, limiter


def configure_logging(app):
    """Configure application logging"""
    if not app.debug and not app.testing:
        # Create logs directory if it doesn't exist
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = RotatingFileHandler(
            'logs/retirement_planner.log',
            maxBytes=10240000,  # 10MB
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s '
            '[in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        # Service modules log through their own module loggers
        services_logger = logging.getLogger('services')
        services_logger.addHandler(file_handler)
        services_logger.setLevel(logging.INFO)

        app.logger.setLevel(logging.INFO)
        app.logger.info('Retirement Planner startup')
    else:
        # Development logging to console
        app.logger.setLevel(logging.DEBUG)
        app.logger.info('Retirement Planner startup (DEBUG mode)')


def create_app(config_name=None):
    """Application factory pattern"""

    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    # Configure logging
    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # Add security headers
    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses"""
        headers = app.config.get('SECURITY_HEADERS', {})
        for header, value in headers.items():
            response.headers[header] = value
        return response

    # User loader callback for Flask-Login
    @login_manager.user_loader
    def load_user(user_id):
        from models.users import User
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    # Import models to ensure they're registered with SQLAlchemy
    with app.app_context():
        import models  # noqa: F401

    # Register blueprints
    from blueprints.auth import auth_bp
    from blueprints.retirement import retirement_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(retirement_bp)
    # JSON API authenticated by session cookie; no HTML forms to carry a token
    csrf.exempt(auth_bp)
    csrf.exempt(retirement_bp)

    # Create database tables
    if (app.config.get('SQLALCHEMY_DATABASE_URI') or '').startswith('sqlite:///') and not app.testing:
        os.makedirs(app.instance_path, exist_ok=True)
    with app.app_context():
        db.create_all()

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_commands(app)

    return app


def register_error_handlers(app):
    """Register global error handlers"""

    @app.errorhandler(400)
    def bad_request_error(error):
        return jsonify({'error': getattr(error, 'description', 'Bad request')}), 400

    @app.errorhandler(403)
    def forbidden_error(error):
        return jsonify({'error': 'Forbidden'}), 403

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(429)
    def ratelimit_error(error):
        return jsonify({'error': f'Rate limit exceeded: {error.description}'}), 429

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f'Internal Server Error: {error}')
        return jsonify({'error': 'Internal server error'}), 500


def register_commands(app):
    """Register Flask CLI commands."""

    @app.cli.group()
    def retirement():
        """Recalculate and inspect retirement scenarios."""
        pass

    @retirement.command('recalculate-all')
    @click.option('--snapshot', is_flag=True, help='Capture a snapshot of each recalculated scenario.')
    def recalculate_all(snapshot):
        """Recalculate every scenario against current net worth."""
        from services.retirement_service import RetirementService
        stats = RetirementService.recalculate_all(
            snapshot=snapshot, notes='Scheduled recalculation' if snapshot else None)
        click.echo(
            f"Recalculated {stats['calculated']} scenario(s), "
            f"skipped {stats['skipped']} incomplete."
        )
        if snapshot:
            click.echo(f"Snapshots captured: {stats['snapshots']} (already existed: {stats['conflicts']})")

    @retirement.command('create-user')
    @click.argument('email')
    @click.argument('name')
    @click.option('--family-id', type=int, help='Join an existing family instead of creating one.')
    @click.option('--family-name', default='My Family', show_default=True)
    @click.option('--currency', default=None, help='ISO currency code for a new family.')
    @click.option('--role', type=click.Choice(['admin', 'member']), default='admin', show_default=True)
    @click.password_option()
    def create_user(email, name, family_id, family_name, currency, role, password):
        """Create a login for EMAIL, creating a family unless --family-id is given."""
        from models.family import Family
        from models.users import User

        email = email.strip().lower()
        if User.query.filter_by(email=email).first():
            click.echo(f'ERROR: A user with email "{email}" already exists', err=True)
            return

        if family_id is None:
            family = Family(name=family_name, currency=(currency or app.config['DEFAULT_CURRENCY']).upper())
            db.session.add(family)
            db.session.flush()
        else:
            family = db.session.get(Family, family_id)
            if not family:
                click.echo(f'ERROR: No family with id {family_id}', err=True)
                return

        user = User(email=email, name=name, family_id=family.id, role=role)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        click.echo(f'SUCCESS: "{name}" ({email}) created in family "{family.name}" (id {family.id}).')

    @retirement.command('summary')
    @click.argument('scenario_id', type=int)
    def summary(scenario_id):
        """Print the calculated outputs of scenario SCENARIO_ID."""
        from models.retirement_scenario import RetirementScenario
        from services.income_timeline_analyzer import IncomeTimelineAnalyzer
        from services.scenario_calculator import ScenarioCalculator

        scenario = db.session.get(RetirementScenario, scenario_id)
        if not scenario:
            click.echo(f'ERROR: No scenario with id {scenario_id}', err=True)
            return

        click.echo(f'{scenario.name} (as of {scenario.calculation_date})')
        click.echo('-' * 60)
        if scenario.required_portfolio_value is None:
            click.echo('Not calculated (monthly expenses missing).')
            return

        rows = [
            ('Monthly expenses', scenario.retirement_monthly_expenses),
            ('Pension income / month', scenario.total_pension_income),
            ('Income gap / month', scenario.income_gap_monthly),
            ('Required portfolio', scenario.required_portfolio_value),
            ('Current portfolio', scenario.current_portfolio_value),
            ('Portfolio gap', scenario.portfolio_gap),
            ('Progress %', ScenarioCalculator.progress_percent(scenario)),
            ('Projected retirement', scenario.projected_retirement_date or 'not reached in 40 years'),
        ]
        for label, value in rows:
            click.echo(f'{label:<26} {value}')

        gap = IncomeTimelineAnalyzer(scenario).gap_period()
        if gap:
            click.echo(
                f"{'Income gap period':<26} {gap['start_date']} to {gap['end_date']} "
                f"({gap['months']} months)"
            )


if __name__ == '__main__':
    app = create_app()
    # SECURITY: Only bind to localhost in development
    # Never use 0.0.0.0 with debug mode - it exposes the debugger to the network
    app.run(host='127.0.0.1', port=5000, debug=True)
