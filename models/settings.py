from extensions import db
from datetime import datetime
from decimal import Decimal, InvalidOperation


class Settings(db.Model):
    """Family-scoped key/value preferences.

    The retirement engine never reads these itself; routes and CLI commands
    look values up (e.g. ``retirement_median_monthly_surplus``) and pass them in.
    """
    __tablename__ = 'settings'
    __table_args__ = (
        db.UniqueConstraint('family_id', 'key', name='uq_settings_family_key'),
    )

    id = db.Column(db.Integer, primary_key=True)
    family_id = db.Column(db.Integer, db.ForeignKey('families.id'), nullable=True, index=True)
    key = db.Column(db.String(100), nullable=False)
    value = db.Column(db.String(500))
    description = db.Column(db.String(255))
    setting_type = db.Column(db.String(50))  # 'int', 'decimal', 'string', 'boolean'
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @staticmethod
    def get_value(key, default=None, family_id=None):
        """Get a setting for a family, converted according to its setting_type."""
        setting = Settings.query.filter_by(key=key, family_id=family_id).first()
        if not setting or setting.value is None:
            return default

        if setting.setting_type == 'int':
            return int(setting.value)
        elif setting.setting_type == 'decimal':
            try:
                return Decimal(setting.value)
            except InvalidOperation:
                return default
        elif setting.setting_type == 'boolean':
            return setting.value.lower() in ('true', '1', 'yes')
        return setting.value

    @staticmethod
    def set_value(key, value, family_id=None, description=None, setting_type='string'):
        """Create or update a setting; the caller commits."""
        setting = Settings.query.filter_by(key=key, family_id=family_id).first()
        if setting:
            setting.value = str(value)
            setting.setting_type = setting_type
            setting.updated_at = datetime.utcnow()
        else:
            setting = Settings(
                family_id=family_id,
                key=key,
                value=str(value),
                description=description,
                setting_type=setting_type
            )
            db.session.add(setting)
        return setting
