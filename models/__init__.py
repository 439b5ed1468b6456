# Models package - Import all models for Flask-SQLAlchemy

from models.family import Family
from models.users import User
from models.accounts import Account, PensionType
from models.settings import Settings
from models.retirement_scenario import RetirementScenario
from models.retirement_pension_source import RetirementPensionSource
from models.retirement_snapshot import RetirementScenarioSnapshot

__all__ = [
    'Family',
    'User',
    'Account',
    'PensionType',
    'Settings',
    'RetirementScenario',
    'RetirementPensionSource',
    'RetirementScenarioSnapshot',
]
