"""
Database query helpers for family-scoped multi-tenancy.

Every household's scenarios, accounts and settings carry a ``family_id``.
Routes and services load records through these helpers so one family can
never read or recalculate another family's retirement plan.

Usage
-----
In any blueprint route or service function::

    from utils.db_helpers import family_query, family_get_or_404, get_family_id

    # All scenarios of the current family, primary first
    scenarios = family_query(RetirementScenario).order_by(
        RetirementScenario.is_primary.desc()).all()

    # A single scenario (404 if missing *or* owned by another family)
    scenario = family_get_or_404(RetirementScenario, scenario_id)
"""

from flask_login import current_user


def get_family_id():
    """Return ``current_user.family_id``, or ``None`` if not authenticated."""
    if current_user and current_user.is_authenticated:
        return current_user.family_id
    return None


def family_query(model):
    """Return a SQLAlchemy query pre-filtered to the current family.

    Unauthenticated callers get a query that yields zero rows.
    """
    if not hasattr(model, 'family_id'):
        raise AttributeError(
            f"family_query() called on {model.__name__} but it has no family_id column."
        )
    fid = get_family_id()
    if fid is None:
        return model.query.filter(model.id == -1)
    return model.query.filter_by(family_id=fid)


def family_get(model, record_id):
    """Fetch one record by id scoped to the current family, or ``None``."""
    fid = get_family_id()
    if fid is None:
        return None
    return model.query.filter_by(id=record_id, family_id=fid).first()


def family_get_or_404(model, record_id):
    """Like ``family_get`` but aborts with 404 if nothing is found."""
    fid = get_family_id()
    if fid is None:
        from flask import abort
        abort(404)
    return model.query.filter_by(id=record_id, family_id=fid).first_or_404()


def family_currency(default='GBP'):
    """ISO currency code of the current family, used for chart metadata."""
    from extensions import db
    from models.family import Family
    fid = get_family_id()
    if fid is None:
        return default
    family = db.session.get(Family, fid)
    return family.currency if family and family.currency else default
