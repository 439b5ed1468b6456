from datetime import date

from flask import current_app, jsonify, request
from flask_login import current_user

from . import retirement_bp
from .forms import ScenarioForm
from extensions import db
from models.retirement_scenario import RetirementScenario
from services.networth_service import NetWorthService
from services.projection_engine import SEARCH_HORIZON_MONTHS
from services.retirement_chart_service import RetirementChartService
from services.retirement_service import EDITABLE_FIELDS, RetirementService
from services.snapshot_tracker import SnapshotConflictError, SnapshotTracker
from utils.db_helpers import family_currency, family_get_or_404, family_query, get_family_id
from utils.forms import form_data_from_json
from utils.money import chart_value, to_decimal


def _payload():
    return request.get_json(silent=True) or {}


def _validation_error(errors):
    return jsonify({'error': 'Validation failed', 'errors': errors}), 400


def _pension_links(payload):
    """
    Parse ``pension_sources`` from the request body, or None if absent.

    Items are account ids or dicts with ``account_id`` and optional
    ``expected_monthly_payout`` / ``payout_start_date``.  Malformed items
    raise ValueError.
    """
    if 'pension_sources' not in payload:
        return None
    items = payload['pension_sources'] or []
    if not isinstance(items, list):
        raise ValueError('pension_sources must be a list')

    links = []
    for item in items:
        if isinstance(item, int) and not isinstance(item, bool):
            item = {'account_id': item}
        if not isinstance(item, dict) or item.get('account_id') is None:
            raise ValueError('Each pension source needs an account_id')
        try:
            account_id = int(item['account_id'])
        except (TypeError, ValueError):
            raise ValueError(f"Invalid account_id: {item['account_id']!r}")

        payout = item.get('expected_monthly_payout')
        if payout is not None:
            payout = to_decimal(payout)
            if payout is None or not payout.is_finite() or payout < 0:
                raise ValueError('expected_monthly_payout must be a number of at least 0')

        link = {
            'account_id': account_id,
            'expected_monthly_payout': payout,
            'payout_start_date': None,
        }
        if item.get('payout_start_date'):
            link['payout_start_date'] = date.fromisoformat(str(item['payout_start_date']))
        links.append(link)
    return links


def _int_arg(name, default, minimum, maximum):
    value = request.args.get(name, default, type=int)
    if value is None:
        return None
    return min(max(value, minimum), maximum)


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

@retirement_bp.route('/scenarios', methods=['GET'])
def list_scenarios():
    """All scenarios of the family, primary first"""
    scenarios = family_query(RetirementScenario).order_by(
        RetirementScenario.is_primary.desc(), RetirementScenario.name
    ).all()
    return jsonify({
        'scenarios': [RetirementService.scenario_summary(s) for s in scenarios],
        'currency': family_currency(current_app.config['DEFAULT_CURRENCY']),
    })


@retirement_bp.route('/scenarios', methods=['POST'])
def create_scenario():
    payload = _payload()
    form = ScenarioForm(formdata=form_data_from_json(payload))
    if not form.validate():
        return _validation_error(form.errors)

    try:
        scenario = RetirementService.create_scenario(
            form.scenario_data, get_family_id(), pension_links=_pension_links(payload))
        RetirementService.recalculate(scenario)
        db.session.commit()
        current_app.logger.info(f'Retirement scenario created: {scenario.name}')
        return jsonify(RetirementService.scenario_summary(scenario)), 201
    except (ValueError, KeyError) as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception('Error creating retirement scenario')
        return jsonify({'error': f'Error creating scenario: {str(e)}'}), 500


@retirement_bp.route('/scenarios/<int:scenario_id>', methods=['GET'])
def get_scenario(scenario_id):
    scenario = family_get_or_404(RetirementScenario, scenario_id)
    return jsonify(RetirementService.scenario_summary(scenario))


@retirement_bp.route('/scenarios/<int:scenario_id>', methods=['PUT'])
def update_scenario(scenario_id):
    """Update a scenario; fields missing from the body keep their current values"""
    scenario = family_get_or_404(RetirementScenario, scenario_id)
    payload = _payload()

    current = scenario.to_dict()
    merged = {key: current.get(key) for key in EDITABLE_FIELDS}
    merged.update(payload)

    form = ScenarioForm(formdata=form_data_from_json(merged))
    if not form.validate():
        return _validation_error(form.errors)

    try:
        RetirementService.update_scenario(scenario, form.scenario_data, pension_links=_pension_links(payload))
        RetirementService.recalculate(scenario)
        db.session.commit()
        return jsonify(RetirementService.scenario_summary(scenario))
    except (ValueError, KeyError) as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f'Error updating retirement scenario {scenario_id}')
        return jsonify({'error': f'Error updating scenario: {str(e)}'}), 500


@retirement_bp.route('/scenarios/<int:scenario_id>', methods=['DELETE'])
def delete_scenario(scenario_id):
    scenario = family_get_or_404(RetirementScenario, scenario_id)
    if current_user.is_authenticated and not current_user.is_admin:
        return jsonify({'error': 'Only family admins can delete scenarios'}), 403
    try:
        name = scenario.name
        db.session.delete(scenario)
        db.session.commit()
        current_app.logger.info(f'Retirement scenario deleted: {name}')
        return jsonify({'success': True})
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f'Error deleting retirement scenario {scenario_id}')
        return jsonify({'success': False, 'error': str(e)}), 500


# ---------------------------------------------------------------------------
# Calculation and snapshots
# ---------------------------------------------------------------------------

@retirement_bp.route('/scenarios/<int:scenario_id>/recalculate', methods=['POST'])
def recalculate(scenario_id):
    """Recompute outputs; body may override net worth / surplus and request a snapshot"""
    scenario = family_get_or_404(RetirementScenario, scenario_id)
    payload = _payload()

    try:
        outputs, snapshot = RetirementService.recalculate(
            scenario,
            current_net_worth=to_decimal(payload.get('current_net_worth')),
            median_monthly_surplus=to_decimal(payload.get('median_monthly_surplus')),
            snapshot=bool(payload.get('snapshot')),
            notes=payload.get('notes'),
        )
        db.session.commit()
    except SnapshotConflictError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 409
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f'Error recalculating retirement scenario {scenario_id}')
        return jsonify({'error': f'Error recalculating scenario: {str(e)}'}), 500

    return jsonify({
        'calculated': outputs is not None,
        'scenario': RetirementService.scenario_summary(scenario),
        'snapshot': snapshot.to_dict() if snapshot else None,
    })


@retirement_bp.route('/scenarios/<int:scenario_id>/snapshots', methods=['POST'])
def create_snapshot(scenario_id):
    """Capture the scenario's stored outputs as of today"""
    scenario = family_get_or_404(RetirementScenario, scenario_id)
    payload = _payload()

    if not scenario.is_complete or scenario.required_portfolio_value is None:
        return jsonify({'error': 'Scenario has not been calculated yet'}), 400

    try:
        snapshot = SnapshotTracker.create_snapshot(
            scenario,
            snapshot_date=date.today(),
            notes=payload.get('notes') or 'Manual snapshot',
            median_monthly_surplus=NetWorthService.median_monthly_surplus(family_id=scenario.family_id),
        )
        db.session.commit()
        return jsonify(snapshot.to_dict()), 201
    except SnapshotConflictError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 409
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f'Error creating snapshot for scenario {scenario_id}')
        return jsonify({'error': f'Error creating snapshot: {str(e)}'}), 500


# ---------------------------------------------------------------------------
# Chart data
# ---------------------------------------------------------------------------

@retirement_bp.route('/scenarios/<int:scenario_id>/income-timeline')
def income_timeline(scenario_id):
    scenario = family_get_or_404(RetirementScenario, scenario_id)
    years = _int_arg('years', current_app.config['RETIREMENT_TIMELINE_YEARS'], 1, 50)
    return jsonify(RetirementChartService.income_timeline(
        scenario, years=years, currency=family_currency(current_app.config['DEFAULT_CURRENCY'])))


@retirement_bp.route('/scenarios/<int:scenario_id>/portfolio-projection')
def portfolio_projection(scenario_id):
    scenario = family_get_or_404(RetirementScenario, scenario_id)
    months = _int_arg('months', None, 1, SEARCH_HORIZON_MONTHS)
    return jsonify(RetirementChartService.portfolio_projection(
        scenario,
        months=months,
        median_monthly_surplus=NetWorthService.median_monthly_surplus(family_id=scenario.family_id),
        currency=family_currency(current_app.config['DEFAULT_CURRENCY']),
    ))


@retirement_bp.route('/scenarios/<int:scenario_id>/snapshot-history')
def snapshot_history(scenario_id):
    scenario = family_get_or_404(RetirementScenario, scenario_id)
    data = RetirementChartService.snapshot_history(
        scenario, currency=family_currency(current_app.config['DEFAULT_CURRENCY']))
    data['snapshots'] = [
        {**entry['snapshot'].to_dict(), 'actual_growth_rate': chart_value(entry['actual_growth_rate'])}
        for entry in SnapshotTracker.tracking_history(scenario)
    ]
    return jsonify(data)


# ---------------------------------------------------------------------------
# Pension accounts
# ---------------------------------------------------------------------------

@retirement_bp.route('/pension-accounts')
def pension_accounts():
    """Pension-bearing accounts that can be linked to a scenario"""
    accounts = RetirementService.pension_accounts(get_family_id())
    return jsonify({
        'accounts': [{
            'id': acc.id,
            'name': acc.name,
            'pension_type': acc.pension_type.value,
            'pension_type_label': acc.pension_type.long_label,
            'balance': chart_value(acc.balance),
            'expected_monthly_payout': chart_value(acc.expected_monthly_payout),
            'retirement_date': acc.retirement_date.isoformat() if acc.retirement_date else None,
            'in_payout_phase': acc.in_payout_phase(),
        } for acc in accounts]
    })
