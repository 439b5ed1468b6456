"""
Helpers for validating JSON request bodies with Flask-WTF forms.
"""
from werkzeug.datastructures import MultiDict


def form_data_from_json(payload):
    """
    Turn a JSON object into form data WTForms can process.

    Nulls are dropped (the field stays blank), booleans become 'y' / ''.
    Nested lists and objects are left for the caller to handle.
    """
    items = []
    for key, value in (payload or {}).items():
        if value is None or isinstance(value, (list, dict)):
            continue
        if isinstance(value, bool):
            value = 'y' if value else ''
        items.append((key, str(value)))
    return MultiDict(items)
