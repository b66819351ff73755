from flask import request
from werkzeug.datastructures import MultiDict


def json_formdata():
    """Flatten the JSON body into form data, dropping nulls and nested values"""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}

    return MultiDict(
        {
            key: str(value)
            for key, value in payload.items()
            if value is not None and not isinstance(value, (dict, list))
        }
    )


def form_from_json(form_class, *args, **kwargs):
    """Build a form from the request's JSON body"""
    return form_class(*args, formdata=json_formdata(), **kwargs)


def submitted_fields(form):
    """Names of the fields present in the request body, for partial updates"""
    formdata = json_formdata()
    return [name for name in form.data if name in formdata]
