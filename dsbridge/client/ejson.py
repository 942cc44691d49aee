from datetime import datetime, timedelta, timezone

import json


def decode_date(value):
    """
    dscached encodes datetimes either as milliseconds since EPOCH or as an
    ISO-8601 string. Naive ISO values are taken to be UTC.
    """
    if isinstance(value, bool):
        raise ValueError(f'{value!r}: not a date')

    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value // 1000, tz=timezone.utc) + timedelta(milliseconds=value % 1000)

    if isinstance(value, str):
        dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt

    raise ValueError(f'{value!r}: not a date')


def object_hook(obj):
    if len(obj) == 1 and '$date' in obj:
        try:
            return decode_date(obj['$date'])
        except ValueError:
            return obj
    return obj


def dumps(obj, **kwargs):
    return json.dumps(obj, **kwargs)


def loads(obj, **kwargs):
    return json.loads(obj, object_hook=object_hook, **kwargs)
