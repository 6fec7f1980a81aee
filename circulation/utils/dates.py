from datetime import datetime, timezone


def parse_datetime(value) -> datetime:
    """
    ISO-8601 string -> naive UTC datetime. 'Z' ve offset'li değerler UTC'ye çevrilir.
    ValueError: parse edilemeyen değer
    """
    if isinstance(value, datetime):
        dt = value
    else:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Invalid datetime value")
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def iso(value):
    return value.isoformat() if value else None
