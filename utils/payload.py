import json

from typeguard import typechecked

@typechecked
def serialize_fields(fields: dict[str, str]) -> bytes:
    """
    Render a stream entry's complete field mapping as a JSON object, keeping field order.
    """

    return json.dumps(fields, ensure_ascii=False).encode("utf-8")
