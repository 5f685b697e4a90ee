"""Infer schema fragments from observed JSON values."""


def schema_from_value(value) -> dict:
    """Describe a decoded JSON value, keeping the value itself as the example.

    Arrays take their item schema from the first element; object keys
    holding a non-null value are required.
    """
    if value is None:
        return {"type": "object"}
    if isinstance(value, bool):
        return {"type": "boolean", "example": value}
    if isinstance(value, int):
        return {"type": "integer", "example": value}
    if isinstance(value, float):
        return {"type": "number", "example": value}
    if isinstance(value, str):
        return {"type": "string", "example": value}
    if isinstance(value, list):
        items = schema_from_value(value[0]) if value else {"type": "string"}
        return {"type": "array", "items": items, "example": value}
    if isinstance(value, dict):
        fragment = {
            "type": "object",
            "properties": {str(key): schema_from_value(item) for key, item in value.items()},
        }
        required = [str(key) for key, item in value.items() if item is not None]
        if required:
            fragment["required"] = required
        fragment["example"] = value
        return fragment
    return {"type": "string"}
