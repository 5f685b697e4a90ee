"""Path template normalization.

Every framework spells path parameters differently: ``/users/:id``
(Express/Hono style), ``/users/<int:id>`` (Flask/Werkzeug) and
``/users/{id:int}`` (Starlette). Routes are keyed on a single canonical
form, ``/users/{id}``, no matter which discovery source produced them.
"""

import re

# Werkzeug style, optional converter: <id>, <int:id>, <path:rest>
_ANGLE_PARAM = re.compile(r"<(?:(?P<converter>\w+)(?:\([^)]*\))?:)?(?P<name>\w+)>")
# Starlette style, optional converter: {id}, {id:int}
_BRACE_PARAM = re.compile(r"\{(?P<name>\w+)(?::(?P<converter>\w+))?\}")
# Express/Hono style, optional marker ignored: :id, :id?
_COLON_PARAM = re.compile(r"(?<=/):(?P<name>\w+)\??")
_MULTI_SLASH = re.compile(r"/{2,}")

_VERSION_SEGMENT = re.compile(r"^v\d+$")
_PREFIX_SEGMENTS = {"api"}

CONVERTER_SCHEMAS = {
    "int": {"type": "integer"},
    "float": {"type": "number"},
    "uuid": {"type": "string", "format": "uuid"},
}


def normalize_path(path: str) -> str:
    """Rewrite a framework path into the canonical ``{name}`` template.

    Duplicate slashes collapse and the trailing slash is stripped, except
    for the root path itself.
    """
    path = (path or "").strip()
    if not path.startswith("/"):
        path = "/" + path
    path = _MULTI_SLASH.sub("/", path)
    path = _ANGLE_PARAM.sub(lambda m: "{%s}" % m.group("name"), path)
    path = _BRACE_PARAM.sub(lambda m: "{%s}" % m.group("name"), path)
    path = _COLON_PARAM.sub(lambda m: "{%s}" % m.group("name"), path)
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return path


def join_paths(prefix: str, path: str) -> str:
    """Join a mount prefix and a relative path without normalizing either."""
    if not prefix:
        return path or "/"
    if not path or path == "/":
        return prefix
    return prefix.rstrip("/") + "/" + path.lstrip("/")


def path_placeholders(path: str) -> list[tuple[str, dict]]:
    """Return ``(name, schema)`` for every parameter in a raw path, in order.

    Converter hints (``<int:id>``, ``{id:int}``) pick the schema; everything
    else is a string.
    """
    found: list[tuple[int, str, str | None]] = []
    for pattern in (_ANGLE_PARAM, _BRACE_PARAM, _COLON_PARAM):
        for match in pattern.finditer(path or ""):
            converter = match.groupdict().get("converter")
            found.append((match.start(), match.group("name"), converter))

    result: list[tuple[str, dict]] = []
    seen: set[str] = set()
    for _, name, converter in sorted(found):
        if name in seen:
            continue
        seen.add(name)
        schema = CONVERTER_SCHEMAS.get(converter or "", {"type": "string"})
        result.append((name, dict(schema)))
    return result


def tag_for_path(path: str) -> str:
    """Derive a grouping tag from the first meaningful path segment.

    Placeholders, an ``api`` prefix and version segments (``v1``) are skipped.
    """
    segments = [s for s in normalize_path(path).split("/") if s and not s.startswith("{")]
    for segment in segments:
        if segment.lower() in _PREFIX_SEGMENTS or _VERSION_SEGMENT.match(segment):
            continue
        return segment
    return segments[0] if segments else "default"
