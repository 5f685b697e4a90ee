import pytest
from pydantic import ValidationError

from route_scribe.discovery.base import Parameter, Route, RouteDoc, path_parameters


class TestParameter:
    def test_create_required_param(self):
        p = Parameter(name="id", location="path", required=True)
        assert p.name == "id"
        assert p.required is True
        assert p.fragment == {"type": "string"}

    def test_as_openapi(self):
        p = Parameter(name="limit", location="query", required=False, fragment={"type": "integer"})
        assert p.as_openapi() == {
            "name": "limit",
            "in": "query",
            "required": False,
            "schema": {"type": "integer"},
        }


class TestRoute:
    def test_create_minimal_route(self):
        route = Route(method="GET", path="/api/users")
        assert route.method == "get"
        assert route.key == ("get", "/api/users")
        assert route.responses == {}
        assert route.source == "manual"

    def test_path_is_normalized(self):
        route = Route(method="get", path="users/:id/")
        assert route.path == "/users/{id}"

    def test_rejects_unknown_method(self):
        with pytest.raises(ValidationError):
            Route(method="fetch", path="/users")

    def test_rejects_unknown_source(self):
        with pytest.raises(ValidationError):
            Route(method="get", path="/users", source="guess")

    def test_tags_are_deduplicated_in_order(self):
        route = Route(method="get", path="/users", tags=["users", "admin", "users", ""])
        assert route.tags == ["users", "admin"]

    def test_bookkeeping_excluded_from_dump(self):
        route = Route(method="get", path="/users", source="scan", inferred={"summary"})
        data = route.model_dump()
        assert "source" not in data
        assert "inferred" not in data
        assert data["method"] == "get"


class TestRouteDoc:
    def test_merged_keeps_unset_values(self):
        base = RouteDoc(summary="List users", tags=["users"])
        merged = base.merged(RouteDoc(description="All of them"))
        assert merged.summary == "List users"
        assert merged.tags == ["users"]
        assert merged.description == "All of them"

    def test_merged_overrides_set_values(self):
        merged = RouteDoc(summary="Old", deprecated=False).merged(RouteDoc(summary="New", deprecated=True))
        assert merged.summary == "New"
        assert merged.deprecated is True

    def test_holds_arbitrary_schema_objects(self):
        class Marker:
            pass

        marker = Marker()
        doc = RouteDoc(request_body=marker)
        assert doc.merged(RouteDoc()).request_body is marker


class TestPathParameters:
    def test_required_path_params_in_order(self):
        params = path_parameters("/orgs/<org>/users/<int:user_id>")
        assert [p.name for p in params] == ["org", "user_id"]
        assert all(p.location == "path" and p.required for p in params)
        assert params[1].fragment == {"type": "integer"}
