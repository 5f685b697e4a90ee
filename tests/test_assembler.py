import json

import pytest
import yaml

from route_scribe.assembler import DEFAULT_RESPONSES, detect_format, dump_document, render
from route_scribe.config import Contact, DocsConfig, InfoOverrides, License
from route_scribe.discovery.base import Parameter, Route


def _routes() -> list[Route]:
    return [
        Route(method="get", path="/users/{id}", summary="Get user", tags=["users"],
              parameters=[Parameter(name="id", location="path", required=True)]),
        Route(method="post", path="/users", tags=["users"]),
        Route(method="delete", path="/users/{id}", description="Removes a user", deprecated=True),
    ]


class TestRender:
    def test_document_shape(self):
        doc = render(_routes())
        assert doc["openapi"] == "3.0.0"
        assert doc["info"] == {
            "title": "API Documentation",
            "version": "1.0.0",
            "description": "Auto-generated API documentation",
        }
        assert list(doc["paths"]) == ["/users/{id}", "/users"]
        assert list(doc["paths"]["/users/{id}"]) == ["get", "delete"]

    def test_operation_fields(self):
        doc = render(_routes())
        get_op = doc["paths"]["/users/{id}"]["get"]
        assert get_op == {
            "tags": ["users"],
            "summary": "Get user",
            "parameters": [{"name": "id", "in": "path", "required": True, "schema": {"type": "string"}}],
            "responses": DEFAULT_RESPONSES,
        }

        delete_op = doc["paths"]["/users/{id}"]["delete"]
        assert delete_op["description"] == "Removes a user"
        assert delete_op["deprecated"] is True
        assert delete_op["summary"] == "DELETE /users/{id}"
        assert "requestBody" not in delete_op

    def test_default_error_responses_carry_a_message_body(self):
        responses = render(_routes())["paths"]["/users"]["post"]["responses"]
        for code in ("400", "500"):
            schema = responses[code]["content"]["application/json"]["schema"]
            assert schema == {"type": "object", "properties": {"message": {"type": "string"}}}
        responses["400"]["content"]["application/json"]["schema"]["properties"].clear()
        assert responses["500"]["content"]["application/json"]["schema"]["properties"] == {
            "message": {"type": "string"}
        }

    def test_body_methods_always_get_request_body(self):
        doc = render(_routes())
        assert doc["paths"]["/users"]["post"]["requestBody"] == {
            "content": {"application/json": {"schema": {"type": "object"}}}
        }

    def test_request_body_with_content_is_kept(self):
        body = {"content": {"text/plain": {"schema": {"type": "string"}}}}
        doc = render([Route(method="put", path="/notes", request_body=body)])
        assert doc["paths"]["/notes"]["put"]["requestBody"] == body

    def test_info_overrides(self):
        config = DocsConfig(
            title="Shop",
            info=InfoOverrides(
                version="2.1.0",
                contact=Contact(name="Team", email="team@example.com"),
                license=License(name="MIT"),
            ),
        )
        info = render([], config)["info"]
        assert info == {
            "title": "Shop",
            "version": "2.1.0",
            "description": "Auto-generated API documentation",
            "contact": {"name": "Team", "email": "team@example.com"},
            "license": {"name": "MIT"},
        }

    def test_render_is_repeatable_and_isolated(self):
        routes = _routes()
        first = render(routes)
        first["paths"]["/users/{id}"]["get"]["responses"]["200"]["description"] = "changed"
        first["paths"]["/users/{id}"]["get"]["tags"].append("changed")
        second = render(routes)
        assert second["paths"]["/users/{id}"]["get"]["responses"] == DEFAULT_RESPONSES
        assert routes[0].tags == ["users"]
        assert render(routes) == second


class TestDumpDocument:
    def test_json(self):
        doc = render(_routes())
        assert json.loads(dump_document(doc, "json")) == doc

    def test_yaml_keeps_key_order(self):
        doc = render(_routes())
        text = dump_document(doc, "yaml")
        assert text.startswith("openapi: 3.0.0")
        assert yaml.safe_load(text) == doc

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            dump_document({}, "xml")

    @pytest.mark.parametrize("name, fmt", [("out.yaml", "yaml"), ("out.YML", "yaml"), ("out.json", "json"), ("out", "json")])
    def test_detect_format(self, tmp_path, name, fmt):
        assert detect_format(tmp_path / name) == fmt
